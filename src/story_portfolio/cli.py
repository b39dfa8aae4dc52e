from __future__ import annotations

import sys

from rich.console import Console

from .config import DEFAULT_NETWORK, RenderConfig, load_render_config
from .export.cache import read_portfolio_cache, write_portfolio_cache
from .export.graph import write_graph
from .logging import LogConfig, add_run_log_file, get_logger, setup_logging
from .pipeline import build_portfolio
from .report import write_portfolio_html
from .util.errors import ConfigError, as_exit_code
from .util.rich_summary import render_portfolio_summary_table

LOG = get_logger(__name__)


def cmd_render(cfg: RenderConfig, *, console: Console | None = None) -> int:
    if cfg.input is None:
        raise ConfigError("An input portfolio file is required (--input or STORY_PORTFOLIO_INPUT)")

    source = read_portfolio_cache(cfg.input)
    wallet = cfg.wallet_address or source.wallet_address
    network = cfg.network or source.network or DEFAULT_NETWORK
    if not wallet:
        raise ConfigError("Wallet address not found in the input document; pass --wallet")

    if not source.assets:
        LOG.info(
            "No IP assets found for this wallet; rendering an empty portfolio",
            extra={"step": "render", "phase": "warning"},
        )

    report = build_portfolio(source.assets, wallet_address=wallet, network=network, config=cfg, logger=LOG)

    out_path = write_portfolio_html(report.html, cfg.output)
    LOG.info("Portfolio written", extra={"step": "render", "phase": "complete", "path": str(out_path)})

    if cfg.cache is not None:
        write_portfolio_cache(report.portfolio, cfg.cache)
    if cfg.graph_dir is not None:
        graph = report.portfolio.relationship_graph
        write_graph(cfg.graph_dir, graph.nodes, graph.edges)

    render_portfolio_summary_table(
        enabled=True,
        statistics=report.portfolio.statistics,
        network=network,
        renderer=report.rendering.kind.value if report.rendering else "unavailable",
        output=str(out_path),
        cycles=report.cycles,
        console=console,
    )
    return 0


def main() -> None:
    try:
        command, cfg = load_render_config()
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs))
        if cfg.log_file is not None:
            add_run_log_file(cfg.log_file)

        if command == "render":
            code = cmd_render(cfg)
        else:
            raise ConfigError(f"Unknown command: {command}")

        sys.exit(code)
    except SystemExit:
        raise
    except BrokenPipeError:
        # Common when users pipe to `head` or similar tools.
        sys.exit(0)
    except Exception as e:
        # Map to consistent exit code and log
        setup_logging(LogConfig())  # ensure something is configured
        LOG.error("Execution failed", extra={"error": str(e)})
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
