from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Dict, List, Optional, Tuple

from .config import RenderConfig
from .export.graph import build_graph_data
from .export.rendering import Rendering, RenderingKind, render_with_fallback
from .graph.assemble import build_relationship_graph
from .graph.stats import calculate_statistics
from .model.portfolio import Asset, PortfolioData
from .report import PortfolioHtmlRenderer, RenderOptions
from .util.time import utc_now_iso

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortfolioReport:
    portfolio: PortfolioData
    rendering: Optional[Rendering]
    cycles: Tuple[str, ...]
    html: str


class _StepTimers:
    def __init__(self) -> None:
        self._starts: Dict[str, float] = {}

    def start(self, key: str) -> None:
        self._starts[key] = perf_counter()

    def finish(self, key: str) -> Optional[int]:
        started = self._starts.pop(key, None)
        if started is None:
            return None
        return int((perf_counter() - started) * 1000)


def _log_event(
    logger: logging.Logger,
    level: int,
    message: str,
    *,
    step: str,
    phase: str,
    timers: Optional[_StepTimers] = None,
    **extra: Any,
) -> None:
    duration_ms = None
    if timers is not None:
        if phase == "start":
            timers.start(step)
        elif phase in {"complete", "error", "warning"}:
            duration_ms = timers.finish(step)
    payload: Dict[str, Any] = {"step": step, "phase": phase, "event": f"{step}.{phase}"}
    if duration_ms is not None:
        payload["duration_ms"] = duration_ms
    payload.update(extra)
    logger.log(level, message, extra=payload)


def build_portfolio(
    assets: List[Asset],
    *,
    wallet_address: str,
    network: str,
    config: Optional[RenderConfig] = None,
    logger: Optional[logging.Logger] = None,
    generated_at: Optional[str] = None,
) -> PortfolioReport:
    """
    Run the full pipeline: relationships, statistics, graph, rendering, HTML.

    `assets` is updated in place by the relationship pass.
    """
    cfg = config or RenderConfig()
    log = logger or LOG
    timers = _StepTimers()

    _log_event(log, logging.DEBUG, "Building relationship graph", step="assemble", phase="start", timers=timers)
    assembly = build_relationship_graph(assets, logger=log)
    _log_event(
        log,
        logging.DEBUG,
        "Relationship graph built",
        step="assemble",
        phase="complete",
        timers=timers,
        assets=len(assembly.assets),
        cycles=len(assembly.cycles),
    )

    statistics = calculate_statistics(assembly.assets)
    graph = build_graph_data(assembly.assets)

    _log_event(log, logging.DEBUG, "Rendering relationship graph", step="render_graph", phase="start", timers=timers)
    rendering = render_with_fallback(graph, cfg.graph_settings(), logger=log)
    _log_event(
        log,
        logging.DEBUG,
        "Relationship graph rendered",
        step="render_graph",
        phase="complete",
        timers=timers,
        renderer=rendering.kind.value if rendering else "none",
    )

    portfolio = PortfolioData(
        wallet_address=wallet_address,
        network=network,
        assets=assembly.assets,
        statistics=statistics,
        relationship_graph=graph,
        generated_at=generated_at or utc_now_iso(),
        mermaid_diagram=rendering.content if rendering and rendering.kind is RenderingKind.DIAGRAM else None,
    )

    _log_event(log, logging.DEBUG, "Generating HTML portfolio", step="render_html", phase="start", timers=timers)
    html = PortfolioHtmlRenderer(show_full_ids=cfg.show_full_ids).render(portfolio, RenderOptions(rendering=rendering))
    _log_event(
        log,
        logging.INFO,
        "HTML portfolio generated",
        step="render_html",
        phase="complete",
        timers=timers,
        total_assets=statistics.total_assets,
    )
    return PortfolioReport(portfolio=portfolio, rendering=rendering, cycles=assembly.cycles, html=html)
