from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from ..model.portfolio import PortfolioData, assets_from_dicts
from ..util.errors import InputError
from ..util.serialization import stable_json_dumps

LOG = logging.getLogger(__name__)

CACHE_FILE_NAME = "story-portfolio-cache.json"


def default_cache_path() -> Path:
    return Path(tempfile.gettempdir()) / CACHE_FILE_NAME


def write_portfolio_cache(portfolio: PortfolioData, path: Optional[Path] = None) -> Optional[Path]:
    """
    Write the portfolio document as stable, indented JSON.

    A failed cache write is logged and reported as None; it never fails the run.
    """
    target = path or default_cache_path()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(stable_json_dumps(portfolio.to_dict(), indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        LOG.warning(
            "Failed to cache portfolio data: %s",
            e,
            extra={"step": "cache", "phase": "warning", "path": str(target)},
        )
        return None
    LOG.debug("Portfolio data cached to %s", target, extra={"step": "cache", "phase": "complete"})
    return target


def _portfolio_from_document(data: Dict[str, Any]) -> PortfolioData:
    assets_raw = data.get("assets")
    if not isinstance(assets_raw, list):
        raise InputError("Portfolio document must contain an 'assets' list")
    mermaid = data.get("mermaidDiagram")
    return PortfolioData(
        wallet_address=str(data.get("walletAddress") or ""),
        network=str(data.get("network") or ""),
        assets=assets_from_dicts(assets_raw),
        generated_at=str(data.get("generatedAt") or ""),
        mermaid_diagram=mermaid if isinstance(mermaid, str) and mermaid else None,
    )


def read_portfolio_cache(path: Path) -> PortfolioData:
    """
    Load a cached portfolio document, or a bare JSON list of assets.

    Statistics and the relationship graph are not read back; the pipeline
    always recomputes them from the assets.
    """
    if not path.exists():
        raise InputError(f"Portfolio file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Failed to read portfolio file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise InputError(f"Portfolio file {path} is not valid JSON: {e}") from e

    if isinstance(data, list):
        return PortfolioData(wallet_address="", network="", assets=assets_from_dicts(data))
    if isinstance(data, dict):
        return _portfolio_from_document(data)
    raise InputError("Top-level portfolio document must be an object or a list of assets")
