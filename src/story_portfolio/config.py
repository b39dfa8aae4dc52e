from __future__ import annotations

import argparse
import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .export.mermaid import DIRECTIONS, THEMES
from .export.rendering import MAX_MERMAID_TEXT_CHARS, RENDERER_CHOICES, GraphRenderSettings
from .export.svg import DEFAULT_HEIGHT, DEFAULT_WIDTH
from .util.errors import ConfigError

# --------
# Defaults
# --------
DEFAULT_OUTPUT = Path("./story-portfolio.html")
DEFAULT_NETWORK = "testnet"
NETWORKS = {"testnet", "mainnet"}
ALLOWED_CONFIG_KEYS = {
    "input",
    "output",
    "cache",
    "graph_dir",
    "direction",
    "theme",
    "svg_width",
    "svg_height",
    "show_full_ids",
    "renderer",
    "max_diagram_chars",
    "wallet_address",
    "network",
    "json_logs",
    "log_level",
    "log_file",
}
BOOL_CONFIG_KEYS = {"show_full_ids", "json_logs"}
INT_CONFIG_KEYS = {"svg_width", "svg_height", "max_diagram_chars"}
PATH_CONFIG_KEYS = {"input", "output", "cache", "graph_dir", "log_file"}
STR_CONFIG_KEYS = {"direction", "theme", "renderer", "wallet_address", "network", "log_level"}


@dataclass(frozen=True)
class RenderConfig:
    # Input / output
    input: Optional[Path] = None
    output: Path = DEFAULT_OUTPUT
    cache: Optional[Path] = None
    graph_dir: Optional[Path] = None

    # Graph rendering
    direction: str = "TD"
    theme: str = "default"
    svg_width: int = DEFAULT_WIDTH
    svg_height: int = DEFAULT_HEIGHT
    renderer: str = "auto"  # auto|mermaid|svg|html
    max_diagram_chars: int = MAX_MERMAID_TEXT_CHARS

    # Report
    show_full_ids: bool = False
    wallet_address: Optional[str] = None  # overrides the value in the input document
    network: Optional[str] = None

    # Logging
    json_logs: bool = False
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    def graph_settings(self) -> GraphRenderSettings:
        return GraphRenderSettings(
            direction=self.direction,
            theme=self.theme,
            svg_width=self.svg_width,
            svg_height=self.svg_height,
            renderer=self.renderer,
            max_diagram_chars=self.max_diagram_chars,
        )


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text) or {}
        elif path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            # Try YAML first then JSON
            try:
                data = yaml.safe_load(text) or {}
            except yaml.YAMLError:
                data = json.loads(text)
    except (yaml.YAMLError, ValueError) as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip().lower()
    if not raw:
        return None
    return raw in {"1", "true", "yes", "on"}


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"Config field '{key}' must be a boolean")


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be an integer")


def _normalize_config_file(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown config keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS:
            continue
        if value is None:
            normalized[key] = None
        elif key in BOOL_CONFIG_KEYS:
            normalized[key] = _coerce_bool(key, value)
        elif key in INT_CONFIG_KEYS:
            normalized[key] = _coerce_int(key, value)
        elif key in PATH_CONFIG_KEYS:
            if isinstance(value, (str, Path)):
                normalized[key] = value
            else:
                raise ValueError(f"Config field '{key}' must be a string path")
        elif key in STR_CONFIG_KEYS:
            if isinstance(value, str):
                normalized[key] = value
            else:
                raise ValueError(f"Config field '{key}' must be a string")
        else:
            normalized[key] = value
    return _compact_dict(normalized)


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def _merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge: values in b override a.
    """
    merged = dict(a)
    merged.update(b)
    return merged


def _validate_choice(key: str, value: str, choices: Any) -> str:
    if value not in choices:
        raise ConfigError(f"Config field '{key}' must be one of: {', '.join(sorted(choices))}")
    return value


def _validate_positive(key: str, value: int) -> int:
    if value <= 0:
        raise ConfigError(f"Config field '{key}' must be a positive integer")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="story-portfolio", description="IP asset portfolio report generator")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_render = subparsers.add_parser("render", help="Render a portfolio document to a self-contained HTML page")
    p_render.add_argument("--config", type=Path, help="Optional YAML/JSON config file")
    p_render.add_argument(
        "--input",
        type=Path,
        default=None,
        help="Portfolio JSON (cached portfolio document or a list of assets)",
    )
    p_render.add_argument("--output", type=Path, default=None, help=f"HTML output path (default {DEFAULT_OUTPUT})")
    p_render.add_argument("--cache", type=Path, default=None, help="Also write the assembled portfolio JSON here")
    p_render.add_argument("--graph-dir", type=Path, default=None, help="Also write graph nodes/edges JSONL here")
    p_render.add_argument("--direction", default=None, choices=list(DIRECTIONS), help="Mermaid flowchart direction")
    p_render.add_argument("--theme", default=None, choices=list(THEMES), help="Mermaid theme")
    p_render.add_argument("--svg-width", type=int, default=None, help=f"Fallback SVG width (default {DEFAULT_WIDTH})")
    p_render.add_argument(
        "--svg-height", type=int, default=None, help=f"Fallback SVG height (default {DEFAULT_HEIGHT})"
    )
    p_render.add_argument(
        "--renderer",
        default=None,
        choices=list(RENDERER_CHOICES),
        help="First graph renderer to try (default: auto = mermaid, then svg, then html)",
    )
    p_render.add_argument(
        "--max-diagram-chars",
        type=int,
        default=None,
        help=f"Fall back to SVG when Mermaid text exceeds this size (default {MAX_MERMAID_TEXT_CHARS})",
    )
    p_render.add_argument(
        "--show-full-ids",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Display full IP IDs and hashes without truncation",
    )
    p_render.add_argument("--wallet", dest="wallet_address", default=None, help="Wallet address shown in the header")
    p_render.add_argument("--network", default=None, help="Network shown in the badge (testnet|mainnet)")
    p_render.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable JSON logs",
    )
    p_render.add_argument("--log-level", default=None, help="Log level (INFO, DEBUG, ...)")
    p_render.add_argument("--log-file", type=Path, default=None, help="Also write logs for this run to a file")
    return parser


def load_render_config(
    args: Optional[argparse.Namespace] = None,
    argv: Optional[List[str]] = None,
) -> Tuple[str, RenderConfig]:
    """
    Build RenderConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.
    """
    ns = args if args is not None else build_parser().parse_args(argv)
    command = ns.command

    base: Dict[str, Any] = {
        "input": None,
        "output": DEFAULT_OUTPUT,
        "cache": None,
        "graph_dir": None,
        "direction": "TD",
        "theme": "default",
        "svg_width": DEFAULT_WIDTH,
        "svg_height": DEFAULT_HEIGHT,
        "show_full_ids": False,
        "renderer": "auto",
        "max_diagram_chars": MAX_MERMAID_TEXT_CHARS,
        "wallet_address": None,
        "network": None,
        "json_logs": False,
        "log_level": "INFO",
        "log_file": None,
    }

    file_cfg: Dict[str, Any] = {}
    if getattr(ns, "config", None):
        file_cfg = _normalize_config_file(_parse_config_file(Path(ns.config)))

    env_cfg: Dict[str, Any] = _compact_dict(
        {
            "input": _env_str("STORY_PORTFOLIO_INPUT"),
            "output": _env_str("STORY_PORTFOLIO_OUTPUT"),
            "cache": _env_str("STORY_PORTFOLIO_CACHE"),
            "graph_dir": _env_str("STORY_PORTFOLIO_GRAPH_DIR"),
            "direction": _env_str("STORY_PORTFOLIO_DIRECTION"),
            "theme": _env_str("STORY_PORTFOLIO_THEME"),
            "svg_width": _env_int("STORY_PORTFOLIO_SVG_WIDTH"),
            "svg_height": _env_int("STORY_PORTFOLIO_SVG_HEIGHT"),
            "show_full_ids": _env_bool("STORY_PORTFOLIO_SHOW_FULL_IDS"),
            "renderer": _env_str("STORY_PORTFOLIO_RENDERER"),
            "max_diagram_chars": _env_int("STORY_PORTFOLIO_MAX_DIAGRAM_CHARS"),
            "wallet_address": _env_str("STORY_PORTFOLIO_WALLET"),
            "network": _env_str("STORY_PORTFOLIO_NETWORK"),
            "json_logs": _env_bool("STORY_PORTFOLIO_JSON_LOGS"),
            "log_level": _env_str("STORY_PORTFOLIO_LOG_LEVEL"),
            "log_file": _env_str("STORY_PORTFOLIO_LOG_FILE"),
        }
    )

    cli_cfg: Dict[str, Any] = _compact_dict({key: getattr(ns, key, None) for key in base})

    merged = _merge_dicts(base, _merge_dicts(file_cfg, _merge_dicts(env_cfg, cli_cfg)))

    network = merged.get("network")
    if network is not None:
        network = _validate_choice("network", str(network).lower(), NETWORKS)

    cfg = RenderConfig(
        input=Path(merged["input"]) if merged.get("input") else None,
        output=Path(merged["output"]),
        cache=Path(merged["cache"]) if merged.get("cache") else None,
        graph_dir=Path(merged["graph_dir"]) if merged.get("graph_dir") else None,
        direction=_validate_choice("direction", str(merged["direction"]).upper(), DIRECTIONS),
        theme=_validate_choice("theme", str(merged["theme"]).lower(), THEMES),
        svg_width=_validate_positive("svg_width", int(merged["svg_width"])),
        svg_height=_validate_positive("svg_height", int(merged["svg_height"])),
        show_full_ids=bool(merged["show_full_ids"]),
        renderer=_validate_choice("renderer", str(merged["renderer"]).lower(), RENDERER_CHOICES),
        max_diagram_chars=_validate_positive("max_diagram_chars", int(merged["max_diagram_chars"])),
        wallet_address=str(merged["wallet_address"]) if merged.get("wallet_address") else None,
        network=network,
        json_logs=bool(merged["json_logs"]),
        log_level=str(merged.get("log_level") or "INFO").upper(),
        log_file=Path(merged["log_file"]) if merged.get("log_file") else None,
    )
    return command, cfg


def dump_config(cfg: RenderConfig) -> Dict[str, Any]:
    return {
        "input": str(cfg.input) if cfg.input else None,
        "output": str(cfg.output),
        "cache": str(cfg.cache) if cfg.cache else None,
        "graph_dir": str(cfg.graph_dir) if cfg.graph_dir else None,
        "direction": cfg.direction,
        "theme": cfg.theme,
        "svg_width": cfg.svg_width,
        "svg_height": cfg.svg_height,
        "show_full_ids": cfg.show_full_ids,
        "renderer": cfg.renderer,
        "max_diagram_chars": cfg.max_diagram_chars,
        "wallet_address": cfg.wallet_address,
        "network": cfg.network,
        "json_logs": cfg.json_logs,
        "log_level": cfg.log_level,
        "log_file": str(cfg.log_file) if cfg.log_file else None,
    }
