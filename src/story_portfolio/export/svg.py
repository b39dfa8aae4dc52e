from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from ..model.portfolio import GraphData, GraphNode, NodeRole
from ..util.html import escape_html
from .graph import nodes_by_role

DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 600
LAYOUT_PADDING = 50
NODE_RADIUS = 25
EMPTY_MESSAGE = "No assets to display"

_BAND_ORDER = (NodeRole.ROOT, NodeRole.DERIVATIVE, NodeRole.LEAF)


@dataclass(frozen=True)
class Point:
    x: float
    y: float


def _fmt(value: float) -> str:
    # 150.0 -> "150", 133.333333 -> "133.33"
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return text if text != "-0" else "0"


def calculate_tree_layout(graph: GraphData, width: int, height: int) -> Dict[str, Point]:
    """
    Place nodes in horizontal bands by role: roots on top, derivatives in the
    middle, leaves at the bottom. Empty bands are skipped, bands split the
    padded height evenly and nodes are spread evenly across each band.
    """
    positions: Dict[str, Point] = {}
    bands: List[List[GraphNode]] = [b for b in (nodes_by_role(graph, r) for r in _BAND_ORDER) if b]
    if not bands:
        return positions

    available_width = width - LAYOUT_PADDING * 2
    available_height = height - LAYOUT_PADDING * 2
    band_height = available_height / len(bands)

    y = LAYOUT_PADDING + band_height / 2
    for band in bands:
        spacing = available_width / (len(band) + 1)
        for i, node in enumerate(band):
            positions[node.id] = Point(x=LAYOUT_PADDING + spacing * (i + 1), y=y)
        y += band_height
    return positions


def _style_lines() -> List[str]:
    return [
        "  <style>",
        "    .node-root { fill: #4CAF50; stroke: #2E7D32; stroke-width: 2; }",
        "    .node-derivative { fill: #2196F3; stroke: #1565C0; stroke-width: 2; }",
        "    .node-leaf { fill: #FF9800; stroke: #EF6C00; stroke-width: 2; }",
        "    .edge { stroke: #666; stroke-width: 2; }",
        "    .label { font-family: monospace; font-size: 10px; fill: #fff; text-anchor: middle; }",
        "  </style>",
    ]


def render_fallback_svg(graph: GraphData, width: int = DEFAULT_WIDTH, height: int = DEFAULT_HEIGHT) -> str:
    """Self-contained SVG tree used when Mermaid output is unavailable."""
    if width <= 0 or height <= 0:
        raise ValueError("SVG width and height must be positive")

    header = f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" viewBox="0 0 {width} {height}">'
    if graph.is_empty:
        return "\n".join(
            [
                header,
                f'  <text x="{_fmt(width / 2)}" y="{_fmt(height / 2)}" text-anchor="middle" fill="#666">{EMPTY_MESSAGE}</text>',
                "</svg>",
            ]
        )

    positions = calculate_tree_layout(graph, width, height)
    lines = [header]
    lines.extend(_style_lines())

    # Edges first so nodes paint over them.
    for edge in graph.edges:
        src = positions.get(edge.source)
        dst = positions.get(edge.target)
        if src is None or dst is None:
            continue
        lines.append(
            f'  <line class="edge" x1="{_fmt(src.x)}" y1="{_fmt(src.y)}" x2="{_fmt(dst.x)}" y2="{_fmt(dst.y)}" />'
        )

    for node in graph.nodes:
        pos = positions.get(node.id)
        if pos is None:
            continue
        lines.append("  <g>")
        lines.append(f"    <title>{escape_html(node.full_ip_id or node.id)}</title>")
        lines.append(
            f'    <circle class="node-{node.role.value}" cx="{_fmt(pos.x)}" cy="{_fmt(pos.y)}" r="{NODE_RADIUS}" />'
        )
        lines.append(
            f'    <text class="label" x="{_fmt(pos.x)}" y="{_fmt(pos.y + 4)}">{escape_html(node.label)}</text>'
        )
        lines.append("  </g>")

    lines.append("</svg>")
    return "\n".join(lines)
