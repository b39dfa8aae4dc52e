from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..model.portfolio import GraphData, GraphNode
from .graph import to_mermaid_node_id

LOG = logging.getLogger(__name__)

DIRECTIONS = ("TD", "LR")
THEMES = ("default", "dark", "forest", "neutral")


@dataclass(frozen=True)
class MermaidConfig:
    direction: str = "TD"
    theme: str = "default"


DEFAULT_MERMAID_CONFIG = MermaidConfig()


def _style_block_lines() -> List[str]:
    # One class per node role; colors are fixed so output stays deterministic.
    return [
        "  classDef root fill:#4CAF50,stroke:#2E7D32,color:#fff",
        "  classDef derivative fill:#2196F3,stroke:#1565C0,color:#fff",
        "  classDef leaf fill:#FF9800,stroke:#EF6C00,color:#fff",
    ]


def _sanitize_label(label: str) -> str:
    # Keep node labels conservative to avoid Mermaid parse edge-cases.
    safe = str(label)
    for ch in ("\n", "\r", "\t", "|"):
        safe = safe.replace(ch, " ")
    for ch in ("[", "]", "(", ")", "{", "}", "<", ">", '"', ";", ":"):
        safe = safe.replace(ch, "")
    safe = " ".join(safe.split())
    return safe or "asset"


def _render_node(node: GraphNode) -> str:
    style_class = node.style_class or "derivative"
    return f"  {to_mermaid_node_id(node.id)}[{_sanitize_label(node.label)}]:::{style_class}"


def _render_edge(src: str, dst: str) -> str:
    return f"  {to_mermaid_node_id(src)} --> {to_mermaid_node_id(dst)}"


def find_node_id_collisions(nodes: Sequence[GraphNode]) -> Dict[str, List[str]]:
    """Map Mermaid node ids to the distinct IP ids that share them."""
    by_mermaid_id: Dict[str, List[str]] = {}
    for node in nodes:
        ids = by_mermaid_id.setdefault(to_mermaid_node_id(node.id), [])
        if node.id not in ids:
            ids.append(node.id)
    return {k: v for k, v in by_mermaid_id.items() if len(v) > 1}


def generate_mermaid_diagram(
    graph: GraphData,
    config: Optional[MermaidConfig] = None,
    *,
    logger: Optional[logging.Logger] = None,
) -> str:
    """
    Render the graph as a Mermaid flowchart.

    The output is a pure function of the graph and config: one header line, one
    line per node, one line per edge, then the role class definitions.
    """
    cfg = config or DEFAULT_MERMAID_CONFIG
    direction = (cfg.direction or "TD").upper()
    if direction not in DIRECTIONS:
        raise ValueError(f"Mermaid direction must be one of: {', '.join(DIRECTIONS)}")
    theme = (cfg.theme or "default").lower()
    if theme not in THEMES:
        raise ValueError(f"Mermaid theme must be one of: {', '.join(THEMES)}")

    collisions = find_node_id_collisions(graph.nodes)
    if collisions:
        (logger or LOG).warning(
            "Mermaid node ids collide for %s id group(s); affected nodes will be merged in the diagram",
            len(collisions),
            extra={"step": "mermaid", "phase": "warning", "collisions": sorted(collisions)},
        )

    lines: List[str] = []
    if theme != "default":
        lines.append(f"%%{{init: {{'theme': '{theme}'}}}}%%")
    lines.append(f"flowchart {direction}")
    for node in graph.nodes:
        lines.append(_render_node(node))
    for edge in graph.edges:
        lines.append(_render_edge(edge.source, edge.target))
    lines.extend(_style_block_lines())
    return "\n".join(lines)
