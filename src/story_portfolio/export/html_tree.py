from __future__ import annotations

from typing import Dict, List, Set, Tuple

from ..model.portfolio import GraphData, GraphNode
from ..util.html import escape_html

EMPTY_HTML = "<p>No assets to display</p>"

_TREE_STYLE = """<style>
  .portfolio-tree .node-root { color: #4CAF50; font-weight: bold; }
  .portfolio-tree .node-derivative { color: #2196F3; font-weight: bold; }
  .portfolio-tree .node-leaf { color: #FF9800; font-weight: bold; }
  .portfolio-tree .license { color: #666; font-size: 0.9em; }
  .portfolio-tree, .portfolio-tree ul { list-style-type: none; padding-left: 20px; }
</style>"""


def _children_map(graph: GraphData) -> Dict[str, List[str]]:
    children: Dict[str, List[str]] = {}
    for edge in graph.edges:
        children.setdefault(edge.source, []).append(edge.target)
    return children


def _node_lines(node: GraphNode, indent: str) -> List[str]:
    return [
        f"{indent}<li>",
        f'{indent}  <span class="node-{node.role.value}" title="{escape_html(node.full_ip_id or node.id)}">'
        f"{escape_html(node.label)}</span>",
        f'{indent}  <span class="license">({escape_html(node.license_type)})</span>',
    ]


def render_fallback_html(graph: GraphData) -> str:
    """
    Nested list rendering of the derivation forest, the last-resort fallback.

    Forest roots are nodes without an incoming edge from another node in the
    graph, so assets whose parent is missing still appear. Each node is
    emitted at most once, so malformed input cannot loop.
    """
    if graph.is_empty:
        return EMPTY_HTML

    by_id = {n.id: n for n in graph.nodes}
    children = _children_map(graph)
    has_parent = {e.target for e in graph.edges if e.source in by_id}
    roots = [n for n in graph.nodes if n.id not in has_parent]

    lines: List[str] = [_TREE_STYLE, '<ul class="portfolio-tree">']
    emitted: Set[str] = set()
    # Stack entries: ("open", node id, depth) or ("close", closing markup, "")
    stack: List[Tuple[str, str, int]] = [("open", root.id, 1) for root in reversed(roots)]
    while stack:
        action, value, depth = stack.pop()
        if action == "close":
            lines.append(value)
            continue
        node = by_id.get(value)
        if node is None or node.id in emitted:
            continue
        emitted.add(node.id)
        indent = "  " * depth
        lines.extend(_node_lines(node, indent))
        child_ids = [c for c in children.get(node.id, []) if c in by_id and c not in emitted]
        stack.append(("close", f"{indent}</li>", 0))
        if child_ids:
            stack.append(("close", f"{indent}  </ul>", 0))
            stack.extend(("open", c, depth + 2) for c in reversed(child_ids))
            lines.append(f"{indent}  <ul>")
    lines.append("</ul>")
    return "\n".join(lines)
