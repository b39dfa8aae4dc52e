from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List, Sequence, Set, Tuple

from ..model.portfolio import Asset, GraphData, GraphEdge, GraphNode, NodeRole
from ..util.serialization import stable_json_dumps

LABEL_MAX_CHARS = 12
_NON_ID_CHARS = re.compile(r"[^A-Za-z0-9_]")


def truncate_ip_id(ip_id: str) -> str:
    """
    Shorten an IP id for node labels: ids of 12 chars or fewer are unchanged,
    longer ids become `0x1234...5678`.
    """
    if len(ip_id) <= LABEL_MAX_CHARS:
        return ip_id
    return f"{ip_id[:6]}...{ip_id[-4:]}"


def to_mermaid_node_id(ip_id: str) -> str:
    # Distinct ids sharing the same 8-char prefix map to the same node id.
    raw = ip_id[2:] if ip_id.startswith("0x") else ip_id
    return "node_" + _NON_ID_CHARS.sub("_", raw[:8])


def _node_role(asset: Asset, parent_ids: Set[str]) -> NodeRole:
    is_root = not asset.parent_ip_id
    is_leaf = asset.ip_id not in parent_ids
    if is_root:
        # Isolated assets (no parent, no children) are roots too.
        return NodeRole.ROOT
    if is_leaf:
        return NodeRole.LEAF
    return NodeRole.DERIVATIVE


def build_graph_data(assets: Sequence[Asset]) -> GraphData:
    """
    Convert assets into graph nodes and parent -> child edges.

    Roles come from parent references across the whole list, not from the
    stored child lists. Node order follows the input; edge order follows the
    assets that have a parent.
    """
    if not assets:
        return GraphData()

    parent_ids = {a.parent_ip_id for a in assets if a.parent_ip_id}
    nodes: List[GraphNode] = []
    edges: List[GraphEdge] = []
    for asset in assets:
        role = _node_role(asset, parent_ids)
        nodes.append(
            GraphNode(
                id=asset.ip_id,
                label=truncate_ip_id(asset.ip_id),
                role=role,
                style_class=role.value,
                license_type=asset.license_type,
                created_at=asset.created_at,
                full_ip_id=asset.ip_id,
            )
        )
        if asset.parent_ip_id:
            edges.append(GraphEdge(source=asset.parent_ip_id, target=asset.ip_id))

    return GraphData(nodes=tuple(nodes), edges=tuple(edges))


def nodes_by_role(graph: GraphData, role: NodeRole) -> List[GraphNode]:
    return [n for n in graph.nodes if n.role == role]


def write_graph(outdir: Path, nodes: Iterable[GraphNode], edges: Iterable[GraphEdge]) -> Tuple[Path, Path]:
    outdir.mkdir(parents=True, exist_ok=True)
    nodes_path = outdir / "graph_nodes.jsonl"
    edges_path = outdir / "graph_edges.jsonl"
    with nodes_path.open("w", encoding="utf-8") as f:
        for node in nodes:
            f.write(stable_json_dumps(node.to_dict()))
            f.write("\n")
    with edges_path.open("w", encoding="utf-8") as f:
        for edge in edges:
            f.write(stable_json_dumps(edge.to_dict()))
            f.write("\n")
    return nodes_path, edges_path
