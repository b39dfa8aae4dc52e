from __future__ import annotations

import json

from story_portfolio.export.graph import (
    build_graph_data,
    to_mermaid_node_id,
    truncate_ip_id,
    write_graph,
)
from story_portfolio.graph.assemble import build_relationship_graph
from story_portfolio.model.portfolio import Asset, GraphData, NodeRole


def _asset(ip_id: str, parent: str | None = None) -> Asset:
    return Asset(ip_id=ip_id, parent_ip_id=parent, license_type="commercial-remix", created_at="2024-01-01T00:00:00Z")


def test_truncate_ip_id_keeps_twelve_chars_and_truncates_thirteen() -> None:
    assert truncate_ip_id("0x1234567890") == "0x1234567890"
    assert truncate_ip_id("abcdefghijkl") == "abcdefghijkl"
    assert truncate_ip_id("abcdefghijklm") == "abcdef...jklm"
    assert truncate_ip_id("0x1234567890abcdef1234567890abcdef12345678") == "0x1234...5678"


def test_to_mermaid_node_id_strips_hex_prefix() -> None:
    assert to_mermaid_node_id("0x1234567890abcdef") == "node_12345678"
    assert to_mermaid_node_id("root") == "node_root"


def test_root_and_child_graph() -> None:
    graph = build_graph_data([_asset("root"), _asset("child", "root")])

    assert len(graph.nodes) == 2
    assert len(graph.edges) == 1
    assert (graph.edges[0].source, graph.edges[0].target) == ("root", "child")
    roles = {n.id: n.role for n in graph.nodes}
    assert roles == {"root": NodeRole.ROOT, "child": NodeRole.LEAF}


def test_three_level_chain_has_two_edges_and_a_derivative() -> None:
    graph = build_graph_data([_asset("root"), _asset("child", "root"), _asset("grandchild", "child")])

    assert len(graph.edges) == 2
    assert [n.role for n in graph.nodes] == [NodeRole.ROOT, NodeRole.DERIVATIVE, NodeRole.LEAF]
    assert [n.style_class for n in graph.nodes] == ["root", "derivative", "leaf"]


def test_root_with_ten_children_has_ten_edges() -> None:
    assets = [_asset("root")] + [_asset(f"child-{i}", "root") for i in range(10)]

    graph = build_graph_data(assets)

    assert len(graph.edges) == 10
    assert [e.target for e in graph.edges] == [f"child-{i}" for i in range(10)]


def test_isolated_asset_is_a_root() -> None:
    graph = build_graph_data([_asset("alone")])

    assert graph.nodes[0].role == NodeRole.ROOT
    assert graph.edges == ()


def test_roles_do_not_trust_stale_child_lists() -> None:
    parent = _asset("parent")
    parent.child_ip_ids = []
    stale = _asset("leafy")
    stale.child_ip_ids = ["nobody"]

    graph = build_graph_data([parent, _asset("kid", "parent"), stale])

    roles = {n.id: n.role for n in graph.nodes}
    assert roles["parent"] == NodeRole.ROOT
    assert roles["kid"] == NodeRole.LEAF
    assert roles["leafy"] == NodeRole.ROOT


def test_role_invariants_hold_after_assembly() -> None:
    assets = [_asset("r")] + [_asset(f"c{i}", "r") for i in range(3)] + [_asset("g", "c1"), _asset("iso")]
    build_relationship_graph(assets)

    graph = build_graph_data(assets)

    by_id = {a.ip_id: a for a in assets}
    for node in graph.nodes:
        asset = by_id[node.id]
        if node.role == NodeRole.LEAF:
            assert asset.child_ip_ids == []
        if node.role == NodeRole.ROOT:
            assert not asset.parent_ip_id


def test_node_order_mirrors_input_and_copies_descriptive_fields() -> None:
    long_id = "0x1234567890abcdef1234567890abcdef12345678"
    graph = build_graph_data([_asset("b"), _asset(long_id, "b"), _asset("a")])

    assert [n.id for n in graph.nodes] == ["b", long_id, "a"]
    node = graph.nodes[1]
    assert node.label == "0x1234...5678"
    assert node.full_ip_id == long_id
    assert node.license_type == "commercial-remix"
    assert node.created_at == "2024-01-01T00:00:00Z"


def test_empty_assets_give_empty_graph() -> None:
    graph = build_graph_data([])

    assert graph == GraphData()
    assert graph.is_empty


def test_write_graph_writes_jsonl(tmp_path) -> None:
    graph = build_graph_data([_asset("root"), _asset("child", "root")])

    nodes_path, edges_path = write_graph(tmp_path / "graph", graph.nodes, graph.edges)

    node_lines = nodes_path.read_text(encoding="utf-8").splitlines()
    edge_lines = edges_path.read_text(encoding="utf-8").splitlines()
    assert len(node_lines) == 2
    assert json.loads(node_lines[0])["type"] == "root"
    assert json.loads(edge_lines[0]) == {"source": "root", "target": "child", "type": "derivative"}
