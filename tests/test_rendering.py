from __future__ import annotations

import logging

import pytest

from story_portfolio.export import rendering as rendering_mod
from story_portfolio.export.graph import build_graph_data
from story_portfolio.export.rendering import (
    GraphRenderSettings,
    Rendering,
    RenderingKind,
    choose_rendering,
    render_with_fallback,
)
from story_portfolio.model.portfolio import Asset


def _graph():
    return build_graph_data([Asset(ip_id="root"), Asset(ip_id="child", parent_ip_id="root")])


def test_choose_rendering_prefers_diagram_then_vector_then_semantic() -> None:
    assert choose_rendering("flowchart TD", "<svg/>", "<ul/>") == Rendering.diagram("flowchart TD")
    assert choose_rendering(None, "<svg/>", "<ul/>") == Rendering.vector("<svg/>")
    assert choose_rendering("", "", "<ul/>") == Rendering.semantic("<ul/>")
    assert choose_rendering() is None


def test_render_with_fallback_uses_mermaid_by_default() -> None:
    result = render_with_fallback(_graph())

    assert result is not None
    assert result.kind is RenderingKind.DIAGRAM
    assert result.content.startswith("flowchart TD")


def test_oversized_diagram_falls_back_to_svg(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING)

    result = render_with_fallback(_graph(), GraphRenderSettings(max_diagram_chars=10))

    assert result is not None
    assert result.kind is RenderingKind.VECTOR
    assert result.content.startswith("<svg")
    assert "via mermaid failed" in caplog.text


def test_failing_mermaid_settings_fall_back_to_svg() -> None:
    result = render_with_fallback(_graph(), GraphRenderSettings(direction="BT"))

    assert result is not None
    assert result.kind is RenderingKind.VECTOR


def test_svg_failure_falls_back_to_html() -> None:
    result = render_with_fallback(_graph(), GraphRenderSettings(direction="BT", svg_width=0))

    assert result is not None
    assert result.kind is RenderingKind.SEMANTIC
    assert '<ul class="portfolio-tree">' in result.content


@pytest.mark.parametrize(
    "renderer,kind",
    [
        ("mermaid", RenderingKind.DIAGRAM),
        ("svg", RenderingKind.VECTOR),
        ("html", RenderingKind.SEMANTIC),
        ("SVG", RenderingKind.VECTOR),
    ],
)
def test_renderer_setting_starts_chain_at_that_tier(renderer: str, kind: RenderingKind) -> None:
    result = render_with_fallback(_graph(), GraphRenderSettings(renderer=renderer))

    assert result is not None
    assert result.kind is kind


def test_unknown_renderer_is_rejected() -> None:
    with pytest.raises(ValueError):
        render_with_fallback(_graph(), GraphRenderSettings(renderer="png"))


def test_all_tiers_failing_returns_none(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    def _boom(*_args, **_kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(rendering_mod, "generate_mermaid_diagram", _boom)
    monkeypatch.setattr(rendering_mod, "render_fallback_svg", _boom)
    monkeypatch.setattr(rendering_mod, "render_fallback_html", _boom)
    caplog.set_level(logging.WARNING)

    assert render_with_fallback(_graph()) is None
    assert "All graph renderers failed" in caplog.text


def test_empty_graph_still_renders() -> None:
    result = render_with_fallback(build_graph_data([]), GraphRenderSettings(renderer="html"))

    assert result == Rendering.semantic("<p>No assets to display</p>")
