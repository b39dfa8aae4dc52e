from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..model.portfolio import GraphData
from ..util.errors import RenderError
from .html_tree import render_fallback_html
from .mermaid import MermaidConfig, generate_mermaid_diagram
from .svg import DEFAULT_HEIGHT, DEFAULT_WIDTH, render_fallback_svg

LOG = logging.getLogger(__name__)

MAX_MERMAID_TEXT_CHARS = 50000
RENDERER_CHOICES = ("auto", "mermaid", "svg", "html")


class RenderingKind(str, Enum):
    DIAGRAM = "diagram"
    VECTOR = "vector"
    SEMANTIC = "semantic"


@dataclass(frozen=True)
class Rendering:
    """One graph rendering: Mermaid text, SVG markup or nested-list HTML."""

    kind: RenderingKind
    content: str

    @classmethod
    def diagram(cls, content: str) -> Rendering:
        return cls(RenderingKind.DIAGRAM, content)

    @classmethod
    def vector(cls, content: str) -> Rendering:
        return cls(RenderingKind.VECTOR, content)

    @classmethod
    def semantic(cls, content: str) -> Rendering:
        return cls(RenderingKind.SEMANTIC, content)


@dataclass(frozen=True)
class GraphRenderSettings:
    direction: str = "TD"
    theme: str = "default"
    svg_width: int = DEFAULT_WIDTH
    svg_height: int = DEFAULT_HEIGHT
    renderer: str = "auto"
    max_diagram_chars: int = MAX_MERMAID_TEXT_CHARS


def choose_rendering(
    diagram: Optional[str] = None,
    vector: Optional[str] = None,
    semantic: Optional[str] = None,
) -> Optional[Rendering]:
    """Pick the first available rendering: diagram, then vector, then semantic."""
    if diagram:
        return Rendering.diagram(diagram)
    if vector:
        return Rendering.vector(vector)
    if semantic:
        return Rendering.semantic(semantic)
    return None


def _tiers(graph: GraphData, settings: GraphRenderSettings, logger: logging.Logger) -> List[Tuple[str, Callable[[], Rendering]]]:
    def _mermaid() -> Rendering:
        text = generate_mermaid_diagram(
            graph,
            MermaidConfig(direction=settings.direction, theme=settings.theme),
            logger=logger,
        )
        if settings.max_diagram_chars and len(text) > settings.max_diagram_chars:
            raise RenderError(
                f"Mermaid diagram is {len(text)} chars, over the {settings.max_diagram_chars} char limit"
            )
        return Rendering.diagram(text)

    def _svg() -> Rendering:
        return Rendering.vector(render_fallback_svg(graph, settings.svg_width, settings.svg_height))

    def _html() -> Rendering:
        return Rendering.semantic(render_fallback_html(graph))

    return [("mermaid", _mermaid), ("svg", _svg), ("html", _html)]


def render_with_fallback(
    graph: GraphData,
    settings: Optional[GraphRenderSettings] = None,
    *,
    logger: Optional[logging.Logger] = None,
) -> Optional[Rendering]:
    """
    Try Mermaid, then SVG, then nested HTML; return the first that succeeds.

    `settings.renderer` can start the chain at a later tier. A failing tier is
    logged and skipped; None means no tier produced output.
    """
    cfg = settings or GraphRenderSettings()
    log = logger or LOG
    renderer = (cfg.renderer or "auto").lower()
    if renderer not in RENDERER_CHOICES:
        raise ValueError(f"Renderer must be one of: {', '.join(RENDERER_CHOICES)}")

    tiers = _tiers(graph, cfg, log)
    if renderer != "auto":
        names = [name for name, _ in tiers]
        tiers = tiers[names.index(renderer):]

    for name, build in tiers:
        try:
            return build()
        except Exception as e:
            log.warning(
                "Graph rendering via %s failed; trying next fallback",
                name,
                extra={"step": "render_graph", "phase": "warning", "renderer": name, "error": str(e)},
            )
    log.error(
        "All graph renderers failed; report will show no visualization",
        extra={"step": "render_graph", "phase": "error"},
    )
    return None
