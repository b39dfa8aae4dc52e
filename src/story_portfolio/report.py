from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .export.rendering import Rendering, RenderingKind, choose_rendering
from .model.portfolio import Asset, Number, PortfolioData, PortfolioStatistics
from .util.errors import ExportError
from .util.html import escape_html
from .util.time import parse_iso_utc

MERMAID_CDN_URL = "https://cdn.jsdelivr.net/npm/mermaid@10/dist/mermaid.min.js"
PROJECT_URL = "https://github.com/storyprotocol/story-cli"
DISPLAY_MAX_CHARS = 14
EMPTY_ASSETS_MESSAGE = "No assets to display"
GRAPH_UNAVAILABLE_MESSAGE = "Graph visualization unavailable"

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_STYLES = """<style>
  :root {
    --bg-primary: #ffffff;
    --bg-secondary: #f5f7fa;
    --text-primary: #1a1f36;
    --text-secondary: #5b6478;
    --accent: #4f46e5;
    --border: #e3e8ee;
    --root: #4CAF50;
    --derivative: #2196F3;
    --leaf: #FF9800;
  }
  @media (prefers-color-scheme: dark) {
    :root {
      --bg-primary: #0f1117;
      --bg-secondary: #1a1d27;
      --text-primary: #e6e8ef;
      --text-secondary: #9aa3b5;
      --accent: #818cf8;
      --border: #2a2f3d;
    }
  }
  * { box-sizing: border-box; }
  body {
    margin: 0;
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif;
    background: var(--bg-secondary);
    color: var(--text-primary);
    line-height: 1.5;
  }
  .container { max-width: 1280px; margin: 0 auto; padding: 24px; }
  header { display: flex; flex-wrap: wrap; align-items: center; gap: 12px; padding: 24px 0; }
  header h1 { margin: 0; font-size: 1.75rem; }
  .wallet { font-family: monospace; color: var(--text-secondary); }
  .network-badge {
    display: inline-block;
    padding: 2px 10px;
    border-radius: 999px;
    background: var(--accent);
    color: #fff;
    font-size: 0.8rem;
    text-transform: uppercase;
  }
  .stats { display: grid; grid-template-columns: repeat(5, 1fr); gap: 16px; margin-bottom: 24px; }
  .stat-card { background: var(--bg-primary); border: 1px solid var(--border); border-radius: 8px; padding: 16px; }
  .stat-value { font-size: 1.5rem; font-weight: 600; }
  .stat-label { color: var(--text-secondary); font-size: 0.85rem; }
  section { background: var(--bg-primary); border: 1px solid var(--border); border-radius: 8px; padding: 16px; margin-bottom: 24px; }
  section h2 { margin-top: 0; font-size: 1.2rem; }
  .graph-container { overflow-x: auto; }
  table { width: 100%; border-collapse: collapse; }
  th, td { text-align: left; padding: 8px; border-bottom: 1px solid var(--border); }
  th { color: var(--text-secondary); font-weight: 500; }
  .ip-id { font-family: monospace; }
  .copy-btn {
    margin-left: 6px;
    border: 1px solid var(--border);
    background: var(--bg-secondary);
    color: var(--text-primary);
    border-radius: 4px;
    cursor: pointer;
    font-size: 0.75rem;
  }
  .empty-state, .graph-unavailable { color: var(--text-secondary); }
  footer { text-align: center; color: var(--text-secondary); font-size: 0.85rem; padding: 24px 0; }
  footer a { color: var(--accent); }
  @media (max-width: 1920px) { .container { max-width: 1440px; } }
  @media (max-width: 1440px) { .container { max-width: 1200px; } }
  @media (max-width: 768px) {
    .stats { grid-template-columns: repeat(2, 1fr); }
    th:nth-child(4), td:nth-child(4) { display: none; }
  }
  @media (max-width: 375px) {
    .container { padding: 12px; }
    .stats { grid-template-columns: 1fr; }
  }
</style>"""

_SCRIPT = """<script>
  if (window.mermaid) {
    mermaid.initialize({
      startOnLoad: true,
      theme: window.matchMedia('(prefers-color-scheme: dark)').matches ? 'dark' : 'default',
      securityLevel: 'strict'
    });
  }
  function copyToClipboard(text, button) {
    if (!navigator.clipboard) {
      return;
    }
    navigator.clipboard.writeText(text).then(function () {
      if (button) {
        var previous = button.textContent;
        button.textContent = 'Copied!';
        setTimeout(function () { button.textContent = previous; }, 1500);
      }
    });
  }
</script>"""


def truncate_display(value: Optional[str], show_full: bool = False) -> str:
    """Shorten ids and hashes longer than 14 chars to `0x1234...5678` unless show_full."""
    text = value or ""
    if show_full or len(text) <= DISPLAY_MAX_CHARS:
        return text
    return f"{text[:6]}...{text[-4:]}"


def format_date(value: Optional[str]) -> str:
    """Format an ISO-8601 timestamp as `Jan 15, 2024, 10:30 UTC`; unparseable input is returned as-is."""
    dt = parse_iso_utc(value or "")
    if dt is None:
        return value or ""
    return f"{_MONTHS[dt.month - 1]} {dt.day}, {dt.year}, {dt.hour:02d}:{dt.minute:02d} UTC"


def format_amount(value: Optional[Number]) -> str:
    if value is None:
        return "0"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:.4f}".rstrip("0").rstrip(".")
    return str(value)


def _slugify(value: str, *, max_len: int = 32) -> str:
    v = (value or "").strip().lower()
    v = re.sub(r"[^a-z0-9]+", "-", v).strip("-")
    if not v:
        return "unknown"
    return v[:max_len]


@dataclass(frozen=True)
class RenderOptions:
    rendering: Optional[Rendering] = None
    svg_fallback: Optional[str] = None
    html_fallback: Optional[str] = None
    show_full_ids: Optional[bool] = None


class PortfolioHtmlRenderer:
    """
    Render a portfolio as one self-contained HTML page.

    Every value that comes from asset or wallet data goes through `escape_html`
    before it is concatenated. The only external reference is the Mermaid CDN
    script.
    """

    def __init__(self, *, show_full_ids: bool = False) -> None:
        self.show_full_ids = show_full_ids

    def get_embedded_styles(self) -> str:
        return _STYLES

    def get_embedded_script(self) -> str:
        return _SCRIPT

    def render_statistics_card(self, label: str, value: Union[str, Number]) -> str:
        return (
            '<div class="stat-card">'
            f'<div class="stat-value">{escape_html(value)}</div>'
            f'<div class="stat-label">{escape_html(label)}</div>'
            "</div>"
        )

    def _render_statistics(self, stats: PortfolioStatistics) -> str:
        cards = [
            self.render_statistics_card("Total Assets", stats.total_assets),
            self.render_statistics_card("Root Assets", stats.root_assets),
            self.render_statistics_card("Derivatives", stats.derivatives),
            self.render_statistics_card("Licenses Issued", format_amount(stats.licenses_issued)),
            self.render_statistics_card("Total Royalties", f"{format_amount(stats.total_royalties)} IP"),
        ]
        return '<div class="stats">\n    ' + "\n    ".join(cards) + "\n  </div>"

    def _render_id_cell(self, ip_id: str, show_full: bool, *, copy: bool) -> str:
        full = escape_html(ip_id)
        shown = escape_html(truncate_display(ip_id, show_full))
        cell = f'<span class="ip-id" title="{full}">{shown}</span>'
        if copy:
            cell += (
                f'<button class="copy-btn" type="button" data-copy="{full}" '
                'onclick="copyToClipboard(this.dataset.copy, this)" title="Copy IP ID">Copy</button>'
            )
        return cell

    def render_asset_row(self, asset: Asset, *, show_full: Optional[bool] = None) -> str:
        full_mode = self.show_full_ids if show_full is None else show_full
        parent = (
            self._render_id_cell(asset.parent_ip_id, full_mode, copy=False) if asset.parent_ip_id else "&mdash;"
        )
        cells = [
            self._render_id_cell(asset.ip_id, full_mode, copy=True),
            escape_html(asset.name),
            escape_html(asset.license_type),
            escape_html(format_date(asset.created_at)),
            escape_html(asset.derivative_count),
            parent,
        ]
        return "<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>"

    def _render_asset_table(self, assets: Sequence[Asset], show_full: bool) -> str:
        if not assets:
            return f'<p class="empty-state">{EMPTY_ASSETS_MESSAGE}</p>'
        rows: List[str] = [
            "<table>",
            "<thead>",
            "<tr><th>IP ID</th><th>Name</th><th>License</th><th>Created</th><th>Derivatives</th><th>Parent</th></tr>",
            "</thead>",
            "<tbody>",
        ]
        rows.extend(self.render_asset_row(a, show_full=show_full) for a in assets)
        rows.extend(["</tbody>", "</table>"])
        return "\n".join(rows)

    def _resolve_rendering(self, portfolio: PortfolioData, options: RenderOptions) -> Optional[Rendering]:
        if options.rendering is not None and options.rendering.content:
            return options.rendering
        return choose_rendering(
            diagram=portfolio.mermaid_diagram,
            vector=options.svg_fallback,
            semantic=options.html_fallback,
        )

    def _render_graph(self, rendering: Optional[Rendering]) -> str:
        if rendering is None:
            return f'<p class="graph-unavailable">{GRAPH_UNAVAILABLE_MESSAGE}</p>'
        if rendering.kind is RenderingKind.DIAGRAM:
            # Mermaid decodes entities before parsing, so escaped text still renders.
            return f'<pre class="mermaid">\n{escape_html(rendering.content)}\n</pre>'
        if rendering.kind is RenderingKind.VECTOR:
            return f'<div class="svg-fallback">\n{rendering.content}\n</div>'
        if rendering.kind is RenderingKind.SEMANTIC:
            return f'<div class="html-fallback">\n{rendering.content}\n</div>'
        raise ValueError(f"Unknown rendering kind: {rendering.kind}")

    def render(self, portfolio: PortfolioData, options: Optional[RenderOptions] = None) -> str:
        opts = options or RenderOptions()
        show_full = self.show_full_ids if opts.show_full_ids is None else opts.show_full_ids

        wallet_full = escape_html(portfolio.wallet_address)
        wallet_shown = escape_html(truncate_display(portfolio.wallet_address, show_full))
        network = escape_html(portfolio.network)
        graph_html = self._render_graph(self._resolve_rendering(portfolio, opts))

        parts = [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '<meta charset="UTF-8">',
            '<meta name="viewport" content="width=device-width, initial-scale=1.0">',
            f"<title>IP Portfolio - {wallet_shown}</title>",
            self.get_embedded_styles(),
            f'<script src="{MERMAID_CDN_URL}"></script>',
            "</head>",
            "<body>",
            '<div class="container">',
            "<header>",
            "<h1>IP Portfolio</h1>",
            f'<span class="wallet" title="{wallet_full}">{wallet_shown}</span>',
            f'<span class="network-badge network-{_slugify(portfolio.network)}">{network}</span>',
            "</header>",
            '<section class="statistics">',
            "<h2>Overview</h2>",
            self._render_statistics(portfolio.statistics),
            "</section>",
            '<section class="graph">',
            "<h2>Relationship Graph</h2>",
            '<div class="graph-container">',
            graph_html,
            "</div>",
            "</section>",
            '<section class="assets">',
            "<h2>Assets</h2>",
            self._render_asset_table(portfolio.assets, show_full),
            "</section>",
            "<footer>",
            f'Generated by <a href="{PROJECT_URL}">Story CLI</a> on {escape_html(format_date(portfolio.generated_at))}',
            "</footer>",
            "</div>",
            self.get_embedded_script(),
            "</body>",
            "</html>",
        ]
        return "\n".join(parts) + "\n"


def render_portfolio_html(
    portfolio: PortfolioData,
    *,
    rendering: Optional[Rendering] = None,
    show_full_ids: bool = False,
) -> str:
    return PortfolioHtmlRenderer(show_full_ids=show_full_ids).render(portfolio, RenderOptions(rendering=rendering))


def write_portfolio_html(html: str, path: Path) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Failed to write portfolio HTML to {path}: {e}") from e
    return path
