from __future__ import annotations

from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table

from ..model.portfolio import PortfolioStatistics


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def render_portfolio_summary_table(
    *,
    enabled: bool,
    statistics: PortfolioStatistics,
    network: str,
    renderer: str,
    output: str,
    cycles: Sequence[str] = (),
    console: Optional[Console] = None,
) -> None:
    if not enabled:
        return
    table = Table(title="Portfolio Generated", show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Network", network or "unknown")
    table.add_row("Assets", _plural(statistics.total_assets, "IP asset"))
    table.add_row("Roots / derivatives", f"{statistics.root_assets} root, {_plural(statistics.derivatives, 'derivative')}")
    table.add_row("Graph renderer", renderer)
    if cycles:
        table.add_row("Circular references", ", ".join(cycles), style="yellow")
    table.add_row("Output", output)
    out = console or Console()
    out.print(table)
    out.print("Open in browser to view your portfolio")
