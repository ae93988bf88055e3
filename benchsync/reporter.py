from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from benchsync.domain.summary import ReconciliationSummary
from benchsync.probe import AvailabilityStatus


def _status_cell(summary: ReconciliationSummary) -> str:
    if summary.aborted:
        return f"[red]aborted[/red] [dim]({summary.reason})[/dim]"
    if summary.conflicts or summary.skipped:
        return "[yellow]partial[/yellow]"
    return "[green]ok[/green]"


def print_summary(
    summary: ReconciliationSummary,
    store_a: str = "A",
    store_b: str = "B",
    console: Optional[Console] = None,
) -> None:
    """
    Render a pass summary as a rich table, one row per kind plus a total row.
    """
    console = console or Console()

    table = Table(
        title="Reconciliation Summary",
        box=box.ROUNDED,
        caption=f"{summary.duration_seconds:.2f}s"
        + (
            f" │ peak RSS {summary.peak_rss_bytes / (1024 * 1024):.1f} MB"
            if summary.peak_rss_bytes
            else ""
        ),
    )
    table.add_column("Kind", style="cyan", no_wrap=True)
    table.add_column(f"Created {store_a}→{store_b}", justify="right", style="green")
    table.add_column(f"Created {store_b}→{store_a}", justify="right", style="green")
    table.add_column(f"Updated {store_a}→{store_b}", justify="right", style="magenta")
    table.add_column(f"Updated {store_b}→{store_a}", justify="right", style="magenta")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Conflicts", justify="right", style="red")
    table.add_column("Status")

    def _row(name: str, s: ReconciliationSummary, style: Optional[str] = None) -> None:
        table.add_row(
            name,
            str(s.created_a_to_b),
            str(s.created_b_to_a),
            str(s.updated_a_to_b),
            str(s.updated_b_to_a),
            str(s.skipped),
            str(s.conflicts),
            _status_cell(s),
            style=style,
        )

    for name, kind_summary in summary.kinds.items():
        _row(name, kind_summary)
    if len(summary.kinds) != 1:
        _row("total", summary, style="bold")

    console.print(table)


def print_status(status: AvailabilityStatus, console: Optional[Console] = None) -> None:
    """Render store reachability."""
    console = console or Console()
    table = Table(title="Store Availability", box=box.ROUNDED)
    table.add_column("Store", style="cyan")
    table.add_column("Reachable")
    for name, ok in status.stores.items():
        table.add_row(name, "[green]yes[/green]" if ok else "[red]no[/red]")
    console.print(table)
