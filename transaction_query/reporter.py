from __future__ import annotations

from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table


def _megabytes(value: int) -> str:
    return f"{value / (1024 * 1024):.2f}"


def _match_cell(row: Dict[str, Any]) -> str:
    if row.get("error"):
        return "[red]failed[/red]"
    if row.get("matches") is None:
        return "[dim]reference[/dim]"
    if row["matches"]:
        return "[green]yes[/green]"
    return f"[bold red]no ({', '.join(row.get('divergences', []))})[/bold red]"


def print_comparison(results: List[Dict[str, Any]], console: Optional[Console] = None) -> None:
    """
    Render backend comparison rows as a rich table.

    Rows are shown in execution order; the first successful backend is the
    reference the others are checked against.
    """
    console = console or Console()

    if not results:
        console.print("[yellow]No results to display.[/yellow]")
        return

    table = Table(
        title="Backend Comparison",
        box=box.ROUNDED,
        caption="Agreement on items, aggregateStats, totalItems and totalPages",
    )

    table.add_column("Backend", style="cyan", no_wrap=True)
    table.add_column("Total Items", justify="right", style="magenta")
    table.add_column("Returned", justify="right", style="magenta")
    table.add_column("Duration (ms)", justify="right", style="green")
    table.add_column("Peak RSS (MB)", justify="right", style="yellow")
    table.add_column("Py Heap (MB)", justify="right", style="yellow")
    table.add_column("CPU %", justify="right", style="red")
    table.add_column("Matches", justify="center")

    for res in results:
        total = res.get("total_items")
        total_str = f"{total:,}" if total is not None else "N/A"

        duration_ms = res.get("duration_seconds", 0.0) * 1000
        rss_bytes = res.get("peak_rss_bytes") or 0
        heap_bytes = res.get("peak_traced_bytes") or 0
        cpu = res.get("cpu_percent") or 0.0

        table.add_row(
            res.get("backend", "Unknown"),
            total_str,
            f"{res.get('returned', 0):,}",
            f"{duration_ms:,.1f}",
            _megabytes(rss_bytes),
            _megabytes(heap_bytes),
            f"{cpu:.1f}",
            _match_cell(res),
        )

    console.print(table)

    for res in results:
        if res.get("error"):
            console.print(f"[red]{res['backend']}: {res['error']}[/red]")


__all__ = ["print_comparison"]
