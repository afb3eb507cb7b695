from __future__ import annotations

from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from movie_ratings.domain.models import AggregateRow, PipelineOutcome, PipelineStatus

_STATUS_STYLE = {
    PipelineStatus.SUCCESS: "bold green",
    PipelineStatus.PARTIAL: "bold yellow",
    PipelineStatus.FAILURE: "bold red",
}


def print_outcomes(outcomes: Sequence[PipelineOutcome], console: Optional[Console] = None) -> None:
    """
    Render one row per processed input unit, followed by per-rule failure counts.
    """
    console = console or Console()

    if not outcomes:
        console.print("[yellow]No batches processed.[/yellow]")
        return

    table = Table(title="Movie Ratings Ingest", box=box.ROUNDED)
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("Batch", style="dim")
    table.add_column("Status")
    table.add_column("Accepted", justify="right", style="green")
    table.add_column("Rejected", justify="right", style="magenta")
    table.add_column("Inserted", justify="right")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Detail", style="yellow")

    for outcome in outcomes:
        style = _STATUS_STYLE[outcome.status]
        table.add_row(
            outcome.source or "-",
            outcome.batch_id or "-",
            f"[{style}]{outcome.status.value}[/{style}]",
            f"{outcome.accepted_count:,}",
            f"{outcome.rejected_count:,}",
            f"{outcome.inserted_count:,}",
            f"{outcome.failed_count:,}",
            outcome.error_detail or "",
        )
    console.print(table)

    rules = sorted({rule for outcome in outcomes for rule in outcome.rule_failures})
    if not rules:
        return
    rule_table = Table(title="Rule Failures", box=box.SIMPLE)
    rule_table.add_column("Batch", style="dim")
    for rule in rules:
        rule_table.add_column(rule, justify="right")
    for outcome in outcomes:
        if outcome.batch_id is None:
            continue
        rule_table.add_row(outcome.batch_id, *(str(outcome.rule_failures.get(rule, 0)) for rule in rules))
    console.print(rule_table)


def print_aggregates(rows: Sequence[AggregateRow], console: Optional[Console] = None) -> None:
    """Render the aggregate snapshot as (year, genre, count)."""
    console = console or Console()

    if not rows:
        console.print("[yellow]Aggregate snapshot is empty.[/yellow]")
        return

    table = Table(title="Movies by Year and Genre", box=box.ROUNDED)
    table.add_column("Released", justify="right", style="cyan")
    table.add_column("Genre", style="magenta")
    table.add_column("Movies", justify="right", style="bold green")
    for row in rows:
        table.add_row(str(row.released_year), row.genre, f"{row.movie_count:,}")
    console.print(table)


__all__ = ["print_aggregates", "print_outcomes"]
