"""Rich terminal renderer for run reports and eviction plans.

Color scheme
------------
- green     : PASSED
- red       : FAILED
- yellow    : RUNNING
- dim       : NOT_STARTED / SKIPPED
- bold red  : BLOCKED
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from repokeeper.models.artifacts import EvictionPlan
from repokeeper.models.reports import RunReport
from repokeeper.models.states import STATE_ORDER, StateOutcome

_OUTCOME_LABELS: dict[StateOutcome, str] = {
    StateOutcome.PASSED: "[green]PASSED[/green]",
    StateOutcome.FAILED: "[bold red]FAILED[/bold red]",
    StateOutcome.RUNNING: "[yellow]RUNNING[/yellow]",
    StateOutcome.NOT_STARTED: "[dim]NOT STARTED[/dim]",
    StateOutcome.SKIPPED: "[dim]SKIPPED[/dim]",
    StateOutcome.BLOCKED: "[bold red]BLOCKED[/bold red]",
}


def format_bytes(size: int) -> str:
    """Human-readable binary size, e.g. ``4.0 GiB``."""
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in ("KiB", "MiB", "GiB"):
        value /= 1024
        if value < 1024 or unit == "GiB":
            break
    return f"{value:.1f} {unit}"


class RunRenderer:
    """Renders ``RunReport`` and ``EvictionPlan`` as Rich output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_report(self, report: RunReport) -> Panel:
        table = Table(show_header=True, header_style="bold", expand=True)
        table.add_column("#", justify="right", style="dim", width=3)
        table.add_column("State")
        table.add_column("Outcome", justify="center")
        table.add_column("Note", style="dim")

        notes = {t.state: t.reason for t in report.transitions if t.reason}
        for i, state in enumerate(STATE_ORDER, start=1):
            outcome = report.outcomes.get(state, StateOutcome.NOT_STARTED)
            table.add_row(str(i), state.value, _OUTCOME_LABELS[outcome], notes.get(state) or "")

        summary = [
            f"[bold]Added:[/bold]       {', '.join(report.added) or '-'}",
            f"[bold]Evicted:[/bold]     {', '.join(report.evicted) or '-'}"
            + (f" ({format_bytes(report.freed_bytes)} freed)" if report.evicted else ""),
            f"[bold]Re-signed:[/bold]   {len(report.resigned)}",
            f"[bold]Pushed:[/bold]      {len(report.pushed_keys)} object(s)",
            f"[bold]Invalidated:[/bold] {len(report.invalidated_paths)} path(s)",
        ]
        if report.error:
            summary.append(f"[bold red]Error:[/bold red] {report.error}")

        grid = Table.grid(padding=(1, 0))
        grid.add_row(table)
        grid.add_row("\n".join(summary))

        ok = report.succeeded
        return Panel(
            grid,
            title=f"[bold]Run {report.run_id}[/bold] ({report.channel.value})",
            border_style="green" if ok else "red",
            padding=(1, 2),
        )

    def print_report(self, report: RunReport) -> None:
        self.console.print(self.render_report(report))

    def render_eviction_plan(self, plan: EvictionPlan) -> Panel:
        if plan.deficit_bytes == 0:
            body = (
                f"[green]Within quota[/green]: {format_bytes(plan.total_bytes)} "
                f"of {format_bytes(plan.quota_bytes)}"
            )
            return Panel(body, title="[bold]Eviction plan[/bold]", border_style="green")

        table = Table(show_header=True, header_style="bold")
        table.add_column("Artifact", style="cyan")
        table.add_column("Modified")
        table.add_column("Size", justify="right")
        for artifact in plan.to_delete:
            table.add_row(
                artifact.name,
                artifact.modified_at.strftime("%Y-%m-%d %H:%M:%S"),
                format_bytes(artifact.total_size_bytes),
            )

        lines = [
            f"Total {format_bytes(plan.total_bytes)}, quota {format_bytes(plan.quota_bytes)}, "
            f"deficit {format_bytes(plan.deficit_bytes)}",
            f"Freed by plan: {format_bytes(plan.freed_bytes)}",
        ]
        if plan.stopped_early:
            lines.append("[yellow]Channel stays over quota after this plan.[/yellow]")
        grid = Table.grid(padding=(1, 0))
        grid.add_row(table)
        grid.add_row("\n".join(lines))
        return Panel(grid, title="[bold]Eviction plan[/bold]", border_style="yellow")

    def print_eviction_plan(self, plan: EvictionPlan) -> None:
        self.console.print(self.render_eviction_plan(plan))
