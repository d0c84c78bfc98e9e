"""Rich rendering of run summaries."""

from typing import Optional

from rich.console import Console
from rich.table import Table

from ..models.execution_models import AggregateResult, OutcomeStatus

STATUS_STYLES = {
    OutcomeStatus.PASS: "green",
    OutcomeStatus.FAIL: "red",
    OutcomeStatus.ERROR: "yellow",
}


class SummaryRenderer:
    """
    Render an AggregateResult to the console.

    The replay seed is always printed, so a failing order can be rerun.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def render(self, result: AggregateResult) -> None:
        table = Table(title="Acceptance run")
        table.add_column("#", justify="right")
        table.add_column("Test unit")
        table.add_column("Status")
        table.add_column("Time", justify="right")
        table.add_column("Detail", overflow="fold")

        outcomes = {outcome.test_id: outcome for outcome in result.outcomes}
        for position, test_id in enumerate(result.start_order, start=1):
            outcome = outcomes.get(test_id)
            if outcome is None:
                table.add_row(str(position), test_id, "-", "-", "not finished")
                continue
            style = STATUS_STYLES[outcome.status]
            table.add_row(
                str(position),
                test_id,
                f"[{style}]{outcome.status.value}[/{style}]",
                f"{outcome.duration_ms}ms",
                outcome.detail or "",
            )
        self.console.print(table)

        counts = result.counts
        self.console.print(
            f"{counts['PASS']} passed, {counts['FAIL']} failed, "
            f"{counts['ERROR']} errors in {result.duration_ms}ms"
        )
        if result.fatal_error:
            self.console.print(f"[bold red]Run aborted:[/bold red] {result.fatal_error}")
        self.console.print(f"Replay this order with [bold]{result.replay_hint}[/bold]")
