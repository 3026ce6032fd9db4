"""Display helpers for stream execution CLI commands."""

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from domostream.core.streaming.models import StreamExecution

STATE_STYLES = {
    "SUCCESS": "green",
    "ACTIVE": "blue",
    "COMMITTING": "yellow",
    "ERROR": "red",
    "ABORTED": "red",
}


def style_state(state: str | None) -> Text:
    """Colorize an execution state."""
    if not state:
        return Text("N/A", style="white")
    style = STATE_STYLES.get(state.upper(), "white")
    return Text(state, style=f"{style} bold")


def print_execution_table(
    console: Console, title: str, executions: list[StreamExecution]
) -> None:
    """Render executions as a table."""
    table = Table(
        title=title,
        box=box.MINIMAL,
        show_header=True,
        header_style="bold",
        expand=False,
    )
    table.add_column("Id", no_wrap=True)
    table.add_column("State", min_width=7, max_width=12, no_wrap=True)
    table.add_column("Started", overflow="fold")
    table.add_column("Ended", overflow="fold")

    for execution in executions:
        table.add_row(
            str(execution.id),
            style_state(execution.current_state),
            execution.started_at or "N/A",
            execution.ended_at or "N/A",
        )
    console.print(table)
