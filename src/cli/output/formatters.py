"""Rich console output for outbox commands."""

from typing import Collection, Optional, Sequence

from rich.console import Console
from rich.table import Table


def format_success(console: Console, message: str) -> None:
    console.print(f"[green]{message}[/green]")


def format_error(console: Console, message: str, hint: Optional[str] = None) -> None:
    """Print an error line, followed by a hint on what to do about it."""
    console.print(f"[red]Error:[/red] {message}")
    if hint:
        console.print(f"[yellow]Hint:[/yellow] {hint}")


def format_warning(console: Console, message: str) -> None:
    console.print(f"[yellow]Warning:[/yellow] {message}")


def format_table(
    console: Console,
    title: str,
    columns: Sequence[str],
    rows: Sequence[Sequence[object]],
    numeric: Collection[str] = (),
    empty: Optional[str] = None,
) -> None:
    """Print rows under a left-aligned title.

    Columns named in ``numeric`` are right-aligned and never wrapped. With
    no rows, ``empty`` is printed in place of the table when given.
    """
    if not rows and empty:
        console.print(f"[yellow]{empty}[/yellow]")
        return
    table = Table(title=title, title_justify="left")
    for column in columns:
        is_number = column in numeric
        table.add_column(column, justify="right" if is_number else "left", no_wrap=is_number)
    for row in rows:
        table.add_row(*(str(cell) for cell in row))
    console.print(table)
