"""
Progress tracking and reporting utilities using rich.
"""

from contextlib import contextmanager
from typing import Iterator

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

console = Console()


def create_progress_bar() -> Progress:
    """
    Create a rich Progress bar with custom formatting.

    Returns:
        Configured Progress instance
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
    )


@contextmanager
def track_progress(description: str, total: int | None = None) -> Iterator[tuple[Progress, int]]:
    """
    Context manager for tracking progress with a progress bar.

    Usage:
        with track_progress("Creating configurations", total=len(rows)) as (progress, task):
            for row in rows:
                # do work
                progress.update(task, advance=1)

    Args:
        description: Description to show in progress bar
        total: Total number of steps (None for indeterminate progress)

    Yields:
        Progress instance and the id of the task it is tracking
    """
    progress = create_progress_bar()
    with progress:
        task = progress.add_task(description, total=total)
        yield progress, task


def show_summary(title: str, items: dict[str, str | int]):
    """
    Show a formatted summary box.

    Args:
        title: Summary title
        items: Dictionary of items to show (key: value pairs)
    """
    from rich.panel import Panel
    from rich.table import Table

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")

    for key, value in items.items():
        table.add_row(key, str(value))

    panel = Panel(table, title=f"[bold]{title}[/bold]", border_style="blue")
    console.print(panel)
