"""Shared utility functions for thisgen.

Provides Rich-based console output used by every command, and the upward
directory searches that locate the API project and the workspace a command
runs in.
"""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()

WORKSPACE_FILE = "this.yaml"


# ---------------------------------------------------------------------------
# Project discovery
# ---------------------------------------------------------------------------


def detect_project_root(start: str | Path | None = None) -> Path | None:
    """Walk up from *start* to the nearest this-rs API project.

    A directory qualifies when its ``Cargo.toml`` contains a
    ``[dependencies]`` section and mentions ``this``.

    Args:
        start: Directory to start from (defaults to the current directory).

    Returns:
        The project root, or ``None`` when no ancestor qualifies.
    """
    current = Path(start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        cargo = directory / "Cargo.toml"
        if not cargo.is_file():
            continue
        try:
            content = cargo.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            continue
        if "[dependencies]" in content and "this" in content:
            return directory
    return None


def find_workspace_root(start: str | Path | None = None) -> Path | None:
    """Walk up from *start* to the nearest directory holding ``this.yaml``."""
    current = Path(start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        if (directory / WORKSPACE_FILE).is_file():
            return directory
    return None


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_step(message: str) -> None:
    """Print a bold step header, e.g. ``Adding entity 'product'``."""
    console.print()
    console.print(f"[bold cyan]>> {escape(message)}[/bold cyan]")


def print_info(message: str) -> None:
    """Print a dimmed informational line."""
    console.print(f"[dim]{escape(message)}[/dim]")


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]")


def print_file_created(path: str | Path) -> None:
    console.print(f"  [green]+[/green] {escape(str(path))}")


def print_next_steps(steps: list[str]) -> None:
    """Print a numbered list of follow-up commands."""
    if not steps:
        return
    console.print()
    console.print("[bold]Next steps:[/bold]")
    for index, step in enumerate(steps, start=1):
        console.print(f"  {index}. {escape(step)}")


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()
