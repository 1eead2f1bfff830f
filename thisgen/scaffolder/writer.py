"""File writers used by every scaffolding command.

Commands never touch the filesystem directly: they go through a
``FileWriter``.  ``RealWriter`` writes to disk; ``DryRunWriter`` records and
prints what would change, showing the lines a modification would add.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from rich.markup import escape

from thisgen.utils import console


class FileWriter(ABC):
    """Abstraction over file creation and modification."""

    dry_run: bool = False

    @abstractmethod
    def create_dir_all(self, path: Path) -> None:
        """Create ``path`` and any missing parents."""

    @abstractmethod
    def write_file(self, path: Path, content: str) -> None:
        """Create or overwrite ``path`` with ``content``."""

    @abstractmethod
    def update_file(self, path: Path, original: str, updated: str) -> None:
        """Replace the content of an existing file.

        ``original`` is the content the update was computed from; dry runs
        use it to show the difference.
        """


class RealWriter(FileWriter):
    """Writes to disk."""

    def create_dir_all(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def write_file(self, path: Path, content: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    def update_file(self, path: Path, original: str, updated: str) -> None:
        Path(path).write_text(updated, encoding="utf-8")


class DryRunWriter(FileWriter):
    """Prints what would happen without writing anything."""

    dry_run = True

    def __init__(self) -> None:
        self.files_created: list[Path] = []
        self.files_updated: list[Path] = []
        self.dirs_created: list[Path] = []

    def create_dir_all(self, path: Path) -> None:
        self.dirs_created.append(Path(path))

    def write_file(self, path: Path, content: str) -> None:
        console.print(f"  [cyan]Would create:[/cyan] {escape(str(path))}")
        self.files_created.append(Path(path))

    def update_file(self, path: Path, original: str, updated: str) -> None:
        console.print(f"  [yellow]Would modify:[/yellow] {escape(str(path))}")
        self.files_updated.append(Path(path))
        for line in added_lines(original, updated):
            console.print(f"    [green]+ {escape(line)}[/green]", highlight=False)

    def print_summary(self) -> None:
        console.print()
        if self.files_created:
            console.print(f"  [bold]{len(self.files_created)}[/bold] file(s) would be created")
        if self.files_updated:
            console.print(f"  [bold]{len(self.files_updated)}[/bold] file(s) would be modified")
        if not self.files_created and not self.files_updated:
            console.print("  [dim]No changes would be made[/dim]")


def added_lines(original: str, updated: str) -> list[str]:
    """Lines of ``updated`` that do not occur anywhere in ``original``."""
    existing = set(original.splitlines())
    return [line for line in updated.splitlines() if line not in existing]


def make_writer(dry_run: bool) -> FileWriter:
    return DryRunWriter() if dry_run else RealWriter()
