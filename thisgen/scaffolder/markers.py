"""Marker-based mutation of generated wiring files.

Wiring files (``stores.rs``, ``module.rs``) carry comment markers such as
``// [this:store_fields]``.  Scaffolding commands insert new lines directly
below a marker, exactly once, without touching the hand-written code around
it.

Everything here works on in-memory text; callers read and write the files.
A marker match is a substring match on the stripped line, so the marker may
sit inside any comment style.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path


class MarkerNotFoundError(Exception):
    """The wiring anchor ``marker`` is not present in the content.

    Callers treat this as a skipped wiring step, never as a fatal error.
    """

    def __init__(self, marker: str, path: str | Path | None = None) -> None:
        self.marker = marker
        self.path = Path(path) if path is not None else None
        where = f" in {self.path}" if self.path is not None else ""
        super().__init__(f"marker '{marker}' not found{where}")


# ---------------------------------------------------------------------------
# Line buffer
# ---------------------------------------------------------------------------


class SourceBuffer:
    """An ordered list of lines with marker lookup and indented insertion.

    ``to_text()`` reproduces the original text exactly when nothing was
    inserted, including the presence or absence of a final newline.
    """

    def __init__(self, lines: list[str], trailing_newline: bool = False) -> None:
        self.lines = lines
        self.trailing_newline = trailing_newline

    @classmethod
    def from_text(cls, content: str) -> "SourceBuffer":
        if not content:
            return cls([], trailing_newline=False)
        trailing = content.endswith("\n")
        body = content[:-1] if trailing else content
        return cls(body.split("\n"), trailing_newline=trailing)

    def to_text(self) -> str:
        text = "\n".join(self.lines)
        if self.trailing_newline:
            text += "\n"
        return text

    # -- queries -----------------------------------------------------------

    def find_marker(self, marker: str) -> int | None:
        """Index of the first line whose stripped text contains ``marker``."""
        for index, line in enumerate(self.lines):
            if marker in line.strip():
                return index
        return None

    def indent_of(self, index: int) -> str:
        line = self.lines[index]
        return line[: len(line) - len(line.lstrip())]

    def contains_after(self, index: int, needle: str) -> bool:
        """True if a line strictly after ``index`` contains ``needle``."""
        return any(needle in line for line in self.lines[index + 1:])

    def has_exact(self, line: str) -> bool:
        """True if some line equals ``line`` once both are stripped."""
        wanted = line.strip()
        return any(existing.strip() == wanted for existing in self.lines)

    def last_line_starting_with(self, prefix: str) -> int | None:
        for index in range(len(self.lines) - 1, -1, -1):
            if self.lines[index].strip().startswith(prefix):
                return index
        return None

    # -- mutation ----------------------------------------------------------

    def insert(self, index: int, line: str) -> None:
        """Insert ``line`` so that it becomes line number ``index``."""
        self.lines.insert(index, line)


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------


def insert_after_marker(content: str, marker: str, line: str) -> str:
    """Insert ``line`` directly below the first line containing ``marker``.

    The inserted line takes the marker line's indentation; any leading
    whitespace on ``line`` itself is discarded.  Repeated calls with the same
    marker each insert directly below the marker, so the latest call ends up
    first.  Use :func:`insert_block_after_marker` for lines that must keep a
    fixed relative order.

    Raises:
        MarkerNotFoundError: No line contains ``marker``.
    """
    buffer = SourceBuffer.from_text(content)
    index = buffer.find_marker(marker)
    if index is None:
        raise MarkerNotFoundError(marker)
    buffer.insert(index + 1, buffer.indent_of(index) + line.lstrip())
    return buffer.to_text()


def insert_block_after_marker(content: str, marker: str, lines: Iterable[str]) -> str:
    """Insert ``lines`` below ``marker`` in the given order.

    Each line is anchored after the previously inserted one, so the block
    appears exactly as passed, indented like the marker.

    Raises:
        MarkerNotFoundError: No line contains ``marker``.
    """
    buffer = SourceBuffer.from_text(content)
    index = buffer.find_marker(marker)
    if index is None:
        raise MarkerNotFoundError(marker)
    indent = buffer.indent_of(index)
    for offset, line in enumerate(lines, start=1):
        buffer.insert(index + offset, indent + line.lstrip())
    return buffer.to_text()


def has_line_after_marker(content: str, marker: str, needle: str) -> bool:
    """True if any line strictly after the marker contains ``needle``.

    This is the idempotence guard for :func:`insert_after_marker`; the
    insertion functions never deduplicate on their own.  Without the marker
    there is nothing after it, so the result is ``False``.
    """
    buffer = SourceBuffer.from_text(content)
    index = buffer.find_marker(marker)
    if index is None:
        return False
    return buffer.contains_after(index, needle)


def add_import(content: str, import_line: str, keyword: str = "use ") -> str:
    """Add ``import_line`` unless an identical line already exists.

    The new line goes directly after the last line starting with ``keyword``
    (after stripping), or at the top of the file when there is none.
    """
    buffer = SourceBuffer.from_text(content)
    if buffer.has_exact(import_line):
        return content

    last = buffer.last_line_starting_with(keyword)
    position = 0 if last is None else last + 1
    buffer.insert(position, import_line.strip())
    return buffer.to_text()
