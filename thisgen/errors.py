"""Structural errors raised while reading a project tree.

Both kinds are fatal to the command that triggered them: the CLI prints the
message and exits non-zero.  Semantic problems found after a successful parse
are reported as diagnostics instead (see ``thisgen.doctor``).
"""

from __future__ import annotations

from pathlib import Path


class IntrospectionError(Exception):
    """Base class for failures reading or recognising project files."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = Path(path)
        self.reason = message
        super().__init__(f"{self.path}: {message}")


class ProjectIOError(IntrospectionError):
    """A file or directory could not be read."""


class ProjectParseError(IntrospectionError):
    """A required syntactic shape was not found, or a document is malformed.

    ``line`` (1-based) and ``context`` point at the nearest recognisable
    source location when one is known.
    """

    def __init__(
        self,
        path: str | Path,
        message: str,
        *,
        line: int | None = None,
        context: str = "",
    ) -> None:
        self.line = line
        self.context = context
        super().__init__(path, message)
        location = f"{self.path}:{line}" if line is not None else str(self.path)
        detail = f"{location}: {message}"
        if context:
            detail += f" (near: {context})"
        self.args = (detail,)
