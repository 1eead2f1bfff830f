"""Small hand-written scanner for the Rust shapes the extractor recognises.

This is not a Rust lexer.  It knows just enough to stay correct on generated
and lightly hand-edited sources:

* ``//`` and ``/* */`` comments are blanked out (offsets are preserved so
  error positions still point into the original text);
* string literals are skipped when matching brackets or splitting lists;
* brackets must balance, otherwise a ``ScanError`` names the offset.

Higher-level code (``extractor.py``) turns ``ScanError`` into a
``ProjectParseError`` carrying the file path and line number.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_PAIRS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")": "(", "]": "[", "}": "{"}
_STRING_LITERAL = re.compile(r'^"((?:[^"\\]|\\.)*)"$', re.DOTALL)
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ScanError(Exception):
    """Raised when brackets do not balance or a literal is unterminated."""

    def __init__(self, message: str, offset: int) -> None:
        self.offset = offset
        super().__init__(message)


@dataclass(frozen=True)
class Segment:
    """A slice of source text together with its absolute start offset."""

    text: str
    offset: int


# ---------------------------------------------------------------------------
# Comment masking
# ---------------------------------------------------------------------------

def mask_comments(text: str) -> str:
    """Replace every comment character with a space, keeping newlines.

    The result has the same length as ``text`` so offsets remain valid.
    String literals are left untouched, including any ``//`` inside them.
    """
    out = list(text)
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            i = _skip_string(text, i)
            continue
        if ch == "/" and i + 1 < n and text[i + 1] == "/":
            while i < n and text[i] != "\n":
                out[i] = " "
                i += 1
            continue
        if ch == "/" and i + 1 < n and text[i + 1] == "*":
            end = text.find("*/", i + 2)
            stop = n if end == -1 else end + 2
            for j in range(i, stop):
                if out[j] != "\n":
                    out[j] = " "
            i = stop
            continue
        i += 1
    return "".join(out)


def _skip_string(text: str, start: int) -> int:
    """Return the offset just past the string literal opening at ``start``."""
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            return i + 1
        i += 1
    raise ScanError("unterminated string literal", start)


# ---------------------------------------------------------------------------
# Bracket matching and splitting
# ---------------------------------------------------------------------------

def find_closing(text: str, open_index: int) -> int:
    """Return the index of the bracket closing the one at ``open_index``."""
    opener = text[open_index]
    if opener not in _PAIRS:
        raise ScanError(f"expected an opening bracket, found {opener!r}", open_index)

    stack = [opener]
    i = open_index + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            i = _skip_string(text, i)
            continue
        if ch in _PAIRS:
            stack.append(ch)
        elif ch in _CLOSERS:
            if stack[-1] != _CLOSERS[ch]:
                raise ScanError(
                    f"mismatched {ch!r}, expected {_PAIRS[stack[-1]]!r}", i
                )
            stack.pop()
            if not stack:
                return i
        i += 1
    raise ScanError(f"unbalanced {opener!r}, no matching {_PAIRS[opener]!r}", open_index)


def split_top_level(
    text: str,
    offset: int = 0,
    separator: str = ",",
    *,
    angle_brackets: bool = False,
) -> list[Segment]:
    """Split ``text`` on ``separator`` where no bracket is open.

    With ``angle_brackets`` the ``<``/``>`` of generic types also count as
    nesting, so ``HashMap<String, i32>`` stays one segment (``->`` does not
    close anything).  Blank segments, such as the one after a trailing
    comma, are dropped.  Offsets in the result are absolute: ``offset`` is
    the position of ``text`` inside the original source.
    """
    segments: list[Segment] = []
    depth = 0
    angle = 0
    start = 0
    i = 0
    n = len(text)

    def _flush(end: int) -> None:
        raw = text[start:end]
        stripped = raw.strip()
        if stripped:
            lead = len(raw) - len(raw.lstrip())
            segments.append(Segment(stripped, offset + start + lead))

    while i < n:
        ch = text[i]
        if ch == '"':
            i = _skip_string(text, i)
            continue
        if ch in _PAIRS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        elif angle_brackets and ch == "<":
            angle += 1
        elif angle_brackets and ch == ">" and angle > 0 and text[i - 1] != "-":
            angle -= 1
        elif ch == separator and depth == 0 and angle == 0:
            _flush(i)
            start = i + 1
        i += 1
    _flush(n)
    return segments


def split_chain(text: str, offset: int = 0) -> list[Segment]:
    """Split a method chain ``get(a).post(b)`` into ``["get(a)", "post(b)"]``."""
    return split_top_level(text, offset, separator=".")


def inner(segment: Segment, opener: str) -> Segment | None:
    """Return the contents of ``segment`` if it is exactly one ``opener`` group."""
    text = segment.text
    if not text or text[0] != opener:
        return None
    try:
        close = find_closing(text, 0)
    except ScanError:
        return None
    if close != len(text) - 1:
        return None
    return Segment(text[1:-1], segment.offset + 1)


# ---------------------------------------------------------------------------
# Literal helpers
# ---------------------------------------------------------------------------

def string_literal(text: str) -> str | None:
    """Return the value of a plain ``"..."`` literal, or ``None``."""
    match = _STRING_LITERAL.match(text.strip())
    if match is None:
        return None
    return match.group(1).replace('\\"', '"')


def is_identifier(text: str) -> bool:
    return bool(_IDENTIFIER.match(text))


def line_of(text: str, offset: int) -> int:
    """1-based line number of ``offset`` in ``text``."""
    return text.count("\n", 0, offset) + 1


def context_at(text: str, offset: int, width: int = 60) -> str:
    """The stripped source line containing ``offset``, truncated to ``width``."""
    start = text.rfind("\n", 0, offset) + 1
    end = text.find("\n", offset)
    line = text[start:] if end == -1 else text[start:end]
    line = line.strip()
    if len(line) > width:
        line = line[: width - 3] + "..."
    return line
