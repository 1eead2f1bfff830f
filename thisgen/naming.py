"""Identifier case conversion and English pluralisation.

Every generated identifier (store names, route names, module names, client
methods) is derived from one canonical entity name through these functions,
so they must stay total: any input string produces some output, never an
exception.

Pluralisation is a suffix heuristic, not a dictionary.  Irregular plurals
("child" -> "children", "person" -> "people") are NOT handled and come out as
"childs" / "persons"; callers that need them pass an explicit ``overrides``
table.  Existing projects depend on the exact heuristic for their route
names, so the rule table must not be "fixed" silently.
"""

from __future__ import annotations

from collections.abc import Mapping

_SEPARATORS = frozenset("-_ ")
_VOWELS = frozenset("aeiou")


def to_snake_case(value: str) -> str:
    """Convert ``value`` to ``snake_case``.

    Examples::

        to_snake_case("ProductCategory")  -> "product_category"
        to_snake_case("product-category") -> "product_category"
        to_snake_case("HTMLParser")       -> "html_parser"
        to_snake_case("myAPI")            -> "my_api"
    """
    chars = list(value)
    out: list[str] = []
    prev_upper = False
    prev_separator = False

    for i, ch in enumerate(chars):
        if ch in _SEPARATORS:
            if out and not prev_separator:
                out.append("_")
            prev_separator = True
            prev_upper = False
            continue

        if ch.isupper():
            # Word boundary: "myAPI" before the A, "HTMLParser" before the P.
            if out and not prev_separator:
                next_is_lower = i + 1 < len(chars) and chars[i + 1].islower()
                if not prev_upper or next_is_lower:
                    out.append("_")
            out.append(ch.lower())
            prev_upper = True
        else:
            out.append(ch)
            prev_upper = False
        prev_separator = False

    return "".join(out)


def to_pascal_case(value: str) -> str:
    """Convert ``product_category`` / ``product-category`` to ``ProductCategory``.

    Only the first character of each segment is changed; the rest of the
    segment is kept as written.
    """
    parts = value.replace("-", "_").replace(" ", "_").split("_")
    return "".join(part[0].upper() + part[1:] for part in parts if part)


def to_camel_case(value: str) -> str:
    """Convert ``product_category`` to ``productCategory``."""
    pascal = to_pascal_case(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""


def pluralize(word: str, overrides: Mapping[str, str] | None = None) -> str:
    """Return the plural of ``word`` using a fixed suffix rule table.

    Rules, first match wins:

    1. ends in ``s`` but not ``ss``/``us``   -> unchanged (already plural)
    2. consonant + ``y``                      -> ``ies``
    3. ends in ``s``/``x``/``z``/``sh``/``ch`` -> append ``es``
    4. anything else                          -> append ``s``

    Args:
        word: Singular form, usually a snake_case entity name.
        overrides: Optional ``{singular: plural}`` table consulted first, for
            irregular plurals the heuristic cannot produce.
    """
    if overrides and word in overrides:
        return overrides[word]
    if not word:
        return word

    if word.endswith("s") and not word.endswith(("ss", "us")):
        return word

    if word.endswith("y") and len(word) > 1 and word[-2] not in _VOWELS:
        return word[:-1] + "ies"

    if word.endswith(("s", "x", "z", "sh", "ch")):
        return word + "es"

    return word + "s"
