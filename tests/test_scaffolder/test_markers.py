"""Tests for marker-based file mutation (thisgen.scaffolder.markers).

Covers:
- insert_after_marker indentation, ordering and newline handling
- insert_block_after_marker ordering
- has_line_after_marker as the idempotence guard
- add_import placement and duplicate detection
- SourceBuffer text round trip
"""

from __future__ import annotations

import pytest

from thisgen.scaffolder.markers import (
    MarkerNotFoundError,
    SourceBuffer,
    add_import,
    has_line_after_marker,
    insert_after_marker,
    insert_block_after_marker,
)


pytestmark = pytest.mark.unit

MARKER = "[this:store_fields]"

STRUCT = "pub struct Stores {\n    // [this:store_fields]\n}\n"


# ---------------------------------------------------------------------------
# insert_after_marker
# ---------------------------------------------------------------------------


class TestInsertAfterMarker:
    def test_line_takes_marker_indentation(self):
        result = insert_after_marker(STRUCT, MARKER, "pub a: A,")
        assert result == "pub struct Stores {\n    // [this:store_fields]\n    pub a: A,\n}\n"

    def test_leading_whitespace_of_line_is_discarded(self):
        assert insert_after_marker(STRUCT, MARKER, "        pub a: A,") == insert_after_marker(
            STRUCT, MARKER, "pub a: A,"
        )

    def test_tab_indentation(self):
        content = "fn f() {\n\t// [this:m]\n}\n"
        assert insert_after_marker(content, "[this:m]", "x();") == "fn f() {\n\t// [this:m]\n\tx();\n}\n"

    def test_marker_in_block_comment(self):
        content = "  /* [this:m] */\n"
        assert insert_after_marker(content, "[this:m]", "x") == "  /* [this:m] */\n  x\n"

    def test_latest_insert_comes_first(self):
        content = insert_after_marker(STRUCT, MARKER, "pub a: A,")
        content = insert_after_marker(content, MARKER, "pub b: B,")
        lines = content.splitlines()
        assert lines[2].strip() == "pub b: B,"
        assert lines[3].strip() == "pub a: A,"

    def test_first_marker_wins(self):
        content = "// [this:m]\n// [this:m]\n"
        assert insert_after_marker(content, "[this:m]", "x") == "// [this:m]\nx\n// [this:m]\n"

    def test_missing_trailing_newline_is_preserved(self):
        assert insert_after_marker("// [this:m]", "[this:m]", "x") == "// [this:m]\nx"

    def test_surrounding_lines_are_untouched(self):
        content = "a  \n// [this:m]\n\n   b\n"
        result = insert_after_marker(content, "[this:m]", "x")
        assert result == "a  \n// [this:m]\nx\n\n   b\n"

    def test_missing_marker_raises(self):
        with pytest.raises(MarkerNotFoundError) as exc_info:
            insert_after_marker("fn main() {}\n", MARKER, "x")
        assert exc_info.value.marker == MARKER
        assert exc_info.value.path is None
        assert MARKER in str(exc_info.value)

    def test_error_message_names_path(self):
        error = MarkerNotFoundError(MARKER, "src/stores.rs")
        assert str(error) == f"marker '{MARKER}' not found in src/stores.rs"


class TestInsertBlockAfterMarker:
    def test_block_keeps_order(self):
        result = insert_block_after_marker(STRUCT, MARKER, ["pub a: A,", "pub b: B,"])
        assert result == (
            "pub struct Stores {\n"
            "    // [this:store_fields]\n"
            "    pub a: A,\n"
            "    pub b: B,\n"
            "}\n"
        )

    def test_missing_marker_raises(self):
        with pytest.raises(MarkerNotFoundError):
            insert_block_after_marker("", MARKER, ["x"])


# ---------------------------------------------------------------------------
# has_line_after_marker
# ---------------------------------------------------------------------------


class TestHasLineAfterMarker:
    def test_found_after_marker(self):
        content = insert_after_marker(STRUCT, MARKER, "pub products_store: Arc<dyn ProductStore>,")
        assert has_line_after_marker(content, MARKER, "products_store:")

    def test_occurrence_before_marker_does_not_count(self):
        content = "products_store: x\n// [this:store_fields]\n"
        assert not has_line_after_marker(content, MARKER, "products_store:")

    def test_missing_marker_is_false(self):
        assert not has_line_after_marker("products_store: x\n", MARKER, "products_store:")

    def test_guarded_insert_is_idempotent(self):
        def guarded(content: str) -> str:
            if has_line_after_marker(content, MARKER, "pub a:"):
                return content
            return insert_after_marker(content, MARKER, "pub a: A,")

        once = guarded(STRUCT)
        assert guarded(once) == once
        assert once.count("pub a: A,") == 1


# ---------------------------------------------------------------------------
# add_import
# ---------------------------------------------------------------------------


class TestAddImport:
    def test_after_last_use_line(self):
        content = "use std::sync::Arc;\n\nuse this::prelude::*;\n\nfn main() {}\n"
        result = add_import(content, "use crate::x::Y;")
        assert result == (
            "use std::sync::Arc;\n\nuse this::prelude::*;\nuse crate::x::Y;\n\nfn main() {}\n"
        )

    def test_at_top_without_use_lines(self):
        assert add_import("fn main() {}\n", "use a::B;") == "use a::B;\nfn main() {}\n"

    def test_existing_import_is_not_duplicated(self):
        content = "    use a::B;   \nfn main() {}\n"
        assert add_import(content, "use a::B;") == content

    def test_similar_import_is_not_a_duplicate(self):
        content = "use a::B;\n"
        assert add_import(content, "use a::{B, C};") == "use a::B;\nuse a::{B, C};\n"

    def test_import_line_is_stripped(self):
        assert add_import("use a::A;\n", "   use b::B;  ") == "use a::A;\nuse b::B;\n"

    def test_custom_keyword(self):
        content = "import os\n\nprint(1)\n"
        assert add_import(content, "import sys", keyword="import ") == (
            "import os\nimport sys\n\nprint(1)\n"
        )


# ---------------------------------------------------------------------------
# SourceBuffer
# ---------------------------------------------------------------------------


class TestSourceBuffer:
    @pytest.mark.parametrize("text", ["", "a", "a\n", "a\n\nb\n", "\n"])
    def test_round_trip(self, text: str):
        assert SourceBuffer.from_text(text).to_text() == text

    def test_find_marker_and_indent(self):
        buffer = SourceBuffer.from_text(STRUCT)
        index = buffer.find_marker(MARKER)
        assert index == 1
        assert buffer.indent_of(index) == "    "
