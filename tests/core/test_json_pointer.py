"""
Tests for the JSON Pointer engine.

Run with: pytest tests/core/test_json_pointer.py -v
"""

import pytest

from semlift.core import json_pointer
from semlift.core.errors import SemliftError
from semlift.core.json_pointer import PointerError


@pytest.mark.unit
class TestParsePointer:
    """Pointer syntax."""

    @pytest.mark.parametrize("pointer", ["", "/", "  "])
    def test_root_pointers(self, pointer):
        """Blank pointers and a lone slash address the root."""
        assert json_pointer.parse_pointer(pointer) == []

    def test_escapes(self):
        """~1 and ~0 unescape to / and ~."""
        assert json_pointer.parse_pointer("/a~1b/c~0d") == ["a/b", "c~d"]

    def test_missing_leading_slash_tolerated(self):
        assert json_pointer.parse_pointer("a/b") == ["a", "b"]

    def test_format_round_trip_of_escaped_tokens(self):
        tokens = ["a/b", "c~d", "0"]
        assert json_pointer.parse_pointer(json_pointer.format_pointer(tokens)) == tokens


@pytest.mark.unit
class TestGet:
    """Reads."""

    DOC = {"a": {"b": [1, {"c": None}]}, "x": 0}

    def test_root(self):
        assert json_pointer.get(self.DOC, "") is self.DOC

    def test_nested_array_member(self):
        assert json_pointer.get(self.DOC, "/a/b/0") == 1

    def test_null_is_a_value(self):
        """A JSON null is returned, not treated as missing."""
        assert json_pointer.get(self.DOC, "/a/b/1/c", default="fallback") is None
        assert json_pointer.contains(self.DOC, "/a/b/1/c")

    def test_missing_raises_pointer_error(self):
        """Missing paths raise a PointerError, which is both a SemliftError and a KeyError."""
        with pytest.raises(PointerError, match="/a/zz"):
            json_pointer.get(self.DOC, "/a/zz")
        assert issubclass(PointerError, SemliftError)
        assert issubclass(PointerError, KeyError)

    def test_missing_with_default(self):
        assert json_pointer.get(self.DOC, "/a/b/7", default=None) is None
        assert json_pointer.get(self.DOC, "/x/deeper", default="d") == "d"

    def test_non_numeric_array_token_is_missing(self):
        assert not json_pointer.contains(self.DOC, "/a/b/first")


@pytest.mark.unit
class TestSetAt:
    """Writes never mutate their input."""

    def test_set_existing_member_returns_copy(self):
        doc = {"a": {"b": 1}, "keep": {"k": 1}}
        updated = json_pointer.set_at(doc, "/a/b", 2)
        assert updated == {"a": {"b": 2}, "keep": {"k": 1}}
        assert doc == {"a": {"b": 1}, "keep": {"k": 1}}
        assert updated["keep"] is doc["keep"]

    def test_creates_intermediate_objects_and_arrays(self):
        """Numeric tokens create arrays, others create objects."""
        assert json_pointer.set_at({}, "/a/0/b", "v") == {"a": [{"b": "v"}]}

    def test_pads_arrays_with_null(self):
        assert json_pointer.set_at({"a": [1]}, "/a/3", 4) == {"a": [1, None, None, 4]}

    def test_append_token(self):
        assert json_pointer.set_at({"a": [1]}, "/a/-", 2) == {"a": [1, 2]}

    def test_set_root_replaces_document(self):
        assert json_pointer.set_at({"a": 1}, "", [1, 2]) == [1, 2]

    def test_null_intermediate_is_replaced(self):
        assert json_pointer.set_at({"a": None}, "/a/b", 1) == {"a": {"b": 1}}

    def test_cannot_descend_into_scalar(self):
        with pytest.raises(PointerError, match="scalar"):
            json_pointer.set_at({"a": 5}, "/a/b", 1)


@pytest.mark.unit
class TestRoundTrip:
    """Writing back the value read at an existing path reproduces the document."""

    DOC = {
        "a": {"b": [1, {"c": None}], "d": "text"},
        "list": [[0, 1], {"k": False}],
        "a/b": {"m~n": 3},
        "nothing": None,
    }

    @pytest.mark.parametrize("pointer", [
        "",
        "/a",
        "/a/b",
        "/a/b/0",
        "/a/b/1/c",
        "/a/d",
        "/list/0/1",
        "/list/1/k",
        "/a~1b",
        "/a~1b/m~0n",
        "/nothing",
    ])
    def test_set_of_get_is_identity(self, pointer):
        value = json_pointer.get(self.DOC, pointer)
        assert json_pointer.set_at(self.DOC, pointer, value) == self.DOC

    def test_round_trip_leaves_input_untouched(self):
        before = repr(self.DOC)
        json_pointer.set_at(self.DOC, "/a/b/1/c", json_pointer.get(self.DOC, "/a/b/1/c"))
        assert repr(self.DOC) == before


@pytest.mark.unit
class TestRemoveAndMove:
    """Removal and moves."""

    def test_remove_member(self):
        doc = {"a": {"b": 1, "c": 2}}
        assert json_pointer.remove(doc, "/a/b") == {"a": {"c": 2}}
        assert doc == {"a": {"b": 1, "c": 2}}

    def test_remove_array_element_shifts(self):
        assert json_pointer.remove({"a": [1, 2, 3]}, "/a/0") == {"a": [2, 3]}

    def test_remove_missing_is_noop(self):
        doc = {"a": 1}
        assert json_pointer.remove(doc, "/b/c") is doc

    def test_remove_root_gives_none(self):
        assert json_pointer.remove({"a": 1}, "") is None

    def test_move(self):
        assert json_pointer.move({"identifier": "abc"}, "/identifier", "/code") == {"code": "abc"}

    def test_move_missing_source_is_noop(self):
        doc = {"a": 1}
        assert json_pointer.move(doc, "/missing", "/b") is doc
