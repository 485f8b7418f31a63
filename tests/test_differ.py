"""Unit tests for the structural differ."""

import pytest

from datatransform.engine.differ import diff
from datatransform.errors import DepthLimitError
from datatransform.models import DiffOptions

SAMPLES = [
    None,
    1,
    "text",
    [1, 2, 3],
    {"a": 1, "b": {"c": [1, 2]}},
    {"a": 2, "d": None},
    [{"id": 1}, {"id": 2, "x": [True]}],
]


class TestDiffBasics:
    """Tests for order-sensitive diffs."""

    def test_added_key(self):
        """Should report a key present only in the new document."""
        result = diff({"a": 1}, {"a": 1, "b": 2})

        assert result.summary == {"added": 1, "removed": 0, "changed": 0, "unchanged": 1}
        assert result.added[0].path == "$.b"
        assert result.added[0].value == 2
        assert not result.identical

    def test_changed_value(self):
        """Should report a changed scalar."""
        assert diff({"a": 1}, {"a": 2}).summary["changed"] == 1

    def test_removed_and_changed(self):
        """Should report removed keys and changed values with both sides."""
        result = diff({"a": 1, "b": 2}, {"a": 5})

        assert [e.path for e in result.removed] == ["$.b"]
        assert result.changed[0].path == "$.a"
        assert (result.changed[0].old, result.changed[0].new) == (1, 5)

    @pytest.mark.parametrize("value", SAMPLES)
    def test_identity(self, value):
        """Should find a document identical to itself."""
        result = diff(value, value)

        assert result.identical
        assert result.added == result.removed == result.changed == []

    @pytest.mark.parametrize("a", SAMPLES)
    @pytest.mark.parametrize("b", SAMPLES)
    def test_added_removed_symmetry(self, a, b):
        """Should swap added and removed counts when the arguments swap."""
        forward, backward = diff(a, b), diff(b, a)

        assert len(forward.added) == len(backward.removed)
        assert len(forward.removed) == len(backward.added)

    def test_unchanged_counts_leaves(self):
        """Should count every equal scalar leaf exactly once."""
        doc = {"a": 1, "b": {"c": [1, 2, "x"]}, "d": None, "e": True}

        result = diff(doc, {"a": 1, "b": {"c": [1, 2, "x"]}, "d": None, "e": True})

        assert result.unchanged == 6
        assert result.identical

    def test_type_mismatch_is_change(self):
        """Should record differing kinds as a single change."""
        result = diff({"a": 1, "b": [1], "c": True}, {"a": "1", "b": {"0": 1}, "c": 1})

        assert [c.path for c in result.changed] == ["$.a", "$.b", "$.c"]
        assert result.unchanged == 0

    def test_int_float_equal(self):
        """Should treat 1 and 1.0 as the same number."""
        assert diff({"n": 1}, {"n": 1.0}).identical

    def test_array_positions(self):
        """Should compare arrays position by position."""
        result = diff([1, 2, 3], [1, 5])

        assert [c.path for c in result.changed] == ["$[1]"]
        assert [(e.path, e.value) for e in result.removed] == [("$[2]", 3)]
        assert result.unchanged == 1

    def test_entry_order(self):
        """Should list a node's own keys before entries from its children."""
        result = diff(
            {"a": {"x": 1, "y": 1}, "b": 2},
            {"a": {"x": 2}, "c": 3},
        )

        assert [e.path for e in result.removed] == ["$.b", "$.a.y"]
        assert [e.path for e in result.added] == ["$.c"]
        assert [c.path for c in result.changed] == ["$.a.x"]

    def test_ignore_case(self):
        """Should compare strings case-insensitively when asked."""
        assert diff({"s": "ABC"}, {"s": "abc"}, ignore_case=True).identical
        assert not diff({"s": "ABC"}, {"s": "abc"}).identical

    def test_depth_limit(self):
        """Should raise DepthLimitError past the configured depth."""
        old = new = 0
        for _ in range(20):
            old, new = [old], [new]

        with pytest.raises(DepthLimitError):
            diff(old, new, DiffOptions(max_depth=5))

    def test_deep_documents(self):
        """Should diff documents nested deeper than the recursion limit."""
        old, new = "a", "b"
        for _ in range(3000):
            old, new = {"k": old}, {"k": new}

        result = diff(old, new)

        assert len(result.changed) == 1
        assert result.changed[0].path.endswith(".k")


class TestIgnoreOrder:
    """Tests for unordered array comparison."""

    def test_reordered_is_identical(self):
        """Should ignore element order."""
        result = diff([1, 2, 3], [3, 2, 1], ignore_order=True)

        assert result.identical
        assert result.unchanged == 3

    def test_objects_compared_by_content(self):
        """Should match objects regardless of key order."""
        result = diff([{"a": 1, "b": 2}], [{"b": 2, "a": 1}], ignore_order=True)
        assert result.identical

    def test_added_and_removed(self):
        """Should report missing values under the `[]` path."""
        result = diff({"tags": [1, 2]}, {"tags": [2, 3]}, ignore_order=True)

        assert [(e.path, e.value) for e in result.removed] == [("$.tags[]", 1)]
        assert [(e.path, e.value) for e in result.added] == [("$.tags[]", 3)]
        assert result.unchanged == 1

    def test_legacy_count_ignores_duplicates(self):
        """Should only check membership without multiset mode."""
        result = diff([1, 1, 2], [1, 2, 2], ignore_order=True)

        assert result.identical
        assert result.unchanged == 3

    def test_legacy_count_never_negative(self):
        """Should clamp the approximate unchanged count at zero."""
        result = diff([1, 2, 3], [4], ignore_order=True)

        assert len(result.removed) == 3
        assert result.unchanged == 0

    def test_multiset_counts_duplicates(self):
        """Should account for each occurrence in multiset mode."""
        result = diff([1, 1, 2], [1, 2, 2], ignore_order=True, multiset=True)

        assert [e.value for e in result.removed] == [1]
        assert [e.value for e in result.added] == [2]
        assert result.unchanged == 2

    def test_order_still_matters_without_flag(self):
        """Should detect reordering in the default mode."""
        assert not diff([1, 2], [2, 1]).identical
