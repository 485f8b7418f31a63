"""Unit tests for shared JSON value semantics."""

import json
import math

import pytest

from datatransform.engine.jsvalues import (
    UNDEFINED,
    canonical_key,
    compare,
    encode_json,
    format_number,
    get_field,
    get_member,
    is_truthy,
    loose_equals,
    stable_dumps,
    to_js_string,
    to_json_value,
    to_number,
)
from datatransform.errors import DepthLimitError, EvaluationError


class TestCoercion:
    """Tests for number and string coercion."""

    @pytest.mark.parametrize("value, expected", [
        (None, 0),
        (True, 1),
        ("", 0),
        (" 42 ", 42),
        ("1e3", 1000.0),
        ("0x10", 16),
        ("-Infinity", -math.inf),
        ([7], 7),
    ])
    def test_to_number(self, value, expected):
        """Should coerce values to numbers."""
        assert to_number(value) == expected

    @pytest.mark.parametrize("value", ["abc", {}, UNDEFINED, "1.2.3"])
    def test_to_number_nan(self, value):
        """Should produce NaN for non-numeric values."""
        assert math.isnan(to_number(value))

    @pytest.mark.parametrize("value, expected", [
        (2.0, "2"),
        (0.5, "0.5"),
        (1e-7, "1e-7"),
        (1e21, "1e+21"),
        (math.nan, "NaN"),
        (-math.inf, "-Infinity"),
    ])
    def test_format_number(self, value, expected):
        """Should render numbers without Python's float artifacts."""
        assert format_number(value) == expected

    @pytest.mark.parametrize("value, expected", [
        (None, "null"),
        (UNDEFINED, "undefined"),
        (False, "false"),
        ([1, None, [2, 3]], "1,,2,3"),
        ({"a": 1}, "[object Object]"),
    ])
    def test_to_js_string(self, value, expected):
        """Should stringify values for keys and concatenation."""
        assert to_js_string(value) == expected


class TestTruthiness:
    """Tests for truthiness."""

    @pytest.mark.parametrize("value", [None, UNDEFINED, False, 0, 0.0, math.nan, ""])
    def test_falsy(self, value):
        """Should treat these values as false."""
        assert not is_truthy(value)

    @pytest.mark.parametrize("value", [[], {}, "0", -1, "false"])
    def test_truthy(self, value):
        """Should treat empty containers and non-empty strings as true."""
        assert is_truthy(value)


class TestComparison:
    """Tests for equality and ordering."""

    def test_loose_equals(self):
        """Should coerce across kinds."""
        assert loose_equals("1", 1)
        assert loose_equals(True, 1)
        assert loose_equals(None, UNDEFINED)
        assert not loose_equals(None, 0)
        assert not loose_equals(math.nan, math.nan)

    def test_compare(self):
        """Should order strings lexically and the rest numerically."""
        assert compare("10", "9") == -1
        assert compare("10", 9) == 1
        assert compare(None, 0) == 0
        assert compare(UNDEFINED, 1) is None
        assert compare("abc", 1) is None


class TestMemberAccess:
    """Tests for member reads."""

    def test_objects_and_arrays(self):
        """Should read keys, indices and length."""
        assert get_member({"a": 1}, "a") == 1
        assert get_member({"a": 1}, "b") is UNDEFINED
        assert get_member([5, 6], "1") == 6
        assert get_member([5, 6], "length") == 2
        assert get_member("abc", 0) == "a"
        assert get_member(5, "x") is UNDEFINED

    def test_null_strict(self):
        """Should raise on null only in strict mode."""
        with pytest.raises(EvaluationError):
            get_member(None, "a")
        assert get_member(None, "a", strict=False) is UNDEFINED

    def test_get_field(self):
        """Should follow dotted chains."""
        assert get_field({"a": {"b": [1]}}, "a.b.0") == 1
        assert get_field({}, ("a", "b"), strict=False) is UNDEFINED


class TestKeysAndOutput:
    """Tests for canonical keys and JSON normalization."""

    def test_stable_dumps_sorts_keys(self):
        """Should produce the same text regardless of key order."""
        assert stable_dumps({"b": 1, "a": [2]}) == stable_dumps({"a": [2], "b": 1}) == '{"a":[2],"b":1}'

    def test_canonical_key(self):
        """Should distinguish kinds but not int from float."""
        assert canonical_key(1) == canonical_key(1.0)
        assert canonical_key(1) != canonical_key("1")
        assert canonical_key(None) != canonical_key(UNDEFINED)

    def test_to_json_value(self):
        """Should normalize values for output."""
        value = {"a": 2.0, "b": math.inf, "c": UNDEFINED, "d": [UNDEFINED, 1.5]}
        assert to_json_value(value) == {"a": 2, "b": None, "d": [None, 1.5]}


def _nested_list(depth: int, leaf=1):
    value = leaf
    for _ in range(depth):
        value = [value]
    return value


class TestDeepValues:
    """Tests for values nested deeper than the interpreter recursion limit."""

    def test_to_js_string_nested(self):
        """Should join nested arrays inline without recursing."""
        assert to_js_string([1, [2, [3, []]], None]) == "1,2,3,,"
        assert to_js_string(_nested_list(5000, "x")) == "x"

    def test_to_json_value_deep(self):
        """Should copy deep documents within the depth limit."""
        value = to_json_value(_nested_list(5000, 2.0))

        for _ in range(5000):
            value = value[0]
        assert value == 2 and isinstance(value, int)

    def test_to_json_value_depth_limit(self):
        """Should raise DepthLimitError past the limit."""
        with pytest.raises(DepthLimitError):
            to_json_value(_nested_list(20), max_depth=5)

    def test_encode_json_deep(self):
        """Should serialize deep documents in both layouts."""
        assert encode_json(_nested_list(3000)) == "[" * 3000 + "1" + "]" * 3000
        assert encode_json(_nested_list(1500), indent=2).count("\n") == 3000

    def test_encode_json_depth_limit(self):
        """Should raise DepthLimitError past the limit."""
        with pytest.raises(DepthLimitError):
            encode_json(_nested_list(20), max_depth=5)
        with pytest.raises(DepthLimitError):
            stable_dumps({"a": _nested_list(20)}, max_depth=5)


class TestEncodeJson:
    """Tests for the JSON encoder."""

    @pytest.mark.parametrize("value", [
        None,
        "café \"quoted\"\n",
        [],
        {},
        [1, -2.5, True, None, "s"],
        {"b": [1, {"c": []}], "a": {"d": {}}, "e": "x"},
        [[1, [2]], {"k": [3, 4]}],
    ])
    def test_matches_json_module(self, value):
        """Should produce the same text as the json module."""
        assert encode_json(value) == json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        assert encode_json(value, indent=2) == json.dumps(value, indent=2, ensure_ascii=False)
        assert encode_json(value, sort_keys=True) == json.dumps(
            value, sort_keys=True, separators=(",", ":"), ensure_ascii=False
        )

    def test_normalizes_values(self):
        """Should apply the same normalization as to_json_value."""
        value = {"a": 2.0, "b": math.nan, "c": UNDEFINED, "d": [UNDEFINED]}
        assert encode_json(value) == '{"a":2,"b":null,"d":[null]}'
