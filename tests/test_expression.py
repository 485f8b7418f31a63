"""Unit tests for transform expressions."""

import math

import pytest

from datatransform.engine.expression import compile_expression, evaluate, tokenize
from datatransform.engine.jsvalues import UNDEFINED
from datatransform.errors import EvaluationError, ParseError


class TestTokenize:
    """Tests for the tokenizer."""

    def test_operators(self):
        """Should prefer the longest operator."""
        values = [t.value for t in tokenize("a === b !== c ?? d?.e")]
        assert values == ["a", "===", "b", "!==", "c", "??", "d", "?.", "e", ""]

    def test_conditional_with_decimal(self):
        """Should not read `?.5` as optional chaining."""
        values = [t.value for t in tokenize("a?.5:1")]
        assert values[:3] == ["a", "?", ".5"]

    def test_unexpected_character(self):
        """Should reject characters outside the grammar."""
        with pytest.raises(ParseError):
            tokenize("x @ 1")


class TestLiteralsAndOperators:
    """Tests for literals and operators."""

    @pytest.mark.parametrize("source, expected", [
        ("1 + 2 * 3", 7),
        ("(1 + 2) * 3", 9),
        ("10 / 4", 2.5),
        ("7 % 3", 1),
        ("-7 % 3", -1),
        ("'a' + 1", "a1"),
        ("'n' + 1.0", "n1"),
        ("\"line\\n\"", "line\n"),
        ("true && 'yes'", "yes"),
        ("0 || 'fallback'", "fallback"),
        ("null ?? 'default'", "default"),
        ("0 ?? 'default'", 0),
        ("1 < 2 ? 'lt' : 'ge'", "lt"),
        ("!''", True),
        ("'1' == 1", True),
        ("'1' === 1", False),
        ("null == undefined", True),
        ("typeof null", "object"),
        ("typeof [1]", "object"),
        ("typeof 'a'", "string"),
        ("typeof undefined", "undefined"),
    ])
    def test_evaluate(self, source, expected):
        """Should evaluate operators with loose JSON semantics."""
        assert evaluate(source) == expected

    def test_division_by_zero(self):
        """Should return infinities and NaN instead of raising."""
        assert evaluate("1 / 0") == math.inf
        assert evaluate("-1 / 0") == -math.inf
        assert math.isnan(evaluate("0 / 0"))

    def test_array_and_object_literals(self):
        """Should build arrays and objects, including shorthand keys."""
        assert evaluate("[1, 'two', [3],]") == [1, "two", [3]]
        assert evaluate("{a: 1, 'b c': 2, x}", {"k": 1}) == {"a": 1, "b c": 2, "x": {"k": 1}}


class TestMemberAccess:
    """Tests for field access on the current element."""

    def test_field_chain(self):
        """Should follow nested members and indices."""
        x = {"a": {"b": [10, 20]}, "name": "Alice"}

        assert evaluate("x.a.b[1]", x) == 20
        assert evaluate("x['name']", x) == "Alice"
        assert evaluate("x.a.b.length", x) == 2

    def test_missing_member_is_undefined(self):
        """Should yield undefined for an absent member."""
        assert evaluate("x.missing", {}) is UNDEFINED

    def test_member_of_undefined_raises(self):
        """Should fail when reading through an absent member."""
        with pytest.raises(EvaluationError, match="Cannot read properties of undefined"):
            evaluate("x.missing.deep", {})

    def test_optional_chaining(self):
        """Should short-circuit the whole chain on null or undefined."""
        assert evaluate("x.missing?.deep.deeper", {}) is UNDEFINED
        assert evaluate("x.a?.b", {"a": None}) is UNDEFINED
        assert evaluate("x.a?.b", {"a": {"b": 1}}) == 1

    def test_index_bindings(self):
        """Should bind the element position to `i` and `index`."""
        expr = compile_expression("i * 10 + index")
        assert expr.evaluate({}, 3) == 33


class TestBuiltins:
    """Tests for built-in functions and methods."""

    @pytest.mark.parametrize("source, expected", [
        ("Math.max(1, 5, 3)", 5),
        ("Math.min()", math.inf),
        ("Math.round(2.5)", 3),
        ("Math.round(-2.5)", -2),
        ("Math.floor(2.7)", 2),
        ("Math.abs(-4)", 4),
        ("Math.pow(2, 10)", 1024),
        ("String(1.0)", "1"),
        ("Number('42')", 42),
        ("Boolean([])", True),
        ("parseInt('42px')", 42),
        ("parseInt('ff', 16)", 255),
        ("parseFloat('3.5kg')", 3.5),
        ("isNaN('abc')", True),
        ("isFinite('12')", True),
        ("JSON.stringify({a: [1, null]})", '{"a":[1,null]}'),
        ("JSON.parse('{\"a\": 1}').a", 1),
        ("Object.keys({a: 1, b: 2})", ["a", "b"]),
        ("Object.entries({a: 1})", [["a", 1]]),
        ("Array.isArray([])", True),
        ("Date.parse('2020-01-01T00:00:00Z')", 1577836800000),
    ])
    def test_builtin(self, source, expected):
        """Should evaluate the built-in functions."""
        assert evaluate(source) == expected

    @pytest.mark.parametrize("source, expected", [
        ("'Alice'.toUpperCase()", "ALICE"),
        ("'  pad '.trim()", "pad"),
        ("'a,b,c'.split(',')", ["a", "b", "c"]),
        ("'hello'.slice(-3)", "llo"),
        ("'hello'.substring(3, 1)", "el"),
        ("'42'.padStart(5, '0')", "00042"),
        ("'abc'.includes('b')", True),
        ("'a-b-c'.replace('-', '+')", "a+b-c"),
        ("'a-b-c'.replaceAll('-', '+')", "a+b+c"),
        ("[1, 2, 3].includes(2)", True),
        ("[1, 2, 3].join('-')", "1-2-3"),
        ("[1, 2, 3].at(-1)", 3),
        ("[1, 2, 3].slice(1)", [2, 3]),
        ("(2.5).toFixed(0)", "3"),
        ("(1.5).toFixed(2)", "1.50"),
    ])
    def test_methods(self, source, expected):
        """Should call methods from the fixed method tables."""
        assert evaluate(source) == expected

    def test_string_length_limit(self):
        """Should refuse to build huge strings."""
        with pytest.raises(EvaluationError):
            evaluate("'abc'.repeat(2000000)")


class TestSandbox:
    """Tests that expressions cannot reach the host."""

    @pytest.mark.parametrize("source", [
        "__import__('os')",
        "open('/etc/passwd')",
        "eval('1')",
        "globals",
    ])
    def test_unknown_names(self, source):
        """Should reject names that are not bound or built in."""
        with pytest.raises(EvaluationError, match="is not defined"):
            evaluate(source)

    def test_dunder_members(self):
        """Should not expose Python attributes as members."""
        assert evaluate("x.__class__", {}) is UNDEFINED
        assert evaluate("'s'.__class__") is UNDEFINED
        assert evaluate("x.constructor", {"a": 1}) is UNDEFINED

    def test_call_non_function(self):
        """Should name the callee when it is not callable."""
        with pytest.raises(EvaluationError, match="x.name is not a function"):
            evaluate("x.name()", {"name": "Alice"})


class TestCompile:
    """Tests for compile-time validation."""

    @pytest.mark.parametrize("source", [
        "",
        "   ",
        "x +",
        "(1",
        "x..a",
        "1 2",
        "{a: 1",
        "x ? 1",
        "x?.()",
    ])
    def test_malformed(self, source):
        """Should raise ParseError for malformed expressions."""
        with pytest.raises(ParseError):
            compile_expression(source)

    def test_too_long(self):
        """Should reject expressions over the length limit."""
        with pytest.raises(ParseError, match="longer than"):
            compile_expression("1 + " * 10 + "1", max_length=10)

    def test_deeply_nested(self):
        """Should turn parser recursion overflow into ParseError."""
        source = "(" * 5000 + "1" + ")" * 5000
        with pytest.raises(ParseError):
            compile_expression(source, max_length=len(source))

    def test_compiled_reuse(self):
        """Should evaluate a compiled expression against many elements."""
        expr = compile_expression("x.n * 2")
        assert [expr.evaluate({"n": n}) for n in range(3)] == [0, 2, 4]
