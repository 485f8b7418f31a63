"""Sandboxed expressions for the transform pipeline's filter and map stages.

Expressions use a small JavaScript-like syntax over the current element `x`
and its position `i` / `index`:

    x.age >= 18 && x.country == "NZ"
    {name: x.name.toUpperCase(), total: x.price * x.qty}
    x.tags.includes("urgent") ? "high" : "normal"

Source text is tokenized, parsed into an immutable tree and interpreted. No
host evaluation is involved: names resolve only to the bound variables and
the built-ins below, and member access only reaches JSON data and a fixed
method table.
"""

import json
import logging
import math
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable

from datatransform.engine.jsvalues import (
    UNDEFINED,
    JSFunction,
    compare_op,
    encode_json,
    get_member,
    is_number,
    is_truthy,
    kind_of,
    strict_equals,
    to_js_string,
    to_number,
    to_primitive,
)
from datatransform.errors import EvaluationError, ParseError

logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 4096

# Longest string a method such as repeat() or padStart() may build
MAX_STRING_LENGTH = 1_000_000


# =============================================================================
# Tokenizer
# =============================================================================


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    pos: int


TOKEN_RE = re.compile(
    r"""
    (?P<NUMBER>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<STRING>"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')
  | (?P<OP>===|!==|==|!=|<=|>=|&&|\|\||\?\?|\?\.(?!\d)|[+\-*/%<>!?:.,()\[\]{}])
  | (?P<ID>[A-Za-z_$][A-Za-z0-9_$]*)
  | (?P<SKIP>\s+)
  | (?P<MISMATCH>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


def _unescape(body: str) -> str:
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\" or i + 1 >= len(body):
            out.append(ch)
            i += 1
            continue
        nxt = body[i + 1]
        if nxt == "u" and re.match(r"[0-9a-fA-F]{4}", body[i + 2:i + 6]):
            out.append(chr(int(body[i + 2:i + 6], 16)))
            i += 6
            continue
        out.append(_ESCAPES.get(nxt, nxt))
        i += 2
    return "".join(out)


def tokenize(source: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    while pos < len(source):
        m = TOKEN_RE.match(source, pos)
        kind = m.lastgroup
        value = m.group(0)
        if kind == "MISMATCH":
            raise ParseError(f"Unexpected character {value!r} at position {pos}")
        if kind != "SKIP":
            tokens.append(Token(kind, value, pos))
        pos = m.end()
    tokens.append(Token("EOF", "", pos))
    return tokens


# =============================================================================
# Syntax tree
# =============================================================================


class Node:
    pass


@dataclass(frozen=True)
class Literal(Node):
    value: Any


@dataclass(frozen=True)
class Identifier(Node):
    name: str


@dataclass(frozen=True)
class Member(Node):
    obj: Node
    prop: Node
    optional: bool = False


@dataclass(frozen=True)
class Call(Node):
    callee: Node
    args: tuple


@dataclass(frozen=True)
class OptionalChain(Node):
    expr: Node


@dataclass(frozen=True)
class Unary(Node):
    op: str
    operand: Node


@dataclass(frozen=True)
class Binary(Node):
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class Logical(Node):
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class Conditional(Node):
    test: Node
    then: Node
    other: Node


@dataclass(frozen=True)
class ArrayLiteral(Node):
    items: tuple


@dataclass(frozen=True)
class ObjectLiteral(Node):
    entries: tuple


_KEYWORD_LITERALS = {"true": True, "false": False, "null": None, "undefined": UNDEFINED}


# =============================================================================
# Parser
# =============================================================================


class Parser:
    """Recursive-descent parser, one method per precedence level."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.i = 0

    def cur(self) -> Token:
        return self.tokens[self.i]

    def match(self, kind: str, value: str | None = None) -> Token | None:
        t = self.cur()
        if t.kind != kind or (value is not None and t.value != value):
            return None
        self.i += 1
        return t

    def match_op(self, *values: str) -> Token | None:
        t = self.cur()
        if t.kind == "OP" and t.value in values:
            self.i += 1
            return t
        return None

    def expect(self, kind: str, value: str | None = None) -> Token:
        t = self.cur()
        if t.kind != kind or (value is not None and t.value != value):
            want = value or kind
            got = t.value or "end of expression"
            raise ParseError(f"Expected {want!r} at position {t.pos}, got {got!r}")
        self.i += 1
        return t

    def parse(self) -> Node:
        expr = self.parse_expr()
        t = self.cur()
        if t.kind != "EOF":
            raise ParseError(f"Unexpected {t.value!r} at position {t.pos}")
        return expr

    def parse_expr(self) -> Node:
        return self.parse_conditional()

    def parse_conditional(self) -> Node:
        test = self.parse_or()
        if self.match_op("?"):
            then = self.parse_expr()
            self.expect("OP", ":")
            return Conditional(test, then, self.parse_expr())
        return test

    def parse_or(self) -> Node:
        expr = self.parse_and()
        while True:
            t = self.match_op("||", "??")
            if not t:
                return expr
            expr = Logical(t.value, expr, self.parse_and())

    def parse_and(self) -> Node:
        expr = self.parse_equality()
        while self.match_op("&&"):
            expr = Logical("&&", expr, self.parse_equality())
        return expr

    def parse_equality(self) -> Node:
        expr = self.parse_relational()
        while True:
            t = self.match_op("===", "!==", "==", "!=")
            if not t:
                return expr
            expr = Binary(t.value, expr, self.parse_relational())

    def parse_relational(self) -> Node:
        expr = self.parse_additive()
        while True:
            t = self.match_op("<=", ">=", "<", ">")
            if not t:
                return expr
            expr = Binary(t.value, expr, self.parse_additive())

    def parse_additive(self) -> Node:
        expr = self.parse_multiplicative()
        while True:
            t = self.match_op("+", "-")
            if not t:
                return expr
            expr = Binary(t.value, expr, self.parse_multiplicative())

    def parse_multiplicative(self) -> Node:
        expr = self.parse_unary()
        while True:
            t = self.match_op("*", "/", "%")
            if not t:
                return expr
            expr = Binary(t.value, expr, self.parse_unary())

    def parse_unary(self) -> Node:
        t = self.match_op("!", "-", "+")
        if t:
            return Unary(t.value, self.parse_unary())
        if self.match("ID", "typeof"):
            return Unary("typeof", self.parse_unary())
        return self.parse_postfix()

    def parse_postfix(self) -> Node:
        expr = self.parse_primary()
        optional = False
        while True:
            if self.match_op("."):
                expr = Member(expr, Literal(self.expect("ID").value))
            elif self.match_op("?."):
                optional = True
                if self.match_op("["):
                    prop = self.parse_expr()
                    self.expect("OP", "]")
                    expr = Member(expr, prop, optional=True)
                elif self.cur().kind == "OP" and self.cur().value == "(":
                    raise ParseError(f"Optional calls are not supported (position {self.cur().pos})")
                else:
                    expr = Member(expr, Literal(self.expect("ID").value), optional=True)
            elif self.match_op("["):
                prop = self.parse_expr()
                self.expect("OP", "]")
                expr = Member(expr, prop)
            elif self.match_op("("):
                expr = Call(expr, self.parse_arguments())
            else:
                break
        return OptionalChain(expr) if optional else expr

    def parse_arguments(self) -> tuple:
        args = []
        if self.match_op(")"):
            return ()
        while True:
            args.append(self.parse_expr())
            if self.match_op(")"):
                return tuple(args)
            self.expect("OP", ",")

    def parse_primary(self) -> Node:
        t = self.cur()
        if self.match("NUMBER"):
            text = t.value
            if re.fullmatch(r"\d+", text):
                return Literal(int(text))
            return Literal(float(text))
        if self.match("STRING"):
            return Literal(_unescape(t.value[1:-1]))
        if self.match("ID"):
            if t.value in _KEYWORD_LITERALS:
                return Literal(_KEYWORD_LITERALS[t.value])
            return Identifier(t.value)
        if self.match_op("("):
            expr = self.parse_expr()
            self.expect("OP", ")")
            return expr
        if self.match_op("["):
            return self.parse_array()
        if self.match_op("{"):
            return self.parse_object()
        got = t.value or "end of expression"
        raise ParseError(f"Unexpected {got!r} at position {t.pos}")

    def parse_array(self) -> Node:
        items = []
        if self.match_op("]"):
            return ArrayLiteral(())
        while True:
            items.append(self.parse_expr())
            if self.match_op("]"):
                return ArrayLiteral(tuple(items))
            self.expect("OP", ",")
            # trailing comma
            if self.match_op("]"):
                return ArrayLiteral(tuple(items))

    def parse_object(self) -> Node:
        entries = []
        if self.match_op("}"):
            return ObjectLiteral(())
        while True:
            t = self.cur()
            if self.match("ID"):
                key = t.value
                # shorthand {name} means {name: name}
                if self.cur().kind == "OP" and self.cur().value in (",", "}"):
                    entries.append((key, Identifier(key)))
                    value = None
                else:
                    self.expect("OP", ":")
                    value = self.parse_expr()
            elif self.match("STRING"):
                key = _unescape(t.value[1:-1])
                self.expect("OP", ":")
                value = self.parse_expr()
            elif self.match("NUMBER"):
                key = to_js_string(to_number(t.value))
                self.expect("OP", ":")
                value = self.parse_expr()
            else:
                got = t.value or "end of expression"
                raise ParseError(f"Expected a property name at position {t.pos}, got {got!r}")
            if value is not None:
                entries.append((key, value))
            if self.match_op("}"):
                return ObjectLiteral(tuple(entries))
            self.expect("OP", ",")
            if self.match_op("}"):
                return ObjectLiteral(tuple(entries))


# =============================================================================
# Built-ins
# =============================================================================


def _arg(args: tuple, n: int) -> Any:
    return args[n] if len(args) > n else UNDEFINED


def _int_arg(args: tuple, n: int, default: int) -> int:
    value = _arg(args, n)
    if value is UNDEFINED:
        return default
    number = to_number(value)
    if isinstance(number, float):
        if math.isnan(number):
            return 0
        if math.isinf(number):
            return default if number > 0 else -default
        return int(number)
    return number


def _js_round(value: Any) -> int | float:
    number = to_number(value)
    if isinstance(number, int) or math.isnan(number) or math.isinf(number):
        return number
    return math.floor(number + 0.5)


def _numeric(fn: Callable[[float], Any]) -> Callable[..., Any]:
    def wrapper(*args):
        number = to_number(_arg(args, 0))
        if isinstance(number, float) and math.isnan(number):
            return math.nan
        try:
            return fn(number)
        except (ValueError, OverflowError):
            return math.nan
    return wrapper


def _max(*args):
    numbers = [to_number(a) for a in args]
    if any(isinstance(n, float) and math.isnan(n) for n in numbers):
        return math.nan
    return max(numbers, default=-math.inf)


def _min(*args):
    numbers = [to_number(a) for a in args]
    if any(isinstance(n, float) and math.isnan(n) for n in numbers):
        return math.nan
    return min(numbers, default=math.inf)


def _pow(*args):
    base, exp = to_number(_arg(args, 0)), to_number(_arg(args, 1))
    # Exact integer powers only while the result stays float-sized
    if isinstance(base, int) and isinstance(exp, int) and abs(exp) > 64:
        base = float(base)
    try:
        result = base ** exp
    except ZeroDivisionError:
        return math.inf
    except OverflowError:
        return math.inf
    return math.nan if isinstance(result, complex) else result


def _sign(value: Any):
    number = to_number(value)
    if isinstance(number, float) and math.isnan(number):
        return math.nan
    return (number > 0) - (number < 0)


def _parse_int(*args):
    text = to_js_string(_arg(args, 0)).strip()
    radix = _int_arg(args, 1, 10) or 10
    if radix == 16 and text.lower().lstrip("+-").startswith("0x"):
        sign = "-" if text.startswith("-") else ""
        text = sign + text.lstrip("+-")[2:]
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"[:radix]
    match = re.match(rf"[+-]?[{digits}]+", text, re.IGNORECASE)
    if not match:
        return math.nan
    return int(match.group(0), radix)


def _parse_float(*args):
    text = to_js_string(_arg(args, 0)).strip()
    if text.startswith(("Infinity", "+Infinity")):
        return math.inf
    if text.startswith("-Infinity"):
        return -math.inf
    match = re.match(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", text)
    return float(match.group(0)) if match else math.nan


def _is_nan(*args):
    number = to_number(_arg(args, 0))
    return isinstance(number, float) and math.isnan(number)


def _is_finite(*args):
    number = to_number(_arg(args, 0))
    return not (isinstance(number, float) and (math.isnan(number) or math.isinf(number)))


def _json_stringify(*args):
    value = _arg(args, 0)
    if value is UNDEFINED or isinstance(value, JSFunction):
        return UNDEFINED
    indent = _arg(args, 2)
    if is_number(indent) and indent > 0:
        return encode_json(value, indent=min(int(indent), 10))
    return encode_json(value)


def _json_parse(*args):
    text = to_js_string(_arg(args, 0))
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise EvaluationError(f"JSON.parse: {e}")


def _object_keys(*args):
    value = _arg(args, 0)
    if isinstance(value, dict):
        return list(value.keys())
    if isinstance(value, (list, str)):
        return [str(i) for i in range(len(value))]
    if value is None or value is UNDEFINED:
        raise EvaluationError("Cannot convert undefined or null to object")
    return []


def _object_values(*args):
    value = _arg(args, 0)
    if isinstance(value, dict):
        return list(value.values())
    return [get_member(value, key) for key in _object_keys(value)]


def _object_entries(*args):
    value = _arg(args, 0)
    if isinstance(value, dict):
        return [[key, item] for key, item in value.items()]
    return [[key, get_member(value, key)] for key in _object_keys(value)]


def _date_parse(*args):
    text = to_js_string(_arg(args, 0)).strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return math.nan
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def _fn(name: str, impl: Callable[..., Any]) -> JSFunction:
    return JSFunction(name, impl)


BUILTINS: dict[str, Any] = {
    "Math": {
        "PI": math.pi,
        "E": math.e,
        "abs": _fn("abs", _numeric(abs)),
        "ceil": _fn("ceil", _numeric(lambda n: n if math.isinf(n) else math.ceil(n))),
        "floor": _fn("floor", _numeric(lambda n: n if math.isinf(n) else math.floor(n))),
        "round": _fn("round", lambda *a: _js_round(_arg(a, 0))),
        "trunc": _fn("trunc", _numeric(lambda n: n if math.isinf(n) else math.trunc(n))),
        "sign": _fn("sign", lambda *a: _sign(_arg(a, 0))),
        "sqrt": _fn("sqrt", _numeric(math.sqrt)),
        "log": _fn("log", _numeric(lambda n: -math.inf if n == 0 else math.log(n))),
        "log10": _fn("log10", _numeric(lambda n: -math.inf if n == 0 else math.log10(n))),
        "log2": _fn("log2", _numeric(lambda n: -math.inf if n == 0 else math.log2(n))),
        "exp": _fn("exp", _numeric(math.exp)),
        "pow": _fn("pow", _pow),
        "max": _fn("max", _max),
        "min": _fn("min", _min),
    },
    "String": _fn("String", lambda *a: to_js_string(_arg(a, 0)) if a else ""),
    "Number": _fn("Number", lambda *a: to_number(_arg(a, 0)) if a else 0),
    "Boolean": _fn("Boolean", lambda *a: is_truthy(_arg(a, 0))),
    "parseInt": _fn("parseInt", _parse_int),
    "parseFloat": _fn("parseFloat", _parse_float),
    "isNaN": _fn("isNaN", _is_nan),
    "isFinite": _fn("isFinite", _is_finite),
    "JSON": {
        "stringify": _fn("stringify", _json_stringify),
        "parse": _fn("parse", _json_parse),
    },
    "Object": {
        "keys": _fn("keys", _object_keys),
        "values": _fn("values", _object_values),
        "entries": _fn("entries", _object_entries),
    },
    "Array": {
        "isArray": _fn("isArray", lambda *a: isinstance(_arg(a, 0), list)),
    },
    "Date": {
        "now": _fn("now", lambda *a: int(time.time() * 1000)),
        "parse": _fn("parse", _date_parse),
    },
}


# =============================================================================
# Methods on values
# =============================================================================


def _check_length(length: int) -> int:
    if length > MAX_STRING_LENGTH:
        raise EvaluationError("Invalid string length")
    return length


def _slice_bounds(length: int, args: tuple) -> tuple[int, int]:
    start = _int_arg(args, 0, 0)
    end = _int_arg(args, 1, length)
    if start < 0:
        start = max(length + start, 0)
    if end < 0:
        end = max(length + end, 0)
    return min(start, length), min(end, length)


def _substring(s: str, *args):
    length = len(s)
    start = min(max(_int_arg(args, 0, 0), 0), length)
    end = min(max(_int_arg(args, 1, length), 0), length)
    if start > end:
        start, end = end, start
    return s[start:end]


def _split(s: str, *args):
    sep = _arg(args, 0)
    limit = _int_arg(args, 1, -1)
    if sep is UNDEFINED:
        parts = [s]
    elif to_js_string(sep) == "":
        parts = list(s)
    else:
        parts = s.split(to_js_string(sep))
    return parts if limit < 0 else parts[:limit]


def _pad(s: str, args: tuple, left: bool) -> str:
    target = _check_length(_int_arg(args, 0, 0))
    fill = _arg(args, 1)
    fill = " " if fill is UNDEFINED else to_js_string(fill)
    if target <= len(s) or not fill:
        return s
    padding = (fill * (target // len(fill) + 1))[:target - len(s)]
    return padding + s if left else s + padding


def _repeat(s: str, *args):
    count = _int_arg(args, 0, 0)
    if count < 0:
        raise EvaluationError(f"Invalid count value: {count}")
    _check_length(len(s) * count)
    return s * count


def _index_of(s: str, *args):
    return s.find(to_js_string(_arg(args, 0)), max(_int_arg(args, 1, 0), 0))


def _char_at(s: str, *args):
    idx = _int_arg(args, 0, 0)
    return s[idx] if 0 <= idx < len(s) else ""


STRING_METHODS: dict[str, Callable[..., Any]] = {
    "toUpperCase": lambda s, *a: s.upper(),
    "toLowerCase": lambda s, *a: s.lower(),
    "trim": lambda s, *a: s.strip(),
    "trimStart": lambda s, *a: s.lstrip(),
    "trimEnd": lambda s, *a: s.rstrip(),
    "includes": lambda s, *a: to_js_string(_arg(a, 0)) in s,
    "startsWith": lambda s, *a: s.startswith(to_js_string(_arg(a, 0))),
    "endsWith": lambda s, *a: s.endswith(to_js_string(_arg(a, 0))),
    "indexOf": _index_of,
    "lastIndexOf": lambda s, *a: s.rfind(to_js_string(_arg(a, 0))),
    "slice": lambda s, *a: s[slice(*_slice_bounds(len(s), a))],
    "substring": _substring,
    "split": _split,
    "replace": lambda s, *a: s.replace(to_js_string(_arg(a, 0)), to_js_string(_arg(a, 1)), 1),
    "replaceAll": lambda s, *a: s.replace(to_js_string(_arg(a, 0)), to_js_string(_arg(a, 1))),
    "charAt": _char_at,
    "padStart": lambda s, *a: _pad(s, a, left=True),
    "padEnd": lambda s, *a: _pad(s, a, left=False),
    "repeat": _repeat,
    "concat": lambda s, *a: s + "".join(to_js_string(v) for v in a),
    "toString": lambda s, *a: s,
}


def _same_value_zero(a: Any, b: Any) -> bool:
    if is_number(a) and is_number(b) and math.isnan(a) and math.isnan(b):
        return True
    return strict_equals(a, b)


def _array_index_of(arr: list, *args):
    target = _arg(args, 0)
    for i, item in enumerate(arr):
        if strict_equals(item, target):
            return i
    return -1


def _array_concat(arr: list, *args):
    result = list(arr)
    for value in args:
        if isinstance(value, list):
            result.extend(value)
        else:
            result.append(value)
    return result


def _array_join(arr: list, *args):
    sep = _arg(args, 0)
    sep = "," if sep is UNDEFINED else to_js_string(sep)
    return sep.join("" if v is None or v is UNDEFINED else to_js_string(v) for v in arr)


def _array_at(arr: list, *args):
    idx = _int_arg(args, 0, 0)
    if idx < 0:
        idx += len(arr)
    return arr[idx] if 0 <= idx < len(arr) else UNDEFINED


ARRAY_METHODS: dict[str, Callable[..., Any]] = {
    "includes": lambda arr, *a: any(_same_value_zero(v, _arg(a, 0)) for v in arr),
    "indexOf": _array_index_of,
    "join": _array_join,
    "slice": lambda arr, *a: arr[slice(*_slice_bounds(len(arr), a))],
    "concat": _array_concat,
    "at": _array_at,
    "toString": lambda arr, *a: to_js_string(arr),
}


def _to_fixed(n, *args):
    digits = _int_arg(args, 0, 0)
    if not 0 <= digits <= 100:
        raise EvaluationError("toFixed() digits argument must be between 0 and 100")
    if isinstance(n, float) and (math.isnan(n) or math.isinf(n)):
        return to_js_string(n)
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(n).quantize(quantum, rounding=ROUND_HALF_UP))


NUMBER_METHODS: dict[str, Callable[..., Any]] = {
    "toFixed": _to_fixed,
    "toString": lambda n, *a: to_js_string(n),
}


def get_property(value: Any, name: Any) -> Any:
    """Member access for expressions: data members first, then built-in methods."""
    if isinstance(name, str):
        table = None
        if isinstance(value, str):
            table = STRING_METHODS
        elif isinstance(value, list):
            table = ARRAY_METHODS
        elif is_number(value):
            table = NUMBER_METHODS
        if table is not None and name in table:
            method = table[name]
            return JSFunction(name, lambda *args: method(value, *args))
    return get_member(value, name, strict=True)


# =============================================================================
# Evaluator
# =============================================================================


class _ShortCircuit(Exception):
    """Raised by `?.` on null/undefined; caught by the enclosing OptionalChain."""


def _typeof(value: Any) -> str:
    kind = kind_of(value)
    if kind in ("null", "array"):
        return "object"
    return kind


def _divide(x, y):
    if y == 0:
        if x == 0 or (isinstance(x, float) and math.isnan(x)):
            return math.nan
        negative = (x < 0) != (math.copysign(1, y) < 0)
        return -math.inf if negative else math.inf
    return x / y


def _remainder(x, y):
    if y == 0 or (isinstance(x, float) and math.isinf(x)):
        return math.nan
    if isinstance(y, float) and math.isinf(y):
        return x
    if isinstance(x, int) and isinstance(y, int):
        r = abs(x) % abs(y)
        return -r if x < 0 else r
    return math.fmod(x, y)


def _arithmetic(op: str, a: Any, b: Any) -> Any:
    if op == "+":
        a, b = to_primitive(a), to_primitive(b)
        if isinstance(a, str) or isinstance(b, str):
            result = to_js_string(a) + to_js_string(b)
            _check_length(len(result))
            return result
        return to_number(a) + to_number(b)

    x, y = to_number(a), to_number(b)
    try:
        if op == "-":
            return x - y
        if op == "*":
            return x * y
        if op == "/":
            return _divide(x, y)
        if op == "%":
            return _remainder(x, y)
    except OverflowError:
        return math.inf
    raise EvaluationError(f"Unsupported operator {op}")


class Evaluator:
    """Interpret a parsed expression against a set of variable bindings."""

    def __init__(self, bindings: dict[str, Any]):
        self.bindings = bindings

    def eval(self, node: Node) -> Any:
        if isinstance(node, Literal):
            return node.value

        if isinstance(node, Identifier):
            if node.name in self.bindings:
                return self.bindings[node.name]
            if node.name in BUILTINS:
                return BUILTINS[node.name]
            raise EvaluationError(f"{node.name} is not defined")

        if isinstance(node, Member):
            obj = self.eval(node.obj)
            if node.optional and (obj is None or obj is UNDEFINED):
                raise _ShortCircuit()
            return get_property(obj, self._key(self.eval(node.prop)))

        if isinstance(node, OptionalChain):
            try:
                return self.eval(node.expr)
            except _ShortCircuit:
                return UNDEFINED

        if isinstance(node, Call):
            func = self.eval(node.callee)
            if not isinstance(func, JSFunction):
                raise EvaluationError(f"{self._describe(node.callee)} is not a function")
            args = [self.eval(arg) for arg in node.args]
            return func(*args)

        if isinstance(node, Unary):
            value = self.eval(node.operand)
            if node.op == "!":
                return not is_truthy(value)
            if node.op == "-":
                return -to_number(value)
            if node.op == "+":
                return to_number(value)
            if node.op == "typeof":
                return _typeof(value)
            raise EvaluationError(f"Unsupported unary operator {node.op}")

        if isinstance(node, Logical):
            left = self.eval(node.left)
            if node.op == "&&":
                return self.eval(node.right) if is_truthy(left) else left
            if node.op == "||":
                return left if is_truthy(left) else self.eval(node.right)
            if node.op == "??":
                return self.eval(node.right) if left is None or left is UNDEFINED else left
            raise EvaluationError(f"Unsupported logical operator {node.op}")

        if isinstance(node, Binary):
            left = self.eval(node.left)
            right = self.eval(node.right)
            if node.op in ("==", "!=", "===", "!==", "<", ">", "<=", ">="):
                return compare_op(node.op, left, right)
            return _arithmetic(node.op, left, right)

        if isinstance(node, Conditional):
            if is_truthy(self.eval(node.test)):
                return self.eval(node.then)
            return self.eval(node.other)

        if isinstance(node, ArrayLiteral):
            return [self.eval(item) for item in node.items]

        if isinstance(node, ObjectLiteral):
            return {key: self.eval(value) for key, value in node.entries}

        raise EvaluationError(f"Unsupported expression node {type(node).__name__}")

    @staticmethod
    def _key(value: Any) -> Any:
        if isinstance(value, str) or is_number(value):
            return value
        return to_js_string(value)

    @staticmethod
    def _describe(node: Node) -> str:
        if isinstance(node, Identifier):
            return node.name
        if isinstance(node, Member) and isinstance(node.prop, Literal):
            return f"{Evaluator._describe(node.obj)}.{node.prop.value}"
        return "expression"


# =============================================================================
# Public API
# =============================================================================


class Expression:
    """A compiled expression, evaluated once per pipeline element."""

    def __init__(self, source: str, tree: Node):
        self.source = source
        self.tree = tree

    def evaluate(self, x: Any = UNDEFINED, index: int = 0) -> Any:
        bindings = {"x": x, "i": index, "index": index}
        try:
            return Evaluator(bindings).eval(self.tree)
        except RecursionError:
            raise EvaluationError(f"Expression too deeply nested: {self.source}")

    def __repr__(self) -> str:
        return f"Expression({self.source!r})"


def compile_expression(source: str, max_length: int = DEFAULT_MAX_LENGTH) -> Expression:
    """Parse `source` into an Expression.

    Raises:
        ParseError: empty, too long or syntactically invalid expression
    """
    if source is None or not source.strip():
        raise ParseError("Expression is empty")
    if len(source) > max_length:
        raise ParseError(f"Expression longer than {max_length} characters")
    try:
        tree = Parser(tokenize(source)).parse()
    except RecursionError:
        raise ParseError("Expression too deeply nested")
    logger.debug(f"Compiled expression {source!r}")
    return Expression(source, tree)


def evaluate(source: str, x: Any = UNDEFINED, index: int = 0) -> Any:
    """Compile and evaluate in one step."""
    return compile_expression(source).evaluate(x, index)
