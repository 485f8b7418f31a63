"""JSON value semantics shared by the engines.

User-facing comparisons (filter conditions, transform expressions, sort and
group keys) follow the loose rules people expect from JSON tooling written in
JavaScript: `"1" == 1`, `null == undefined`, `[]` is truthy, `1.0` prints
as `1`. This module is the single place those rules live.
"""

import json
import math
import re
from typing import Any, Callable

from datatransform.errors import DepthLimitError, EvaluationError


class _Undefined:
    """Marker for an absent member. Distinct from JSON null."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()

# Marks a comma between items while joining nested arrays
_SEPARATOR = object()

DEFAULT_MAX_DEPTH = 10000


class JSFunction:
    """A built-in callable exposed to transform expressions."""

    def __init__(self, name: str, impl: Callable[..., Any]):
        self.name = name
        self.impl = impl

    def __call__(self, *args):
        return self.impl(*args)

    def __repr__(self) -> str:
        return f"<function {self.name}>"


_NUMERIC_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_EXPONENT_RE = re.compile(r"e([+-])0*(\d)")

# Largest integer a float can hold exactly
_SAFE_INTEGER = 2**53


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def kind_of(value: Any) -> str:
    """Classify a value: undefined, null, boolean, number, string, array, object, function."""
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, JSFunction):
        return "function"
    return "object"


def is_container(value: Any) -> bool:
    return isinstance(value, (list, dict))


# =============================================================================
# Coercion
# =============================================================================


def to_number(value: Any) -> int | float:
    """Numeric coercion: null -> 0, true -> 1, "" -> 0, "abc" -> NaN."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        if text.lower().startswith("0x"):
            try:
                return int(text, 16)
            except ValueError:
                return math.nan
        if _INTEGER_RE.match(text):
            return int(text)
        if _NUMERIC_RE.match(text):
            return float(text)
        return math.nan
    if isinstance(value, list):
        return to_number(to_js_string(value))
    return math.nan


def format_number(value: int | float) -> str:
    """Render a number the way JSON tooling does: 2.0 -> "2", 1e-07 -> "1e-7"."""
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return _EXPONENT_RE.sub(r"e\1\2", repr(value))


def to_js_string(value: Any) -> str:
    """String coercion used by concatenation, group keys and String()."""
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return _join_array(value)
    if isinstance(value, JSFunction):
        return f"function {value.name}() {{ [native code] }}"
    return "[object Object]"


def _join_array(value: list) -> str:
    # Nested arrays join inline ([1, [2, 3]] -> "1,2,3"); walked with a stack
    parts = []
    stack: list[Any] = [value]
    while stack:
        item = stack.pop()
        if item is _SEPARATOR:
            parts.append(",")
        elif isinstance(item, list):
            for i in range(len(item) - 1, -1, -1):
                stack.append(item[i])
                if i:
                    stack.append(_SEPARATOR)
        elif item is not None and item is not UNDEFINED:
            parts.append(to_js_string(item))
    return "".join(parts)


def to_primitive(value: Any) -> Any:
    """Reduce containers to their string form; leave primitives alone."""
    if is_container(value) or isinstance(value, JSFunction):
        return to_js_string(value)
    return value


def is_truthy(value: Any) -> bool:
    if value is UNDEFINED or value is None or value is False:
        return False
    if is_number(value):
        return not (value == 0 or math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


# =============================================================================
# Equality and ordering
# =============================================================================


def strict_equals(a: Any, b: Any) -> bool:
    """Same kind and same value; containers compare by identity."""
    kind = kind_of(a)
    if kind != kind_of(b):
        return False
    if kind in ("array", "object", "function"):
        return a is b
    return a == b


def loose_equals(a: Any, b: Any) -> bool:
    """Equality with coercion: `"1" == 1`, `true == 1`, `null == undefined`."""
    kind_a, kind_b = kind_of(a), kind_of(b)
    if kind_a == kind_b:
        return strict_equals(a, b)

    nullish = ("null", "undefined")
    if kind_a in nullish and kind_b in nullish:
        return True
    if kind_a in nullish or kind_b in nullish:
        return False

    if kind_a == "boolean":
        return loose_equals(to_number(a), b)
    if kind_b == "boolean":
        return loose_equals(a, to_number(b))

    if kind_a == "number" and kind_b == "string":
        return a == to_number(b)
    if kind_a == "string" and kind_b == "number":
        return to_number(a) == b

    if kind_a in ("array", "object") and kind_b in ("number", "string"):
        return loose_equals(to_primitive(a), b)
    if kind_b in ("array", "object") and kind_a in ("number", "string"):
        return loose_equals(a, to_primitive(b))

    return False


def compare(a: Any, b: Any) -> int | None:
    """Three-way relational comparison.

    Returns -1, 0 or 1, or None when the values are not ordered against each
    other (anything involving NaN or undefined).
    """
    a, b = to_primitive(a), to_primitive(b)
    if isinstance(a, str) and isinstance(b, str):
        return (a > b) - (a < b)
    x, y = to_number(a), to_number(b)
    if (isinstance(x, float) and math.isnan(x)) or (isinstance(y, float) and math.isnan(y)):
        return None
    return (x > y) - (x < y)


def sort_compare(a: Any, b: Any) -> int:
    """Comparator for stable sorts: unordered pairs count as equal."""
    result = compare(a, b)
    return 0 if result is None else result


def compare_op(op: str, a: Any, b: Any) -> bool:
    """Apply a comparison operator with loose semantics."""
    if op == "==":
        return loose_equals(a, b)
    if op == "!=":
        return not loose_equals(a, b)
    if op == "===":
        return strict_equals(a, b)
    if op == "!==":
        return not strict_equals(a, b)

    result = compare(a, b)
    if result is None:
        return False
    if op == "<":
        return result < 0
    if op == ">":
        return result > 0
    if op == "<=":
        return result <= 0
    if op == ">=":
        return result >= 0
    raise ValueError(f"Unknown comparison operator: {op}")


# =============================================================================
# Keys and member access
# =============================================================================


def stable_dumps(value: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> str:
    """Compact JSON with sorted keys, used as a comparison key."""
    return encode_json(value, sort_keys=True, max_depth=max_depth)


def canonical_key(value: Any) -> tuple:
    """Hashable identity for dedup: 1 and 1.0 collide, 1 and "1" and true do not."""
    kind = kind_of(value)
    if kind in ("undefined", "null"):
        return (kind,)
    if kind == "number":
        if isinstance(value, float) and math.isnan(value):
            return (kind, "NaN")
        return (kind, value)
    if kind in ("array", "object"):
        return (kind, stable_dumps(value))
    if kind == "function":
        return (kind, id(value))
    return (kind, value)


def _array_index(name: Any) -> int | None:
    if isinstance(name, bool):
        return None
    if isinstance(name, int):
        return name if name >= 0 else None
    if isinstance(name, float) and name.is_integer() and name >= 0:
        return int(name)
    if isinstance(name, str) and name.isascii() and name.isdigit():
        return int(name)
    return None


def get_member(value: Any, name: Any, strict: bool = True) -> Any:
    """Read `value[name]`.

    Objects look up keys, arrays and strings take indices and `length`.
    Anything else yields UNDEFINED. Reading from null or undefined raises
    EvaluationError when `strict`, otherwise yields UNDEFINED.
    """
    if value is None or value is UNDEFINED:
        if strict:
            raise EvaluationError(
                f"Cannot read properties of {to_js_string(value)} (reading '{to_js_string(name)}')"
            )
        return UNDEFINED

    if isinstance(value, dict):
        key = name if isinstance(name, str) else to_js_string(name)
        return value.get(key, UNDEFINED)

    if isinstance(value, (list, str)):
        if name == "length":
            return len(value)
        idx = _array_index(name)
        if idx is not None and idx < len(value):
            return value[idx]
        return UNDEFINED

    return UNDEFINED


def get_field(value: Any, path: tuple[str, ...] | list[str] | str, strict: bool = True) -> Any:
    """Follow a dotted member chain (`a.b.c` or ("a", "b", "c"))."""
    parts = path.split(".") if isinstance(path, str) else path
    for part in parts:
        value = get_member(value, part, strict=strict)
    return value


# =============================================================================
# Output
# =============================================================================


def _json_scalar(value: Any) -> Any:
    if value is UNDEFINED or isinstance(value, JSFunction):
        return None
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        if value.is_integer() and abs(value) < _SAFE_INTEGER:
            return int(value)
    return value


def _json_members(value: dict, sort_keys: bool = False) -> list[tuple[str, Any]]:
    members = [
        (key, item)
        for key, item in value.items()
        if item is not UNDEFINED and not isinstance(item, JSFunction)
    ]
    if sort_keys:
        members.sort(key=lambda member: member[0])
    return members


def to_json_value(value: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """Normalize a value for JSON output.

    Non-finite numbers become null, integral floats become ints, undefined
    array items become null and undefined object members are dropped.
    Containers are copied with an explicit stack; nesting deeper than
    `max_depth` raises DepthLimitError.
    """
    root: list[Any] = [None]
    # (source, parent container, key in parent, depth)
    stack: list[tuple] = [(value, root, 0, 0)]
    while stack:
        item, parent, key, depth = stack.pop()
        if depth > max_depth:
            raise DepthLimitError(max_depth)
        if isinstance(item, list):
            copy: Any = [None] * len(item)
            stack.extend((child, copy, i, depth + 1) for i, child in enumerate(item))
        elif isinstance(item, dict):
            copy = {}
            for member, child in _json_members(item):
                # Reserve the slot so members keep their order
                copy[member] = None
                stack.append((child, copy, member, depth + 1))
        else:
            copy = _json_scalar(item)
        parent[key] = copy
    return root[0]


def _encode_scalar(value: Any) -> str:
    value = _json_scalar(value)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return int.__repr__(value)
    if isinstance(value, float):
        return float.__repr__(value)
    return json.dumps(value, ensure_ascii=False)


def encode_json(
    value: Any,
    indent: int | None = None,
    sort_keys: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """Serialize a value as JSON without recursing.

    Output matches `json.dumps(to_json_value(value))` with compact separators
    when `indent` is None, or with `indent` spaces per level otherwise.
    Nesting deeper than `max_depth` raises DepthLimitError.
    """
    if indent is None:
        item_sep, key_sep = ",", ":"
    else:
        item_sep, key_sep = ",", ": "

    def newline(depth: int) -> str:
        return "" if indent is None else "\n" + " " * (indent * depth)

    parts: list[str] = []
    # Text is pushed as ("text", str); values as ("value", value, depth)
    stack: list[tuple] = [("value", value, 0)]
    while stack:
        task = stack.pop()
        if task[0] == "text":
            parts.append(task[1])
            continue

        _, item, depth = task
        if depth > max_depth:
            raise DepthLimitError(max_depth)

        if isinstance(item, list):
            if not item:
                parts.append("[]")
                continue
            parts.append("[")
            stack.append(("text", newline(depth) + "]"))
            for i in range(len(item) - 1, -1, -1):
                stack.append(("value", item[i], depth + 1))
                stack.append(("text", ("" if i == 0 else item_sep) + newline(depth + 1)))
        elif isinstance(item, dict):
            members = _json_members(item, sort_keys)
            if not members:
                parts.append("{}")
                continue
            parts.append("{")
            stack.append(("text", newline(depth) + "}"))
            for i in range(len(members) - 1, -1, -1):
                key, child = members[i]
                stack.append(("value", child, depth + 1))
                prefix = ("" if i == 0 else item_sep) + newline(depth + 1)
                stack.append(("text", prefix + json.dumps(key, ensure_ascii=False) + key_sep))
        else:
            parts.append(_encode_scalar(item))

    return "".join(parts)
