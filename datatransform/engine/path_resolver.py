"""Path resolver: evaluate JSONPath-like expressions against a JSON value.

Supported syntax:
    $                  the root
    $.field / ['field'] object member
    .* / [*]           every array element or object value
    [0]                array index
    [start:end]        array slice, bounds optional, negatives count from the end
    [?(@.field>=1)]    keep array elements matching a comparison
    $..name            recursive descent (may appear anywhere in the path)

Missing members never raise; they narrow the match set to empty. Only
malformed syntax raises ParseError.
"""

import logging
import re
from typing import Any

from datatransform.engine.jsvalues import DEFAULT_MAX_DEPTH, compare_op, get_field
from datatransform.errors import DepthLimitError, ParseError
from datatransform.models import (
    FilterSegment,
    IndexSegment,
    KeySegment,
    PathSegment,
    QueryResult,
    RecursiveDescentSegment,
    SliceSegment,
    WildcardSegment,
)

logger = logging.getLogger(__name__)

_ROOT_RE = re.compile(r"^\$\.?")
_KEY_RE = re.compile(r"[^.\[\]]+")
_SLICE_RE = re.compile(r"^(-?\d+)?:(-?\d+)?$")
_FILTER_RE = re.compile(
    r"^\?\(\s*@\.(\w+(?:\.\w+)*)\s*(==|!=|>=|<=|>|<)\s*(.+?)\s*\)$",
    re.DOTALL,
)
_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")


# =============================================================================
# Parsing
# =============================================================================


def parse_literal(raw: str) -> Any:
    """Parse the right-hand side of a filter comparison."""
    value = raw.strip()
    if value == "true":
        return True
    if value == "false":
        return False
    if value == "null":
        return None
    if _NUMBER_RE.match(value):
        return float(value) if "." in value else int(value)
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _find_bracket_end(expr: str, start: int) -> int:
    """Index of the `]` closing the bracket opened at `start`, skipping quoted text."""
    quote = None
    i = start + 1
    while i < len(expr):
        ch = expr[i]
        if quote:
            if ch == "\\":
                i += 1
            elif ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "]":
            return i
        i += 1
    raise ParseError(f"Unterminated '[' at position {start} in path: {expr}")


def parse_selector(selector: str) -> PathSegment:
    """Parse the text between `[` and `]`."""
    text = selector.strip()

    if text.isascii() and text.isdigit():
        return IndexSegment(index=int(text))

    if text == "*":
        return WildcardSegment()

    if text.startswith("?"):
        match = _FILTER_RE.match(text)
        if not match:
            raise ParseError(f"Invalid filter expression: [{selector}]")
        field, op, raw = match.groups()
        return FilterSegment(field=tuple(field.split(".")), operator=op, value=parse_literal(raw))

    match = _SLICE_RE.match(text)
    if match:
        start, end = match.groups()
        return SliceSegment(
            start=int(start) if start is not None else None,
            end=int(end) if end is not None else None,
        )

    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return KeySegment(name=text[1:-1])

    raise ParseError(f"Unrecognized selector: [{selector}]")


def parse_path(expr: str) -> list[PathSegment]:
    """Split a path expression into segments.

    `$` and the empty string both denote the root and parse to no segments.
    """
    if not expr or expr == "$":
        return []

    path = _ROOT_RE.sub("", expr, count=1)
    segments: list[PathSegment] = []

    # After stripping `$.`, a leading dot means `$..`
    pos = 0
    if path.startswith("."):
        segments.append(RecursiveDescentSegment())
        pos = 1
    expect_key = True

    while pos < len(path):
        if path.startswith("..", pos):
            segments.append(RecursiveDescentSegment())
            pos += 2
            expect_key = True
            continue

        ch = path[pos]
        if ch == "[":
            end = _find_bracket_end(path, pos)
            segments.append(parse_selector(path[pos + 1:end]))
            pos = end + 1
            expect_key = False
            continue

        if ch == ".":
            pos += 1
        elif not expect_key:
            raise ParseError(f"Unexpected '{ch}' at position {pos} in path: {expr}")

        match = _KEY_RE.match(path, pos)
        if not match:
            raise ParseError(f"Expected a member name at position {pos} in path: {expr}")
        name = match.group(0)
        segments.append(WildcardSegment() if name == "*" else KeySegment(name=name))
        pos = match.end()
        expect_key = False

    logger.debug(f"Parsed path {expr!r} into {len(segments)} segments")
    return segments


# =============================================================================
# Evaluation
# =============================================================================


def _matches(item: Any, segment: FilterSegment) -> bool:
    value = get_field(item, segment.field, strict=False)
    return compare_op(segment.operator, value, segment.value)


def apply_segment(node: Any, segment: PathSegment) -> list[Any]:
    """Apply one non-descent segment to a single node."""
    if isinstance(segment, KeySegment):
        if isinstance(node, dict) and segment.name in node:
            return [node[segment.name]]
        return []

    if isinstance(segment, WildcardSegment):
        if isinstance(node, list):
            return list(node)
        if isinstance(node, dict):
            return list(node.values())
        return []

    if isinstance(segment, IndexSegment):
        if isinstance(node, list) and segment.index < len(node):
            return [node[segment.index]]
        return []

    if isinstance(segment, SliceSegment):
        if isinstance(node, list):
            return node[segment.start:segment.end]
        return []

    if isinstance(segment, FilterSegment):
        if isinstance(node, list):
            return [item for item in node if _matches(item, segment)]
        return []

    raise TypeError(f"Cannot apply segment: {segment!r}")


def iter_nodes(root: Any, max_depth: int = DEFAULT_MAX_DEPTH):
    """Yield every node in document order: the node, then each child's subtree."""
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        if depth > max_depth:
            raise DepthLimitError(max_depth)
        yield node
        if isinstance(node, list):
            children = node
        elif isinstance(node, dict):
            children = list(node.values())
        else:
            continue
        for child in reversed(children):
            stack.append((child, depth + 1))


def evaluate(root: Any, segments: list[PathSegment], max_depth: int = DEFAULT_MAX_DEPTH) -> list[Any]:
    """Run parsed segments left to right, flattening matches between steps."""
    current = [root]
    for segment in segments:
        if isinstance(segment, RecursiveDescentSegment):
            current = [node for start in current for node in iter_nodes(start, max_depth)]
        else:
            current = [match for node in current for match in apply_segment(node, segment)]
        if not current:
            break
    return current


def resolve(root: Any, expr: str, max_depth: int = DEFAULT_MAX_DEPTH) -> list[Any]:
    """Return every value matched by `expr`, in document order.

    Example: resolve({"users": [{"name": "Alice"}]}, "$.users[*].name") -> ["Alice"]
    """
    results = evaluate(root, parse_path(expr), max_depth)
    logger.debug(f"Query {expr!r} matched {len(results)} values")
    return results


def query(root: Any, expr: str, max_depth: int = DEFAULT_MAX_DEPTH) -> QueryResult:
    """Resolve `expr` and wrap the matches with the query and count."""
    results = resolve(root, expr, max_depth)
    return QueryResult(query=expr, count=len(results), results=results)
