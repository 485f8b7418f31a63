"""Transform pipeline: reshape a JSON array through fixed-order stages.

Stages always run as filter -> map -> unique -> sort -> reverse -> group ->
limit, whatever order the options were given in. `group` turns the array
into an object, after which `limit` has nothing to truncate and is skipped.
"""

import logging
import re
from functools import cmp_to_key
from typing import Any

from datatransform.engine.expression import DEFAULT_MAX_LENGTH, Expression, compile_expression
from datatransform.engine.jsvalues import (
    DEFAULT_MAX_DEPTH,
    canonical_key,
    get_member,
    is_truthy,
    sort_compare,
    to_js_string,
    to_json_value,
)
from datatransform.errors import EvaluationError
from datatransform.models import PipelineOps

logger = logging.getLogger(__name__)

_INDEX_KEY_RE = re.compile(r"^(0|[1-9]\d*)$")
_MAX_INDEX_KEY = 2**32 - 2


def _evaluate(expr: Expression, item: Any, index: int) -> Any:
    try:
        return expr.evaluate(item, index)
    except EvaluationError:
        raise
    except (TypeError, ValueError, ArithmeticError) as e:
        raise EvaluationError(f"{expr.source}: {e}")


def filter_items(items: list, expr: Expression) -> list:
    """Keep elements for which the expression is truthy."""
    return [item for i, item in enumerate(items) if is_truthy(_evaluate(expr, item, i))]


def map_items(items: list, expr: Expression) -> list:
    """Replace each element with the expression's value."""
    return [_evaluate(expr, item, i) for i, item in enumerate(items)]


def unique_by(items: list, field: str) -> list:
    """Keep the first element for each distinct value of `field`."""
    seen = set()
    result = []
    for item in items:
        key = canonical_key(get_member(item, field))
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def sort_by(items: list, field: str) -> list:
    """Stable ascending sort on `field`; incomparable values keep their order."""
    keyed = [(get_member(item, field), item) for item in items]
    keyed.sort(key=cmp_to_key(lambda a, b: sort_compare(a[0], b[0])))
    return [item for _, item in keyed]


def _order_group_keys(groups: dict[str, list]) -> dict[str, list]:
    # Integer-like keys list first in numeric order, like any JSON object built
    # by key assignment in JS-based tooling
    index_keys = sorted(
        (k for k in groups if _INDEX_KEY_RE.match(k) and int(k) <= _MAX_INDEX_KEY),
        key=int,
    )
    ordered = {k: groups[k] for k in index_keys}
    ordered.update((k, v) for k, v in groups.items() if k not in ordered)
    return ordered


def group_by(items: list, field: str) -> dict[str, list]:
    """Bucket elements by the string form of `field`."""
    groups: dict[str, list] = {}
    for item in items:
        key = to_js_string(get_member(item, field))
        groups.setdefault(key, []).append(item)
    return _order_group_keys(groups)


def transform(
    data: Any,
    ops: PipelineOps,
    max_expression_length: int = DEFAULT_MAX_LENGTH,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Any:
    """Run the pipeline and return plain JSON data.

    Non-array input is wrapped in a one-element array first. Expressions are
    compiled before any stage runs, so a syntax error never yields partial
    output; an evaluation error aborts the whole run.
    """
    filter_expr = compile_expression(ops.filter_expr, max_expression_length) if ops.filter_expr else None
    map_expr = compile_expression(ops.map_expr, max_expression_length) if ops.map_expr else None

    items = list(data) if isinstance(data, list) else [data]
    logger.debug(f"Pipeline input: {len(items)} items")

    if filter_expr:
        items = filter_items(items, filter_expr)
        logger.debug(f"After filter: {len(items)} items")

    if map_expr:
        items = map_items(items, map_expr)

    if ops.unique:
        items = unique_by(items, ops.unique)
        logger.debug(f"After unique: {len(items)} items")

    if ops.sort:
        items = sort_by(items, ops.sort)

    if ops.reverse:
        items = items[::-1]

    result: Any = items
    if ops.group:
        result = group_by(items, ops.group)
        logger.debug(f"Grouped into {len(result)} buckets")

    if ops.limit is not None and isinstance(result, list):
        result = result[:ops.limit]

    return to_json_value(result, max_depth)
