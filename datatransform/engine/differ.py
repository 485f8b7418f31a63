"""Structural differ: classify every location of two JSON documents.

Each location is added, removed, changed or unchanged. Paths use `$` for the
root, `.key` for members and `[i]` for array positions (`[]` when array order
is ignored).

The walk uses an explicit work stack instead of recursion, so deep documents
are bounded by `max_depth` rather than the interpreter's recursion limit.
Entries come out in the order a recursive walk would produce them: a node's
own added/removed keys, then each common child's subtree, in key/index order.
"""

import logging
from collections import Counter
from typing import Any

from datatransform.engine.jsvalues import kind_of, stable_dumps
from datatransform.errors import DepthLimitError
from datatransform.models import DiffChange, DiffEntry, DiffOptions, DiffResult

logger = logging.getLogger(__name__)

_CONTAINERS = ("array", "object")


def diff(a: Any, b: Any, options: DiffOptions | None = None, **kwargs) -> DiffResult:
    """Compare two JSON values.

    Args:
        a: The old document
        b: The new document
        options: DiffOptions; keyword arguments build one when omitted
            (e.g. diff(a, b, ignore_order=True))

    Returns:
        DiffResult with added/removed/changed entries and an unchanged count
    """
    if options is None:
        options = DiffOptions(**kwargs)

    result = DiffResult()
    # Tasks: ("compare", old, new, path, depth) or ("emit", bucket, entry)
    stack: list[tuple] = [("compare", a, b, "$", 0)]

    while stack:
        task = stack.pop()
        if task[0] == "emit":
            _, bucket, entry = task
            getattr(result, bucket).append(entry)
            continue

        _, old, new, path, depth = task
        if depth > options.max_depth:
            raise DepthLimitError(options.max_depth, path)

        kind_old, kind_new = kind_of(old), kind_of(new)

        if kind_old == kind_new and kind_old not in _CONTAINERS and old == new:
            result.unchanged += 1
            continue

        if kind_old != kind_new or kind_old == "null":
            result.changed.append(DiffChange(path=path, old=old, new=new))
            continue

        if kind_old not in _CONTAINERS:
            _compare_scalars(old, new, path, options, result)
        elif kind_old == "array" and options.ignore_order:
            _compare_unordered(old, new, path, options, result)
        elif kind_old == "array":
            stack.extend(reversed(_ordered_tasks(old, new, path, depth)))
        else:
            stack.extend(reversed(_object_tasks(old, new, path, depth, result)))

    logger.debug(f"Diff summary: {result.summary}")
    return result


def _compare_scalars(old: Any, new: Any, path: str, options: DiffOptions, result: DiffResult) -> None:
    left, right = old, new
    if options.ignore_case and isinstance(left, str):
        left, right = left.lower(), right.lower()
    if left == right:
        result.unchanged += 1
    else:
        result.changed.append(DiffChange(path=path, old=old, new=new))


def _ordered_tasks(old: list, new: list, path: str, depth: int) -> list[tuple]:
    """Position-by-position comparison; surplus positions are added or removed."""
    tasks = []
    for i in range(max(len(old), len(new))):
        item_path = f"{path}[{i}]"
        if i >= len(old):
            tasks.append(("emit", "added", DiffEntry(path=item_path, value=new[i])))
        elif i >= len(new):
            tasks.append(("emit", "removed", DiffEntry(path=item_path, value=old[i])))
        else:
            tasks.append(("compare", old[i], new[i], item_path, depth + 1))
    return tasks


def _object_tasks(old: dict, new: dict, path: str, depth: int, result: DiffResult) -> list[tuple]:
    """Record keys present on one side only; return comparisons for shared keys."""
    for key, value in old.items():
        if key not in new:
            result.removed.append(DiffEntry(path=f"{path}.{key}", value=value))
    for key, value in new.items():
        if key not in old:
            result.added.append(DiffEntry(path=f"{path}.{key}", value=value))

    return [
        ("compare", value, new[key], f"{path}.{key}", depth + 1)
        for key, value in old.items()
        if key in new
    ]


def _compare_unordered(old: list, new: list, path: str, options: DiffOptions, result: DiffResult) -> None:
    """Compare arrays as bags of values keyed by their canonical JSON."""
    item_path = f"{path}[]"
    old_keys = [stable_dumps(item, options.max_depth) for item in old]
    new_keys = [stable_dumps(item, options.max_depth) for item in new]

    if options.multiset:
        old_counts, new_counts = Counter(old_keys), Counter(new_keys)
        removed = _surplus(old, old_keys, new_counts)
        added = _surplus(new, new_keys, old_counts)
        unchanged = sum(min(count, new_counts[key]) for key, count in old_counts.items())
    else:
        # Membership only: duplicates are not counted separately
        old_set, new_set = set(old_keys), set(new_keys)
        removed = [item for item, key in zip(old, old_keys) if key not in new_set]
        added = [item for item, key in zip(new, new_keys) if key not in old_set]
        unchanged = max(0, min(len(old), len(new)) - len(removed))

    result.removed.extend(DiffEntry(path=item_path, value=item) for item in removed)
    result.added.extend(DiffEntry(path=item_path, value=item) for item in added)
    result.unchanged += unchanged


def _surplus(items: list, keys: list[str], other_counts: Counter) -> list:
    """Occurrences of each value beyond how many times the other side has it."""
    seen: Counter = Counter()
    surplus = []
    for item, key in zip(items, keys):
        seen[key] += 1
        if seen[key] > other_counts[key]:
            surplus.append(item)
    return surplus
