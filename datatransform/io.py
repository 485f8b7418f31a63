"""Document loading and output rendering for the CLI commands."""

import json
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from datatransform.engine.jsvalues import DEFAULT_MAX_DEPTH, encode_json, format_number, is_number
from datatransform.errors import DataTransformError, InputNotFoundError, ParseError
from datatransform.models import DiffResult

logger = logging.getLogger(__name__)

INPUT_MODES = ("auto", "file", "inline")

# First characters of text that is clearly meant as inline JSON
_JSON_STARTS = tuple('{["-0123456789') + ("true", "false", "null")


# =============================================================================
# Input
# =============================================================================


def parse_json(text: str, label: str = "input") -> Any:
    """Parse JSON text, raising ParseError with the source label on failure."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in {label}: {e}")
    except RecursionError:
        raise ParseError(f"Invalid JSON in {label}: nested too deeply")


def read_json(path: str | Path) -> Any:
    """Read and parse a JSON file."""
    p = Path(path).expanduser()
    if not p.is_file():
        raise InputNotFoundError(p.resolve())
    try:
        with open(p, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise DataTransformError(f"Cannot read {p.resolve()}: {e}")
    logger.debug(f"Read {len(text)} characters from {p}")
    return parse_json(text, label=str(p))


def load_document(source: str, mode: str = "auto") -> Any:
    """Load a document given as a file path or inline JSON text.

    Args:
        source: File path or JSON text
        mode: "auto" (an existing file wins, otherwise inline JSON),
            "file" (must be a file) or "inline" (never touches the filesystem)
    """
    if mode not in INPUT_MODES:
        raise ValueError(f"Unknown input mode: {mode}")

    if mode == "inline":
        return parse_json(source, label="inline input")

    if mode == "file":
        return read_json(source)

    try:
        is_file = Path(source).expanduser().is_file()
    except (OSError, ValueError):
        # Long inline documents can exceed path length limits
        is_file = False

    if is_file:
        return read_json(source)

    stripped = source.lstrip()
    if stripped and not stripped.startswith(_JSON_STARTS):
        # Probably a mistyped path: name both interpretations
        try:
            return json.loads(source)
        except (json.JSONDecodeError, RecursionError) as e:
            resolved = Path(source).expanduser().resolve()
            raise ParseError(f"Input is neither an existing file ({resolved}) nor valid JSON: {e}")
    return parse_json(source, label="inline input")


# =============================================================================
# Output
# =============================================================================


def dumps(value: Any, indent: int | None = 2, max_depth: int = DEFAULT_MAX_DEPTH) -> str:
    """Serialize a result for output."""
    return encode_json(value, indent=indent, max_depth=max_depth)


def compact(value: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> str:
    return encode_json(value, max_depth=max_depth)


def scalar_text(value: Any) -> str:
    """Plain-text form of a value: strings raw, everything else as JSON."""
    if isinstance(value, str):
        return value
    if is_number(value):
        return format_number(value)
    return compact(value)


def render_lines(results: list[Any]) -> list[str]:
    """One line per result; containers as compact JSON."""
    return [scalar_text(r) for r in results]


def _csv_cell(row: Any, header: str) -> str:
    if not isinstance(row, dict):
        return ""
    value = row.get(header)
    if value is None:
        return ""
    return scalar_text(value)


def render_csv(results: list[Any]) -> str:
    """CSV with a header from the first result's keys.

    Only object results become rows; scalar results are printed one per
    line. Returns an empty string when there is nothing to print.
    """
    if not results:
        return ""

    first = results[0]
    if not isinstance(first, dict):
        return "\n".join(render_lines(results)) + "\n"

    headers = list(first.keys())
    if not headers:
        return ""

    rows = [[_csv_cell(row, h) for h in headers] for row in results]
    df = pd.DataFrame(rows, columns=headers, dtype=str)
    return df.to_csv(index=False, lineterminator="\n")


def render_unified(
    result: DiffResult,
    label_a: str,
    label_b: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[str]:
    """Unified-style listing: removed, then added, then -/+ pairs for changes."""
    lines = [f"--- {label_a}", f"+++ {label_b}", ""]
    for entry in result.removed:
        lines.append(f"- {entry.path}: {compact(entry.value, max_depth)}")
    for entry in result.added:
        lines.append(f"+ {entry.path}: {compact(entry.value, max_depth)}")
    for change in result.changed:
        lines.append(f"- {change.path}: {compact(change.old, max_depth)}")
        lines.append(f"+ {change.path}: {compact(change.new, max_depth)}")
    return lines
