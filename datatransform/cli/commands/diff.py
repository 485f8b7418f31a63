"""Diff command - structural comparison of two JSON documents."""

import logging
from typing import Optional

import typer

from datatransform.cli.app import FileOption, InlineOption, exit_with_usage, resolve_input_mode
from datatransform.cli.console import (
    console,
    print_data,
    print_diff_lines,
    print_error_json,
)
from datatransform.errors import DataTransformError

logger = logging.getLogger(__name__)

DIFF_FORMATS = ("json", "unified")

# Exit codes
EXIT_IDENTICAL = 0
EXIT_DIFFERENT = 1
EXIT_ERROR = 2


def diff(
    ctx: typer.Context,
    doc1: Optional[str] = typer.Argument(None, help="Old document: file path or inline JSON"),
    doc2: Optional[str] = typer.Argument(None, help="New document: file path or inline JSON"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output: json or unified"),
    ignore_order: bool = typer.Option(False, "--ignore-order", help="Compare arrays as unordered collections; the unchanged count is approximate with duplicates and never below 0"),
    ignore_case: bool = typer.Option(False, "--ignore-case", help="Compare strings case-insensitively"),
    multiset: bool = typer.Option(False, "--multiset", help="Exact per-occurrence counts with --ignore-order, including duplicates"),
    file: bool = FileOption,
    inline: bool = InlineOption,
):
    """Compare two JSON documents.

    Exits 0 when identical, 1 when they differ and 2 on error.

    Examples:
        datatransform diff old.json new.json
        datatransform diff old.json new.json --format unified
        datatransform diff '[1,2,3]' '[3,2,1]' --ignore-order
    """
    from datatransform.config import settings

    if not doc1:
        exit_with_usage(ctx, "Missing argument 'DOC1'.")
    if not doc2:
        exit_with_usage(ctx, "Missing argument 'DOC2'.")

    mode = resolve_input_mode(file, inline, settings.input_mode)
    if mode is None:
        exit_with_usage(ctx, "--file and --inline cannot be used together")

    format = format or settings.diff_format
    if format not in DIFF_FORMATS:
        exit_with_usage(ctx, f"Unknown diff format: {format} (choose from {', '.join(DIFF_FORMATS)})")

    from datatransform import io
    from datatransform.engine import diff as run_diff
    from datatransform.models import DiffOptions

    try:
        a = io.load_document(doc1, mode)
        b = io.load_document(doc2, mode)
        options = DiffOptions(
            ignore_order=ignore_order,
            ignore_case=ignore_case,
            multiset=multiset,
            max_depth=settings.max_depth,
        )
        result = run_diff(a, b, options)
        if format == "unified":
            lines = io.render_unified(result, doc1, doc2, max_depth=settings.max_depth)
        else:
            text = io.dumps(result.to_report(), indent=settings.indent, max_depth=settings.max_depth)
    except DataTransformError as e:
        logger.debug(f"diff failed: {e}")
        print_error_json(str(e))
        raise typer.Exit(code=EXIT_ERROR)

    if format != "unified":
        print_data(text)
    elif result.identical:
        console.print("Files are identical", style="success")
    else:
        print_diff_lines(lines)

    raise typer.Exit(code=EXIT_IDENTICAL if result.identical else EXIT_DIFFERENT)
