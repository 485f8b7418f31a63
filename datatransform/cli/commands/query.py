"""Query command - select values from a JSON document with a path expression."""

import logging
from typing import Optional

import typer

from datatransform.cli.app import FileOption, InlineOption, exit_with_usage, resolve_input_mode
from datatransform.cli.console import print_data, print_error_json
from datatransform.errors import DataTransformError, ParseError

logger = logging.getLogger(__name__)

INPUT_FORMATS = ("auto", "json")
OUTPUT_FORMATS = ("json", "csv", "lines")


def query(
    ctx: typer.Context,
    input: Optional[str] = typer.Argument(None, help="JSON file path or inline JSON text"),
    expression: Optional[str] = typer.Argument(None, metavar="QUERY", help="Path expression, e.g. '$.users[*].name'"),
    format: str = typer.Option("auto", "--format", "-f", help="Input format: auto or json"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output: json, csv or lines"),
    file: bool = FileOption,
    inline: bool = InlineOption,
):
    """Select values from a JSON document.

    Examples:
        datatransform query data.json '$.users[*].name'
        datatransform query '{"a":[1,2,3]}' '$.a[1:]' -o lines
        datatransform query data.json '$..price' --output csv
    """
    from datatransform.config import settings

    if not input:
        exit_with_usage(ctx, "Missing argument 'INPUT'.")
    if not expression:
        exit_with_usage(ctx, "Missing argument 'QUERY'.")

    mode = resolve_input_mode(file, inline, settings.input_mode)
    if mode is None:
        exit_with_usage(ctx, "--file and --inline cannot be used together")

    output = output or settings.query_output
    if output not in OUTPUT_FORMATS:
        exit_with_usage(ctx, f"Unknown output format: {output} (choose from {', '.join(OUTPUT_FORMATS)})")

    try:
        if format not in INPUT_FORMATS:
            raise ParseError(f"Unsupported input format: {format}")
        text = _run(input, expression, output, mode, settings)
    except DataTransformError as e:
        logger.debug(f"query failed: {e}")
        print_error_json(str(e))
        raise typer.Exit(code=1)

    if text:
        print_data(text)


def _run(input: str, expression: str, output: str, mode: str, settings) -> str:
    from datatransform import io
    from datatransform.engine import query as run_query

    data = io.load_document(input, mode)
    result = run_query(data, expression, max_depth=settings.max_depth)
    logger.debug(f"{expression} matched {result.count} values")

    if output == "lines":
        return "\n".join(io.render_lines(result.results))
    if output == "csv":
        return io.render_csv(result.results).rstrip("\n")
    return io.dumps(result.to_report(), indent=settings.indent, max_depth=settings.max_depth)
