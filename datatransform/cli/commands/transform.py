"""Transform command - filter, map, sort and group a JSON array."""

import logging
from typing import Optional

import typer

from datatransform.cli.app import FileOption, InlineOption, exit_with_usage, resolve_input_mode
from datatransform.cli.console import print_data, print_error_json
from datatransform.errors import DataTransformError

logger = logging.getLogger(__name__)


def transform(
    ctx: typer.Context,
    input: Optional[str] = typer.Argument(None, help="JSON file path or inline JSON text"),
    filter: Optional[str] = typer.Option(None, "--filter", help="Keep elements where the expression is truthy, e.g. 'x.age > 30'"),
    map: Optional[str] = typer.Option(None, "--map", help="Replace each element, e.g. '{name: x.name}'"),
    unique: Optional[str] = typer.Option(None, "--unique", help="Drop later elements with a repeated field value"),
    sort: Optional[str] = typer.Option(None, "--sort", help="Sort ascending by field"),
    reverse: bool = typer.Option(False, "--reverse", help="Reverse the order"),
    group: Optional[str] = typer.Option(None, "--group", help="Group into an object keyed by field"),
    limit: Optional[int] = typer.Option(None, "--limit", min=0, help="Keep at most N elements"),
    file: bool = FileOption,
    inline: bool = InlineOption,
):
    """Reshape a JSON array.

    Stages always run as filter, map, unique, sort, reverse, group, limit.
    Once grouped, the output is an object and --limit has no effect.

    Examples:
        datatransform transform users.json --filter 'x.age >= 18' --sort name
        datatransform transform users.json --map '{name: x.name.toUpperCase()}'
        datatransform transform orders.json --group status
    """
    from datatransform.config import settings

    if not input:
        exit_with_usage(ctx, "Missing argument 'INPUT'.")

    mode = resolve_input_mode(file, inline, settings.input_mode)
    if mode is None:
        exit_with_usage(ctx, "--file and --inline cannot be used together")

    from datatransform import io
    from datatransform.engine import transform as run_transform
    from datatransform.models import PipelineOps

    try:
        data = io.load_document(input, mode)
        ops = PipelineOps(
            filter_expr=filter,
            map_expr=map,
            unique=unique,
            sort=sort,
            reverse=reverse,
            group=group,
            limit=limit,
        )
        result = run_transform(
            data,
            ops,
            max_expression_length=settings.max_expression_length,
            max_depth=settings.max_depth,
        )
        text = io.dumps(result, indent=settings.indent, max_depth=settings.max_depth)
    except DataTransformError as e:
        logger.debug(f"transform failed: {e}")
        print_error_json(str(e))
        raise typer.Exit(code=1)

    print_data(text)
