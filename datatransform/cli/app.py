"""Main Typer application and shared options."""

import logging

import typer

from datatransform.version import __version__

APP_NAME = "datatransform"
APP_VERSION = __version__
APP_DESCRIPTION = "Query, diff and transform JSON documents"

app = typer.Typer(
    name=APP_NAME,
    help=APP_DESCRIPTION,
    add_completion=False,
    pretty_exceptions_show_locals=False,
    no_args_is_help=True,
)


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        typer.echo(f"{APP_NAME} {APP_VERSION}")
        raise typer.Exit()


def configure_logging(verbose: bool, level: str = "WARNING"):
    """Set the package log level; --verbose forces DEBUG."""
    logger = logging.getLogger("datatransform")
    if verbose:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(getattr(logging, level.upper(), logging.WARNING))


def resolve_input_mode(file: bool, inline: bool, default: str) -> str | None:
    """Pick the input mode from --file/--inline; None when both are given."""
    if file and inline:
        return None
    if file:
        return "file"
    if inline:
        return "inline"
    return default


# Common options
FileOption = typer.Option(
    False,
    "--file",
    help="Treat inputs as file paths (error if missing)",
)

InlineOption = typer.Option(
    False,
    "--inline",
    help="Treat inputs as inline JSON text, never as paths",
)


def exit_with_usage(ctx: typer.Context, message: str):
    """Print usage and the problem to stderr, then exit 1."""
    from datatransform.cli.console import print_usage

    print_usage(
        f"{ctx.get_usage()}\n"
        f"Try '{ctx.command_path} --help' for help.\n\n"
        f"Error: {message}"
    )
    raise typer.Exit(code=1)
