"""Data Transform CLI.

Usage:
    datatransform query <input> <query>        # Select values by path
    datatransform diff <doc1> <doc2>           # Structural diff
    datatransform transform <input> [options]  # Filter/map/sort/group
"""

import logging

import typer

from datatransform.cli.app import app, APP_NAME, APP_VERSION, configure_logging, version_callback
from datatransform.cli.console import console
from datatransform.cli.commands import query, diff, transform

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)


@app.callback()
def main_callback(
    version: bool = typer.Option(
        None, "--version", "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Query, diff and transform JSON documents.

    Inputs are file paths or inline JSON text. Results are JSON on stdout;
    errors are JSON objects on stderr.
    """
    from datatransform.config import settings

    configure_logging(verbose, settings.log_level)


# Register commands
app.command()(query)
app.command()(diff)
app.command()(transform)


def main():
    """Entry point for the CLI."""
    app()


__all__ = ["app", "main", "console", "APP_NAME", "APP_VERSION"]
