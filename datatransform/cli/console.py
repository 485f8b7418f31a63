"""Console utilities and theming for the Data Transform CLI."""

import json

import typer
from rich.console import Console
from rich.text import Text
from rich.theme import Theme

THEME = Theme(
    {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red",
        "dim": "dim",
        "diff.header": "bold",
        "diff.removed": "red",
        "diff.added": "green",
    }
)

# Data goes to stdout; usage text and errors go to stderr
console = Console(theme=THEME)
err_console = Console(theme=THEME, stderr=True)


def print_usage(text: str):
    """Print usage text to stderr, verbatim (no markup)."""
    err_console.print(text, markup=False, highlight=False, soft_wrap=True)


def print_error_json(message: str):
    """Print a machine-readable error object to stderr."""
    typer.echo(json.dumps({"error": message}, ensure_ascii=False), err=True)


def print_data(text: str):
    """Print serialized output to stdout, untouched."""
    typer.echo(text)


def print_diff_lines(lines: list[str]):
    """Print unified diff lines, colored when stdout is a terminal."""
    for line in lines:
        if line.startswith(("---", "+++")):
            style = "diff.header"
        elif line.startswith("-"):
            style = "diff.removed"
        elif line.startswith("+"):
            style = "diff.added"
        else:
            style = ""
        console.print(Text(line, style=style), soft_wrap=True)
