"""Commands package - one module per tool."""

from datatransform.cli.commands.query import query
from datatransform.cli.commands.diff import diff
from datatransform.cli.commands.transform import transform

__all__ = ["query", "diff", "transform"]
