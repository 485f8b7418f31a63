"""Query, diff and transform engines. Pure functions over parsed JSON values."""

from datatransform.engine.differ import diff
from datatransform.engine.expression import compile_expression
from datatransform.engine.path_resolver import parse_path, query, resolve
from datatransform.engine.pipeline import transform

__all__ = [
    "compile_expression",
    "diff",
    "parse_path",
    "query",
    "resolve",
    "transform",
]
