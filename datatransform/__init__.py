"""Data Transform - query, diff and reshape JSON documents from the command line.

Three independent engines:
    - path resolver: JSONPath-like queries (`$.users[*].name`)
    - differ: structural diff with added/removed/changed classification
    - pipeline: filter -> map -> unique -> sort -> reverse -> group -> limit
"""

from datatransform.version import __version__

__all__ = [
    "__version__",
    "cli",
    "config",
    "engine",
    "errors",
    "models",
]
