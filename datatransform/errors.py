"""Error taxonomy shared by the engines and the CLI."""


class DataTransformError(Exception):
    """Base class for all Data Transform errors."""

    pass


class ParseError(DataTransformError):
    """Input text, a path expression or a transform expression is malformed."""

    pass


class EvaluationError(DataTransformError):
    """A transform expression failed while being evaluated."""

    pass


class InputNotFoundError(DataTransformError):
    """An input that must be a file does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"File not found: {path}")


class DepthLimitError(DataTransformError):
    """A document is nested deeper than the configured limit."""

    def __init__(self, max_depth: int, path: str = "$"):
        self.max_depth = max_depth
        self.path = path
        super().__init__(f"Nesting deeper than {max_depth} levels at {path}")
