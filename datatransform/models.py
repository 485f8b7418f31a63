"""Pydantic models for path segments, diff results and pipeline options."""

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Path segments
# =============================================================================


class KeySegment(BaseModel):
    """Object member access: `.name` or `['name']`."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["key"] = "key"
    name: str


class WildcardSegment(BaseModel):
    """All array elements or all object values: `.*` or `[*]`."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["wildcard"] = "wildcard"


class IndexSegment(BaseModel):
    """Array element access: `[3]`."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["index"] = "index"
    index: int = Field(ge=0)


class SliceSegment(BaseModel):
    """Array sub-range: `[start:end]`, bounds optional and possibly negative."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["slice"] = "slice"
    start: int | None = None
    end: int | None = None


FilterOperator = Literal["==", "!=", ">", "<", ">=", "<="]


class FilterSegment(BaseModel):
    """Keep array elements whose field satisfies a comparison: `[?(@.age>=21)]`."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["filter"] = "filter"
    field: tuple[str, ...]
    operator: FilterOperator
    value: Any = None


class RecursiveDescentSegment(BaseModel):
    """Match the remaining path at every depth: `..`."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["descent"] = "descent"


PathSegment = Union[
    KeySegment,
    WildcardSegment,
    IndexSegment,
    SliceSegment,
    FilterSegment,
    RecursiveDescentSegment,
]


class QueryResult(BaseModel):
    """Output of a path query."""

    query: str
    count: int
    results: list[Any] = []

    def to_report(self) -> dict[str, Any]:
        """Build the JSON object printed by the query command."""
        return {"query": self.query, "count": self.count, "results": self.results}


# =============================================================================
# Diff
# =============================================================================


class DiffOptions(BaseModel):
    ignore_order: bool = False
    ignore_case: bool = False
    # Exact multiset accounting for ignore_order (off = legacy approximation)
    multiset: bool = False
    max_depth: int = 10000


class DiffEntry(BaseModel):
    """A value present on only one side."""

    path: str
    value: Any = None


class DiffChange(BaseModel):
    """A value present on both sides with different content."""

    path: str
    old: Any = None
    new: Any = None


class DiffResult(BaseModel):
    """Merged result of a structural diff."""

    added: list[DiffEntry] = []
    removed: list[DiffEntry] = []
    changed: list[DiffChange] = []
    unchanged: int = 0

    @property
    def identical(self) -> bool:
        return not (self.added or self.removed or self.changed)

    @property
    def summary(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "removed": len(self.removed),
            "changed": len(self.changed),
            "unchanged": self.unchanged,
        }

    def to_report(self) -> dict[str, Any]:
        """Build the JSON report printed by the diff command."""
        return {
            "identical": self.identical,
            "summary": self.summary,
            "added": [{"path": e.path, "value": e.value} for e in self.added],
            "removed": [{"path": e.path, "value": e.value} for e in self.removed],
            "changed": [{"path": c.path, "old": c.old, "new": c.new} for c in self.changed],
            "unchanged": self.unchanged,
        }


# =============================================================================
# Transform pipeline
# =============================================================================


class PipelineOps(BaseModel):
    """Optional pipeline stages. Execution order is fixed, not declaration order."""

    filter_expr: str | None = None
    map_expr: str | None = None
    unique: str | None = None
    sort: str | None = None
    reverse: bool = False
    group: str | None = None
    limit: int | None = Field(default=None, ge=0)
