"""Pivot tree, display rows, and pivot API schemas.

Tree nodes and display rows are plain dataclasses: they are built and thrown
away on every refresh and never cross the wire directly. The pydantic models
at the bottom of this module are the HTTP surface.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from retailpivot.features.dimensions.schemas import DisplayFormat, Reducer
from retailpivot.features.filters.schemas import FilterRule

# =============================================================================
# Tree and Rows
# =============================================================================


@dataclass
class PivotNode:
    """One group in the pivot forest.

    Attributes:
        id: Deterministic id derived from the root-to-node path.
        level: Depth, 0 for top-level groups.
        grouping_key: Key of the dimension grouped by at this level.
        grouping_value: Display value shared by every record in the group.
        children: Sub-groups in first-seen order; empty for leaves.
        member_records: Records of the group; populated for leaves only.
        aggregates: Aggregate label to current value.
        is_leaf: True at the last grouping dimension.
        record_count: Records reachable under this node.
    """

    id: str
    level: int
    grouping_key: str
    grouping_value: str
    children: list["PivotNode"] = field(default_factory=list)
    member_records: list[Mapping[str, Any]] = field(default_factory=list)
    aggregates: dict[str, float] = field(default_factory=dict)
    is_leaf: bool = False
    record_count: int = 0

    @property
    def has_children(self) -> bool:
        """True when expanding the node would reveal rows."""
        return bool(self.children or self.member_records)


@dataclass(frozen=True)
class GroupRow:
    """Display row for a pivot node."""

    node_id: str
    level: int
    grouping_key: str
    grouping_value: str
    aggregates: dict[str, float]
    has_children: bool
    is_expanded: bool
    record_count: int


@dataclass(frozen=True)
class DetailRow:
    """Display row for one member record, one level below its leaf group."""

    row_id: str
    parent_id: str
    level: int
    record: Mapping[str, Any]


DisplayRow = GroupRow | DetailRow


@dataclass
class PivotBuildStats:
    """Counters collected during one build.

    Attributes:
        record_count: Records folded into the forest.
        node_count: Nodes created.
        leaf_count: Leaf nodes created.
        depth: Number of grouping dimensions.
        unknown_count: Grouping values that fell back to the unknown label.
        coercion_count: Aggregation inputs coerced to 0.
        coerced_fields: Coercions per aggregation label.
        duration_ms: Wall-clock build time.
    """

    record_count: int = 0
    node_count: int = 0
    leaf_count: int = 0
    depth: int = 0
    unknown_count: int = 0
    coercion_count: int = 0
    coerced_fields: dict[str, int] = field(default_factory=lambda: {})
    duration_ms: float = 0.0


@dataclass
class PivotBuildResult:
    """Forest plus the statistics of the build that produced it."""

    roots: list[PivotNode]
    stats: PivotBuildStats


# =============================================================================
# API Schemas
# =============================================================================


class ExpandMode(str, Enum):
    """Expansion applied after a rebuild, on top of ``expanded_ids``."""

    NONE = "none"
    FIRST_LEVEL = "first_level"
    ALL = "all"


class MeasureSelection(BaseModel):
    """Aggregation selected by its (field, reducer) identity."""

    field: str = Field(..., min_length=1, description="Aggregation source field.")
    reducer: Reducer


class PivotQueryRequest(BaseModel):
    """Request body for POST /pivot/query."""

    records: list[dict[str, Any]] = Field(
        ...,
        description="Flat records, one per transaction. Already coarse-filtered by the caller.",
    )
    group_by: list[str] | None = Field(
        default=None,
        description="Dimension keys, outermost first. Omit for the default grouping.",
    )
    measures: list[MeasureSelection] | None = Field(
        default=None,
        description="Aggregations to compute. Omit for the default measures.",
    )
    filters: list[FilterRule] = Field(
        default_factory=list,
        description="Filter rules, combined with AND.",
    )
    expanded_ids: list[str] = Field(
        default_factory=list,
        description="Node ids to expand. Ids are stable for the same grouping path.",
    )
    expand: ExpandMode | None = Field(
        default=None,
        description="Additional expansion: none, first_level, or all. "
        "Omit to follow the server's auto-expand setting.",
    )
    derive_metrics: bool = Field(
        default=True,
        description="Add derived sales fields (month, ranges, rates) before grouping.",
    )


class ExportRequest(PivotQueryRequest):
    """Request body for POST /pivot/export."""

    include_details: bool = Field(
        default=False,
        description="Write one row per member record below each leaf group.",
    )


class ColumnResponse(BaseModel):
    """Aggregate column descriptor."""

    label: str
    source_field: str
    reducer: Reducer
    display_format: DisplayFormat


class GroupRowResponse(BaseModel):
    """Group row of a pivot query response."""

    kind: Literal["group"] = "group"
    node_id: str
    level: int
    grouping_key: str
    grouping_value: str
    aggregates: dict[str, float]
    formatted: dict[str, str] = Field(..., description="Aggregates rendered for display.")
    has_children: bool
    is_expanded: bool
    record_count: int


class DetailRowResponse(BaseModel):
    """Detail row of a pivot query response."""

    kind: Literal["detail"] = "detail"
    row_id: str
    parent_id: str
    level: int
    record: dict[str, Any]


class BuildStatsResponse(BaseModel):
    """Build statistics returned with a query."""

    node_count: int
    leaf_count: int
    depth: int
    unknown_count: int
    coercion_count: int
    duration_ms: float


class PivotQueryResponse(BaseModel):
    """Response body for POST /pivot/query."""

    group_by: list[str]
    columns: list[ColumnResponse]
    rows: list[Annotated[GroupRowResponse | DetailRowResponse, Field(discriminator="kind")]]
    node_ids: list[str] = Field(..., description="Every node id in the forest, pre-order.")
    expanded_ids: list[str]
    total_records: int = Field(..., description="Records received.")
    filtered_records: int = Field(..., description="Records left after filtering.")
    filter_summary: str
    stats: BuildStatsResponse
