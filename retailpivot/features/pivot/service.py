"""PivotView: the derive -> filter -> build -> flatten pipeline of one pivot screen.

A PivotView owns its catalog, filter engine, metrics deriver, tree builder,
and expansion state. Inputs are set first and ``refresh()`` rebuilds the
forest from scratch. Instances are not thread-safe; callers serialize.
"""

import uuid
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from retailpivot.core.config import get_settings
from retailpivot.core.exceptions import BadRequestError, ConflictError, NotFoundError
from retailpivot.core.logging import bind_view_id, get_logger
from retailpivot.features.dimensions.schemas import AggregationSpec, Dimension
from retailpivot.features.dimensions.service import DimensionCatalog, default_sales_catalog
from retailpivot.features.filters.schemas import FilterRule
from retailpivot.features.filters.service import FilterEngine
from retailpivot.features.metrics.service import MetricsDeriver, default_sales_metrics
from retailpivot.features.pivot.builder import PivotTreeBuilder
from retailpivot.features.pivot.export import SALES_DETAIL_COLUMNS, export_csv
from retailpivot.features.pivot.formatting import format_aggregates
from retailpivot.features.pivot.schemas import (
    BuildStatsResponse,
    ColumnResponse,
    DetailRowResponse,
    DisplayRow,
    ExpandMode,
    GroupRow,
    GroupRowResponse,
    PivotBuildResult,
    PivotBuildStats,
    PivotNode,
    PivotQueryRequest,
    PivotQueryResponse,
)
from retailpivot.features.pivot.view import TreeView, all_node_ids, flatten

logger = get_logger(__name__)


class PivotView:
    """One logical pivot screen.

    Example:
        >>> view = PivotView(deriver=MetricsDeriver(default_sales_metrics()))
        >>> view.set_records(orders)
        >>> view.refresh()
        >>> rows = view.rows()
    """

    def __init__(
        self,
        catalog: DimensionCatalog | None = None,
        filter_engine: FilterEngine | None = None,
        deriver: MetricsDeriver | None = None,
        builder: PivotTreeBuilder | None = None,
        tree_view: TreeView | None = None,
        view_id: str | None = None,
        auto_expand_first_level: bool | None = None,
        currency_symbol: str | None = None,
        detail_columns: Sequence[tuple[str, str]] | None = None,
    ) -> None:
        """Initialize the view.

        Args:
            catalog: Dimension catalog with the active selection. Defaults
                to the sales-order catalog.
            filter_engine: Filter engine. Defaults to a settings-driven one.
            deriver: Metrics applied before filtering. None derives nothing.
            builder: Tree builder. Defaults to a settings-driven one.
            tree_view: Expansion state. Defaults to nothing expanded.
            view_id: Id attached to log events of this view.
            auto_expand_first_level: Expand top-level groups when a refresh
                leaves nothing expanded. Defaults to the setting.
            currency_symbol: Symbol for currency formatting.
            detail_columns: (record key, label) pairs for CSV detail columns.
                Defaults to the sales columns for the default catalog.
        """
        settings = get_settings()
        self.view_id = view_id or uuid.uuid4().hex[:12]
        self.catalog = catalog or default_sales_catalog()
        self.filter_engine = filter_engine or FilterEngine()
        self.deriver = deriver
        self.builder = builder or PivotTreeBuilder()
        self.tree_view = tree_view or TreeView()
        self.auto_expand_first_level = (
            settings.pivot_auto_expand_first_level
            if auto_expand_first_level is None
            else auto_expand_first_level
        )
        self.currency_symbol = currency_symbol or settings.pivot_currency_symbol
        if detail_columns is None:
            detail_columns = SALES_DETAIL_COLUMNS if catalog is None else ()
        self.detail_columns = list(detail_columns)

        self.records: list[Mapping[str, Any]] = []
        self.filters: list[FilterRule] = []
        self.filtered_records: list[Mapping[str, Any]] = []
        self.roots: list[PivotNode] = []
        self.stats = PivotBuildStats()

    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------

    def set_records(self, records: Sequence[Mapping[str, Any]]) -> None:
        """Replace the record collection. Takes effect on ``refresh()``."""
        self.records = list(records)

    def set_filters(self, rules: Sequence[FilterRule]) -> None:
        """Replace the filter rules. Takes effect on ``refresh()``."""
        self.filters = list(rules)

    @property
    def dimensions(self) -> list[Dimension]:
        return self.catalog.active_dimensions

    @property
    def aggregations(self) -> list[AggregationSpec]:
        return self.catalog.active_aggregations

    @property
    def filter_summary(self) -> str:
        return self.filter_engine.summary(self.filters)

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def refresh(
        self,
        preserve_expansion: bool = True,
        should_cancel: Callable[[], bool] | None = None,
    ) -> PivotBuildResult:
        """Rebuild the forest from the current inputs.

        The view's state is replaced only after the build succeeds; a failed
        build leaves the previous forest, statistics and filtered records.

        Args:
            preserve_expansion: Keep expanded groups that still exist after
                the rebuild. When False, expansion is reset.
            should_cancel: Cooperative cancellation check for the build.

        Returns:
            The new forest and its build statistics.
        """
        with bind_view_id(self.view_id):
            logger.info(
                "pivot.refresh_started",
                record_count=len(self.records),
                filter_count=len(self.filters),
                group_by=self.catalog.group_by,
            )

            derived: Sequence[Mapping[str, Any]] = (
                self.deriver.derive_all(self.records) if self.deriver else self.records
            )
            filtered = self.filter_engine.apply(derived, self.filters)
            result = self.builder.build_result(
                filtered,
                self.dimensions,
                self.aggregations,
                should_cancel=should_cancel,
            )
            self.filtered_records = filtered
            self.roots = result.roots
            self.stats = result.stats

            self.tree_view.reconcile(self.roots, preserve=preserve_expansion)
            if self.auto_expand_first_level and not self.tree_view.expanded_ids:
                self.tree_view.expand_to_level(self.roots, 1)

            logger.info(
                "pivot.refresh_completed",
                filtered_count=len(self.filtered_records),
                root_count=len(self.roots),
                expanded_count=len(self.tree_view.expanded_ids),
            )
        return result

    def rows(self) -> list[DisplayRow]:
        """Flatten the current forest with the current expansion state."""
        return self.tree_view.flatten(self.roots)

    def formatted(self, row: GroupRow) -> dict[str, str]:
        """Display strings for a group row's aggregates."""
        return format_aggregates(row.aggregates, self.aggregations, self.currency_symbol)

    # -------------------------------------------------------------------------
    # Expansion
    # -------------------------------------------------------------------------

    def toggle(self, node_id: str) -> bool:
        return self.tree_view.toggle(node_id)

    def expand_all(self) -> None:
        self.tree_view.expand_all(self.roots)

    def collapse_all(self) -> None:
        self.tree_view.collapse_all()

    def expand_first_level(self) -> None:
        """Expand every top-level group, keeping other expanded groups."""
        self.tree_view.expanded_ids.update(node.id for node in self.roots)

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export_csv(self, include_details: bool = False) -> str:
        """Export the fully expanded forest as CSV.

        Args:
            include_details: Also write one row per member record.

        Returns:
            CSV text.
        """
        rows = flatten(self.roots, set(all_node_ids(self.roots)))
        if not include_details:
            rows = [row for row in rows if isinstance(row, GroupRow)]
        return export_csv(
            rows,
            self.dimensions,
            self.aggregations,
            self.detail_columns,
            unknown_label=self.builder.unknown_label,
        )

    def export_view_csv(self) -> str:
        """Export exactly the rows currently visible."""
        return export_csv(
            self.rows(),
            self.dimensions,
            self.aggregations,
            self.detail_columns,
            unknown_label=self.builder.unknown_label,
        )


# =============================================================================
# HTTP query support
# =============================================================================


def view_from_request(request: PivotQueryRequest) -> PivotView:
    """Build and refresh a sales PivotView for one API request.

    Raises:
        BadRequestError: On too many records, or unknown or duplicate
            dimensions and measures.
    """
    settings = get_settings()
    if len(request.records) > settings.pivot_max_records:
        raise BadRequestError(
            f"Too many records: {len(request.records)} (max {settings.pivot_max_records})",
            details={
                "record_count": len(request.records),
                "max_records": settings.pivot_max_records,
            },
        )

    catalog = default_sales_catalog()
    try:
        if request.group_by is not None:
            catalog.set_group_by(request.group_by)
        if request.measures is not None:
            catalog.set_measures([(m.field, m.reducer) for m in request.measures])
    except (NotFoundError, ConflictError) as exc:
        raise BadRequestError(exc.message, details=exc.details) from exc

    view = PivotView(
        catalog=catalog,
        deriver=MetricsDeriver(default_sales_metrics()) if request.derive_metrics else None,
        tree_view=TreeView(request.expanded_ids),
        auto_expand_first_level=False,
        detail_columns=SALES_DETAIL_COLUMNS,
    )
    view.set_records(request.records)
    view.set_filters(request.filters)
    view.refresh()

    expand = request.expand
    if expand is None:
        auto = settings.pivot_auto_expand_first_level
        expand = ExpandMode.FIRST_LEVEL if auto else ExpandMode.NONE
    if expand == ExpandMode.ALL:
        view.expand_all()
    elif expand == ExpandMode.FIRST_LEVEL:
        view.expand_first_level()
    return view


def to_query_response(view: PivotView) -> PivotQueryResponse:
    """Render a refreshed view as an API response."""
    rows: list[GroupRowResponse | DetailRowResponse] = []
    for row in view.rows():
        if isinstance(row, GroupRow):
            rows.append(
                GroupRowResponse(
                    node_id=row.node_id,
                    level=row.level,
                    grouping_key=row.grouping_key,
                    grouping_value=row.grouping_value,
                    aggregates=row.aggregates,
                    formatted=view.formatted(row),
                    has_children=row.has_children,
                    is_expanded=row.is_expanded,
                    record_count=row.record_count,
                )
            )
        else:
            rows.append(
                DetailRowResponse(
                    row_id=row.row_id,
                    parent_id=row.parent_id,
                    level=row.level,
                    record=dict(row.record),
                )
            )

    return PivotQueryResponse(
        group_by=view.catalog.group_by,
        columns=[
            ColumnResponse(
                label=spec.label,
                source_field=spec.source_field,
                reducer=spec.reducer,
                display_format=spec.display_format,
            )
            for spec in view.aggregations
        ],
        rows=rows,
        node_ids=all_node_ids(view.roots),
        expanded_ids=sorted(view.tree_view.expanded_ids),
        total_records=len(view.records),
        filtered_records=len(view.filtered_records),
        filter_summary=view.filter_summary,
        stats=BuildStatsResponse(
            node_count=view.stats.node_count,
            leaf_count=view.stats.leaf_count,
            depth=view.stats.depth,
            unknown_count=view.stats.unknown_count,
            coercion_count=view.stats.coercion_count,
            duration_ms=view.stats.duration_ms,
        ),
    )
