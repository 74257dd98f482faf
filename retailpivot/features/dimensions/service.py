"""DimensionCatalog: registry of grouping dimensions and aggregation specs.

A catalog is an ordinary object built by its owner and passed to the pivot
pipeline; nothing here is module-level state. ``default_sales_catalog()``
builds a fresh catalog for the sales-order screens on every call.
"""

from retailpivot.core.exceptions import ConflictError, NotFoundError
from retailpivot.core.logging import get_logger
from retailpivot.features.dimensions.schemas import (
    AggregationResponse,
    AggregationSpec,
    CatalogCategory,
    CatalogResponse,
    Dimension,
    DimensionCategory,
    DimensionResponse,
    DisplayFormat,
    Reducer,
    ValueType,
)

logger = get_logger(__name__)


class DimensionCatalog:
    """Registry of selectable dimensions and aggregations.

    Also tracks the active selection: an ordered "group by" list of
    dimension keys and an ordered "measures" list of aggregation identities.
    Duplicates are rejected with ConflictError, unknown entries with
    NotFoundError.
    """

    def __init__(
        self,
        dimensions: list[Dimension] | None = None,
        aggregations: list[AggregationSpec] | None = None,
    ) -> None:
        """Initialize the catalog.

        Args:
            dimensions: Dimensions to register, in display order.
            aggregations: Aggregation specs to register, in display order.
        """
        self._dimensions: dict[str, Dimension] = {}
        self._aggregations: dict[tuple[str, Reducer], AggregationSpec] = {}
        self._group_by: list[str] = []
        self._measures: list[tuple[str, Reducer]] = []

        for dimension in dimensions or []:
            self.register_dimension(dimension)
        for spec in aggregations or []:
            self.register_aggregation(spec)

    # -------------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------------

    def register_dimension(self, dimension: Dimension) -> None:
        """Register a dimension.

        Raises:
            ConflictError: If a dimension with the same key exists.
        """
        if dimension.key in self._dimensions:
            raise ConflictError(
                f"Dimension '{dimension.key}' is already registered",
                details={"key": dimension.key},
            )
        self._dimensions[dimension.key] = dimension

    def register_aggregation(self, spec: AggregationSpec) -> None:
        """Register an aggregation spec.

        Raises:
            ConflictError: If a spec with the same (source_field, reducer) or
                the same label exists. Aggregates are keyed by label.
        """
        if spec.identity in self._aggregations:
            raise ConflictError(
                f"Aggregation {spec.reducer.value}({spec.source_field}) is already registered",
                details={"source_field": spec.source_field, "reducer": spec.reducer.value},
            )
        if any(existing.label == spec.label for existing in self._aggregations.values()):
            raise ConflictError(
                f"Aggregation label '{spec.label}' is already registered",
                details={"label": spec.label},
            )
        self._aggregations[spec.identity] = spec

    @property
    def dimensions(self) -> list[Dimension]:
        """All registered dimensions in registration order."""
        return list(self._dimensions.values())

    @property
    def aggregations(self) -> list[AggregationSpec]:
        """All registered aggregation specs in registration order."""
        return list(self._aggregations.values())

    def has_dimension(self, key: str) -> bool:
        """Check whether a dimension key is registered."""
        return key in self._dimensions

    def get_dimension(self, key: str) -> Dimension:
        """Look up a dimension by key.

        Raises:
            NotFoundError: If the key is not registered.
        """
        try:
            return self._dimensions[key]
        except KeyError:
            raise NotFoundError(
                f"Unknown dimension '{key}'",
                details={"key": key, "available": sorted(self._dimensions)},
            ) from None

    def get_aggregation(self, source_field: str, reducer: Reducer | str) -> AggregationSpec:
        """Look up an aggregation by its (source_field, reducer) identity.

        Raises:
            NotFoundError: If no such aggregation is registered.
        """
        identity = (source_field, Reducer(reducer))
        try:
            return self._aggregations[identity]
        except KeyError:
            raise NotFoundError(
                f"Unknown aggregation {identity[1].value}({source_field})",
                details={"source_field": source_field, "reducer": identity[1].value},
            ) from None

    def dimensions_by_category(self) -> dict[DimensionCategory, list[Dimension]]:
        """Group dimensions by display category, preserving registration order."""
        grouped: dict[DimensionCategory, list[Dimension]] = {}
        for dimension in self._dimensions.values():
            grouped.setdefault(dimension.category, []).append(dimension)
        return grouped

    # -------------------------------------------------------------------------
    # Active "group by" selection
    # -------------------------------------------------------------------------

    @property
    def group_by(self) -> list[str]:
        """Active grouping keys, outermost first."""
        return list(self._group_by)

    @property
    def active_dimensions(self) -> list[Dimension]:
        """Active grouping dimensions, outermost first."""
        return [self._dimensions[key] for key in self._group_by]

    def add_group_by(self, key: str) -> None:
        """Append a dimension to the active grouping.

        Raises:
            NotFoundError: If the key is not registered.
            ConflictError: If the key is already active.
        """
        self.get_dimension(key)
        if key in self._group_by:
            raise ConflictError(
                f"Dimension '{key}' is already grouped by",
                details={"key": key},
            )
        self._group_by.append(key)

    def remove_group_by(self, key: str) -> None:
        """Remove a dimension from the active grouping.

        Raises:
            NotFoundError: If the key is not active.
        """
        if key not in self._group_by:
            raise NotFoundError(f"Dimension '{key}' is not grouped by", details={"key": key})
        self._group_by.remove(key)

    def move_group_by(self, key: str, position: int) -> None:
        """Move an active dimension to a new position (clamped to the list)."""
        self.remove_group_by(key)
        position = max(0, min(position, len(self._group_by)))
        self._group_by.insert(position, key)

    def set_group_by(self, keys: list[str]) -> None:
        """Replace the active grouping; validates every key first.

        On error the previous grouping is left unchanged.

        Raises:
            NotFoundError: If a key is not registered.
            ConflictError: If a key appears twice.
        """
        selected: list[str] = []
        for key in keys:
            self.get_dimension(key)
            if key in selected:
                raise ConflictError(
                    f"Dimension '{key}' is already grouped by",
                    details={"key": key},
                )
            selected.append(key)
        self._group_by = selected

    def clear_group_by(self) -> None:
        """Remove every active grouping dimension."""
        self._group_by.clear()

    # -------------------------------------------------------------------------
    # Active "measures" selection
    # -------------------------------------------------------------------------

    @property
    def active_aggregations(self) -> list[AggregationSpec]:
        """Active aggregation specs in selection order."""
        return [self._aggregations[identity] for identity in self._measures]

    def add_measure(self, source_field: str, reducer: Reducer | str) -> None:
        """Append an aggregation to the active measures.

        Raises:
            NotFoundError: If the aggregation is not registered.
            ConflictError: If the aggregation is already active.
        """
        spec = self.get_aggregation(source_field, reducer)
        if spec.identity in self._measures:
            raise ConflictError(
                f"Aggregation {spec.reducer.value}({source_field}) is already a measure",
                details={"source_field": source_field, "reducer": spec.reducer.value},
            )
        self._measures.append(spec.identity)

    def remove_measure(self, source_field: str, reducer: Reducer | str) -> None:
        """Remove an aggregation from the active measures.

        Raises:
            NotFoundError: If the aggregation is not active.
        """
        identity = (source_field, Reducer(reducer))
        if identity not in self._measures:
            raise NotFoundError(
                f"Aggregation {identity[1].value}({source_field}) is not a measure",
                details={"source_field": source_field, "reducer": identity[1].value},
            )
        self._measures.remove(identity)

    def set_measures(self, measures: list[tuple[str, Reducer | str]]) -> None:
        """Replace the active measures; validates every pair first.

        On error the previous measures are left unchanged.

        Raises:
            NotFoundError: If an aggregation is not registered.
            ConflictError: If an aggregation appears twice.
        """
        selected: list[tuple[str, Reducer]] = []
        for source_field, reducer in measures:
            spec = self.get_aggregation(source_field, reducer)
            if spec.identity in selected:
                raise ConflictError(
                    f"Aggregation {spec.reducer.value}({source_field}) is already a measure",
                    details={"source_field": source_field, "reducer": spec.reducer.value},
                )
            selected.append(spec.identity)
        self._measures = selected

    def clear_measures(self) -> None:
        """Remove every active measure."""
        self._measures.clear()

    # -------------------------------------------------------------------------
    # Presentation
    # -------------------------------------------------------------------------

    def to_response(self, default_group_by: list[str] | None = None) -> CatalogResponse:
        """Describe the catalog for API clients."""
        return CatalogResponse(
            categories=[
                CatalogCategory(
                    category=category,
                    dimensions=[DimensionResponse.model_validate(d) for d in dimensions],
                )
                for category, dimensions in self.dimensions_by_category().items()
            ],
            aggregations=[AggregationResponse.model_validate(a) for a in self.aggregations],
            default_group_by=list(default_group_by or []),
        )


# =============================================================================
# Sales order catalog
# =============================================================================

DEFAULT_SALES_GROUP_BY = ["order_month"]
DEFAULT_SALES_MEASURES: list[tuple[str, Reducer]] = [
    ("total_amount", Reducer.SUM),
    ("order_number", Reducer.COUNT),
]


def default_sales_catalog() -> DimensionCatalog:
    """Build the catalog used by the sales-order pivot screens.

    Month, year, quarter, week, range, payment status, and warranty
    dimensions read fields added by ``default_sales_metrics()``.

    Returns:
        A new catalog with the default group-by and measures active.
    """
    basic = DimensionCategory.BASIC
    payment = DimensionCategory.PAYMENT
    delivery = DimensionCategory.DELIVERY
    financial = DimensionCategory.FINANCIAL
    advanced = DimensionCategory.ADVANCED

    dimensions = [
        Dimension(key="order_date", label="Order Date", value_type=ValueType.DATE, category=basic),
        Dimension(key="order_month", label="Order Month", category=basic),
        Dimension(key="order_year", label="Order Year", category=basic),
        Dimension(key="order_quarter", label="Order Quarter", category=basic),
        Dimension(key="order_week", label="Order Week", category=basic),
        Dimension(
            key="status", label="Order Status", value_type=ValueType.ENUMERATED, category=basic
        ),
        Dimension(
            key="order_type", label="Order Type", value_type=ValueType.ENUMERATED, category=basic
        ),
        Dimension(key="customer_name", label="Customer", category=basic),
        Dimension(key="cashier_name", label="Cashier", category=basic),
        Dimension(key="customer_source", label="Customer Source", category=basic),
        Dimension(key="store_name", label="Store", category=basic),
        Dimension(key="payment_method_1", label="Payment Method 1", category=payment),
        Dimension(key="payment_method_2", label="Payment Method 2", category=payment),
        Dimension(key="payment_method_3", label="Payment Method 3", category=payment),
        Dimension(
            key="payment_status",
            label="Payment Status",
            value_type=ValueType.ENUMERATED,
            category=payment,
        ),
        Dimension(
            key="walk_in_delivery",
            label="Delivery/Pickup",
            value_type=ValueType.ENUMERATED,
            category=delivery,
        ),
        Dimension(
            key="delivery_date", label="Delivery Date", value_type=ValueType.DATE, category=delivery
        ),
        Dimension(key="total_amount_range", label="Total Amount Range", category=financial),
        Dimension(key="gross_profit_range", label="Gross Profit Range", category=financial),
        Dimension(
            key="has_warranty",
            label="Extended Warranty",
            value_type=ValueType.BOOLEAN,
            category=advanced,
        ),
        Dimension(key="items_count_range", label="Items Count Range", category=advanced),
    ]

    currency = DisplayFormat.CURRENCY
    percent = DisplayFormat.PERCENT
    number = DisplayFormat.NUMBER

    aggregations = [
        AggregationSpec(
            source_field="total_amount", reducer=Reducer.SUM, label="Total Sales",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="total_amount", reducer=Reducer.AVERAGE, label="Average Order Value",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="total_amount", reducer=Reducer.MIN, label="Smallest Order",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="total_amount", reducer=Reducer.MAX, label="Largest Order",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="order_number", reducer=Reducer.COUNT, label="Order Count",
            display_format=number,
        ),
        AggregationSpec(
            source_field="items_count", reducer=Reducer.SUM, label="Total Items",
            display_format=number,
        ),
        AggregationSpec(
            source_field="items_count", reducer=Reducer.AVERAGE, label="Average Items per Order",
            display_format=number,
        ),
        AggregationSpec(
            source_field="gross_profit", reducer=Reducer.SUM, label="Total Gross Profit",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="gross_profit", reducer=Reducer.AVERAGE, label="Average Gross Profit",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="warranty_amount", reducer=Reducer.SUM, label="Total Warranty Amount",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="discount_amount", reducer=Reducer.SUM, label="Total Discounts",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="tax_total", reducer=Reducer.SUM, label="Total Tax",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="payment_amount_1", reducer=Reducer.SUM, label="Payment 1 Total",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="payment_amount_2", reducer=Reducer.SUM, label="Payment 2 Total",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="payment_amount_3", reducer=Reducer.SUM, label="Payment 3 Total",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="delivery_fee", reducer=Reducer.SUM, label="Total Delivery Fees",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="accessory_fee", reducer=Reducer.SUM, label="Total Accessory Fees",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="other_fee", reducer=Reducer.SUM, label="Total Other Fees",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="fees_total", reducer=Reducer.SUM, label="Total Fees",
            display_format=currency,
        ),
        AggregationSpec(
            source_field="effective_tax_rate", reducer=Reducer.AVERAGE,
            label="Average Effective Tax Rate", display_format=percent,
        ),
        AggregationSpec(
            source_field="paid_pct", reducer=Reducer.AVERAGE, label="Average Paid %",
            display_format=percent,
        ),
        AggregationSpec(
            source_field="warranty_share", reducer=Reducer.AVERAGE,
            label="Average Warranty Share", display_format=percent,
        ),
        AggregationSpec(
            source_field="age_days", reducer=Reducer.MAX, label="Oldest Open Balance (days)",
            display_format=number,
        ),
    ]

    catalog = DimensionCatalog(dimensions=dimensions, aggregations=aggregations)
    catalog.set_group_by(DEFAULT_SALES_GROUP_BY)
    catalog.set_measures(list(DEFAULT_SALES_MEASURES))

    logger.debug(
        "dimensions.catalog_built",
        dimension_count=len(dimensions),
        aggregation_count=len(aggregations),
    )
    return catalog
