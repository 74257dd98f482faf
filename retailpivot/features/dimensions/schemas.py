"""Pydantic schemas for grouping dimensions and aggregation definitions.

Dimensions and aggregation specs are frozen so that a catalog handed to a
pivot build cannot change underneath it. Both may carry a typed accessor
callable; it is excluded from serialization and from the API surface.
"""

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

Accessor = Callable[[Mapping[str, Any]], Any]

# =============================================================================
# Enums
# =============================================================================


class ValueType(str, Enum):
    """Value type of a field; decides which filter operators are legal."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    ENUMERATED = "enumerated"


class Reducer(str, Enum):
    """Aggregation function folded over the records of a pivot node."""

    SUM = "sum"
    COUNT = "count"
    AVERAGE = "average"
    MIN = "min"
    MAX = "max"


class DisplayFormat(str, Enum):
    """How an aggregate value is rendered for presentation."""

    CURRENCY = "currency"
    PERCENT = "percent"
    NUMBER = "number"


class DimensionCategory(str, Enum):
    """Display grouping of dimensions in a picker. Carries no semantics."""

    BASIC = "basic"
    PAYMENT = "payment"
    DELIVERY = "delivery"
    FINANCIAL = "financial"
    ADVANCED = "advanced"


# =============================================================================
# Catalog Entries
# =============================================================================


class Dimension(BaseModel):
    """A field usable for grouping records.

    Attributes:
        key: Field name read from each record.
        label: Human-readable column label.
        value_type: Value type of the field.
        category: Display category.
        accessor: Optional callable reading the value from a record. When
            absent, ``record.get(key)`` is used and absent keys read as None.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    value_type: ValueType = ValueType.TEXT
    category: DimensionCategory = DimensionCategory.BASIC
    accessor: Accessor | None = Field(default=None, exclude=True, repr=False)

    def read(self, record: Mapping[str, Any]) -> Any:
        """Read this dimension's raw value from a record."""
        if self.accessor is not None:
            return self.accessor(record)
        return record.get(self.key)


class AggregationSpec(BaseModel):
    """A numeric summary computed per pivot node.

    Identity for de-duplication is the (source_field, reducer) pair; the
    label keys the aggregate in each node's ``aggregates`` map.

    Attributes:
        source_field: Field folded into the accumulator. Ignored by ``count``.
        reducer: Aggregation function.
        label: Column label and aggregate key.
        display_format: Presentation format.
        accessor: Optional callable reading the source value from a record.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    source_field: str = Field(..., min_length=1)
    reducer: Reducer
    label: str = Field(..., min_length=1)
    display_format: DisplayFormat = DisplayFormat.NUMBER
    accessor: Accessor | None = Field(default=None, exclude=True, repr=False)

    @property
    def identity(self) -> tuple[str, Reducer]:
        """De-duplication key."""
        return (self.source_field, self.reducer)

    def read(self, record: Mapping[str, Any]) -> Any:
        """Read the raw source value from a record."""
        if self.accessor is not None:
            return self.accessor(record)
        return record.get(self.source_field)


# =============================================================================
# API Schemas
# =============================================================================


class DimensionResponse(BaseModel):
    """Dimension as exposed to pivot clients."""

    model_config = ConfigDict(from_attributes=True)

    key: str = Field(..., description="Field name to pass in 'group_by'.")
    label: str = Field(..., description="Column label used in rows and CSV headers.")
    value_type: ValueType = Field(
        ...,
        description="Value type; see GET /filters/operators for the legal operators.",
    )
    category: DimensionCategory = Field(..., description="Picker category (display only).")


class AggregationResponse(BaseModel):
    """Aggregation spec as exposed to pivot clients."""

    model_config = ConfigDict(from_attributes=True)

    source_field: str = Field(..., description="Field to pass as 'field' in 'measures'.")
    reducer: Reducer = Field(..., description="Reducer to pass as 'reducer' in 'measures'.")
    label: str = Field(..., description="Aggregate key in each row's 'aggregates'.")
    display_format: DisplayFormat = Field(..., description="Formatting applied to the value.")


class CatalogCategory(BaseModel):
    """Dimensions of one display category."""

    category: DimensionCategory
    dimensions: list[DimensionResponse]


class CatalogResponse(BaseModel):
    """Full catalog: dimensions grouped by category, then aggregations."""

    categories: list[CatalogCategory] = Field(
        ...,
        description="Dimensions grouped by display category, in registration order.",
    )
    aggregations: list[AggregationResponse] = Field(
        ...,
        description="Selectable aggregations. Identity is (source_field, reducer).",
    )
    default_group_by: list[str] = Field(
        ...,
        description="Dimension keys grouped by when a query omits 'group_by'.",
    )
