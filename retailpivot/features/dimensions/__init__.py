"""Dimension catalog: grouping dimensions and aggregation specs.

Owns the registry of what a pivot can group by and what it can summarize,
plus the user's active "group by" and "measures" selection.
"""

from retailpivot.features.dimensions.routes import router
from retailpivot.features.dimensions.schemas import (
    AggregationSpec,
    CatalogResponse,
    Dimension,
    DimensionCategory,
    DisplayFormat,
    Reducer,
    ValueType,
)
from retailpivot.features.dimensions.service import DimensionCatalog, default_sales_catalog

__all__ = [
    "AggregationSpec",
    "CatalogResponse",
    "Dimension",
    "DimensionCatalog",
    "DimensionCategory",
    "DisplayFormat",
    "Reducer",
    "ValueType",
    "default_sales_catalog",
    "router",
]
