"""Rule-based record filtering shared by the pivot and list views."""

from retailpivot.features.filters.routes import router
from retailpivot.features.filters.schemas import (
    OPERATORS_BY_TYPE,
    FilterOperator,
    FilterRule,
)
from retailpivot.features.filters.service import FilterEngine

__all__ = [
    "OPERATORS_BY_TYPE",
    "FilterEngine",
    "FilterOperator",
    "FilterRule",
    "router",
]
