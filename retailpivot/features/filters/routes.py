"""API routes for filter operator discovery."""

from fastapi import APIRouter

from retailpivot.features.dimensions.schemas import ValueType
from retailpivot.features.filters.schemas import (
    OperatorCatalogResponse,
    OperatorResponse,
    ValueTypeOperators,
)
from retailpivot.features.filters.service import FilterEngine

router = APIRouter(prefix="/filters", tags=["filters"])


@router.get(
    "/operators",
    response_model=OperatorCatalogResponse,
    summary="List filter operators per value type",
    description="""
Legal operators for each value type, with display labels.

Text comparisons are case-insensitive, enumerated comparisons are exact,
and date comparisons use day granularity. `is_empty` and `is_not_empty`
take no comparison value.
""",
)
async def list_operators() -> OperatorCatalogResponse:
    """Return the legal operators for every value type."""
    return OperatorCatalogResponse(
        value_types=[
            ValueTypeOperators(
                value_type=value_type,
                operators=[
                    OperatorResponse(
                        operator=operator,
                        label=label,
                        requires_value=FilterEngine.requires_value(operator),
                    )
                    for operator, label in FilterEngine.operators_for(value_type)
                ],
            )
            for value_type in ValueType
        ]
    )
