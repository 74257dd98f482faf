"""API routes for dimension and aggregation discovery.

Clients call ``GET /dimensions`` to learn which keys they may pass as
``group_by`` and which (field, reducer) pairs they may pass as ``measures``
to ``POST /pivot/query``.
"""

from fastapi import APIRouter

from retailpivot.core.logging import get_logger
from retailpivot.features.dimensions.schemas import CatalogResponse
from retailpivot.features.dimensions.service import default_sales_catalog

logger = get_logger(__name__)

router = APIRouter(prefix="/dimensions", tags=["dimensions"])


@router.get(
    "",
    response_model=CatalogResponse,
    summary="List grouping dimensions and aggregations",
    description="""
Describe the sales-order pivot catalog.

**Dimensions** are grouped by display category (basic, payment, delivery,
financial, advanced). Pass a dimension `key` in `group_by`.

**Aggregations** are identified by `(source_field, reducer)`. Pass them in
`measures` as `{"field": ..., "reducer": ...}`.

Month, quarter, week, and range dimensions are computed when the query sets
`derive_metrics: true`.
""",
)
async def list_dimensions() -> CatalogResponse:
    """Return the sales-order catalog.

    Returns:
        Dimensions by category, aggregations, and the default grouping.
    """
    catalog = default_sales_catalog()
    response = catalog.to_response(default_group_by=catalog.group_by)

    logger.info(
        "dimensions.catalog_listed",
        category_count=len(response.categories),
        aggregation_count=len(response.aggregations),
    )
    return response
