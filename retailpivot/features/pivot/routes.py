"""API routes for pivot queries and CSV export."""

import time

from fastapi import APIRouter, Response

from retailpivot.core.logging import get_logger
from retailpivot.features.pivot.schemas import (
    ExportRequest,
    PivotQueryRequest,
    PivotQueryResponse,
)
from retailpivot.features.pivot.service import to_query_response, view_from_request

logger = get_logger(__name__)

router = APIRouter(prefix="/pivot", tags=["pivot"])


@router.post(
    "/query",
    response_model=PivotQueryResponse,
    summary="Group, aggregate, and flatten records",
    description="""
Run the pivot pipeline over the posted records.

**Pipeline:**
1. Derive sales metrics (`derive_metrics=true`): order month/quarter/week,
   amount/profit/item ranges, payment status, rates and shares.
2. Filter with `filters` (AND of all complete rules).
3. Group by `group_by`, outermost first; missing values group as "Unknown".
4. Aggregate `measures` on every group.
5. Flatten with `expanded_ids` plus `expand` (none, first_level, all).

**Node ids** are derived from the grouping path, so ids returned by one
query can be passed back as `expanded_ids` after the filters change.

Requests with more records than the configured maximum are rejected with 400.
""",
)
async def query_pivot(request: PivotQueryRequest) -> PivotQueryResponse:
    """Build a pivot and return its visible rows.

    Args:
        request: Records, grouping, measures, filters, and expansion.

    Returns:
        Flattened rows with raw and formatted aggregates.
    """
    start_time = time.perf_counter()

    logger.info(
        "pivot.request_received",
        record_count=len(request.records),
        group_by=request.group_by,
        filter_count=len(request.filters),
    )

    response = to_query_response(view_from_request(request))

    logger.info(
        "pivot.request_completed",
        row_count=len(response.rows),
        filtered_records=response.filtered_records,
        duration_ms=(time.perf_counter() - start_time) * 1000,
    )
    return response


@router.post(
    "/export",
    response_class=Response,
    summary="Export a pivot as CSV",
    description="""
Build the pivot like `POST /pivot/query` and return the fully expanded
group hierarchy as CSV (`text/csv`).

Set `include_details=true` to add one row per record below each leaf group.
With exactly one grouping dimension, Order #, Customer, and Status columns
are added for those detail rows. All fields are double-quoted.
""",
    responses={200: {"content": {"text/csv": {}}}},
)
async def export_pivot(request: ExportRequest) -> Response:
    """Build a pivot and return it as CSV.

    Args:
        request: Query plus ``include_details``.

    Returns:
        CSV attachment.
    """
    view = view_from_request(request)
    content = view.export_csv(include_details=request.include_details)

    logger.info(
        "pivot.export_completed",
        record_count=len(request.records),
        include_details=request.include_details,
        byte_count=len(content.encode()),
    )
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="pivot-export.csv"'},
    )
