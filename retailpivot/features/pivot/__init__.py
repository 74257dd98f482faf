"""Pivot engine: tree building, flattening, formatting, export, and the pivot API."""

from retailpivot.features.pivot.builder import PivotTreeBuilder, node_id_for_path
from retailpivot.features.pivot.export import export_csv
from retailpivot.features.pivot.formatting import format_aggregates, format_value
from retailpivot.features.pivot.routes import router
from retailpivot.features.pivot.schemas import (
    DetailRow,
    DisplayRow,
    GroupRow,
    PivotBuildResult,
    PivotNode,
)
from retailpivot.features.pivot.service import PivotView
from retailpivot.features.pivot.view import TreeView, flatten

__all__ = [
    "DetailRow",
    "DisplayRow",
    "GroupRow",
    "PivotBuildResult",
    "PivotNode",
    "PivotTreeBuilder",
    "PivotView",
    "TreeView",
    "export_csv",
    "flatten",
    "format_aggregates",
    "format_value",
    "node_id_for_path",
    "router",
]
