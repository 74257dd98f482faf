"""PivotTreeBuilder: fold records into a grouped forest with running aggregates.

For each record the builder walks the ordered dimensions, finds or creates
the node for the (dimension, value) path at every level, and folds the
record into every aggregate of every node on that path. Leaves keep their
member records. Siblings appear in first-seen order.

Missing grouping values group under the unknown label. Non-numeric
aggregation inputs fold as 0 and are counted in the build stats; strict
mode raises AggregationCoercionError instead.
"""

import hashlib
import json
import math
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, TypeAlias

from retailpivot.core.config import get_settings
from retailpivot.core.exceptions import (
    AggregationCoercionError,
    PivotBuildCancelledError,
    PivotLimitExceededError,
)
from retailpivot.core.logging import get_logger
from retailpivot.features.dimensions.schemas import (
    AggregationSpec,
    Dimension,
    Reducer,
    ValueType,
)
from retailpivot.features.pivot.schemas import PivotBuildResult, PivotBuildStats, PivotNode
from retailpivot.shared.records import is_missing, to_date, to_number

logger = get_logger(__name__)

GroupingPath: TypeAlias = tuple[tuple[str, str], ...]


def node_id_for_path(path: GroupingPath, length: int = 16) -> str:
    """Derive a node id from its root-to-node path.

    The same path yields the same id in every build, so expansion state can
    be carried across rebuilds.

    Args:
        path: (dimension key, grouping value) pairs, outermost first.
        length: Hex digits kept from the SHA-256 digest.

    Returns:
        Hex node id.
    """
    payload = json.dumps([list(step) for step in path], ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(payload.encode()).hexdigest()[:length]


@dataclass
class _Accumulator:
    """Running state of one aggregation on one node."""

    reducer: Reducer
    total: float = 0.0
    count: int = 0
    extreme: float = 0.0

    def __post_init__(self) -> None:
        if self.reducer == Reducer.MIN:
            self.extreme = math.inf
        elif self.reducer == Reducer.MAX:
            self.extreme = -math.inf

    def fold(self, value: float) -> float:
        """Fold one record's value and return the updated aggregate."""
        self.count += 1
        match self.reducer:
            case Reducer.COUNT:
                return float(self.count)
            case Reducer.SUM:
                self.total += value
                return self.total
            case Reducer.AVERAGE:
                self.total += value
                return self.total / self.count
            case Reducer.MIN:
                self.extreme = min(self.extreme, value)
                return self.extreme
            case Reducer.MAX:
                self.extreme = max(self.extreme, value)
                return self.extreme


class PivotTreeBuilder:
    """Builds pivot forests from flat records.

    A builder holds only configuration; every build starts from scratch.

    Example:
        >>> builder = PivotTreeBuilder()
        >>> roots = builder.build(records, [status], [total_sum, order_count])
        >>> [(n.grouping_value, n.aggregates) for n in roots]
    """

    def __init__(
        self,
        strict: bool | None = None,
        max_nodes: int | None = None,
        unknown_label: str | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            strict: Raise on non-numeric aggregation inputs instead of
                folding them as 0. Defaults to ``pivot_strict_mode``.
            max_nodes: Node cap per build. Defaults to ``pivot_max_nodes``.
            unknown_label: Grouping value for missing fields. Defaults to
                ``pivot_unknown_label``.
        """
        settings = get_settings()
        self.strict = settings.pivot_strict_mode if strict is None else strict
        self.max_nodes = settings.pivot_max_nodes if max_nodes is None else max_nodes
        self.unknown_label = unknown_label or settings.pivot_unknown_label

    def build(
        self,
        records: Sequence[Mapping[str, Any]],
        dimensions: Sequence[Dimension],
        aggregations: Sequence[AggregationSpec],
    ) -> list[PivotNode]:
        """Build a forest and return its top-level nodes."""
        return self.build_result(records, dimensions, aggregations).roots

    def build_result(
        self,
        records: Sequence[Mapping[str, Any]],
        dimensions: Sequence[Dimension],
        aggregations: Sequence[AggregationSpec],
        should_cancel: Callable[[], bool] | None = None,
    ) -> PivotBuildResult:
        """Build a forest and collect build statistics.

        Args:
            records: Records to group, already filtered.
            dimensions: Grouping dimensions, outermost first. An empty list
                yields an empty forest.
            aggregations: Aggregations computed on every node.
            should_cancel: Checked before each record is folded.

        Returns:
            Top-level nodes plus build statistics.

        Raises:
            AggregationCoercionError: In strict mode, on a non-numeric input.
            PivotLimitExceededError: If the forest grows past ``max_nodes``.
            PivotBuildCancelledError: If ``should_cancel`` returns True.
        """
        start_time = time.perf_counter()
        stats = PivotBuildStats(record_count=len(records), depth=len(dimensions))
        roots: list[PivotNode] = []

        if not dimensions:
            logger.debug("pivot.build_skipped", reason="no_dimensions", record_count=len(records))
            return PivotBuildResult(roots=roots, stats=stats)

        nodes: dict[GroupingPath, PivotNode] = {}
        accumulators: dict[str, list[_Accumulator]] = {}
        paths_by_id: dict[str, GroupingPath] = {}
        last_level = len(dimensions) - 1

        for position, record in enumerate(records):
            if should_cancel is not None and should_cancel():
                logger.warning(
                    "pivot.build_cancelled",
                    processed_records=position,
                    record_count=len(records),
                )
                raise PivotBuildCancelledError(
                    details={"processed_records": position, "record_count": len(records)}
                )

            values = self._measure_values(record, aggregations, stats)
            path: GroupingPath = ()
            siblings = roots

            for level, dimension in enumerate(dimensions):
                path = (*path, (dimension.key, self._grouping_value(dimension, record, stats)))
                node = nodes.get(path)
                if node is None:
                    node = PivotNode(
                        id=self._assign_id(path, paths_by_id),
                        level=level,
                        grouping_key=dimension.key,
                        grouping_value=path[-1][1],
                        is_leaf=level == last_level,
                    )
                    nodes[path] = node
                    siblings.append(node)
                    accumulators[node.id] = [_Accumulator(spec.reducer) for spec in aggregations]
                    stats.node_count += 1
                    stats.leaf_count += int(node.is_leaf)
                    if stats.node_count > self.max_nodes:
                        raise PivotLimitExceededError(
                            f"Pivot exceeded {self.max_nodes} nodes",
                            details={
                                "max_nodes": self.max_nodes,
                                "processed_records": position,
                                "dimensions": [d.key for d in dimensions],
                            },
                        )

                node.record_count += 1
                for spec, accumulator, value in zip(
                    aggregations, accumulators[node.id], values, strict=True
                ):
                    node.aggregates[spec.label] = accumulator.fold(value)
                if node.is_leaf:
                    node.member_records.append(record)
                siblings = node.children

        stats.duration_ms = (time.perf_counter() - start_time) * 1000

        if stats.coercion_count:
            logger.warning(
                "pivot.coercion_fallback",
                coercion_count=stats.coercion_count,
                coerced_fields=stats.coerced_fields,
            )
        logger.info(
            "pivot.build_completed",
            record_count=stats.record_count,
            node_count=stats.node_count,
            leaf_count=stats.leaf_count,
            depth=stats.depth,
            unknown_count=stats.unknown_count,
            duration_ms=stats.duration_ms,
        )
        return PivotBuildResult(roots=roots, stats=stats)

    def _grouping_value(
        self, dimension: Dimension, record: Mapping[str, Any], stats: PivotBuildStats
    ) -> str:
        raw = dimension.read(record)
        if is_missing(raw):
            stats.unknown_count += 1
            return self.unknown_label
        if isinstance(raw, bool):
            return "true" if raw else "false"
        if isinstance(raw, datetime):
            return raw.date().isoformat()
        if isinstance(raw, date):
            return raw.isoformat()
        if dimension.value_type == ValueType.DATE:
            day = to_date(raw)
            if day is not None:
                return day.isoformat()
        return str(raw)

    def _measure_values(
        self,
        record: Mapping[str, Any],
        aggregations: Sequence[AggregationSpec],
        stats: PivotBuildStats,
    ) -> list[float]:
        """Read each aggregation's numeric input once per record."""
        values: list[float] = []
        for spec in aggregations:
            if spec.reducer == Reducer.COUNT:
                values.append(1.0)
                continue
            raw = spec.read(record)
            number = to_number(raw)
            if number is None:
                if self.strict:
                    raise AggregationCoercionError(
                        f"Non-numeric value for aggregation '{spec.label}'",
                        details={
                            "source_field": spec.source_field,
                            "label": spec.label,
                            "value": repr(raw),
                        },
                    )
                stats.coercion_count += 1
                stats.coerced_fields[spec.label] = stats.coerced_fields.get(spec.label, 0) + 1
                number = 0.0
            values.append(number)
        return values

    @staticmethod
    def _assign_id(path: GroupingPath, paths_by_id: dict[str, GroupingPath]) -> str:
        """Hash a path to a node id, widening the id on a collision."""
        node_id = node_id_for_path(path)
        if node_id in paths_by_id and paths_by_id[node_id] != path:
            node_id = node_id_for_path(path, length=64)
        paths_by_id[node_id] = path
        return node_id
