"""Unit tests for PivotTreeBuilder."""

from datetime import datetime

import pytest

from retailpivot.core.exceptions import (
    AggregationCoercionError,
    PivotBuildCancelledError,
    PivotLimitExceededError,
)
from retailpivot.features.dimensions.schemas import (
    AggregationSpec,
    Dimension,
    Reducer,
    ValueType,
)
from retailpivot.features.pivot.builder import PivotTreeBuilder, node_id_for_path
from retailpivot.features.pivot.view import iter_nodes


def leaves(roots):
    return [node for node in iter_nodes(roots) if node.is_leaf]


class TestScenarios:
    """Tests for the documented grouping scenarios."""

    def test_group_by_status(
        self, builder, scenario_records, status_dimension, total_sum, order_count
    ):
        """Two statuses give two top-level nodes with sum and count."""
        roots = builder.build(scenario_records, [status_dimension], [total_sum, order_count])

        assert [node.grouping_value for node in roots] == ["completed", "cancelled"]
        assert roots[0].aggregates == {"Total Sales": 150.0, "Order Count": 2.0}
        assert roots[1].aggregates == {"Total Sales": 20.0, "Order Count": 1.0}

    def test_missing_value_groups_as_unknown(self, builder, status_dimension, order_count):
        """A record without the grouping field lands under "Unknown"."""
        records = [{"status": "completed"}, {"total": 5}, {"status": ""}]
        result = builder.build_result(records, [status_dimension], [order_count])

        assert [node.grouping_value for node in result.roots] == ["completed", "Unknown"]
        assert result.roots[1].record_count == 2
        assert result.stats.unknown_count == 2

    def test_no_dimensions_gives_empty_forest(self, builder, scenario_records, total_sum):
        """Without dimensions there is nothing to group by."""
        assert builder.build(scenario_records, [], [total_sum]) == []


class TestPartition:
    """Tests for the partition and aggregate invariants."""

    def test_every_record_reaches_exactly_one_leaf(
        self, builder, regional_records, region_dimension, status_dimension, order_count
    ):
        """Leaf members partition the input with no loss or duplication."""
        roots = builder.build(
            regional_records, [region_dimension, status_dimension], [order_count]
        )
        members = [record for leaf in leaves(roots) for record in leaf.member_records]

        assert sorted(id(r) for r in members) == sorted(id(r) for r in regional_records)
        assert sum(leaf.aggregates["Order Count"] for leaf in leaves(roots)) == len(
            regional_records
        )

    def test_members_only_on_leaves(
        self, builder, regional_records, region_dimension, status_dimension, order_count
    ):
        """Inner nodes keep children, not records."""
        roots = builder.build(
            regional_records, [region_dimension, status_dimension], [order_count]
        )
        for node in iter_nodes(roots):
            if node.is_leaf:
                assert node.member_records and not node.children
            else:
                assert node.children and not node.member_records

    def test_parent_aggregates_cover_children(
        self, builder, regional_records, region_dimension, status_dimension, total_sum
    ):
        """A parent's sum equals the sum over its records."""
        roots = builder.build(regional_records, [region_dimension, status_dimension], [total_sum])
        north = roots[0]

        assert north.grouping_value == "North"
        assert north.aggregates["Total Sales"] == pytest.approx(170.0)
        assert [child.grouping_value for child in north.children] == ["completed", "pending"]
        assert north.children[0].aggregates["Total Sales"] == pytest.approx(130.0)

    def test_average_equals_sum_over_count(
        self,
        builder,
        regional_records,
        region_dimension,
        status_dimension,
        total_sum,
        order_count,
        total_average,
    ):
        """average == sum / count at every node."""
        roots = builder.build(
            regional_records,
            [region_dimension, status_dimension],
            [total_sum, order_count, total_average],
        )
        for node in iter_nodes(roots):
            expected = node.aggregates["Total Sales"] / node.aggregates["Order Count"]
            assert node.aggregates["Average Order Value"] == pytest.approx(expected)

    def test_min_and_max(self, builder, regional_records, region_dimension):
        """min/max start from infinities so the first value always wins."""
        specs = [
            AggregationSpec(source_field="total", reducer=Reducer.MIN, label="Smallest"),
            AggregationSpec(source_field="total", reducer=Reducer.MAX, label="Largest"),
        ]
        roots = builder.build(regional_records, [region_dimension], specs)

        assert roots[0].aggregates == {"Smallest": 10.0, "Largest": 120.0}

    def test_count_ignores_source_value(self, builder, status_dimension, order_count):
        """Counts add one per record even when the source field is junk."""
        records = [{"status": "a", "total": "n/a"}, {"status": "a"}]
        result = builder.build_result(records, [status_dimension], [order_count])

        assert result.roots[0].aggregates["Order Count"] == 2.0
        assert result.stats.coercion_count == 0


class TestCoercion:
    """Tests for the lenient and strict handling of non-numeric inputs."""

    def test_non_numeric_folds_as_zero(self, builder, status_dimension, total_sum):
        """Junk values count as 0 and are recorded in the stats."""
        records = [
            {"status": "a", "total": "50"},
            {"status": "a", "total": "n/a"},
            {"status": "a", "total": None},
        ]
        result = builder.build_result(records, [status_dimension], [total_sum])

        assert result.roots[0].aggregates["Total Sales"] == 50.0
        assert result.stats.coercion_count == 2
        assert result.stats.coerced_fields == {"Total Sales": 2}

    def test_strict_mode_raises(self, status_dimension, total_sum):
        """Strict builders reject non-numeric inputs."""
        builder = PivotTreeBuilder(strict=True, max_nodes=10)

        with pytest.raises(AggregationCoercionError) as exc_info:
            builder.build([{"status": "a", "total": "n/a"}], [status_dimension], [total_sum])

        assert exc_info.value.code == "COERCION_FALLBACK"
        assert exc_info.value.details["label"] == "Total Sales"

    def test_infinite_values_are_coerced(self, builder, status_dimension, total_sum):
        """Infinite and overflowing inputs fold as 0 instead of poisoning the sum."""
        records = [
            {"status": "a", "total": "inf"},
            {"status": "a", "total": "-inf"},
            {"status": "a", "total": "1e999"},
            {"status": "a", "total": 5},
        ]
        result = builder.build_result(records, [status_dimension], [total_sum])

        assert result.roots[0].aggregates["Total Sales"] == 5.0
        assert result.stats.coercion_count == 3

    def test_strict_mode_rejects_infinity(self, status_dimension, total_sum):
        """Strict builders treat infinity as non-numeric."""
        builder = PivotTreeBuilder(strict=True, max_nodes=10)

        with pytest.raises(AggregationCoercionError):
            builder.build([{"status": "a", "total": "inf"}], [status_dimension], [total_sum])


class TestGroupingValues:
    """Tests for how raw values become grouping values."""

    def test_dates_group_by_day(self, builder, order_count):
        """Datetimes and ISO strings on the same day share a group."""
        dimension = Dimension(key="order_date", label="Order Date", value_type=ValueType.DATE)
        records = [
            {"order_date": datetime(2024, 3, 5, 10, 0)},
            {"order_date": "2024-03-05T18:30:00"},
            {"order_date": "2024-03-06"},
        ]
        roots = builder.build(records, [dimension], [order_count])

        assert [node.grouping_value for node in roots] == ["2024-03-05", "2024-03-06"]
        assert roots[0].record_count == 2

    def test_booleans_group_as_lowercase(self, builder, order_count):
        """Booleans group as "true" and "false"."""
        dimension = Dimension(key="flag", label="Flag", value_type=ValueType.BOOLEAN)
        roots = builder.build([{"flag": True}, {"flag": False}], [dimension], [order_count])

        assert [node.grouping_value for node in roots] == ["true", "false"]

    def test_accessor_dimension(self, builder, order_count):
        """Typed accessors compute the grouping value."""
        dimension = Dimension(
            key="initial",
            label="Initial",
            accessor=lambda record: record["name"][0],
        )
        roots = builder.build(
            [{"name": "Ada"}, {"name": "Alan"}, {"name": "Grace"}], [dimension], [order_count]
        )

        assert [(n.grouping_value, n.record_count) for n in roots] == [("A", 2), ("G", 1)]


class TestNodeIds:
    """Tests for path-derived node ids."""

    def test_ids_are_stable_across_builds(
        self, builder, regional_records, region_dimension, status_dimension, order_count
    ):
        """The same grouping path yields the same id in every build."""
        dims = [region_dimension, status_dimension]
        first = [n.id for n in iter_nodes(builder.build(regional_records, dims, [order_count]))]
        second = [
            n.id for n in iter_nodes(builder.build(regional_records[:4], dims, [order_count]))
        ]

        assert set(second) <= set(first)

    def test_id_derives_from_path(self, builder, scenario_records, status_dimension, order_count):
        """Ids are the hash of the (key, value) path."""
        roots = builder.build(scenario_records, [status_dimension], [order_count])

        assert roots[0].id == node_id_for_path((("status", "completed"),))
        assert len(roots[0].id) == 16

    def test_same_value_at_different_paths_differs(self, builder, order_count):
        """A child never shares its parent's id."""
        dims = [Dimension(key="a", label="A"), Dimension(key="b", label="B")]
        roots = builder.build([{"a": "x", "b": "x"}], dims, [order_count])
        ids = [n.id for n in iter_nodes(roots)]

        assert len(set(ids)) == 2


class TestHardening:
    """Tests for the node cap and cooperative cancellation."""

    def test_node_cap(self, status_dimension, order_count):
        """Growing past max_nodes raises."""
        builder = PivotTreeBuilder(strict=False, max_nodes=2)
        records = [{"status": s} for s in ("a", "b", "c")]

        with pytest.raises(PivotLimitExceededError) as exc_info:
            builder.build(records, [status_dimension], [order_count])

        assert exc_info.value.details["max_nodes"] == 2

    def test_cancellation(self, builder, scenario_records, status_dimension, order_count):
        """should_cancel is checked before each record."""
        calls = []

        def should_cancel() -> bool:
            calls.append(1)
            return len(calls) > 2

        with pytest.raises(PivotBuildCancelledError) as exc_info:
            builder.build_result(
                scenario_records, [status_dimension], [order_count], should_cancel=should_cancel
            )

        assert exc_info.value.details["processed_records"] == 2
        assert exc_info.value.status_code == 409

    def test_stats(self, builder, regional_records, region_dimension, status_dimension):
        """Stats count nodes, leaves, and depth."""
        result = builder.build_result(regional_records, [region_dimension, status_dimension], [])

        assert result.stats.record_count == 6
        assert result.stats.depth == 2
        # North{completed, pending}, South{completed, Unknown}, Unknown{cancelled}
        assert result.stats.node_count == 8
        assert result.stats.leaf_count == 5
