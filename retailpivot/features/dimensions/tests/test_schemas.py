"""Unit tests for dimension catalog schemas."""

import pytest
from pydantic import ValidationError

from retailpivot.features.dimensions.schemas import (
    AggregationResponse,
    AggregationSpec,
    Dimension,
    DimensionResponse,
    Reducer,
    ValueType,
)


class TestDimension:
    """Tests for Dimension."""

    def test_defaults(self):
        """Value type and category default to text/basic."""
        dimension = Dimension(key="region", label="Region")
        assert dimension.value_type == ValueType.TEXT
        assert dimension.category.value == "basic"
        assert dimension.accessor is None

    def test_read_uses_key(self):
        """Without an accessor the key is looked up in the record."""
        dimension = Dimension(key="region", label="Region")
        assert dimension.read({"region": "North"}) == "North"
        assert dimension.read({}) is None

    def test_read_uses_accessor(self):
        """A typed accessor takes precedence over the key."""
        dimension = Dimension(
            key="region_upper",
            label="Region",
            accessor=lambda record: record["region"].upper(),
        )
        assert dimension.read({"region": "north"}) == "NORTH"

    def test_is_frozen(self):
        """Dimensions cannot be mutated after construction."""
        dimension = Dimension(key="region", label="Region")
        with pytest.raises(ValidationError):
            dimension.label = "Area"

    def test_rejects_empty_key(self):
        """An empty key is rejected."""
        with pytest.raises(ValidationError):
            Dimension(key="", label="Region")

    def test_accessor_excluded_from_dump(self):
        """The accessor never appears in serialized output."""
        dimension = Dimension(key="region", label="Region", accessor=lambda r: None)
        assert "accessor" not in dimension.model_dump()

    def test_response_from_dimension(self):
        """DimensionResponse is built from attributes."""
        dimension = Dimension(key="status", label="Status", value_type=ValueType.ENUMERATED)
        response = DimensionResponse.model_validate(dimension)
        assert response.key == "status"
        assert response.value_type == ValueType.ENUMERATED


class TestAggregationSpec:
    """Tests for AggregationSpec."""

    def test_identity(self):
        """Identity is the (source_field, reducer) pair."""
        spec = AggregationSpec(source_field="total", reducer=Reducer.SUM, label="Total")
        assert spec.identity == ("total", Reducer.SUM)

    def test_reducer_from_string(self):
        """Reducers are accepted as their string values."""
        spec = AggregationSpec(source_field="total", reducer="average", label="Avg")
        assert spec.reducer == Reducer.AVERAGE

    def test_rejects_unknown_reducer(self):
        """Unknown reducers are rejected."""
        with pytest.raises(ValidationError):
            AggregationSpec(source_field="total", reducer="median", label="Median")

    def test_read_uses_accessor(self):
        """A typed accessor computes the source value."""
        spec = AggregationSpec(
            source_field="net",
            reducer=Reducer.SUM,
            label="Net",
            accessor=lambda record: record["total"] - record["tax"],
        )
        assert spec.read({"total": 110, "tax": 10}) == 100

    def test_response_from_spec(self):
        """AggregationResponse is built from attributes."""
        spec = AggregationSpec(source_field="total", reducer=Reducer.MAX, label="Largest")
        response = AggregationResponse.model_validate(spec)
        assert response.reducer == Reducer.MAX
        assert response.display_format.value == "number"
