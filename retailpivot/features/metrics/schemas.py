"""Pydantic schemas for per-record derived metrics.

Each metric config names the output field it writes and the input fields it
reads. Configs are frozen and discriminated by ``kind`` so a list of them
can be sent over the wire and validated in one pass.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MetricConfigBase(BaseModel):
    """Base configuration shared by every derived metric.

    Attributes:
        name: Output field written into the derived record.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Output field name")


class RateMetric(MetricConfigBase):
    """sum(numerator) / (sum(denominator) - sum(denominator_minus)).

    Attributes:
        numerator: Fields summed into the numerator.
        denominator: Fields summed into the denominator.
        denominator_minus: Fields subtracted from the denominator.
    """

    kind: Literal["rate"] = "rate"
    numerator: tuple[str, ...] = Field(..., min_length=1)
    denominator: tuple[str, ...] = Field(..., min_length=1)
    denominator_minus: tuple[str, ...] = ()


class ShareMetric(MetricConfigBase):
    """part / whole."""

    kind: Literal["share"] = "share"
    part: str
    whole: str


class AgeMetric(MetricConfigBase):
    """Whole days from a reference date to "now".

    Attributes:
        date_field: Reference date field.
        gate_field: Optional field that must exceed ``gate_threshold`` for
            the age to be computed; otherwise the age is 0.
        gate_threshold: Threshold applied to ``gate_field``.
    """

    kind: Literal["age"] = "age"
    date_field: str
    gate_field: str | None = None
    gate_threshold: float = 0.0


class TotalMetric(MetricConfigBase):
    """Sum of several fields."""

    kind: Literal["total"] = "total"
    source_fields: tuple[str, ...] = Field(..., min_length=1)


class DatePartMetric(MetricConfigBase):
    """Calendar label of a date field.

    Parts: ``day`` (YYYY-MM-DD), ``month`` (YYYY-MM), ``year`` (YYYY),
    ``quarter`` (YYYY-Qn) and ``week`` (YYYY-Wn, week of the month).
    """

    kind: Literal["date_part"] = "date_part"
    date_field: str
    part: Literal["day", "month", "year", "quarter", "week"]
    unknown_label: str = "Unknown"


class BucketMetric(MetricConfigBase):
    """Range label of a numeric field.

    A value falls into the first bucket whose upper bound it is below (or
    at, when ``inclusive``); values past the last bound get the last label.

    Attributes:
        source_field: Numeric input field.
        bounds: Ascending upper bounds.
        labels: One label per bound plus one for the overflow bucket.
        inclusive: Treat bounds as inclusive upper limits.
    """

    kind: Literal["bucket"] = "bucket"
    source_field: str
    bounds: tuple[float, ...] = Field(..., min_length=1)
    labels: tuple[str, ...]
    inclusive: bool = False

    @field_validator("bounds")
    @classmethod
    def validate_bounds_ascending(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        """Ensure bounds are strictly ascending."""
        if any(lower >= upper for lower, upper in zip(v, v[1:], strict=False)):
            raise ValueError("Bucket bounds must be strictly ascending")
        return v

    @model_validator(mode="after")
    def validate_label_count(self) -> "BucketMetric":
        """Ensure there is exactly one label per bucket."""
        if len(self.labels) != len(self.bounds) + 1:
            raise ValueError(
                f"Expected {len(self.bounds) + 1} labels for {len(self.bounds)} bounds, "
                f"got {len(self.labels)}"
            )
        return self


class FlagMetric(MetricConfigBase):
    """True when a numeric field exceeds a threshold."""

    kind: Literal["flag"] = "flag"
    source_field: str
    threshold: float = 0.0


class PaymentStatusMetric(MetricConfigBase):
    """Payment state ("paid", "partial" or "unpaid") from balance and paid amounts.

    Attributes:
        balance_field: Outstanding balance field.
        paid_field: Amount paid so far.
        tolerance: Balances at or below this count as settled.
    """

    kind: Literal["payment_status"] = "payment_status"
    balance_field: str
    paid_field: str
    tolerance: float = Field(default=0.005, ge=0)


MetricSpec = Annotated[
    RateMetric
    | ShareMetric
    | AgeMetric
    | TotalMetric
    | DatePartMetric
    | BucketMetric
    | FlagMetric
    | PaymentStatusMetric,
    Field(discriminator="kind"),
]
