"""Pydantic schemas for typed filter rules.

A FilterRule is one predicate over one record field. A rule set is the
conjunction of its complete rules; rules missing a dimension key or an
operator are incomplete and match everything.
"""

import uuid
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from retailpivot.core.exceptions import InvalidFilterRuleError
from retailpivot.features.dimensions.schemas import ValueType

FilterValue = str | bool | int | float | datetime | date | None


class FilterOperator(str, Enum):
    """Comparison operator of a filter rule.

    Which operators are legal depends on the rule's value type; see
    ``OPERATORS_BY_TYPE``.
    """

    IS = "is"
    IS_NOT = "is_not"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "greater_than"
    GREATER_THAN_EQUAL = "greater_than_equal"
    LESS_THAN = "less_than"
    LESS_THAN_EQUAL = "less_than_equal"
    IS_AFTER = "is_after"
    IS_ON_OR_AFTER = "is_on_or_after"
    IS_BEFORE = "is_before"
    IS_ON_OR_BEFORE = "is_on_or_before"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


OPERATOR_LABELS: dict[FilterOperator, str] = {
    FilterOperator.IS: "is",
    FilterOperator.IS_NOT: "is not",
    FilterOperator.CONTAINS: "contains",
    FilterOperator.NOT_CONTAINS: "does not contain",
    FilterOperator.STARTS_WITH: "starts with",
    FilterOperator.ENDS_WITH: "ends with",
    FilterOperator.GREATER_THAN: "is greater than",
    FilterOperator.GREATER_THAN_EQUAL: "is greater than or equal",
    FilterOperator.LESS_THAN: "is less than",
    FilterOperator.LESS_THAN_EQUAL: "is less than or equal",
    FilterOperator.IS_AFTER: "is after",
    FilterOperator.IS_ON_OR_AFTER: "is on or after",
    FilterOperator.IS_BEFORE: "is before",
    FilterOperator.IS_ON_OR_BEFORE: "is on or before",
    FilterOperator.IS_EMPTY: "is empty",
    FilterOperator.IS_NOT_EMPTY: "is not empty",
}

# Operators that test presence only and take no comparison value.
VALUE_NOT_REQUIRED = frozenset({FilterOperator.IS_EMPTY, FilterOperator.IS_NOT_EMPTY})

OPERATORS_BY_TYPE: dict[ValueType, tuple[FilterOperator, ...]] = {
    ValueType.TEXT: (
        FilterOperator.IS,
        FilterOperator.IS_NOT,
        FilterOperator.CONTAINS,
        FilterOperator.NOT_CONTAINS,
        FilterOperator.STARTS_WITH,
        FilterOperator.ENDS_WITH,
        FilterOperator.IS_EMPTY,
        FilterOperator.IS_NOT_EMPTY,
    ),
    ValueType.NUMBER: (
        FilterOperator.IS,
        FilterOperator.IS_NOT,
        FilterOperator.GREATER_THAN,
        FilterOperator.GREATER_THAN_EQUAL,
        FilterOperator.LESS_THAN,
        FilterOperator.LESS_THAN_EQUAL,
        FilterOperator.IS_EMPTY,
        FilterOperator.IS_NOT_EMPTY,
    ),
    ValueType.DATE: (
        FilterOperator.IS,
        FilterOperator.IS_NOT,
        FilterOperator.IS_AFTER,
        FilterOperator.IS_ON_OR_AFTER,
        FilterOperator.IS_BEFORE,
        FilterOperator.IS_ON_OR_BEFORE,
        FilterOperator.IS_EMPTY,
        FilterOperator.IS_NOT_EMPTY,
    ),
    ValueType.BOOLEAN: (
        FilterOperator.IS,
        FilterOperator.IS_NOT,
    ),
    ValueType.ENUMERATED: (
        FilterOperator.IS,
        FilterOperator.IS_NOT,
        FilterOperator.IS_EMPTY,
        FilterOperator.IS_NOT_EMPTY,
    ),
}


class FilterRule(BaseModel):
    """One typed predicate over a record field.

    Unknown operator names are rejected when the rule is constructed. An
    operator that exists but is illegal for ``value_type``, or a
    value-requiring operator without a value, is reported by
    ``validate_rule()``; how that is handled is up to the FilterEngine.

    Attributes:
        id: Client-side identifier, used only to address the rule.
        dimension_key: Record field the rule reads.
        operator: Comparison operator.
        value: Comparison value. Ignored by is_empty/is_not_empty.
        value_type: Value type the record field is compared as.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    dimension_key: str | None = Field(
        default=None,
        description="Record field to test. Rules without one match every record.",
    )
    operator: FilterOperator | None = Field(
        default=None,
        description="Comparison operator. Rules without one match every record.",
    )
    value: FilterValue = Field(
        default=None,
        description="Comparison value; not used by is_empty / is_not_empty.",
    )
    value_type: ValueType = Field(
        default=ValueType.TEXT,
        description="How the record value is compared.",
    )

    @property
    def is_complete(self) -> bool:
        """True when both a dimension key and an operator are set."""
        return bool(self.dimension_key) and self.operator is not None

    @property
    def requires_value(self) -> bool:
        """True when the operator compares against ``value``."""
        return self.operator is not None and self.operator not in VALUE_NOT_REQUIRED

    @property
    def has_value(self) -> bool:
        """True when a non-empty comparison value is set."""
        return self.value is not None and self.value != ""

    def validate_rule(self) -> None:
        """Check the operator against the value type and the value's presence.

        Incomplete rules are never invalid; they are simply inactive.

        Raises:
            InvalidFilterRuleError: If the operator is illegal for the value
                type or a value-requiring operator has no value.
        """
        operator = self.operator
        if operator is None or not self.dimension_key:
            return
        allowed = OPERATORS_BY_TYPE[self.value_type]
        if operator not in allowed:
            raise InvalidFilterRuleError(
                f"Operator '{operator.value}' is not valid for {self.value_type.value} fields",
                details={
                    "rule_id": self.id,
                    "operator": operator.value,
                    "value_type": self.value_type.value,
                    "allowed": [op.value for op in allowed],
                },
            )
        if self.requires_value and not self.has_value:
            raise InvalidFilterRuleError(
                f"Operator '{operator.value}' requires a comparison value",
                details={"rule_id": self.id, "operator": operator.value},
            )


# =============================================================================
# API Schemas
# =============================================================================


class OperatorResponse(BaseModel):
    """One operator as offered to clients."""

    operator: FilterOperator
    label: str = Field(..., description="Display label, e.g. 'does not contain'.")
    requires_value: bool = Field(..., description="Whether a comparison value is needed.")


class ValueTypeOperators(BaseModel):
    """Legal operators for one value type."""

    value_type: ValueType
    operators: list[OperatorResponse]


class OperatorCatalogResponse(BaseModel):
    """Legal operators for every value type."""

    value_types: list[ValueTypeOperators]
