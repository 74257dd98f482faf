"""FilterEngine: evaluate conjunctions of typed filter rules against records.

Evaluation of one complete rule against one record value:
1. is_empty / is_not_empty test the value against None and "".
2. Any other operator fails on a missing value, whatever the comparison value.
3. A value-requiring operator without a comparison value is skipped.
4. Both sides are parsed for the rule's value type and compared. A side
   that cannot be parsed fails the rule.

Malformed rules (operator illegal for the value type, or a missing
comparison value) are logged and skipped in lenient mode. In strict mode
they raise InvalidFilterRuleError when the rule set is compiled, before
any record is looked at.
"""

import operator as op
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from retailpivot.core.config import get_settings
from retailpivot.core.exceptions import InvalidFilterRuleError
from retailpivot.core.logging import get_logger
from retailpivot.features.dimensions.schemas import ValueType
from retailpivot.features.filters.schemas import (
    OPERATOR_LABELS,
    OPERATORS_BY_TYPE,
    VALUE_NOT_REQUIRED,
    FilterOperator,
    FilterRule,
)
from retailpivot.shared.records import is_missing, to_date, to_number

logger = get_logger(__name__)

T = TypeVar("T", bound=Mapping[str, Any])


# =============================================================================
# Value Parsing
# =============================================================================


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_folded_text(value: Any) -> str:
    return _as_text(value).casefold()


def _as_bool(value: Any) -> bool:
    """Interpret a value as a boolean; only "true" strings are true."""
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


@dataclass(frozen=True)
class _Comparator:
    """How one value type parses its operands and which operators it supports."""

    parse: Callable[[Any], Any]
    operations: Mapping[FilterOperator, Callable[[Any, Any], bool]]


_EQUALITY = {
    FilterOperator.IS: op.eq,
    FilterOperator.IS_NOT: op.ne,
}

_COMPARATORS: dict[ValueType, _Comparator] = {
    ValueType.TEXT: _Comparator(
        parse=_as_folded_text,
        operations={
            **_EQUALITY,
            FilterOperator.CONTAINS: lambda value, target: target in value,
            FilterOperator.NOT_CONTAINS: lambda value, target: target not in value,
            FilterOperator.STARTS_WITH: str.startswith,
            FilterOperator.ENDS_WITH: str.endswith,
        },
    ),
    ValueType.NUMBER: _Comparator(
        parse=to_number,
        operations={
            **_EQUALITY,
            FilterOperator.GREATER_THAN: op.gt,
            FilterOperator.GREATER_THAN_EQUAL: op.ge,
            FilterOperator.LESS_THAN: op.lt,
            FilterOperator.LESS_THAN_EQUAL: op.le,
        },
    ),
    ValueType.DATE: _Comparator(
        parse=to_date,
        operations={
            **_EQUALITY,
            FilterOperator.IS_AFTER: op.gt,
            FilterOperator.IS_ON_OR_AFTER: op.ge,
            FilterOperator.IS_BEFORE: op.lt,
            FilterOperator.IS_ON_OR_BEFORE: op.le,
        },
    ),
    ValueType.BOOLEAN: _Comparator(parse=_as_bool, operations=_EQUALITY),
    ValueType.ENUMERATED: _Comparator(parse=_as_text, operations=_EQUALITY),
}


# =============================================================================
# Engine
# =============================================================================


class FilterEngine:
    """Evaluates rule sets against records.

    Stateless apart from its strictness; one engine can serve any number of
    rule sets and record collections.
    """

    def __init__(self, strict: bool | None = None) -> None:
        """Initialize the engine.

        Args:
            strict: Raise on malformed rules instead of skipping them.
                Defaults to the ``pivot_strict_mode`` setting.
        """
        self.strict = get_settings().pivot_strict_mode if strict is None else strict

    def compile(self, rules: Iterable[FilterRule]) -> list[FilterRule]:
        """Select the rules that take part in evaluation.

        Incomplete rules are dropped silently. Malformed rules are dropped
        with a warning, or raise in strict mode.

        Args:
            rules: Rules as entered.

        Returns:
            Complete, well-formed rules in their original order.

        Raises:
            InvalidFilterRuleError: In strict mode, for the first malformed rule.
        """
        active: list[FilterRule] = []
        for rule in rules:
            if not rule.is_complete:
                continue
            try:
                rule.validate_rule()
            except InvalidFilterRuleError as exc:
                if self.strict:
                    raise
                logger.warning(
                    "filters.rule_ignored",
                    rule_id=rule.id,
                    dimension_key=rule.dimension_key,
                    reason=exc.message,
                )
                # The presence check still precedes every comparison.
                if rule.requires_value:
                    active.append(rule)
                continue
            active.append(rule)
        return active

    def evaluate(self, record: Mapping[str, Any], rule: FilterRule) -> bool:
        """Evaluate one complete rule against one record."""
        value = record.get(rule.dimension_key) if rule.dimension_key else None

        if rule.operator == FilterOperator.IS_EMPTY:
            return is_missing(value)
        if rule.operator == FilterOperator.IS_NOT_EMPTY:
            return not is_missing(value)

        # Missing data never satisfies a positive predicate.
        if is_missing(value):
            return False
        if not rule.has_value:
            return True

        comparator = _COMPARATORS[rule.value_type]
        compare = comparator.operations.get(rule.operator) if rule.operator else None
        if compare is None:
            return True

        left = comparator.parse(value)
        right = comparator.parse(rule.value)
        if left is None or right is None:
            return False
        return compare(left, right)

    def matches(self, record: Mapping[str, Any], rules: Iterable[FilterRule]) -> bool:
        """Check whether a record satisfies every complete rule.

        Args:
            record: Record to test.
            rules: Rule set; incomplete rules are vacuously true.

        Returns:
            True if every active rule passes.
        """
        return all(self.evaluate(record, rule) for rule in self.compile(rules))

    def apply(
        self, records: Sequence[T], rules: Iterable[FilterRule]
    ) -> list[T]:
        """Filter records, preserving their order.

        Args:
            records: Records to filter.
            rules: Rule set, compiled once for the whole batch.

        Returns:
            The records that satisfy every active rule.
        """
        active = self.compile(rules)
        if not active:
            return list(records)

        kept = [
            record for record in records if all(self.evaluate(record, rule) for rule in active)
        ]
        logger.debug(
            "filters.applied",
            rule_count=len(active),
            input_count=len(records),
            output_count=len(kept),
        )
        return kept

    @staticmethod
    def summary(rules: Sequence[FilterRule]) -> str:
        """Describe a rule set in one line.

        Returns:
            "No filters applied", "No active filters", "1 filter applied"
            or "N filters applied".
        """
        if not rules:
            return "No filters applied"
        active_count = sum(1 for rule in rules if rule.is_complete)
        if active_count == 0:
            return "No active filters"
        if active_count == 1:
            return "1 filter applied"
        return f"{active_count} filters applied"

    @staticmethod
    def operators_for(value_type: ValueType | str) -> list[tuple[FilterOperator, str]]:
        """List legal operators for a value type with their display labels."""
        return [
            (operator, OPERATOR_LABELS[operator])
            for operator in OPERATORS_BY_TYPE[ValueType(value_type)]
        ]

    @staticmethod
    def requires_value(operator: FilterOperator) -> bool:
        """Check whether an operator compares against a value."""
        return operator not in VALUE_NOT_REQUIRED
