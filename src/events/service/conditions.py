"""Evaluation of field/operator/value conditions against submitted form data.

Conditions gate access item visibility and pricing rules. They come from organizer
configuration and are evaluated against attendee input, so evaluation never raises:
a malformed condition or an unknown operator simply does not match.
"""

import math
import typing as t
from collections.abc import Mapping, Sequence
from decimal import Decimal, InvalidOperation
from enum import StrEnum

from events.models import ConditionLogic

_MISSING: t.Any = object()


class ConditionOperator(StrEnum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IN = "in"
    NOT_IN = "not_in"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


def evaluate_conditions(
    conditions: Sequence[Mapping[str, t.Any]] | None,
    logic: str,
    form_data: Mapping[str, t.Any] | None,
) -> bool:
    """Evaluate a list of conditions with AND/OR logic.

    Args:
        conditions: Mappings with ``field_id``, ``operator`` and ``value`` keys. An empty
            or missing list always matches.
        logic: ``"and"`` (every condition must match) or ``"or"`` (any condition).
            Anything else is treated as ``"and"``.
        form_data: The attendee's flat field map.

    Returns:
        Whether the conditions are satisfied.
    """
    if not conditions:
        return True
    data: Mapping[str, t.Any] = form_data if isinstance(form_data, Mapping) else {}
    results = (evaluate_condition(condition, data) for condition in conditions)
    if str(logic).lower() == ConditionLogic.OR:
        return any(results)
    return all(results)


def evaluate_condition(condition: Mapping[str, t.Any], form_data: Mapping[str, t.Any]) -> bool:
    """Evaluate a single condition. A missing field behaves as an undefined value."""
    if not isinstance(condition, Mapping):
        return False
    field_id = condition.get("field_id")
    if not isinstance(field_id, str):
        return False
    try:
        operator = ConditionOperator(condition.get("operator"))
    except ValueError:
        return False
    expected = condition.get("value")
    actual = form_data.get(field_id, _MISSING)

    match operator:
        case ConditionOperator.EQUALS:
            return _strict_equals(actual, expected)
        case ConditionOperator.NOT_EQUALS:
            return not _strict_equals(actual, expected)
        case ConditionOperator.CONTAINS:
            return _contains(actual, expected)
        case ConditionOperator.NOT_CONTAINS:
            return not _contains(actual, expected)
        case ConditionOperator.GREATER_THAN:
            return _compare(actual, expected, lambda a, b: a > b)
        case ConditionOperator.LESS_THAN:
            return _compare(actual, expected, lambda a, b: a < b)
        case ConditionOperator.IN:
            return _is_in(actual, expected)
        case ConditionOperator.NOT_IN:
            return not _is_in(actual, expected)
        case ConditionOperator.IS_EMPTY:
            return _is_empty(actual)
        case ConditionOperator.IS_NOT_EMPTY:
            return not _is_empty(actual)
    return False


def _strict_equals(actual: t.Any, expected: t.Any) -> bool:
    # No coercion between types: "1" does not equal 1 and True does not equal 1.
    if actual is _MISSING:
        return False
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual is expected
    if _is_number(actual) and _is_number(expected):
        return bool(actual == expected)
    if type(actual) is not type(expected):
        return False
    return bool(actual == expected)


def _contains(actual: t.Any, expected: t.Any) -> bool:
    if actual is _MISSING or actual is None or expected is None:
        return False
    if isinstance(actual, list):
        return any(_as_text(item) == _as_text(expected) for item in actual)
    return _as_text(expected) in _as_text(actual)


def _is_in(actual: t.Any, expected: t.Any) -> bool:
    if actual is _MISSING or not isinstance(expected, list):
        return False
    options = {_as_text(option) for option in expected}
    if isinstance(actual, list):
        return any(_as_text(item) in options for item in actual)
    return _as_text(actual) in options


def _compare(actual: t.Any, expected: t.Any, op: t.Callable[[Decimal, Decimal], bool]) -> bool:
    left = _to_number(actual)
    right = _to_number(expected)
    if left is None or right is None:
        return False
    return op(left, right)


def _is_empty(value: t.Any) -> bool:
    if value is _MISSING or value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, list | dict):
        return len(value) == 0
    return False


def _is_number(value: t.Any) -> bool:
    return isinstance(value, int | float | Decimal) and not isinstance(value, bool)


def _to_number(value: t.Any) -> Decimal | None:
    if _is_number(value):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return Decimal(str(value))
    if isinstance(value, str) and value.strip():
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return None
        return number if number.is_finite() else None
    return None


def _as_text(value: t.Any) -> str:
    """Render a scalar the way it would appear in a submitted form."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if value is None:
        return ""
    return str(value)
