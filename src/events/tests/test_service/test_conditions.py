"""Tests for the condition evaluator."""

import typing as t

import pytest

from events.service.conditions import evaluate_condition, evaluate_conditions


def cond(field_id: str, operator: str, value: t.Any = None) -> dict[str, t.Any]:
    return {"field_id": field_id, "operator": operator, "value": value}


class TestOperators:
    @pytest.mark.parametrize(
        "condition,form_data,expected",
        [
            (cond("role", "equals", "student"), {"role": "student"}, True),
            (cond("role", "equals", "student"), {"role": "Student"}, False),
            (cond("age", "equals", 30), {"age": "30"}, False),
            (cond("member", "equals", True), {"member": 1}, False),
            (cond("member", "equals", True), {"member": True}, True),
            (cond("age", "equals", 30), {"age": 30.0}, True),
            (cond("role", "not_equals", "student"), {"role": "speaker"}, True),
            (cond("role", "not_equals", "student"), {"role": "student"}, False),
            (cond("company", "contains", "Acme"), {"company": "Acme Corp"}, True),
            (cond("company", "contains", "acme"), {"company": "Acme Corp"}, False),
            (cond("topics", "contains", "python"), {"topics": ["go", "python"]}, True),
            (cond("company", "not_contains", "Acme"), {"company": "Initech"}, True),
            (cond("age", "greater_than", 25), {"age": 30}, True),
            (cond("age", "greater_than", 25), {"age": "30"}, True),
            (cond("age", "greater_than", 30), {"age": 30}, False),
            (cond("age", "less_than", 26), {"age": "25.5"}, True),
            (cond("age", "greater_than", 25), {"age": "thirty"}, False),
            (cond("country", "in", ["AT", "DE"]), {"country": "AT"}, True),
            (cond("country", "in", ["AT", "DE"]), {"country": "FR"}, False),
            (cond("year", "in", ["2024", "2025"]), {"year": 2024}, True),
            (cond("newsletter", "in", ["true"]), {"newsletter": True}, True),
            (cond("country", "not_in", ["AT", "DE"]), {"country": "FR"}, True),
            (cond("diet", "is_empty"), {"diet": ""}, True),
            (cond("diet", "is_empty"), {"diet": "   "}, True),
            (cond("diet", "is_empty"), {"diet": []}, True),
            (cond("diet", "is_empty"), {"diet": "vegan"}, False),
            (cond("diet", "is_not_empty"), {"diet": "vegan"}, True),
            (cond("diet", "is_not_empty"), {"diet": None}, False),
        ],
    )
    def test_operator(self, condition: dict[str, t.Any], form_data: dict[str, t.Any], expected: bool) -> None:
        assert evaluate_condition(condition, form_data) is expected


class TestMissingField:
    """A missing field compares as an undefined value."""

    @pytest.mark.parametrize(
        "operator,value,expected",
        [
            ("equals", "x", False),
            ("not_equals", "x", True),
            ("is_empty", None, True),
            ("is_not_empty", None, False),
            ("contains", "x", False),
            ("greater_than", 1, False),
            ("less_than", 1, False),
            ("in", ["x"], False),
            ("not_in", ["x"], True),
        ],
    )
    def test_missing_field(self, operator: str, value: t.Any, expected: bool) -> None:
        assert evaluate_condition(cond("absent", operator, value), {"other": "x"}) is expected


class TestMalformedConditions:
    """Malformed input never raises; it simply does not match."""

    @pytest.mark.parametrize(
        "condition",
        [
            cond("role", "matches_regex", ".*"),
            {"operator": "equals", "value": "x"},
            {"field_id": 42, "operator": "equals", "value": "x"},
            "role == student",
            cond("country", "in", "AT"),
        ],
    )
    def test_malformed_condition_is_false(self, condition: t.Any) -> None:
        assert evaluate_condition(condition, {"role": "x", "country": "AT"}) is False

    def test_non_mapping_form_data(self) -> None:
        assert evaluate_conditions([cond("role", "is_empty")], "and", None) is True  # type: ignore[arg-type]
        assert evaluate_conditions([cond("role", "equals", "x")], "and", ["x"]) is False  # type: ignore[arg-type]

    def test_nan_is_never_comparable(self) -> None:
        assert evaluate_condition(cond("age", "greater_than", 1), {"age": float("nan")}) is False
        assert evaluate_condition(cond("age", "less_than", 1), {"age": "NaN"}) is False


class TestLogic:
    conditions = [cond("role", "equals", "student"), cond("country", "equals", "AT")]

    def test_empty_conditions_always_match(self) -> None:
        assert evaluate_conditions([], "and", {}) is True
        assert evaluate_conditions(None, "or", {}) is True

    def test_and_requires_all(self) -> None:
        assert evaluate_conditions(self.conditions, "and", {"role": "student", "country": "AT"}) is True
        assert evaluate_conditions(self.conditions, "and", {"role": "student", "country": "DE"}) is False

    def test_or_requires_any(self) -> None:
        assert evaluate_conditions(self.conditions, "or", {"role": "speaker", "country": "AT"}) is True
        assert evaluate_conditions(self.conditions, "or", {"role": "speaker", "country": "DE"}) is False

    def test_logic_is_case_insensitive(self) -> None:
        assert evaluate_conditions(self.conditions, "OR", {"country": "AT"}) is True

    def test_unknown_logic_behaves_as_and(self) -> None:
        assert evaluate_conditions(self.conditions, "xor", {"country": "AT"}) is False

    def test_one_malformed_condition_fails_and_but_not_or(self) -> None:
        conditions = [cond("role", "bogus", "x"), cond("role", "equals", "student")]
        assert evaluate_conditions(conditions, "and", {"role": "student"}) is False
        assert evaluate_conditions(conditions, "or", {"role": "student"}) is True
