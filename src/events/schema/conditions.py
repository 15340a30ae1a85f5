import typing as t

from ninja import Schema
from pydantic import Field, StringConstraints, model_validator

from events.models import ConditionLogic
from events.service.conditions import ConditionOperator

FieldId = t.Annotated[str, StringConstraints(min_length=1, max_length=100, strip_whitespace=True)]

_LIST_OPERATORS = {ConditionOperator.IN, ConditionOperator.NOT_IN}
_VALUELESS_OPERATORS = {ConditionOperator.IS_EMPTY, ConditionOperator.IS_NOT_EMPTY}


class ConditionSchema(Schema):
    field_id: FieldId
    operator: ConditionOperator
    value: str | int | float | bool | list[str | int | float | bool] | None = None

    @model_validator(mode="after")
    def validate_value_shape(self) -> t.Self:
        """List operators need a list; the others need a scalar."""
        if self.operator in _LIST_OPERATORS and not isinstance(self.value, list):
            raise ValueError(f"Operator '{self.operator}' requires a list value.")
        if self.operator not in _LIST_OPERATORS and isinstance(self.value, list):
            raise ValueError(f"Operator '{self.operator}' does not accept a list value.")
        if self.operator not in _VALUELESS_OPERATORS and self.value is None:
            raise ValueError(f"Operator '{self.operator}' requires a value.")
        return self


class ConditionalSchemaMixin(Schema):
    conditions: list[ConditionSchema] = Field(default_factory=list, max_length=50)
    condition_logic: ConditionLogic = ConditionLogic.AND

    def dump_conditions(self) -> list[dict[str, t.Any]]:
        return [condition.model_dump(mode="json") for condition in self.conditions]
