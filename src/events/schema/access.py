"""Access item, selection and grouping schemas."""

import typing as t
from datetime import datetime
from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import UUID4, AwareDatetime, Field, field_validator, model_validator

from common.schema import OneToTwoFiftyFiveString, StrippedString
from events.exceptions import SelectionError
from events.models import AccessItem, ConditionLogic

from .conditions import ConditionalSchemaMixin, ConditionSchema


class AccessItemSchema(ModelSchema):
    spots_remaining: int | None = None
    required_access_ids: list[UUID] = Field(default_factory=list)

    class Meta:
        model = AccessItem
        fields = [
            "id",
            "type",
            "name",
            "description",
            "location",
            "group_label",
            "starts_at",
            "ends_at",
            "price",
            "currency",
            "max_capacity",
            "registered_count",
            "sort_order",
        ]

    @staticmethod
    def resolve_required_access_ids(obj: AccessItem) -> list[UUID]:
        return [item.pk for item in obj.required_access.all()]


class AdminAccessItemSchema(AccessItemSchema):
    conditions: list[dict[str, t.Any]] = Field(default_factory=list)
    condition_logic: str
    available_from: datetime | None = None
    available_to: datetime | None = None
    active: bool


class _AccessWindowValidationMixin(Schema):
    starts_at: AwareDatetime | None = None
    ends_at: AwareDatetime | None = None
    available_from: AwareDatetime | None = None
    available_to: AwareDatetime | None = None

    @model_validator(mode="after")
    def validate_windows(self) -> t.Self:
        """Windows must not end before they start."""
        if self.starts_at and self.ends_at and self.ends_at < self.starts_at:
            raise ValueError("The session cannot end before it starts.")
        if self.available_from and self.available_to and self.available_to < self.available_from:
            raise ValueError("The availability window cannot end before it opens.")
        return self


class AccessItemCreateSchema(_AccessWindowValidationMixin, ConditionalSchemaMixin):
    type: AccessItem.AccessType = AccessItem.AccessType.OTHER
    name: OneToTwoFiftyFiveString
    description: StrippedString | None = None
    location: StrippedString | None = None
    group_label: StrippedString | None = Field(None, max_length=100)
    price: int = Field(0, ge=0)
    max_capacity: int | None = Field(None, ge=0)
    active: bool = True
    sort_order: int = 0
    required_access_ids: list[UUID4] = Field(default_factory=list)


class AccessItemUpdateSchema(_AccessWindowValidationMixin):
    type: AccessItem.AccessType | None = None
    name: OneToTwoFiftyFiveString | None = None
    description: StrippedString | None = None
    location: StrippedString | None = None
    group_label: StrippedString | None = Field(None, max_length=100)
    price: int | None = Field(None, ge=0)
    max_capacity: int | None = Field(None, ge=0)
    conditions: list[ConditionSchema] | None = Field(None, max_length=50)
    condition_logic: ConditionLogic | None = None
    active: bool | None = None
    sort_order: int | None = None
    required_access_ids: list[UUID4] | None = None


class PrerequisitesUpdateSchema(Schema):
    required_access_ids: list[UUID4]


class AccessSelectionSchema(Schema):
    access_id: UUID4
    quantity: int = Field(1, ge=1, le=100)


class SelectionPayloadMixin(Schema):
    selections: list[AccessSelectionSchema] = Field(default_factory=list, max_length=100)

    @field_validator("selections", mode="after")
    @classmethod
    def validate_unique_access(cls, v: list[AccessSelectionSchema]) -> list[AccessSelectionSchema]:
        """Each access item may be selected once; use the quantity for more seats."""
        ids = [selection.access_id for selection in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Each access item can only be selected once.")
        return v

    def quantities(self) -> dict[UUID, int]:
        return {selection.access_id: selection.quantity for selection in self.selections}


class ValidateSelectionsPayload(SelectionPayloadMixin):
    form_data: dict[str, t.Any] = Field(default_factory=dict)


class SelectionValidationSchema(Schema):
    valid: bool
    errors: list[SelectionError]


class GroupedAccessPayload(Schema):
    form_data: dict[str, t.Any] = Field(default_factory=dict)
    selected_ids: list[UUID4] = Field(default_factory=list)


class AccessSlotSchema(Schema):
    starts_at: datetime | None
    ends_at: datetime | None
    selection_type: str
    items: list[AccessItemSchema]


class AccessGroupSchema(Schema):
    type: AccessItem.AccessType
    label: str | None
    slots: list[AccessSlotSchema]
