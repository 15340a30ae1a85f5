import typing as t
from datetime import datetime
from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import EmailStr, Field, StringConstraints, field_validator

from common.schema import OneToOneFiftyString, StrippedString
from events.schema import AccessSelectionSchema, PriceBreakdown, SelectionPayloadMixin, SponsorshipCode
from registrations.models import Registration, RegistrationAccess, RegistrationAmendment

IdempotencyKey = t.Annotated[str, StringConstraints(min_length=1, max_length=255, strip_whitespace=True)]


class RegistrationCreateSchema(SelectionPayloadMixin):
    email: EmailStr
    first_name: OneToOneFiftyString
    last_name: OneToOneFiftyString
    phone: StrippedString | None = Field(None, max_length=50)
    form_data: dict[str, t.Any] = Field(default_factory=dict)
    sponsorship_code: SponsorshipCode | None = None
    idempotency_key: IdempotencyKey | None = None

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class RegistrationAmendSchema(Schema):
    """Partial edit of a registration.

    `form_data` is merged over the stored form data. `selections`, when given, is the
    complete new access selection; items absent from it are removed.
    """

    first_name: OneToOneFiftyString | None = None
    last_name: OneToOneFiftyString | None = None
    phone: StrippedString | None = Field(None, max_length=50)
    form_data: dict[str, t.Any] | None = None
    selections: list[AccessSelectionSchema] | None = Field(None, max_length=100)

    @field_validator("selections", mode="after")
    @classmethod
    def validate_unique_access(cls, v: list[AccessSelectionSchema] | None) -> list[AccessSelectionSchema] | None:
        """Each access item may be selected once."""
        if v is not None and len({s.access_id for s in v}) != len(v):
            raise ValueError("Each access item can only be selected once.")
        return v

    def quantities(self) -> dict[UUID, int] | None:
        if self.selections is None:
            return None
        return {selection.access_id: selection.quantity for selection in self.selections}


class RegistrationAccessSchema(ModelSchema):
    access_id: UUID
    access_name: str

    class Meta:
        model = RegistrationAccess
        fields = ["unit_price", "quantity", "subtotal"]

    @staticmethod
    def resolve_access_name(obj: RegistrationAccess) -> str:
        return obj.access.name


class RegistrationSchema(ModelSchema):
    event_id: UUID
    access_selections: list[RegistrationAccessSchema]

    class Meta:
        model = Registration
        fields = [
            "id",
            "email",
            "first_name",
            "last_name",
            "phone",
            "form_data",
            "payment_status",
            "total_amount",
            "paid_amount",
            "paid_at",
            "additional_amount_due",
            "currency",
            "price_breakdown",
            "base_amount",
            "discount_amount",
            "access_amount",
            "sponsorship_code",
            "sponsorship_amount",
            "edit_count",
            "last_edited_at",
            "created_at",
        ]

    @staticmethod
    def resolve_access_selections(obj: Registration) -> list[RegistrationAccess]:
        return list(obj.access_selections.all())


class AmendmentSchema(ModelSchema):
    class Meta:
        model = RegistrationAmendment
        fields = [
            "id",
            "sequence",
            "created_at",
            "change_type",
            "form_data_changes",
            "access_changes",
            "previous_total",
            "new_total",
            "previous_additional_due",
            "new_additional_due",
            "price_breakdown_snapshot",
        ]


class AmendmentResultSchema(Schema):
    registration: RegistrationSchema
    price_breakdown: PriceBreakdown
    amendment: AmendmentSchema
    additional_amount_due: int


class RegistrationEditInfoSchema(Schema):
    registration: RegistrationSchema
    is_paid: bool
    can_edit: bool
    can_remove_access: bool
    restrictions: list[str]


class PaymentConfirmSchema(Schema):
    paid_amount: int | None = Field(None, ge=0)
    paid_at: datetime | None = None
