"""Pricing rule, sponsorship and price breakdown schemas."""

import typing as t
from datetime import datetime
from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, StringConstraints, model_validator

from common.schema import OneToTwoFiftyFiveString, StrippedString
from events.models import ConditionLogic, PricingRule, Sponsorship

from .access import SelectionPayloadMixin
from .conditions import ConditionalSchemaMixin, ConditionSchema

SponsorshipCode = t.Annotated[str, StringConstraints(min_length=1, max_length=32, strip_whitespace=True, to_upper=True)]


class PricingRuleSchema(ModelSchema):
    conditions: list[dict[str, t.Any]] = Field(default_factory=list)

    class Meta:
        model = PricingRule
        fields = [
            "id",
            "name",
            "description",
            "rule_type",
            "priority",
            "price_type",
            "price_value",
            "condition_logic",
            "valid_from",
            "valid_to",
            "active",
            "created_at",
        ]


class _RuleValidationMixin(Schema):
    valid_from: AwareDatetime | None = None
    valid_to: AwareDatetime | None = None

    @model_validator(mode="after")
    def validate_window(self) -> t.Self:
        """The validity window must not end before it starts."""
        if self.valid_from and self.valid_to and self.valid_to < self.valid_from:
            raise ValueError("The rule cannot expire before it starts.")
        return self


class PricingRuleCreateSchema(_RuleValidationMixin, ConditionalSchemaMixin):
    name: OneToTwoFiftyFiveString
    description: StrippedString | None = None
    rule_type: PricingRule.RuleType = PricingRule.RuleType.BASE_PRICE
    priority: int = 0
    price_type: PricingRule.PriceType = PricingRule.PriceType.FIXED
    price_value: int
    active: bool = True

    @model_validator(mode="after")
    def validate_base_price_not_negative(self) -> t.Self:
        """A base price rule cannot produce a negative price."""
        if self.rule_type == PricingRule.RuleType.BASE_PRICE and self.price_value < 0:
            raise ValueError("A base price cannot be negative.")
        return self


class PricingRuleUpdateSchema(_RuleValidationMixin):
    name: OneToTwoFiftyFiveString | None = None
    description: StrippedString | None = None
    priority: int | None = None
    price_type: PricingRule.PriceType | None = None
    price_value: int | None = None
    conditions: list[ConditionSchema] | None = Field(None, max_length=50)
    condition_logic: ConditionLogic | None = None
    active: bool | None = None


class SponsorshipSchema(ModelSchema):
    class Meta:
        model = Sponsorship
        fields = ["id", "code", "sponsor_name", "amount", "status", "valid_from", "valid_to"]


class SponsorshipCreateSchema(_RuleValidationMixin):
    sponsor_name: OneToTwoFiftyFiveString
    amount: int = Field(ge=1)
    code: SponsorshipCode | None = None


class PriceQuotePayload(SelectionPayloadMixin):
    form_data: dict[str, t.Any] = Field(default_factory=dict)
    sponsorship_codes: list[SponsorshipCode] = Field(default_factory=list, max_length=10)


class AppliedRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_id: UUID
    name: str
    rule_type: PricingRule.RuleType
    effect: int


class AccessLineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_id: UUID
    name: str
    unit_price: int
    quantity: int
    subtotal: int


class SponsorshipLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    amount: int
    valid: bool
    reason: str | None = None


class PriceBreakdown(BaseModel):
    """A priced registration. Every computation produces a new value; nothing mutates it."""

    model_config = ConfigDict(frozen=True)

    base_price: int
    calculated_base_price: int
    applied_rules: tuple[AppliedRule, ...] = ()
    access_items: tuple[AccessLineItem, ...] = ()
    access_total: int = 0
    sponsorships: tuple[SponsorshipLine, ...] = ()
    sponsorship_total: int = 0
    subtotal: int
    total: int = Field(ge=0)
    currency: str
    calculated_at: datetime | None = None

    @property
    def discount_amount(self) -> int:
        """Sum of the price reductions from applied rules, as a positive amount."""
        return abs(sum(rule.effect for rule in self.applied_rules if rule.effect < 0))

    def snapshot(self) -> dict[str, t.Any]:
        return self.model_dump(mode="json")
