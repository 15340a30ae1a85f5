"""Events schema package."""

from .access import (
    AccessGroupSchema,
    AccessItemCreateSchema,
    AccessItemSchema,
    AccessItemUpdateSchema,
    AccessSelectionSchema,
    AccessSlotSchema,
    AdminAccessItemSchema,
    GroupedAccessPayload,
    PrerequisitesUpdateSchema,
    SelectionPayloadMixin,
    SelectionValidationSchema,
    ValidateSelectionsPayload,
)
from .conditions import ConditionalSchemaMixin, ConditionSchema
from .event import EventSchema
from .pricing import (
    AccessLineItem,
    AppliedRule,
    PriceBreakdown,
    PriceQuotePayload,
    PricingRuleCreateSchema,
    PricingRuleSchema,
    PricingRuleUpdateSchema,
    SponsorshipCode,
    SponsorshipCreateSchema,
    SponsorshipLine,
    SponsorshipSchema,
)

__all__ = [
    # Access
    "AccessGroupSchema",
    "AccessItemCreateSchema",
    "AccessItemSchema",
    "AccessItemUpdateSchema",
    "AccessSelectionSchema",
    "AccessSlotSchema",
    "AdminAccessItemSchema",
    "GroupedAccessPayload",
    "PrerequisitesUpdateSchema",
    "SelectionPayloadMixin",
    "SelectionValidationSchema",
    "ValidateSelectionsPayload",
    # Conditions
    "ConditionalSchemaMixin",
    "ConditionSchema",
    # Events
    "EventSchema",
    # Pricing
    "AccessLineItem",
    "AppliedRule",
    "PriceBreakdown",
    "PriceQuotePayload",
    "PricingRuleCreateSchema",
    "PricingRuleSchema",
    "PricingRuleUpdateSchema",
    "SponsorshipCode",
    "SponsorshipCreateSchema",
    "SponsorshipLine",
    "SponsorshipSchema",
]
