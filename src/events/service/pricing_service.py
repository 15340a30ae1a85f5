import typing as t
from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import ROUND_FLOOR, Decimal
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone
from pydantic import BaseModel, ConfigDict

from events.exceptions import InvalidSelectionError, SelectionError, SelectionErrorCode
from events.models import AccessItem, Event, PricingRule
from events.schema import (
    AccessLineItem,
    AppliedRule,
    PriceBreakdown,
    PricingRuleCreateSchema,
    PricingRuleUpdateSchema,
)

from . import update_db_instance
from .conditions import evaluate_conditions
from .sponsorship_service import validate_sponsorship_codes

logger = structlog.get_logger(__name__)


class ResolvedPrice(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_price: int
    calculated_base_price: int
    applied_rules: tuple[AppliedRule, ...]


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves going towards positive infinity."""
    return int((value + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))


def percentage_of(amount: int, percent: int) -> int:
    return round_half_up(Decimal(amount) * Decimal(percent) / Decimal(100))


def _valid_rules(event: Event, rule_type: PricingRule.RuleType, now: datetime) -> list[PricingRule]:
    return list(
        PricingRule.objects.filter(event=event, rule_type=rule_type)
        .active()
        .valid_at(now)
        .order_by("-priority", "created_at", "id")
    )


def resolve_base_price(
    event: Event, form_data: Mapping[str, t.Any] | None = None, now: datetime | None = None
) -> ResolvedPrice:
    """Resolve the registration price of an event for the given form data.

    The first matching base price rule (highest priority, oldest first on ties) replaces
    the event base price. Every matching modifier is then applied in the same order:
    fixed values are added, percentages are taken of the running price.

    Args:
        event: The event.
        form_data: The registrant's form data.
        now: Reference time for rule validity windows. Defaults to the current time.

    Returns:
        The base price, the calculated price and every rule applied with its effect.
    """
    now = now or timezone.now()
    form_data = form_data or {}
    base_price = event.base_price
    price = base_price
    applied: list[AppliedRule] = []

    for rule in _valid_rules(event, PricingRule.RuleType.BASE_PRICE, now):
        if not evaluate_conditions(rule.conditions, rule.condition_logic, form_data):
            continue
        match rule.price_type:
            case PricingRule.PriceType.PERCENTAGE:
                price = percentage_of(base_price, rule.price_value)
            case _:
                price = rule.price_value
        applied.append(
            AppliedRule(rule_id=rule.pk, name=rule.name, rule_type=rule.rule_type, effect=price - base_price)
        )
        break

    for rule in _valid_rules(event, PricingRule.RuleType.MODIFIER, now):
        if not evaluate_conditions(rule.conditions, rule.condition_logic, form_data):
            continue
        match rule.price_type:
            case PricingRule.PriceType.PERCENTAGE:
                effect = percentage_of(price, rule.price_value)
            case _:
                effect = rule.price_value
        price += effect
        applied.append(AppliedRule(rule_id=rule.pk, name=rule.name, rule_type=rule.rule_type, effect=effect))

    return ResolvedPrice(base_price=base_price, calculated_base_price=price, applied_rules=tuple(applied))


def calculate_price(
    event: Event,
    form_data: Mapping[str, t.Any] | None = None,
    quantities: Mapping[UUID, int] | None = None,
    sponsorship_codes: Iterable[str] = (),
    now: datetime | None = None,
    *,
    locked_prices: Mapping[UUID, int] | None = None,
    redeemed_sponsorships: Mapping[str, int] | None = None,
) -> PriceBreakdown:
    """Price a registration. Reads only, never touches capacity.

    Args:
        event: The event.
        form_data: The registrant's form data.
        quantities: Selected access ids mapped to their quantity.
        sponsorship_codes: Codes to redeem. Invalid ones are reported and count for zero.
        now: Reference time for rules and codes. Defaults to the current time.
        locked_prices: Unit prices already agreed for some access items (e.g. held by an
            existing registration). They take precedence over the current item price.
        redeemed_sponsorships: Codes the registration already redeemed, mapped to the amount
            they were redeemed for. They are honored even if the code was cancelled or expired since.

    Returns:
        A new PriceBreakdown. The total is never negative.

    Raises:
        InvalidSelectionError: If a selected access item does not belong to the event.
    """
    now = now or timezone.now()
    quantities = quantities or {}
    locked_prices = locked_prices or {}
    resolved = resolve_base_price(event, form_data, now)

    items = {item.pk: item for item in AccessItem.objects.filter(event=event, pk__in=list(quantities))}
    missing = [access_id for access_id in quantities if access_id not in items]
    if missing:
        raise InvalidSelectionError(
            [
                SelectionError(
                    code=SelectionErrorCode.NOT_FOUND,
                    message=f"Access item {access_id} does not exist for this event.",
                    access_id=access_id,
                )
                for access_id in missing
            ]
        )

    lines = []
    for access_id, quantity in quantities.items():
        item = items[access_id]
        unit_price = locked_prices.get(access_id, item.price)
        lines.append(
            AccessLineItem(
                access_id=access_id,
                name=item.name,
                unit_price=unit_price,
                quantity=quantity,
                subtotal=unit_price * quantity,
            )
        )
    access_total = sum(line.subtotal for line in lines)

    sponsorships = validate_sponsorship_codes(event, sponsorship_codes, now, redeemed=redeemed_sponsorships)
    sponsorship_total = sum(line.amount for line in sponsorships if line.valid)

    subtotal = resolved.calculated_base_price + access_total
    breakdown = PriceBreakdown(
        base_price=resolved.base_price,
        calculated_base_price=resolved.calculated_base_price,
        applied_rules=resolved.applied_rules,
        access_items=tuple(lines),
        access_total=access_total,
        sponsorships=sponsorships,
        sponsorship_total=sponsorship_total,
        subtotal=subtotal,
        total=max(0, subtotal - sponsorship_total),
        currency=event.currency,
        calculated_at=now,
    )
    logger.debug(
        "price_calculated",
        event_id=str(event.pk),
        calculated_base_price=breakdown.calculated_base_price,
        access_total=access_total,
        sponsorship_total=sponsorship_total,
        total=breakdown.total,
    )
    return breakdown


@transaction.atomic
def create_pricing_rule(event: Event, payload: PricingRuleCreateSchema) -> PricingRule:
    rule = PricingRule.objects.create(
        event=event, conditions=payload.dump_conditions(), **payload.model_dump(exclude={"conditions"})
    )
    logger.info(
        "pricing_rule_created",
        event_id=str(event.pk),
        rule_id=str(rule.pk),
        rule_type=rule.rule_type,
        priority=rule.priority,
    )
    return rule


def update_pricing_rule(rule: PricingRule, payload: PricingRuleUpdateSchema) -> PricingRule:
    extra: dict[str, t.Any] = {}
    if payload.conditions is not None:
        extra["conditions"] = [condition.model_dump(mode="json") for condition in payload.conditions]
    rule = update_db_instance(rule, payload, exclude={"conditions"}, **extra)
    logger.info("pricing_rule_updated", event_id=str(rule.event_id), rule_id=str(rule.pk))
    return rule
