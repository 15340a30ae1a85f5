import typing as t
from datetime import datetime

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models
from django.db.models import Q

from common.models import TimeStampedModel

from .event import Event
from .mixins import ConditionalMixin, ValidityWindowMixin


class PricingRuleQuerySet(models.QuerySet["PricingRule"]):
    def active(self) -> t.Self:
        return self.filter(active=True)

    def valid_at(self, moment: datetime) -> t.Self:
        return self.filter(
            Q(valid_from__isnull=True) | Q(valid_from__lte=moment),
            Q(valid_to__isnull=True) | Q(valid_to__gte=moment),
        )

    def base_price_rules(self) -> t.Self:
        return self.filter(rule_type=PricingRule.RuleType.BASE_PRICE)

    def modifiers(self) -> t.Self:
        return self.filter(rule_type=PricingRule.RuleType.MODIFIER)


class PricingRule(TimeStampedModel, ConditionalMixin, ValidityWindowMixin):
    """A conditional price for an event.

    ``base_price`` rules replace the event base price; the first matching one by
    priority wins. Every matching ``modifier`` rule is then added on top of the
    running price, percentages compounding in rule order.
    """

    class RuleType(models.TextChoices):
        BASE_PRICE = "base_price"
        MODIFIER = "modifier"

    class PriceType(models.TextChoices):
        FIXED = "fixed"
        PERCENTAGE = "percentage"

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="pricing_rules")
    name = models.CharField(max_length=255)
    description = models.TextField(null=True, blank=True)
    rule_type = models.CharField(choices=RuleType.choices, default=RuleType.BASE_PRICE, max_length=20)
    priority = models.IntegerField(default=0, help_text="Higher priority rules are evaluated first.")
    price_type = models.CharField(choices=PriceType.choices, default=PriceType.FIXED, max_length=20)
    price_value = models.IntegerField(
        help_text="Minor units for fixed prices, percent of the event base price for percentages."
    )
    active = models.BooleanField(default=True, db_index=True)

    objects = PricingRuleQuerySet.as_manager()

    class Meta:
        ordering = ["-priority", "created_at"]

    def __str__(self) -> str:
        return f"{self.name} ({self.get_rule_type_display()}, priority {self.priority})"

    def clean(self) -> None:
        """Validate the validity window and that base prices are not negative."""
        if self.valid_from and self.valid_to and self.valid_to < self.valid_from:
            raise DjangoValidationError({"valid_to": "The rule cannot expire before it starts."})
        if self.rule_type == self.RuleType.BASE_PRICE and self.price_value is not None and self.price_value < 0:
            raise DjangoValidationError({"price_value": "A base price cannot be negative."})

    def is_valid_at(self, moment: datetime) -> bool:
        if self.valid_from and self.valid_from > moment:
            return False
        if self.valid_to and self.valid_to < moment:
            return False
        return True
