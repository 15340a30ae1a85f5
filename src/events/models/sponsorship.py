import secrets
import typing as t
from datetime import datetime

from django.db import models

from common.models import TimeStampedModel

from .event import Event
from .mixins import ValidityWindowMixin

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_sponsorship_code() -> str:
    return "SP-" + "".join(secrets.choice(CODE_ALPHABET) for _ in range(8))


class Sponsorship(TimeStampedModel, ValidityWindowMixin):
    """A code redeemable at registration for a fixed amount off the total."""

    class SponsorshipStatus(models.TextChoices):
        ACTIVE = "active"
        USED = "used"
        CANCELLED = "cancelled"

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="sponsorships")
    code = models.CharField(max_length=32, unique=True, default=generate_sponsorship_code)
    sponsor_name = models.CharField(max_length=255)
    amount = models.PositiveIntegerField(help_text="Amount covered in minor currency units.")
    status = models.CharField(
        choices=SponsorshipStatus.choices, default=SponsorshipStatus.ACTIVE, max_length=20, db_index=True
    )

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"{self.code} ({self.sponsor_name})"

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    def is_redeemable_at(self, moment: datetime) -> bool:
        if self.status != self.SponsorshipStatus.ACTIVE:
            return False
        if self.valid_from and self.valid_from > moment:
            return False
        if self.valid_to and self.valid_to < moment:
            return False
        return True
