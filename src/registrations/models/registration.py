import typing as t

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from common.models import TimeStampedModel
from events.models import AccessItem, Event


class RegistrationQuerySet(models.QuerySet["Registration"]):
    def with_selections(self) -> t.Self:
        return self.select_related("event").prefetch_related("access_selections__access")


class Registration(TimeStampedModel):
    class PaymentStatus(models.TextChoices):
        PENDING = "pending"
        PAID = "paid"
        WAIVED = "waived"
        CANCELLED = "cancelled"
        REFUNDED = "refunded"

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="registrations")
    email = models.EmailField(db_index=True)
    first_name = models.CharField(max_length=150)
    last_name = models.CharField(max_length=150)
    phone = models.CharField(max_length=50, null=True, blank=True)
    form_data = models.JSONField(default=dict, blank=True)

    payment_status = models.CharField(
        choices=PaymentStatus.choices, default=PaymentStatus.PENDING, max_length=20, db_index=True
    )
    total_amount = models.PositiveIntegerField(default=0)
    paid_amount = models.PositiveIntegerField(default=0)
    paid_at = models.DateTimeField(null=True, blank=True)
    additional_amount_due = models.PositiveIntegerField(
        default=0, help_text="Balance owed after a paid registration was amended."
    )
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY)

    # Snapshot of the last price breakdown and its denormalized figures
    price_breakdown = models.JSONField(default=dict, blank=True)
    base_amount = models.IntegerField(default=0)
    discount_amount = models.PositiveIntegerField(default=0)
    access_amount = models.PositiveIntegerField(default=0)
    sponsorship_code = models.CharField(max_length=32, null=True, blank=True)
    sponsorship_amount = models.PositiveIntegerField(default=0)

    idempotency_key = models.CharField(max_length=255, null=True, blank=True)
    edit_count = models.PositiveIntegerField(default=0)
    last_edited_at = models.DateTimeField(null=True, blank=True)

    objects = RegistrationQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["event", "email"], name="unique_registration_email_per_event"),
            models.UniqueConstraint(fields=["event", "idempotency_key"], name="unique_idempotency_key_per_event"),
        ]

    def __str__(self) -> str:
        return f"{self.email} ({self.event_id})"

    @property
    def is_paid(self) -> bool:
        """Paid means a confirmed payment or any money received."""
        return self.payment_status == self.PaymentStatus.PAID or self.paid_amount > 0

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class RegistrationAccess(TimeStampedModel):
    """An access item held by a registration, at the unit price agreed when it was added."""

    registration = models.ForeignKey(Registration, on_delete=models.CASCADE, related_name="access_selections")
    access = models.ForeignKey(AccessItem, on_delete=models.PROTECT, related_name="registration_selections")
    unit_price = models.PositiveIntegerField()
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    subtotal = models.PositiveIntegerField()

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(fields=["registration", "access"], name="unique_access_per_registration"),
        ]

    def __str__(self) -> str:
        return f"{self.access_id} x{self.quantity}"
