import typing as t
from datetime import datetime

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models
from django.db.models import F, Q

from common.models import TimeStampedModel

from .event import Event
from .mixins import ConditionalMixin


class AccessItemQuerySet(models.QuerySet["AccessItem"]):
    def active(self) -> t.Self:
        return self.filter(active=True)

    def for_event(self, event: Event) -> t.Self:
        return self.filter(event=event)

    def available_at(self, moment: datetime) -> t.Self:
        """Items whose availability window contains the given moment. Open bounds are unbounded."""
        return self.filter(
            Q(available_from__isnull=True) | Q(available_from__lte=moment),
            Q(available_to__isnull=True) | Q(available_to__gte=moment),
        )

    def with_prerequisites(self) -> t.Self:
        return self.prefetch_related("required_access")


class AccessItem(TimeStampedModel, ConditionalMixin):
    """A purchasable add-on of an event: a workshop, a dinner, a hotel night, a session."""

    class AccessType(models.TextChoices):
        WORKSHOP = "workshop"
        SESSION = "session"
        DINNER = "dinner"
        NETWORKING = "networking"
        ACCOMMODATION = "accommodation"
        TRANSPORT = "transport"
        OTHER = "other"

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="access_items")
    type = models.CharField(choices=AccessType.choices, default=AccessType.OTHER, max_length=20, db_index=True)
    name = models.CharField(max_length=255)
    description = models.TextField(null=True, blank=True)
    location = models.CharField(max_length=255, null=True, blank=True)
    group_label = models.CharField(
        max_length=100, null=True, blank=True, help_text="Free-form grouping for items of type 'other'."
    )
    starts_at = models.DateTimeField(null=True, blank=True)
    ends_at = models.DateTimeField(null=True, blank=True)
    available_from = models.DateTimeField(null=True, blank=True)
    available_to = models.DateTimeField(null=True, blank=True)
    price = models.PositiveIntegerField(default=0, help_text="Unit price in minor currency units.")
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY)
    max_capacity = models.PositiveIntegerField(null=True, blank=True, help_text="Leave empty for unlimited.")
    registered_count = models.PositiveIntegerField(default=0)
    required_access = models.ManyToManyField(
        "self",
        symmetrical=False,
        related_name="required_by",
        blank=True,
        help_text="Items that must also be selected for this one to be selectable.",
    )
    active = models.BooleanField(default=True, db_index=True)
    sort_order = models.IntegerField(default=0)

    objects = AccessItemQuerySet.as_manager()

    class Meta:
        ordering = ["sort_order", "starts_at", "created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(max_capacity__isnull=True) | Q(registered_count__lte=F("max_capacity")),
                name="access_registered_count_within_capacity",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.event_id})"

    def clean(self) -> None:
        """Validate the session and availability windows and the capacity."""
        errors: dict[str, str] = {}
        if self.starts_at and self.ends_at and self.ends_at < self.starts_at:
            errors["ends_at"] = "The session cannot end before it starts."
        if self.available_from and self.available_to and self.available_to < self.available_from:
            errors["available_to"] = "The availability window cannot end before it opens."
        if self.max_capacity is not None and self.registered_count > self.max_capacity:
            errors["max_capacity"] = (
                f"Capacity cannot be lower than the {self.registered_count} seats already taken."
            )
        if errors:
            raise DjangoValidationError(errors)

    def is_available_at(self, moment: datetime) -> bool:
        if self.available_from and moment < self.available_from:
            return False
        if self.available_to and moment > self.available_to:
            return False
        return True

    @property
    def grouping_key(self) -> tuple[str, str | None]:
        """Items sharing a key are presented together and compete for the attendee's time."""
        if self.type == self.AccessType.OTHER:
            return self.type, self.group_label or None
        return self.type, None

    @property
    def spots_remaining(self) -> int | None:
        if self.max_capacity is None:
            return None
        return max(0, self.max_capacity - self.registered_count)
