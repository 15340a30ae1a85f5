import typing as t

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models
from django.db.models import F, Q
from django.utils.text import slugify

from common.models import TimeStampedModel


class EventQuerySet(models.QuerySet["Event"]):
    def open(self) -> t.Self:
        """Events currently accepting registrations and edits."""
        return self.filter(status=Event.EventStatus.OPEN)


class Event(TimeStampedModel):
    class EventStatus(models.TextChoices):
        DRAFT = "draft"
        OPEN = "open"
        CLOSED = "closed"
        ARCHIVED = "archived"

    name = models.CharField(max_length=255, db_index=True)
    slug = models.SlugField(max_length=255, db_index=True, blank=True)
    status = models.CharField(choices=EventStatus.choices, default=EventStatus.DRAFT, max_length=20, db_index=True)
    start = models.DateTimeField(db_index=True)
    end = models.DateTimeField(null=True, blank=True)
    base_price = models.PositiveIntegerField(default=0, help_text="Registration price in minor currency units.")
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY, help_text="ISO 4217 currency code")
    max_capacity = models.PositiveIntegerField(null=True, blank=True, help_text="Leave empty for unlimited.")
    registered_count = models.PositiveIntegerField(default=0)

    objects = EventQuerySet.as_manager()

    class Meta:
        ordering = ["-start"]
        constraints = [
            models.CheckConstraint(
                condition=Q(max_capacity__isnull=True) | Q(registered_count__lte=F("max_capacity")),
                name="event_registered_count_within_capacity",
            ),
        ]

    def __str__(self) -> str:
        return self.name

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Auto-create the slug."""
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)

    def clean(self) -> None:
        """Validate the event dates and capacity."""
        if self.end and self.start and self.end < self.start:
            raise DjangoValidationError({"end": "The event cannot end before it starts."})
        if self.max_capacity is not None and self.registered_count > self.max_capacity:
            raise DjangoValidationError(
                {"max_capacity": f"Capacity cannot be lower than the {self.registered_count} existing registrations."}
            )

    @property
    def is_open(self) -> bool:
        return self.status == self.EventStatus.OPEN

    @property
    def spots_remaining(self) -> int | None:
        if self.max_capacity is None:
            return None
        return max(0, self.max_capacity - self.registered_count)
