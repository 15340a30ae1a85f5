import typing as t
from uuid import UUID

from django.db.models import QuerySet
from ninja_extra import ControllerBase

from events import models


class EventPublicBaseController(ControllerBase):
    """Base controller for public event endpoints.

    Draft events are invisible to the public.
    """

    def get_queryset(self) -> QuerySet[models.Event]:
        return models.Event.objects.exclude(status=models.Event.EventStatus.DRAFT)

    def get_one(self, event_id: UUID) -> models.Event:
        """Wrapper helper."""
        return t.cast(models.Event, self.get_object_or_exception(self.get_queryset(), pk=event_id))
