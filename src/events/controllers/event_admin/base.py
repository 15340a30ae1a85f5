import typing as t
from uuid import UUID

from django.db.models import QuerySet
from ninja_extra import ControllerBase

from events import models


class EventAdminBaseController(ControllerBase):
    """Base controller for event admin endpoints.

    Authentication and tenant scoping happen upstream of this service.
    Subclasses should be decorated with @api_controller to register routes.
    """

    def get_queryset(self) -> QuerySet[models.Event]:
        return models.Event.objects.all()

    def get_one(self, event_id: UUID) -> models.Event:
        """Wrapper helper."""
        return t.cast(models.Event, self.get_object_or_exception(self.get_queryset(), pk=event_id))
