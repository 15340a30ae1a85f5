from uuid import UUID

from django.db.models import QuerySet
from django.shortcuts import get_object_or_404
from ninja_extra import api_controller, route

from common.schema import ResponseOk, ValidationErrorResponse
from common.throttling import WriteThrottle
from events import models, schema
from events.service import access_service, prerequisites

from .base import EventAdminBaseController


@api_controller("/event-admin/{event_id}", tags=["Event Admin"], throttle=WriteThrottle())
class EventAdminAccessController(EventAdminBaseController):
    """Access item management endpoints."""

    def get_access_item(self, event_id: UUID, access_id: UUID) -> models.AccessItem:
        return get_object_or_404(models.AccessItem.objects.with_prerequisites(), pk=access_id, event_id=event_id)

    @route.get("/access", url_name="list_access_items", response=list[schema.AdminAccessItemSchema])
    def list_access_items(self, event_id: UUID) -> QuerySet[models.AccessItem]:
        """List every access item of the event, active or not."""
        event = self.get_one(event_id)
        return models.AccessItem.objects.for_event(event).with_prerequisites()

    @route.post(
        "/access",
        url_name="create_access_item",
        response={200: schema.AdminAccessItemSchema, 400: ValidationErrorResponse},
    )
    def create_access_item(self, event_id: UUID, payload: schema.AccessItemCreateSchema) -> models.AccessItem:
        """Create an access item. Prerequisites must be items of the same event."""
        event = self.get_one(event_id)
        item = access_service.create_access_item(event, payload)
        return self.get_access_item(event_id, item.pk)

    @route.patch(
        "/access/{access_id}",
        url_name="update_access_item",
        response={200: schema.AdminAccessItemSchema, 400: ValidationErrorResponse},
    )
    def update_access_item(
        self, event_id: UUID, access_id: UUID, payload: schema.AccessItemUpdateSchema
    ) -> models.AccessItem:
        """Update an access item. A prerequisite change that would create a cycle is rejected as a whole."""
        item = access_service.update_access_item(self.get_access_item(event_id, access_id), payload)
        return self.get_access_item(event_id, item.pk)

    @route.put(
        "/access/{access_id}/prerequisites",
        url_name="set_access_prerequisites",
        response=schema.AdminAccessItemSchema,
    )
    def set_prerequisites(
        self, event_id: UUID, access_id: UUID, payload: schema.PrerequisitesUpdateSchema
    ) -> models.AccessItem:
        """Replace the prerequisites of an access item."""
        item = self.get_access_item(event_id, access_id)
        prerequisites.set_prerequisites(item, payload.required_access_ids)
        return self.get_access_item(event_id, access_id)

    @route.delete("/access/{access_id}", url_name="delete_access_item", response=ResponseOk)
    def delete_access_item(self, event_id: UUID, access_id: UUID) -> ResponseOk:
        """Delete an access item. Items already held by a registration cannot be deleted."""
        access_service.delete_access_item(self.get_access_item(event_id, access_id))
        return ResponseOk()
