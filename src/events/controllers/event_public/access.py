from uuid import UUID

from django.utils import timezone
from ninja_extra import api_controller, route

from common.throttling import AnonDefaultThrottle, PriceQuoteThrottle
from events import models, schema
from events.service import access_service, pricing_service

from .base import EventPublicBaseController


@api_controller("/events", tags=["Events"], throttle=AnonDefaultThrottle())
class EventPublicAccessController(EventPublicBaseController):
    """Access item discovery, selection checks and price quotes for registrants."""

    @route.get("/{uuid:event_id}", url_name="get_event", response=schema.EventSchema)
    def get_event(self, event_id: UUID) -> models.Event:
        """Retrieve a public event."""
        return self.get_one(event_id)

    @route.post(
        "/{uuid:event_id}/access/grouped",
        url_name="grouped_access",
        response=list[schema.AccessGroupSchema],
    )
    def grouped_access(self, event_id: UUID, payload: schema.GroupedAccessPayload) -> list[access_service.AccessGroup]:
        """List the access items the registrant can currently pick, grouped into time slots.

        Items are hidden when outside their availability window, when their conditions do not
        hold for `form_data`, or when one of their prerequisites is missing from `selected_ids`.
        A slot with `selection_type = single` offers mutually exclusive items; `multiple` means
        the item can be picked on its own.
        """
        event = self.get_one(event_id)
        return access_service.group_access_items(event, payload.form_data, payload.selected_ids)

    @route.post(
        "/{uuid:event_id}/access/validate",
        url_name="validate_selections",
        response=schema.SelectionValidationSchema,
    )
    def validate_selections(
        self, event_id: UUID, payload: schema.ValidateSelectionsPayload
    ) -> access_service.SelectionValidationResult:
        """Check a selection without reserving anything and return every problem found."""
        event = self.get_one(event_id)
        return access_service.validate_selections(event, payload.quantities(), payload.form_data)

    @route.post(
        "/{uuid:event_id}/price-quote",
        url_name="price_quote",
        response=schema.PriceBreakdown,
        throttle=PriceQuoteThrottle(),
    )
    def price_quote(self, event_id: UUID, payload: schema.PriceQuotePayload) -> schema.PriceBreakdown:
        """Price a prospective registration, including rules, access items and sponsorship codes."""
        event = self.get_one(event_id)
        return pricing_service.calculate_price(
            event, payload.form_data, payload.quantities(), payload.sponsorship_codes, timezone.now()
        )
