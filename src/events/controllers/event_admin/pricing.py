from uuid import UUID

from django.db.models import QuerySet
from django.shortcuts import get_object_or_404
from ninja_extra import api_controller, route

from common.schema import ResponseOk
from common.throttling import WriteThrottle
from events import models, schema
from events.service import pricing_service

from .base import EventAdminBaseController


@api_controller("/event-admin/{event_id}", tags=["Event Admin"], throttle=WriteThrottle())
class EventAdminPricingController(EventAdminBaseController):
    """Pricing rule and sponsorship management endpoints."""

    @route.get("/pricing-rules", url_name="list_pricing_rules", response=list[schema.PricingRuleSchema])
    def list_pricing_rules(self, event_id: UUID) -> QuerySet[models.PricingRule]:
        """List the event's pricing rules in evaluation order."""
        event = self.get_one(event_id)
        return models.PricingRule.objects.filter(event=event)

    @route.post("/pricing-rules", url_name="create_pricing_rule", response=schema.PricingRuleSchema)
    def create_pricing_rule(self, event_id: UUID, payload: schema.PricingRuleCreateSchema) -> models.PricingRule:
        """Create a base price or modifier rule."""
        event = self.get_one(event_id)
        return pricing_service.create_pricing_rule(event, payload)

    @route.patch(
        "/pricing-rules/{rule_id}", url_name="update_pricing_rule", response=schema.PricingRuleSchema
    )
    def update_pricing_rule(
        self, event_id: UUID, rule_id: UUID, payload: schema.PricingRuleUpdateSchema
    ) -> models.PricingRule:
        """Update a pricing rule."""
        rule = get_object_or_404(models.PricingRule, pk=rule_id, event_id=event_id)
        return pricing_service.update_pricing_rule(rule, payload)

    @route.delete("/pricing-rules/{rule_id}", url_name="delete_pricing_rule", response=ResponseOk)
    def delete_pricing_rule(self, event_id: UUID, rule_id: UUID) -> ResponseOk:
        """Delete a pricing rule. Existing registrations keep their price snapshot."""
        get_object_or_404(models.PricingRule, pk=rule_id, event_id=event_id).delete()
        return ResponseOk()

    @route.get("/sponsorships", url_name="list_sponsorships", response=list[schema.SponsorshipSchema])
    def list_sponsorships(self, event_id: UUID) -> QuerySet[models.Sponsorship]:
        """List the event's sponsorship codes."""
        event = self.get_one(event_id)
        return models.Sponsorship.objects.filter(event=event)

    @route.post("/sponsorships", url_name="create_sponsorship", response=schema.SponsorshipSchema)
    def create_sponsorship(self, event_id: UUID, payload: schema.SponsorshipCreateSchema) -> models.Sponsorship:
        """Create a sponsorship code. A code is generated when none is given."""
        event = self.get_one(event_id)
        data = payload.model_dump(exclude_none=True)
        return models.Sponsorship.objects.create(event=event, **data)

    @route.post(
        "/sponsorships/{sponsorship_id}/cancel", url_name="cancel_sponsorship", response=schema.SponsorshipSchema
    )
    def cancel_sponsorship(self, event_id: UUID, sponsorship_id: UUID) -> models.Sponsorship:
        """Cancel a sponsorship code. Registrations that already redeemed it are unaffected."""
        sponsorship = get_object_or_404(models.Sponsorship, pk=sponsorship_id, event_id=event_id)
        sponsorship.status = models.Sponsorship.SponsorshipStatus.CANCELLED
        sponsorship.save(update_fields=["status", "updated_at"])
        return sponsorship
