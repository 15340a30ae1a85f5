from uuid import UUID

from django.db.models import QuerySet
from django.shortcuts import get_object_or_404
from ninja_extra import ControllerBase, api_controller, route

from common.throttling import AnonDefaultThrottle, RegistrationWriteThrottle
from events.models import Event
from registrations import schema
from registrations.models import Registration, RegistrationAmendment
from registrations.service import amendment_service, registration_service


@api_controller(tags=["Registrations"], throttle=AnonDefaultThrottle())
class RegistrationPublicController(ControllerBase):
    """Registration submission and self-service edits.

    Edit links are authorized upstream of this service.
    """

    def get_registration(self, registration_id: UUID) -> Registration:
        return get_object_or_404(Registration.objects.with_selections(), pk=registration_id)

    @route.post(
        "/events/{uuid:event_id}/registrations",
        url_name="create_registration",
        response={200: schema.RegistrationSchema, 201: schema.RegistrationSchema},
        throttle=RegistrationWriteThrottle(),
    )
    def create_registration(
        self, event_id: UUID, payload: schema.RegistrationCreateSchema
    ) -> tuple[int, Registration]:
        """Register for an event.

        The selection is validated, priced and its seats reserved in one transaction. Sending
        the same `idempotency_key` again returns the original registration with a 200 instead
        of creating a new one.
        """
        event = get_object_or_404(Event, pk=event_id)
        registration, created = registration_service.create_registration(event, payload)
        return (201 if created else 200), registration

    @route.get(
        "/registrations/{uuid:registration_id}/edit",
        url_name="get_registration_edit_info",
        response=schema.RegistrationEditInfoSchema,
    )
    def get_edit_info(self, registration_id: UUID) -> amendment_service.RegistrationEditInfo:
        """Get a registration along with what may still be changed."""
        return amendment_service.get_registration_edit_info(self.get_registration(registration_id))

    @route.patch(
        "/registrations/{uuid:registration_id}",
        url_name="amend_registration",
        response=schema.AmendmentResultSchema,
        throttle=RegistrationWriteThrottle(),
    )
    def amend_registration(
        self, registration_id: UUID, payload: schema.RegistrationAmendSchema
    ) -> amendment_service.AmendmentResult:
        """Edit a registration.

        Unpaid registrations may add and remove access items and are re-priced directly.
        Paid registrations may only add items; their total is kept and the difference is
        returned as `additional_amount_due`.
        """
        return amendment_service.reconcile_amendment(self.get_registration(registration_id), payload)

    @route.get(
        "/registrations/{uuid:registration_id}/amendments",
        url_name="list_amendments",
        response=list[schema.AmendmentSchema],
    )
    def list_amendments(self, registration_id: UUID) -> QuerySet[RegistrationAmendment]:
        """List the recorded edits of a registration, oldest first."""
        registration = self.get_registration(registration_id)
        return registration.amendments.order_by("sequence")
