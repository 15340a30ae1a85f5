from uuid import UUID

from django.db.models import QuerySet
from django.shortcuts import get_object_or_404
from ninja import Query
from ninja_extra import ControllerBase, api_controller, route
from ninja_extra.pagination import PageNumberPaginationExtra, PaginatedResponseSchema, paginate

from common.schema import ResponseOk
from common.throttling import WriteThrottle
from registrations import schema
from registrations.filters import RegistrationFilterSchema
from registrations.models import Registration
from registrations.service import registration_service


@api_controller("/event-admin/{event_id}/registrations", tags=["Registrations Admin"], throttle=WriteThrottle())
class RegistrationAdminController(ControllerBase):
    """Registration management for organizers."""

    def get_registration(self, event_id: UUID, registration_id: UUID) -> Registration:
        return get_object_or_404(Registration.objects.with_selections(), pk=registration_id, event_id=event_id)

    @route.get("", url_name="list_registrations", response=PaginatedResponseSchema[schema.RegistrationSchema])
    @paginate(PageNumberPaginationExtra, page_size=50)
    def list_registrations(
        self, event_id: UUID, filters: RegistrationFilterSchema = Query(...)
    ) -> QuerySet[Registration]:
        """List the registrations of an event."""
        return filters.filter(Registration.objects.with_selections().filter(event_id=event_id))

    @route.post(
        "/{registration_id}/confirm-payment", url_name="confirm_payment", response=schema.RegistrationSchema
    )
    def confirm_payment(
        self, event_id: UUID, registration_id: UUID, payload: schema.PaymentConfirmSchema
    ) -> Registration:
        """Mark a pending registration as paid. The paid amount defaults to the total."""
        return registration_service.transition_payment_status(
            self.get_registration(event_id, registration_id),
            Registration.PaymentStatus.PAID,
            paid_amount=payload.paid_amount,
            paid_at=payload.paid_at,
        )

    @route.post("/{registration_id}/waive", url_name="waive_payment", response=schema.RegistrationSchema)
    def waive_payment(self, event_id: UUID, registration_id: UUID) -> Registration:
        """Waive the payment of a pending registration."""
        return registration_service.transition_payment_status(
            self.get_registration(event_id, registration_id), Registration.PaymentStatus.WAIVED
        )

    @route.post("/{registration_id}/cancel", url_name="cancel_registration", response=schema.RegistrationSchema)
    def cancel_registration(self, event_id: UUID, registration_id: UUID) -> Registration:
        """Cancel a pending registration."""
        return registration_service.transition_payment_status(
            self.get_registration(event_id, registration_id), Registration.PaymentStatus.CANCELLED
        )

    @route.post("/{registration_id}/refund", url_name="refund_registration", response=schema.RegistrationSchema)
    def refund_registration(self, event_id: UUID, registration_id: UUID) -> Registration:
        """Mark a paid registration as refunded. It can no longer be edited afterwards."""
        return registration_service.transition_payment_status(
            self.get_registration(event_id, registration_id), Registration.PaymentStatus.REFUNDED
        )

    @route.delete("/{registration_id}", url_name="delete_registration", response=ResponseOk)
    def delete_registration(self, event_id: UUID, registration_id: UUID) -> ResponseOk:
        """Delete an unpaid registration and release its seats."""
        registration_service.delete_registration(self.get_registration(event_id, registration_id))
        return ResponseOk()
