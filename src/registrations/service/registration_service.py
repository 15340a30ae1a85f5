from datetime import datetime
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from events.exceptions import EventNotOpenError
from events.models import Event
from events.schema import PriceBreakdown
from events.service import access_service, capacity, pricing_service, sponsorship_service
from registrations.exceptions import (
    DuplicateRegistrationError,
    InvalidStatusTransitionError,
    RegistrationDeleteBlockedError,
)
from registrations.models import Registration, RegistrationAccess
from registrations.schema import RegistrationCreateSchema

logger = structlog.get_logger(__name__)


def apply_price_breakdown(registration: Registration, breakdown: PriceBreakdown) -> None:
    """Store the breakdown snapshot and its denormalized figures. The total is left to the caller."""
    registration.price_breakdown = breakdown.snapshot()
    registration.base_amount = breakdown.calculated_base_price
    registration.discount_amount = breakdown.discount_amount
    registration.access_amount = breakdown.access_total
    registration.sponsorship_amount = breakdown.sponsorship_total
    registration.currency = breakdown.currency


def get_by_idempotency_key(event: Event, key: str | None) -> Registration | None:
    """Find the registration an idempotency key already produced. Keys are scoped to the event."""
    if not key:
        return None
    return Registration.objects.with_selections().filter(event=event, idempotency_key=key).first()


def create_registration(
    event: Event, payload: RegistrationCreateSchema, now: datetime | None = None
) -> tuple[Registration, bool]:
    """Create a priced registration and reserve its seats.

    Replaying a request with an idempotency key that was already used returns the original
    registration unchanged. Everything else happens in one transaction: the event seat, every
    access item seat and the rows are committed together or not at all.

    Args:
        event: The event to register for.
        payload: The registration request.
        now: Reference time for availability and pricing. Defaults to the current time.

    Returns:
        The registration and whether it was created by this call.

    Raises:
        EventNotOpenError: If the event is not accepting registrations.
        DuplicateRegistrationError: If the email is already registered for the event.
        InvalidSelectionError: If the access selection is not valid.
        CapacityExceededError: If the event or an access item is full.
        SponsorshipUnavailableError: If the sponsorship code was claimed by another registration meanwhile.
    """
    if existing := get_by_idempotency_key(event, payload.idempotency_key):
        logger.info("registration_idempotent_replay", registration_id=str(existing.pk))
        return existing, False

    now = now or timezone.now()
    if not event.is_open:
        raise EventNotOpenError("This event is not accepting registrations.")
    if Registration.objects.filter(event=event, email=payload.email).exists():
        raise DuplicateRegistrationError("This email is already registered for the event.")

    quantities = payload.quantities()
    access_service.ensure_valid_selections(event, quantities, payload.form_data, now)
    codes = [payload.sponsorship_code] if payload.sponsorship_code else []
    breakdown = pricing_service.calculate_price(event, payload.form_data, quantities, codes, now)

    try:
        registration = _persist_registration(event, payload, breakdown)
    except (IntegrityError, DjangoValidationError):
        # Lost a race against an identical request or a concurrent registration of the same email.
        if existing := get_by_idempotency_key(event, payload.idempotency_key):
            return existing, False
        if Registration.objects.filter(event=event, email=payload.email).exists():
            raise DuplicateRegistrationError("This email is already registered for the event.")
        raise

    logger.info(
        "registration_created",
        registration_id=str(registration.pk),
        event_id=str(event.pk),
        access_count=len(quantities),
        total_amount=registration.total_amount,
    )
    return Registration.objects.with_selections().get(pk=registration.pk), True


@transaction.atomic
def _persist_registration(
    event: Event, payload: RegistrationCreateSchema, breakdown: PriceBreakdown
) -> Registration:
    capacity.reserve_event_capacity(event.pk)
    registration = Registration(
        event=event,
        email=payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        form_data=payload.form_data,
        sponsorship_code=payload.sponsorship_code,
        idempotency_key=payload.idempotency_key,
        total_amount=breakdown.total,
    )
    apply_price_breakdown(registration, breakdown)
    registration.save()
    for sponsorship in breakdown.sponsorships:
        if sponsorship.valid:
            sponsorship_service.redeem_sponsorship_code(event, sponsorship.code)
    for line in breakdown.access_items:
        capacity.reserve_access_capacity(line.access_id, line.quantity)
        RegistrationAccess.objects.create(
            registration=registration,
            access_id=line.access_id,
            unit_price=line.unit_price,
            quantity=line.quantity,
            subtotal=line.subtotal,
        )
    return registration


ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    Registration.PaymentStatus.PENDING: {
        Registration.PaymentStatus.PAID,
        Registration.PaymentStatus.WAIVED,
        Registration.PaymentStatus.CANCELLED,
    },
    Registration.PaymentStatus.PAID: {Registration.PaymentStatus.REFUNDED},
}


@transaction.atomic
def transition_payment_status(
    registration: Registration,
    target: Registration.PaymentStatus,
    *,
    paid_amount: int | None = None,
    paid_at: datetime | None = None,
) -> Registration:
    """Move a registration along the payment state machine.

    PENDING may become PAID, WAIVED or CANCELLED; PAID may become REFUNDED. Confirming a
    payment records the amount received (the total by default) and when.

    Raises:
        InvalidStatusTransitionError: For any other transition.
    """
    registration = Registration.objects.select_for_update().get(pk=registration.pk)
    current = registration.payment_status
    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidStatusTransitionError(current, target)

    update_fields = ["payment_status", "updated_at"]
    registration.payment_status = target
    if target == Registration.PaymentStatus.PAID:
        registration.paid_amount = registration.total_amount if paid_amount is None else paid_amount
        registration.paid_at = paid_at or timezone.now()
        update_fields += ["paid_amount", "paid_at"]
    registration.save(update_fields=update_fields)
    logger.info(
        "registration_payment_status_changed",
        registration_id=str(registration.pk),
        from_status=current,
        to_status=target,
        paid_amount=registration.paid_amount,
    )
    return Registration.objects.with_selections().get(pk=registration.pk)


@transaction.atomic
def delete_registration(registration: Registration) -> None:
    """Delete an unpaid registration and give back its seats and its sponsorship code.

    Raises:
        RegistrationDeleteBlockedError: If the registration has been paid.
    """
    registration = Registration.objects.select_for_update().get(pk=registration.pk)
    if registration.is_paid:
        raise RegistrationDeleteBlockedError("Paid registrations cannot be deleted; refund them instead.")
    selections: list[tuple[UUID, int]] = list(registration.access_selections.values_list("access_id", "quantity"))
    for access_id, quantity in selections:
        capacity.release_access_capacity(access_id, quantity)
    capacity.release_event_capacity(registration.event_id)
    if registration.sponsorship_code and registration.sponsorship_amount:
        sponsorship_service.release_sponsorship_code(registration.event, registration.sponsorship_code)
    logger.info(
        "registration_deleted",
        registration_id=str(registration.pk),
        event_id=str(registration.event_id),
        released_access=len(selections),
    )
    registration.delete()
