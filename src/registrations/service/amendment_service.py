"""Edits of existing registrations.

An edit merges form data, adds or removes access items, re-prices the registration and
appends an immutable amendment record. Paid registrations may only gain access items:
their total stays as paid and any difference is tracked as an additional amount due.
"""

import typing as t
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import orjson
import structlog
from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from events.schema import PriceBreakdown
from events.service import access_service, capacity, pricing_service
from registrations.exceptions import AccessRemovalBlockedError, RegistrationNotEditableError
from registrations.models import Registration, RegistrationAccess, RegistrationAmendment
from registrations.schema import RegistrationAmendSchema

from .registration_service import apply_price_breakdown

logger = structlog.get_logger(__name__)


@dataclass
class RegistrationEditInfo:
    registration: Registration
    is_paid: bool
    can_edit: bool
    can_remove_access: bool
    restrictions: list[str]


@dataclass
class AmendmentResult:
    registration: Registration
    price_breakdown: PriceBreakdown
    amendment: RegistrationAmendment
    additional_amount_due: int


def get_registration_edit_info(registration: Registration) -> RegistrationEditInfo:
    """Describe what the registrant may still change."""
    restrictions = []
    if registration.payment_status == Registration.PaymentStatus.REFUNDED:
        restrictions.append("Refunded registrations cannot be edited.")
    if not registration.event.is_open:
        restrictions.append("The event is not accepting changes.")
    if registration.is_paid:
        restrictions.append("Access items cannot be removed from a paid registration; new ones can be added.")
    can_edit = registration.payment_status != Registration.PaymentStatus.REFUNDED and registration.event.is_open
    return RegistrationEditInfo(
        registration=registration,
        is_paid=registration.is_paid,
        can_edit=can_edit,
        can_remove_access=can_edit and not registration.is_paid,
        restrictions=restrictions,
    )


def _json_equal(a: t.Any, b: t.Any) -> bool:
    return orjson.dumps(a, option=orjson.OPT_SORT_KEYS) == orjson.dumps(b, option=orjson.OPT_SORT_KEYS)


def diff_form_data(old: dict[str, t.Any], changes: dict[str, t.Any] | None) -> list[dict[str, t.Any]]:
    """List the submitted fields whose value actually changed."""
    if not changes:
        return []
    return [
        {"field_id": field_id, "old_value": old.get(field_id), "new_value": value}
        for field_id, value in changes.items()
        if not _json_equal(old.get(field_id), value)
    ]


def _change_type(
    form_changes: list[dict[str, t.Any]], added: t.Collection[UUID], removed: t.Collection[UUID]
) -> RegistrationAmendment.ChangeType:
    kinds = [bool(form_changes), bool(added), bool(removed)]
    if sum(kinds) > 1:
        return RegistrationAmendment.ChangeType.MIXED
    if added:
        return RegistrationAmendment.ChangeType.ACCESS_ADDED
    if removed:
        return RegistrationAmendment.ChangeType.ACCESS_REMOVED
    return RegistrationAmendment.ChangeType.FORM_DATA


@transaction.atomic
def reconcile_amendment(
    registration: Registration, payload: RegistrationAmendSchema, now: datetime | None = None
) -> AmendmentResult:
    """Apply an edit to a registration and record it.

    The registration row is locked for the duration, so concurrent edits of the same
    registration are applied one after the other.

    Args:
        registration: The registration to edit.
        payload: Form data overrides and, optionally, the complete new access selection.
        now: Reference time for availability and pricing. Defaults to the current time.

    Returns:
        The updated registration, the new price breakdown, the amendment and the additional
        amount due.

    Raises:
        RegistrationNotEditableError: If the registration is refunded or the event is not open.
        AccessRemovalBlockedError: If a paid registration would lose access items.
        InvalidSelectionError: If the new selection is not valid.
        CapacityExceededError: If an added access item is full.
    """
    now = now or timezone.now()
    registration = Registration.objects.select_for_update().select_related("event").get(pk=registration.pk)
    event = registration.event
    if registration.payment_status == Registration.PaymentStatus.REFUNDED:
        raise RegistrationNotEditableError("Refunded registrations cannot be edited.")
    if not event.is_open:
        raise RegistrationNotEditableError("The event is not accepting changes.")

    is_paid = registration.is_paid
    held: dict[UUID, RegistrationAccess] = {
        selection.access_id: selection for selection in registration.access_selections.select_related("access")
    }
    held_quantities = {access_id: selection.quantity for access_id, selection in held.items()}
    requested = payload.quantities()
    if requested is None:
        requested = dict(held_quantities)

    added = {access_id: quantity for access_id, quantity in requested.items() if access_id not in held}
    removed = [access_id for access_id in held if access_id not in requested]

    if is_paid and removed:
        logger.warning(
            "access_removal_blocked",
            registration_id=str(registration.pk),
            attempted_removals=[str(pk) for pk in removed],
        )
        raise AccessRemovalBlockedError(
            "Access items cannot be removed from a paid registration; only additions are allowed.",
            attempted_removals=removed,
        )

    # Items kept from the current selection keep their quantity and agreed unit price.
    new_quantities = {
        access_id: held_quantities.get(access_id, quantity) for access_id, quantity in requested.items()
    }
    merged_form_data = {**registration.form_data, **(payload.form_data or {})}
    form_changes = diff_form_data(registration.form_data, payload.form_data)

    if added or removed or form_changes:
        access_service.ensure_valid_selections(event, new_quantities, merged_form_data, now, held=held_quantities)

    # A redeemed code keeps its amount even if it was cancelled or expired since.
    redeemed: dict[str, int] = {}
    if registration.sponsorship_code and registration.sponsorship_amount:
        redeemed[registration.sponsorship_code] = registration.sponsorship_amount
    breakdown = pricing_service.calculate_price(
        event,
        merged_form_data,
        new_quantities,
        list(redeemed),
        now,
        locked_prices={access_id: selection.unit_price for access_id, selection in held.items()},
        redeemed_sponsorships=redeemed,
    )

    lines = {line.access_id: line for line in breakdown.access_items}
    access_changes: list[dict[str, t.Any]] = []
    for access_id, quantity in added.items():
        capacity.reserve_access_capacity(access_id, quantity)
        line = lines[access_id]
        RegistrationAccess.objects.create(
            registration=registration,
            access_id=access_id,
            unit_price=line.unit_price,
            quantity=line.quantity,
            subtotal=line.subtotal,
        )
        access_changes.append(
            {
                "type": "added",
                "access_id": str(access_id),
                "access_name": line.name,
                "quantity": line.quantity,
                "price_impact": line.subtotal,
            }
        )
    for access_id in removed:
        selection = held[access_id]
        capacity.release_access_capacity(access_id, selection.quantity)
        access_changes.append(
            {
                "type": "removed",
                "access_id": str(access_id),
                "access_name": selection.access.name,
                "quantity": selection.quantity,
                "price_impact": -selection.subtotal,
            }
        )
        selection.delete()

    previous_total = registration.total_amount
    previous_additional_due = registration.additional_amount_due
    if is_paid:
        additional_amount_due = max(0, breakdown.total - registration.total_amount)
    else:
        registration.total_amount = breakdown.total
        additional_amount_due = 0

    registration.form_data = merged_form_data
    for name in ("first_name", "last_name", "phone"):
        if (value := getattr(payload, name)) is not None:
            setattr(registration, name, value)
    registration.additional_amount_due = additional_amount_due
    registration.edit_count += 1
    registration.last_edited_at = now
    apply_price_breakdown(registration, breakdown)
    registration.save()

    last_sequence = registration.amendments.aggregate(last=Max("sequence"))["last"] or 0
    amendment = RegistrationAmendment.objects.create(
        registration=registration,
        sequence=last_sequence + 1,
        change_type=_change_type(form_changes, added, removed),
        form_data_changes=form_changes,
        access_changes=access_changes,
        previous_total=previous_total,
        new_total=breakdown.total,
        previous_additional_due=previous_additional_due,
        new_additional_due=additional_amount_due,
        price_breakdown_snapshot=breakdown.snapshot(),
    )
    logger.info(
        "registration_amended",
        registration_id=str(registration.pk),
        sequence=amendment.sequence,
        change_type=amendment.change_type,
        added=len(added),
        removed=len(removed),
        previous_total=previous_total,
        new_total=breakdown.total,
        additional_amount_due=additional_amount_due,
    )
    return AmendmentResult(
        registration=Registration.objects.with_selections().get(pk=registration.pk),
        price_breakdown=breakdown,
        amendment=amendment,
        additional_amount_due=additional_amount_due,
    )
