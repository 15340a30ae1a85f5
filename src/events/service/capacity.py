"""Atomic reserve/release of the bounded registration counters.

Events and access items share the same contract: ``registered_count`` may never exceed
``max_capacity`` (when set) and never drops below zero. Every change to those counters
goes through this module as a single conditional UPDATE, never as read-modify-write.
"""

from uuid import UUID

import structlog
from django.db.models import F, PositiveIntegerField, Q, Value
from django.db.models.functions import Greatest
from django.http import Http404

from events.exceptions import CapacityExceededError
from events.models import AccessItem, Event

logger = structlog.get_logger(__name__)

CountedModel = type[Event] | type[AccessItem]


def _reserve(model: CountedModel, pk: UUID, quantity: int) -> None:
    if quantity < 1:
        raise ValueError("Quantity to reserve must be at least 1.")
    updated = (
        model.objects.filter(pk=pk)
        .filter(Q(max_capacity__isnull=True) | Q(max_capacity__gte=F("registered_count") + quantity))
        .update(registered_count=F("registered_count") + quantity)
    )
    if updated:
        logger.debug("capacity_reserved", model=model.__name__, id=str(pk), quantity=quantity)
        return

    # Nothing updated: either the row is gone or it is full. The counter read here is
    # informational only and may already be stale.
    row = model.objects.filter(pk=pk).values("name", "max_capacity", "registered_count").first()
    if row is None:
        raise Http404(f"No {model._meta.verbose_name} matches the given query.")
    remaining = None if row["max_capacity"] is None else max(0, row["max_capacity"] - row["registered_count"])
    logger.warning(
        "capacity_exceeded",
        model=model.__name__,
        id=str(pk),
        requested=quantity,
        remaining=remaining,
    )
    raise CapacityExceededError(
        f"Not enough capacity left for '{row['name']}': requested {quantity}, {remaining} remaining.",
        remaining=remaining,
        resource_id=pk,
    )


def _release(model: CountedModel, pk: UUID, quantity: int) -> None:
    if quantity < 1:
        return
    updated = model.objects.filter(pk=pk).update(
        registered_count=Greatest(
            F("registered_count") - quantity, Value(0), output_field=PositiveIntegerField()
        )
    )
    logger.debug("capacity_released", model=model.__name__, id=str(pk), quantity=quantity, found=bool(updated))


def reserve_access_capacity(access_id: UUID, quantity: int = 1) -> None:
    """Take ``quantity`` seats of an access item.

    Raises:
        CapacityExceededError: If fewer than ``quantity`` seats are left.
        Http404: If the access item does not exist.
    """
    _reserve(AccessItem, access_id, quantity)


def release_access_capacity(access_id: UUID, quantity: int = 1) -> None:
    """Give back ``quantity`` seats of an access item. Floors at zero and never raises."""
    _release(AccessItem, access_id, quantity)


def reserve_event_capacity(event_id: UUID, quantity: int = 1) -> None:
    """Take ``quantity`` registration slots of an event.

    Raises:
        CapacityExceededError: If the event is full.
        Http404: If the event does not exist.
    """
    _reserve(Event, event_id, quantity)


def release_event_capacity(event_id: UUID, quantity: int = 1) -> None:
    """Give back ``quantity`` registration slots of an event. Floors at zero and never raises."""
    _release(Event, event_id, quantity)

