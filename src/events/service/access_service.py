import typing as t
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from itertools import combinations
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone
from pydantic import BaseModel

from events.exceptions import AccessItemInUseError, InvalidSelectionError, SelectionError, SelectionErrorCode
from events.models import AccessItem, Event
from events.schema import AccessItemCreateSchema, AccessItemUpdateSchema

from . import update_db_instance
from .conditions import evaluate_conditions
from .prerequisites import set_prerequisites

logger = structlog.get_logger(__name__)

TYPE_ORDER: tuple[str, ...] = (
    AccessItem.AccessType.SESSION,
    AccessItem.AccessType.WORKSHOP,
    AccessItem.AccessType.DINNER,
    AccessItem.AccessType.NETWORKING,
    AccessItem.AccessType.ACCOMMODATION,
    AccessItem.AccessType.TRANSPORT,
    AccessItem.AccessType.OTHER,
)


class SelectionType(StrEnum):
    SINGLE = "single"
    MULTIPLE = "multiple"


@dataclass
class AccessSlot:
    starts_at: datetime | None
    ends_at: datetime | None
    selection_type: SelectionType
    items: list[AccessItem] = field(default_factory=list)


@dataclass
class AccessGroup:
    type: str
    label: str | None
    slots: list[AccessSlot] = field(default_factory=list)


class SelectionValidationResult(BaseModel):
    valid: bool
    errors: list[SelectionError]


# --- Grouping ---


def _type_rank(access_type: str) -> int:
    try:
        return TYPE_ORDER.index(access_type)
    except ValueError:
        return len(TYPE_ORDER)


def _group_label(item: AccessItem) -> str:
    access_type, group_label = item.grouping_key
    return group_label or AccessItem.AccessType(access_type).label


def _item_order(item: AccessItem) -> tuple[t.Any, ...]:
    if item.starts_at is None:
        return (1, None, None, item.sort_order)
    local = timezone.localtime(item.starts_at)
    return (0, local.date(), local.time(), item.sort_order)


def is_selectable(
    item: AccessItem, form_data: Mapping[str, t.Any], selected_ids: t.Collection[UUID], now: datetime
) -> bool:
    """Whether an active item may be offered to a registrant.

    The item must be inside its availability window, its conditions must hold for the
    form data and every one of its prerequisites must already be selected.
    """
    if not item.is_available_at(now):
        return False
    if not evaluate_conditions(item.conditions, item.condition_logic, form_data):
        return False
    return all(required.pk in selected_ids for required in item.required_access.all())


def group_access_items(
    event: Event,
    form_data: Mapping[str, t.Any] | None = None,
    selected_ids: Iterable[UUID] = (),
    now: datetime | None = None,
) -> list[AccessGroup]:
    """Group the selectable access items of an event into typed groups of time slots.

    Groups are keyed by type, with items of type "other" further split by their group label.
    Within a group, items starting at the same instant form a slot: a slot with several items
    is a single choice, a slot with one item is independently optional.

    Args:
        event: The event.
        form_data: The registrant's form data, used for item conditions.
        selected_ids: The registrant's current selection, used for prerequisites.
        now: Reference time for availability windows. Defaults to the current time.

    Returns:
        Groups in canonical type order then by label, each with chronological slots
        (slots without a start time last).
    """
    now = now or timezone.now()
    form_data = form_data or {}
    selected = set(selected_ids)
    items = [
        item
        for item in AccessItem.objects.for_event(event).active().available_at(now).with_prerequisites()
        if is_selectable(item, form_data, selected, now)
    ]

    grouped: dict[tuple[str, str | None], dict[datetime | None, list[AccessItem]]] = {}
    for item in items:
        grouped.setdefault(item.grouping_key, {}).setdefault(item.starts_at, []).append(item)

    groups: list[AccessGroup] = []
    for key, by_start in grouped.items():
        slots = []
        for starts_at, slot_items in by_start.items():
            slot_items.sort(key=_item_order)
            ends = [i.ends_at for i in slot_items if i.ends_at is not None]
            slots.append(
                AccessSlot(
                    starts_at=starts_at,
                    ends_at=max(ends) if ends else None,
                    selection_type=SelectionType.SINGLE if len(slot_items) > 1 else SelectionType.MULTIPLE,
                    items=slot_items,
                )
            )
        slots.sort(key=lambda s: (s.starts_at is None, s.starts_at or now))
        groups.append(AccessGroup(type=key[0], label=_group_label(slots[0].items[0]), slots=slots))

    groups.sort(key=lambda g: (_type_rank(g.type), (g.label or "").lower()))
    return groups


# --- Conflicts ---


def _overlaps(a: AccessItem, b: AccessItem) -> bool:
    if not (a.starts_at and a.ends_at and b.starts_at and b.ends_at):
        return False
    return not (a.ends_at <= b.starts_at or b.ends_at <= a.starts_at)


def detect_time_conflicts(items: Iterable[AccessItem]) -> list[SelectionError]:
    """Report every pair of items in the same group whose time windows overlap.

    Touching windows (one ends exactly when the other starts) do not overlap. Items
    without both a start and an end are never in conflict.
    """
    partitions: dict[tuple[str, str | None], list[AccessItem]] = {}
    for item in items:
        partitions.setdefault(item.grouping_key, []).append(item)

    errors = []
    for partition in partitions.values():
        for a, b in combinations(partition, 2):
            if _overlaps(a, b):
                errors.append(
                    SelectionError(
                        code=SelectionErrorCode.TIME_CONFLICT,
                        message=f"'{a.name}' overlaps with '{b.name}'.",
                        access_id=a.pk,
                        related_ids=[b.pk],
                    )
                )
    return errors


# --- Validation ---


def validate_selections(
    event: Event,
    quantities: Mapping[UUID, int],
    form_data: Mapping[str, t.Any] | None = None,
    now: datetime | None = None,
    *,
    held: Mapping[UUID, int] | None = None,
) -> SelectionValidationResult:
    """Check a complete access selection without reserving anything.

    All problems are collected, so the registrant can fix them in one go.

    Args:
        event: The event the selection is for.
        quantities: Selected access ids mapped to their quantity.
        form_data: The registrant's form data.
        now: Reference time for availability windows. Defaults to the current time.
        held: Seats the registration already holds. Held items are not re-checked for
            availability, conditions or capacity beyond any extra quantity requested.

    Returns:
        The validation result with every error found.
    """
    now = now or timezone.now()
    form_data = form_data or {}
    held = held or {}
    selected_ids = set(quantities)
    items = {
        item.pk: item
        for item in AccessItem.objects.for_event(event).filter(pk__in=selected_ids).with_prerequisites()
    }
    errors: list[SelectionError] = []

    for access_id, quantity in quantities.items():
        item = items.get(access_id)
        if item is None:
            errors.append(
                SelectionError(
                    code=SelectionErrorCode.NOT_FOUND,
                    message=f"Access item {access_id} does not exist for this event.",
                    access_id=access_id,
                )
            )
            continue
        errors.extend(_item_errors(item, quantity, held.get(access_id, 0), form_data, selected_ids, now))

    errors.extend(detect_time_conflicts(items.values()))
    if errors:
        logger.info(
            "selection_validation_failed",
            event_id=str(event.pk),
            codes=sorted({str(error.code) for error in errors}),
        )
    return SelectionValidationResult(valid=not errors, errors=errors)


def _item_errors(
    item: AccessItem,
    quantity: int,
    held_quantity: int,
    form_data: Mapping[str, t.Any],
    selected_ids: set[UUID],
    now: datetime,
) -> list[SelectionError]:
    errors: list[SelectionError] = []
    missing = [required for required in item.required_access.all() if required.pk not in selected_ids]
    if missing:
        errors.append(
            SelectionError(
                code=SelectionErrorCode.PREREQUISITE_MISSING,
                message=f"'{item.name}' requires {', '.join(repr(r.name) for r in missing)}.",
                access_id=item.pk,
                related_ids=[r.pk for r in missing],
            )
        )
    if held_quantity:
        extra = quantity - held_quantity
        if extra > 0 and item.spots_remaining is not None and item.spots_remaining < extra:
            errors.append(_capacity_error(item, extra))
        return errors

    if not item.active:
        errors.append(
            SelectionError(
                code=SelectionErrorCode.NO_LONGER_AVAILABLE,
                message=f"'{item.name}' is no longer offered.",
                access_id=item.pk,
            )
        )
    elif item.available_from and now < item.available_from:
        errors.append(
            SelectionError(
                code=SelectionErrorCode.NOT_YET_AVAILABLE,
                message=f"'{item.name}' is not available yet.",
                access_id=item.pk,
            )
        )
    elif item.available_to and now > item.available_to:
        errors.append(
            SelectionError(
                code=SelectionErrorCode.NO_LONGER_AVAILABLE,
                message=f"'{item.name}' is no longer available.",
                access_id=item.pk,
            )
        )
    if not evaluate_conditions(item.conditions, item.condition_logic, form_data):
        errors.append(
            SelectionError(
                code=SelectionErrorCode.CONDITIONS_NOT_MET,
                message=f"'{item.name}' is not available for your registration details.",
                access_id=item.pk,
            )
        )
    if item.spots_remaining is not None and item.spots_remaining < quantity:
        errors.append(_capacity_error(item, quantity))
    return errors


def _capacity_error(item: AccessItem, requested: int) -> SelectionError:
    return SelectionError(
        code=SelectionErrorCode.CAPACITY_EXCEEDED,
        message=f"Only {item.spots_remaining} spot(s) left for '{item.name}', {requested} requested.",
        access_id=item.pk,
    )


def ensure_valid_selections(
    event: Event,
    quantities: Mapping[UUID, int],
    form_data: Mapping[str, t.Any] | None = None,
    now: datetime | None = None,
    *,
    held: Mapping[UUID, int] | None = None,
) -> None:
    """Like validate_selections, but raises InvalidSelectionError with every error found."""
    result = validate_selections(event, quantities, form_data, now, held=held)
    if not result.valid:
        raise InvalidSelectionError(result.errors)


# --- Administration ---


@transaction.atomic
def create_access_item(event: Event, payload: AccessItemCreateSchema) -> AccessItem:
    """Create an access item and attach its prerequisites.

    Raises:
        InvalidPrerequisiteError: If a prerequisite is not an item of the same event.
    """
    data = payload.model_dump(exclude={"required_access_ids", "conditions"})
    item = AccessItem.objects.create(
        event=event, currency=event.currency, conditions=payload.dump_conditions(), **data
    )
    if payload.required_access_ids:
        set_prerequisites(item, payload.required_access_ids)
    logger.info("access_item_created", event_id=str(event.pk), access_id=str(item.pk), type=item.type)
    return item


@transaction.atomic
def update_access_item(item: AccessItem, payload: AccessItemUpdateSchema) -> AccessItem:
    """Apply a partial update. Prerequisites, when given, go through the cycle check first.

    Raises:
        CircularDependencyError: If the new prerequisites would create a cycle.
        InvalidPrerequisiteError: If a prerequisite is not an item of the same event.
    """
    if payload.required_access_ids is not None:
        set_prerequisites(item, payload.required_access_ids)
    extra: dict[str, t.Any] = {}
    if payload.conditions is not None:
        extra["conditions"] = [condition.model_dump(mode="json") for condition in payload.conditions]
    item = update_db_instance(item, payload, exclude={"required_access_ids", "conditions"}, **extra)
    logger.info("access_item_updated", event_id=str(item.event_id), access_id=str(item.pk))
    return item


@transaction.atomic
def delete_access_item(item: AccessItem) -> None:
    """Delete an access item that nobody has selected yet.

    Raises:
        AccessItemInUseError: If any registration holds the item.
    """
    if item.registration_selections.exists():
        raise AccessItemInUseError(f"'{item.name}' has registrations and cannot be deleted.")
    logger.info("access_item_deleted", event_id=str(item.event_id), access_id=str(item.pk))
    item.delete()
