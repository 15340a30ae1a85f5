import typing as t
from collections.abc import Iterable
from uuid import UUID

import structlog
from django.db import transaction

from events.exceptions import CircularDependencyError, InvalidPrerequisiteError
from events.models import AccessItem

logger = structlog.get_logger(__name__)


def build_prerequisite_graph(
    event_id: UUID, access_id: UUID | None = None, proposed_ids: Iterable[UUID] = ()
) -> dict[UUID, set[UUID]]:
    """Build the event's prerequisite adjacency map from the persisted edges.

    The edges of ``access_id`` (if given) are replaced by ``proposed_ids``.
    """
    graph: dict[UUID, set[UUID]] = {
        item_id: set() for item_id in AccessItem.objects.filter(event_id=event_id).values_list("id", flat=True)
    }
    edges = AccessItem.required_access.through.objects.filter(from_accessitem__event_id=event_id).values_list(
        "from_accessitem_id", "to_accessitem_id"
    )
    for source, target in edges:
        if source != access_id:
            graph.setdefault(source, set()).add(target)
    if access_id is not None:
        graph[access_id] = set(proposed_ids)
    return graph


def graph_has_cycle(graph: t.Mapping[UUID, t.Iterable[UUID]]) -> bool:
    """Iterative depth-first search with an explicit on-stack set.

    Reaching a node that is still on the stack closes a cycle. Finished nodes are never
    expanded again, so every node and edge is visited once.
    """
    finished: set[UUID] = set()
    on_stack: set[UUID] = set()

    for root in graph:
        if root in finished:
            continue
        stack: list[tuple[UUID, t.Iterator[UUID]]] = [(root, iter(graph.get(root, ())))]
        on_stack.add(root)
        while stack:
            node, children = stack[-1]
            for child in children:
                if child in on_stack:
                    return True
                if child not in finished:
                    on_stack.add(child)
                    stack.append((child, iter(graph.get(child, ()))))
                    break
            else:
                stack.pop()
                on_stack.discard(node)
                finished.add(node)
    return False


def has_prerequisite_cycle(event_id: UUID, access_id: UUID, proposed_ids: Iterable[UUID]) -> bool:
    """Check whether giving ``access_id`` the proposed prerequisites would create a cycle.

    Args:
        event_id: The event whose access items form the graph.
        access_id: The item being edited.
        proposed_ids: Its complete new prerequisite list.

    Returns:
        True if the resulting graph contains a cycle, including a self-reference.
    """
    proposed = set(proposed_ids)
    if access_id in proposed:
        return True
    return graph_has_cycle(build_prerequisite_graph(event_id, access_id, proposed))


@transaction.atomic
def set_prerequisites(access_item: AccessItem, prerequisite_ids: Iterable[UUID]) -> AccessItem:
    """Replace an access item's prerequisites after checking them.

    Args:
        access_item: The item being edited.
        prerequisite_ids: The complete new list of prerequisite ids.

    Returns:
        The access item.

    Raises:
        InvalidPrerequisiteError: If an id is the item itself or is not an item of the same event.
        CircularDependencyError: If the new edges would close a cycle. Nothing is persisted.
    """
    proposed = set(prerequisite_ids)
    if access_item.pk in proposed:
        raise InvalidPrerequisiteError("An access item cannot require itself.")
    found = set(AccessItem.objects.filter(event_id=access_item.event_id, pk__in=proposed).values_list("id", flat=True))
    if missing := proposed - found:
        raise InvalidPrerequisiteError(
            f"Prerequisites must be access items of the same event: {', '.join(sorted(str(pk) for pk in missing))}."
        )
    # Lock the event's items so two concurrent edits cannot each close half of a cycle.
    list(AccessItem.objects.select_for_update().filter(event_id=access_item.event_id).values_list("id", flat=True))
    if has_prerequisite_cycle(access_item.event_id, access_item.pk, proposed):
        logger.warning(
            "prerequisite_cycle_rejected",
            event_id=str(access_item.event_id),
            access_id=str(access_item.pk),
            proposed_ids=[str(pk) for pk in proposed],
        )
        raise CircularDependencyError(f"Setting these prerequisites on '{access_item.name}' would create a cycle.")
    access_item.required_access.set(proposed)
    logger.info(
        "prerequisites_updated",
        event_id=str(access_item.event_id),
        access_id=str(access_item.pk),
        prerequisite_count=len(proposed),
    )
    return access_item
