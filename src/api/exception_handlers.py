"""Exception handlers for the API.

Domain errors are recoverable and answered with a machine-readable ``code``, a
human-readable ``detail`` and, where useful, per-item ``data``.
"""

import traceback
import typing as t
from copy import deepcopy

import orjson
import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja.responses import Response

from events.exceptions import (
    AccessItemInUseError,
    CapacityExceededError,
    CircularDependencyError,
    EventNotOpenError,
    InvalidPrerequisiteError,
    InvalidSelectionError,
    SponsorshipUnavailableError,
)
from registrations.exceptions import (
    AccessRemovalBlockedError,
    DuplicateRegistrationError,
    InvalidStatusTransitionError,
    RegistrationDeleteBlockedError,
    RegistrationNotEditableError,
)
from registrations.models import AmendmentImmutableError

logger = structlog.get_logger(__name__)


def _error(status: int, code: str, detail: str, data: dict[str, t.Any] | None = None) -> Response:
    return Response(status=status, data={"code": code, "detail": detail, "data": data})


def handle_general_exception(request: HttpRequest, exc: Exception | t.Type[Exception]) -> Response:
    """Handle a general exception.

    Args:
        request: The incoming HTTP request.
        exc: The exception.

    Returns:
        The response.
    """
    json_payload = None
    if request.method in ("POST", "PUT", "PATCH") and request.headers.get("Content-Type") == "application/json":
        try:
            json_payload = obfuscate(orjson.loads(request.body))
        except orjson.JSONDecodeError:  # pragma: no cover
            json_payload = None
    logger.exception(
        "internal_server_error",
        method=request.method,
        path=request.path,
        headers=obfuscate(dict(request.headers)),
        payload=json_payload,
    )
    data = {"detail": "Internal Server Error."}
    if settings.DEBUG:  # pragma: no cover
        data["traceback"] = traceback.format_exc()
    return Response(status=500, data=data)


def handle_django_validation_error(request: HttpRequest, exc: ValidationError | t.Type[ValidationError]) -> Response:
    """Handle a model validation error.

    Args:
        request: The incoming HTTP request.
        exc: The exception.
    """
    logger.info("validation_error", path=request.path)
    errors = exc.message_dict if hasattr(exc, "error_dict") else {"__all__": exc.messages}
    return Response(status=400, data={"errors": errors})


def handle_invalid_selection_error(
    request: HttpRequest, exc: InvalidSelectionError | t.Type[InvalidSelectionError]
) -> Response:
    """Handle an invalid access selection. Every error found is returned."""
    return _error(
        400,
        "invalid_selection",
        "The access selection is not valid.",
        {"errors": [error.model_dump(mode="json") for error in exc.errors]},
    )


def handle_capacity_exceeded_error(
    request: HttpRequest, exc: CapacityExceededError | t.Type[CapacityExceededError]
) -> Response:
    """Handle a failed capacity reservation."""
    return _error(
        409,
        "capacity_exceeded",
        str(exc),
        {"resource_id": str(exc.resource_id) if exc.resource_id else None, "remaining": exc.remaining},
    )


def handle_circular_dependency_error(
    request: HttpRequest, exc: CircularDependencyError | t.Type[CircularDependencyError]
) -> Response:
    """Handle a prerequisite change that would create a cycle."""
    return _error(400, "circular_dependency", str(exc))


def handle_invalid_prerequisite_error(
    request: HttpRequest, exc: InvalidPrerequisiteError | t.Type[InvalidPrerequisiteError]
) -> Response:
    """Handle an invalid prerequisite."""
    return _error(400, "invalid_prerequisite", str(exc))


def handle_access_item_in_use_error(
    request: HttpRequest, exc: AccessItemInUseError | t.Type[AccessItemInUseError]
) -> Response:
    """Handle the deletion of an access item held by registrations."""
    return _error(409, "access_item_in_use", str(exc))


def handle_event_not_open_error(request: HttpRequest, exc: EventNotOpenError | t.Type[EventNotOpenError]) -> Response:
    """Handle a registration for an event that is not open."""
    return _error(400, "event_not_open", str(exc))


def handle_sponsorship_unavailable_error(
    request: HttpRequest, exc: SponsorshipUnavailableError | t.Type[SponsorshipUnavailableError]
) -> Response:
    """Handle a sponsorship code claimed by a concurrent registration."""
    return _error(409, "sponsorship_unavailable", str(exc), {"sponsorship_code": exc.code})


def handle_duplicate_registration_error(
    request: HttpRequest, exc: DuplicateRegistrationError | t.Type[DuplicateRegistrationError]
) -> Response:
    """Handle a second registration with the same email."""
    return _error(409, "registration_already_exists", str(exc))


def handle_registration_not_editable_error(
    request: HttpRequest, exc: RegistrationNotEditableError | t.Type[RegistrationNotEditableError]
) -> Response:
    """Handle an edit of a registration that can no longer change."""
    return _error(400, "registration_not_editable", str(exc))


def handle_access_removal_blocked_error(
    request: HttpRequest, exc: AccessRemovalBlockedError | t.Type[AccessRemovalBlockedError]
) -> Response:
    """Handle an attempt to remove access items from a paid registration."""
    return _error(
        400,
        "access_removal_blocked",
        str(exc),
        {"attempted_removals": [str(pk) for pk in exc.attempted_removals]},
    )


def handle_invalid_status_transition_error(
    request: HttpRequest, exc: InvalidStatusTransitionError | t.Type[InvalidStatusTransitionError]
) -> Response:
    """Handle a forbidden payment status change."""
    return _error(400, "invalid_status_transition", str(exc), {"current": exc.current, "target": exc.target})


def handle_registration_delete_blocked_error(
    request: HttpRequest, exc: RegistrationDeleteBlockedError | t.Type[RegistrationDeleteBlockedError]
) -> Response:
    """Handle the deletion of a paid registration."""
    return _error(400, "registration_delete_blocked", str(exc))


def handle_amendment_immutable_error(
    request: HttpRequest, exc: AmendmentImmutableError | t.Type[AmendmentImmutableError]
) -> Response:
    """Handle an attempt to rewrite amendment history."""
    return _error(400, "amendment_immutable", str(exc))


SENSITIVE_KEYS = {"password", "token", "x-api-key", "authorization", "authentication", "cookie"}


def obfuscate(data: dict[str, t.Any]) -> dict[str, t.Any]:
    """Obfuscate sensitive data in payloads and headers."""
    if not isinstance(data, dict):
        return data
    new_data = deepcopy(data)
    for key in data.keys():
        if key.lower() in SENSITIVE_KEYS:
            new_data[key] = "********"
    return new_data
