from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja_extra import NinjaExtraAPI

from common.schema import ResponseOk, VersionResponse
from common.throttling import AnonDefaultThrottle
from events.controllers.event_admin import EVENT_ADMIN_CONTROLLERS
from events.controllers.event_public import EVENT_PUBLIC_CONTROLLERS
from events.exceptions import (
    AccessItemInUseError,
    CapacityExceededError,
    CircularDependencyError,
    EventNotOpenError,
    InvalidPrerequisiteError,
    InvalidSelectionError,
    SponsorshipUnavailableError,
)
from registrations.controllers import REGISTRATION_CONTROLLERS
from registrations.exceptions import (
    AccessRemovalBlockedError,
    DuplicateRegistrationError,
    InvalidStatusTransitionError,
    RegistrationDeleteBlockedError,
    RegistrationNotEditableError,
)
from registrations.models import AmendmentImmutableError

from .exception_handlers import (
    handle_access_item_in_use_error,
    handle_access_removal_blocked_error,
    handle_amendment_immutable_error,
    handle_capacity_exceeded_error,
    handle_circular_dependency_error,
    handle_django_validation_error,
    handle_duplicate_registration_error,
    handle_event_not_open_error,
    handle_general_exception,
    handle_invalid_prerequisite_error,
    handle_invalid_selection_error,
    handle_invalid_status_transition_error,
    handle_registration_delete_blocked_error,
    handle_registration_not_editable_error,
    handle_sponsorship_unavailable_error,
)

api = NinjaExtraAPI(
    title="Regdesk API",
    docs_url="/docs",
    version=settings.VERSION,
    description=f"Regdesk registration and pricing API {settings.VERSION}",
    app_name=f"regdesk-api-{settings.VERSION}",
    urls_namespace="api",
    servers=[
        {"url": settings.SERVICE_URL, "description": settings.SERVICE_DESCRIPTION},
    ],
    throttle=[AnonDefaultThrottle()],
)


@api.get("/version", tags=["Version"], response={200: VersionResponse})
def version(request: HttpRequest) -> tuple[int, VersionResponse]:
    """Get the API version.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, VersionResponse(version=settings.VERSION)


@api.get("/healthcheck", tags=["Healthcheck"], response={200: ResponseOk})
def healthcheck(request: HttpRequest) -> tuple[int, ResponseOk]:
    """Check the health of the API.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, ResponseOk()


api.register_controllers(
    # Event controllers
    *EVENT_PUBLIC_CONTROLLERS,
    *EVENT_ADMIN_CONTROLLERS,
    # Registration controllers
    *REGISTRATION_CONTROLLERS,
)

EXCEPTION_HANDLERS = {
    Exception: handle_general_exception,
    ValidationError: handle_django_validation_error,
    InvalidSelectionError: handle_invalid_selection_error,
    CapacityExceededError: handle_capacity_exceeded_error,
    CircularDependencyError: handle_circular_dependency_error,
    InvalidPrerequisiteError: handle_invalid_prerequisite_error,
    AccessItemInUseError: handle_access_item_in_use_error,
    EventNotOpenError: handle_event_not_open_error,
    DuplicateRegistrationError: handle_duplicate_registration_error,
    RegistrationNotEditableError: handle_registration_not_editable_error,
    AccessRemovalBlockedError: handle_access_removal_blocked_error,
    InvalidStatusTransitionError: handle_invalid_status_transition_error,
    RegistrationDeleteBlockedError: handle_registration_delete_blocked_error,
    AmendmentImmutableError: handle_amendment_immutable_error,
    SponsorshipUnavailableError: handle_sponsorship_unavailable_error,
}

for exc, handler in EXCEPTION_HANDLERS.items():
    api.add_exception_handler(exc, handler)
