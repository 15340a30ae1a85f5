from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SelectionErrorCode(StrEnum):
    NOT_FOUND = "not_found"
    NOT_YET_AVAILABLE = "not_yet_available"
    NO_LONGER_AVAILABLE = "no_longer_available"
    CONDITIONS_NOT_MET = "conditions_not_met"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    PREREQUISITE_MISSING = "prerequisite_missing"
    TIME_CONFLICT = "time_conflict"


class SelectionError(BaseModel):
    """A single reason why a set of access selections was rejected."""

    model_config = ConfigDict(frozen=True)

    code: SelectionErrorCode
    message: str
    access_id: UUID | None = None
    related_ids: list[UUID] = Field(default_factory=list)


class InvalidSelectionError(Exception):
    """Raised when access selections fail validation. Carries every error found, not just the first."""

    def __init__(self, errors: list[SelectionError]) -> None:
        self.errors = errors
        super().__init__("; ".join(error.message for error in errors))


class CapacityExceededError(Exception):
    """Raised when a reservation would take a counter past its maximum capacity."""

    def __init__(self, message: str, *, remaining: int | None = None, resource_id: UUID | None = None) -> None:
        self.remaining = remaining
        self.resource_id = resource_id
        super().__init__(message)


class CircularDependencyError(Exception):
    """Raised when a prerequisite update would introduce a cycle in the access graph."""


class InvalidPrerequisiteError(Exception):
    """Raised when a prerequisite does not exist, belongs to another event or is the item itself."""


class AccessItemInUseError(Exception):
    """Raised when deleting an access item that already has registrations."""


class EventNotOpenError(Exception):
    """Raised when an event is not accepting registrations or edits."""


class SponsorshipUnavailableError(Exception):
    """Raised when a sponsorship code is redeemed or cancelled by someone else before it could be claimed."""

    def __init__(self, message: str, *, code: str) -> None:
        self.code = code
        super().__init__(message)
