from uuid import UUID


class DuplicateRegistrationError(Exception):
    """Raised when an email is already registered for the event."""


class RegistrationNotEditableError(Exception):
    """Raised when a registration can no longer be edited (refunded, or the event is closed)."""


class AccessRemovalBlockedError(Exception):
    """Raised when an edit would remove access items from a paid registration."""

    def __init__(self, message: str, attempted_removals: list[UUID]) -> None:
        super().__init__(message)
        self.attempted_removals = attempted_removals


class InvalidStatusTransitionError(Exception):
    """Raised when a payment status change is not allowed from the current status."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot change payment status from '{current}' to '{target}'.")
        self.current = current
        self.target = target


class RegistrationDeleteBlockedError(Exception):
    """Raised when deleting a registration that has been paid."""
