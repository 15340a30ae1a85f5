from .amendment import AmendmentImmutableError, RegistrationAmendment
from .registration import Registration, RegistrationAccess

__all__ = [
    "AmendmentImmutableError",
    "Registration",
    "RegistrationAccess",
    "RegistrationAmendment",
]
