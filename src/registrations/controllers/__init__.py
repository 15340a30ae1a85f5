from .admin import RegistrationAdminController
from .public import RegistrationPublicController

REGISTRATION_CONTROLLERS: list[type] = [
    RegistrationPublicController,
    RegistrationAdminController,
]

__all__ = [
    "RegistrationAdminController",
    "RegistrationPublicController",
    "REGISTRATION_CONTROLLERS",
]
