"""Event admin controllers package."""

from .access import EventAdminAccessController
from .pricing import EventAdminPricingController

EVENT_ADMIN_CONTROLLERS: list[type] = [
    EventAdminAccessController,
    EventAdminPricingController,
]

__all__ = [
    "EventAdminAccessController",
    "EventAdminPricingController",
    "EVENT_ADMIN_CONTROLLERS",
]
