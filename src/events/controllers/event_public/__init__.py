from .access import EventPublicAccessController

EVENT_PUBLIC_CONTROLLERS: list[type] = [
    EventPublicAccessController,
]

__all__ = [
    "EventPublicAccessController",
    "EVENT_PUBLIC_CONTROLLERS",
]
