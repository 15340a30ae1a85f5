from .access import AccessItem
from .event import Event
from .mixins import ConditionLogic
from .pricing import PricingRule
from .sponsorship import Sponsorship

__all__ = [
    "AccessItem",
    "ConditionLogic",
    "Event",
    "PricingRule",
    "Sponsorship",
]
