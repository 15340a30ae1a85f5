import typing as t
from datetime import datetime, time, timedelta

import faker
import pytest
from django.core.cache import cache
from django.utils import timezone

from events.models import AccessItem, Event, PricingRule, Sponsorship


@pytest.fixture(autouse=True)
def clear_throttle_cache() -> None:
    """Throttle history lives in the cache; start every test with a clean slate."""
    cache.clear()


class RegistrantFactory:
    """Factory for registration payloads."""

    fake = faker.Faker()

    def payload(self, **kwargs: t.Any) -> dict[str, t.Any]:
        return {
            "email": kwargs.pop("email", self.fake.unique.email()),
            "first_name": kwargs.pop("first_name", self.fake.first_name()),
            "last_name": kwargs.pop("last_name", self.fake.last_name()),
            "form_data": kwargs.pop("form_data", {}),
            "selections": kwargs.pop("selections", []),
            **kwargs,
        }

    def __call__(self, **kwargs: t.Any) -> dict[str, t.Any]:
        return self.payload(**kwargs)


@pytest.fixture
def registrant_factory() -> RegistrantFactory:
    return RegistrantFactory()


@pytest.fixture
def next_week() -> datetime:
    today = timezone.now()
    same_time_next_week = today + timedelta(days=7)
    noon = time(hour=12, minute=0)
    return timezone.make_aware(
        datetime.combine(same_time_next_week.date(), noon),
        timezone.get_current_timezone(),
    )


@pytest.fixture
def event(next_week: datetime) -> Event:
    return Event.objects.create(
        name="Summit",
        status=Event.EventStatus.OPEN,
        start=next_week,
        end=next_week + timedelta(days=2),
        base_price=10000,
        currency="EUR",
        max_capacity=100,
    )


@pytest.fixture
def other_event(next_week: datetime) -> Event:
    return Event.objects.create(name="Other", status=Event.EventStatus.OPEN, start=next_week)


class AccessItemFactory:
    """Creates access items for an event, optionally scheduled on its first day."""

    def __init__(self, event: Event, next_week: datetime) -> None:
        self.event = event
        self.day = next_week.replace(hour=0, minute=0, second=0, microsecond=0)
        self.counter = 0

    def __call__(self, **kwargs: t.Any) -> AccessItem:
        self.counter += 1
        required = kwargs.pop("required_access", [])
        kwargs.setdefault("event", self.event)
        kwargs.setdefault("name", f"Item {self.counter}")
        kwargs.setdefault("type", AccessItem.AccessType.WORKSHOP)
        kwargs.setdefault("price", 2000)
        item = AccessItem.objects.create(**kwargs)
        if required:
            item.required_access.set(required)
        return item

    def at(self, start: tuple[int, int], end: tuple[int, int], **kwargs: t.Any) -> AccessItem:
        """An item running from start to end, given as (hour, minute) on the event's first day."""
        return self(
            starts_at=self.day + timedelta(hours=start[0], minutes=start[1]),
            ends_at=self.day + timedelta(hours=end[0], minutes=end[1]),
            **kwargs,
        )


@pytest.fixture
def access_item_factory(event: Event, next_week: datetime) -> AccessItemFactory:
    return AccessItemFactory(event, next_week)


@pytest.fixture
def pricing_rule_factory(event: Event) -> t.Callable[..., PricingRule]:
    def factory(**kwargs: t.Any) -> PricingRule:
        kwargs.setdefault("event", event)
        kwargs.setdefault("name", "Rule")
        kwargs.setdefault("price_value", 0)
        return PricingRule.objects.create(**kwargs)

    return factory


@pytest.fixture
def sponsorship(event: Event) -> Sponsorship:
    return Sponsorship.objects.create(event=event, code="SP-ACME2024", sponsor_name="Acme", amount=5000)
