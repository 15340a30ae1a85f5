"""Tests for registration creation, payment transitions and deletion."""

import typing as t
from unittest.mock import patch
from uuid import UUID

import pytest

from conftest import AccessItemFactory, RegistrantFactory
from events.exceptions import (
    CapacityExceededError,
    EventNotOpenError,
    InvalidSelectionError,
    SponsorshipUnavailableError,
)
from events.models import AccessItem, Event, Sponsorship
from events.schema import PriceBreakdown
from events.service import capacity, pricing_service
from registrations.exceptions import (
    DuplicateRegistrationError,
    InvalidStatusTransitionError,
    RegistrationDeleteBlockedError,
)
from registrations.models import Registration, RegistrationAccess
from registrations.schema import RegistrationCreateSchema
from registrations.service.registration_service import (
    create_registration,
    delete_registration,
    transition_payment_status,
)

pytestmark = pytest.mark.django_db


def _selections(*items: AccessItem, quantity: int = 1) -> list[dict[str, t.Any]]:
    return [{"access_id": item.pk, "quantity": quantity} for item in items]


class TestCreateRegistration:
    def test_creates_priced_registration_and_reserves_seats(
        self,
        event: Event,
        access_item_factory: AccessItemFactory,
        registrant_factory: RegistrantFactory,
        sponsorship: Sponsorship,
    ) -> None:
        workshop = access_item_factory(price=2000, max_capacity=10)
        dinner = access_item_factory(price=3000, type=AccessItem.AccessType.DINNER)
        payload = RegistrationCreateSchema(
            **registrant_factory(
                email="Ada@Example.com",
                selections=[{"access_id": workshop.pk, "quantity": 2}, {"access_id": dinner.pk}],
                sponsorship_code="sp-acme2024",
            )
        )

        registration, created = create_registration(event, payload)

        assert created is True
        assert registration.email == "ada@example.com"
        assert registration.payment_status == Registration.PaymentStatus.PENDING
        assert registration.access_amount == 7000
        assert registration.sponsorship_code == "SP-ACME2024"
        assert registration.sponsorship_amount == 5000
        assert registration.total_amount == 10000 + 7000 - 5000
        assert registration.price_breakdown["total"] == registration.total_amount
        assert {(s.access_id, s.quantity, s.subtotal) for s in registration.access_selections.all()} == {
            (workshop.pk, 2, 4000),
            (dinner.pk, 1, 3000),
        }
        workshop.refresh_from_db()
        dinner.refresh_from_db()
        event.refresh_from_db()
        assert workshop.registered_count == 2
        assert dinner.registered_count == 1
        assert event.registered_count == 1

    def test_idempotent_replay_returns_the_original(
        self, event: Event, access_item_factory: AccessItemFactory, registrant_factory: RegistrantFactory
    ) -> None:
        item = access_item_factory(max_capacity=5)
        payload = RegistrationCreateSchema(
            **registrant_factory(selections=_selections(item), idempotency_key="submit-1")
        )

        first, first_created = create_registration(event, payload)
        second, second_created = create_registration(event, payload)

        assert first_created is True
        assert second_created is False
        assert first.pk == second.pk
        assert Registration.objects.count() == 1
        item.refresh_from_db()
        assert item.registered_count == 1

    def test_idempotency_key_is_scoped_to_the_event(
        self, event: Event, other_event: Event, registrant_factory: RegistrantFactory
    ) -> None:
        first, _ = create_registration(event, RegistrationCreateSchema(**registrant_factory(idempotency_key="k1")))

        second, created = create_registration(
            other_event, RegistrationCreateSchema(**registrant_factory(idempotency_key="k1"))
        )

        assert created is True
        assert second.pk != first.pk
        assert second.event_id == other_event.pk
        assert Registration.objects.filter(idempotency_key="k1").count() == 2

    def test_sponsorship_code_is_redeemed_once(
        self, event: Event, registrant_factory: RegistrantFactory, sponsorship: Sponsorship
    ) -> None:
        first, _ = create_registration(
            event, RegistrationCreateSchema(**registrant_factory(sponsorship_code=sponsorship.code))
        )
        second, _ = create_registration(
            event, RegistrationCreateSchema(**registrant_factory(sponsorship_code=sponsorship.code))
        )

        sponsorship.refresh_from_db()
        assert sponsorship.status == Sponsorship.SponsorshipStatus.USED
        assert first.sponsorship_amount == 5000
        assert second.sponsorship_amount == 0
        assert second.total_amount == 10000
        assert second.price_breakdown["sponsorships"][0]["reason"] == "already_used"

    def test_code_claimed_after_pricing_rolls_back(
        self, event: Event, registrant_factory: RegistrantFactory, sponsorship: Sponsorship
    ) -> None:
        real_calculate = pricing_service.calculate_price

        def calculate_then_lose_the_code(*args: t.Any, **kwargs: t.Any) -> PriceBreakdown:
            breakdown = real_calculate(*args, **kwargs)
            Sponsorship.objects.filter(pk=sponsorship.pk).update(status=Sponsorship.SponsorshipStatus.USED)
            return breakdown

        payload = RegistrationCreateSchema(**registrant_factory(sponsorship_code=sponsorship.code))
        with patch.object(pricing_service, "calculate_price", side_effect=calculate_then_lose_the_code):
            with pytest.raises(SponsorshipUnavailableError):
                create_registration(event, payload)

        event.refresh_from_db()
        assert event.registered_count == 0
        assert not Registration.objects.exists()

    def test_duplicate_email_is_rejected(self, event: Event, registrant_factory: RegistrantFactory) -> None:
        create_registration(event, RegistrationCreateSchema(**registrant_factory(email="dup@example.com")))

        with pytest.raises(DuplicateRegistrationError):
            create_registration(event, RegistrationCreateSchema(**registrant_factory(email="DUP@example.com")))

    def test_same_email_for_another_event(
        self, event: Event, other_event: Event, registrant_factory: RegistrantFactory
    ) -> None:
        create_registration(event, RegistrationCreateSchema(**registrant_factory(email="twice@example.com")))
        _, created = create_registration(
            other_event, RegistrationCreateSchema(**registrant_factory(email="twice@example.com"))
        )
        assert created is True

    def test_closed_event(self, event: Event, registrant_factory: RegistrantFactory) -> None:
        event.status = Event.EventStatus.CLOSED
        event.save()

        with pytest.raises(EventNotOpenError):
            create_registration(event, RegistrationCreateSchema(**registrant_factory()))

    def test_invalid_selection_creates_nothing(
        self, event: Event, access_item_factory: AccessItemFactory, registrant_factory: RegistrantFactory
    ) -> None:
        a = access_item_factory.at((10, 0), (11, 0))
        b = access_item_factory.at((10, 30), (11, 30))

        with pytest.raises(InvalidSelectionError):
            create_registration(event, RegistrationCreateSchema(**registrant_factory(selections=_selections(a, b))))

        assert not Registration.objects.exists()
        event.refresh_from_db()
        assert event.registered_count == 0

    def test_full_event(self, event: Event, registrant_factory: RegistrantFactory) -> None:
        event.max_capacity = 1
        event.save()
        create_registration(event, RegistrationCreateSchema(**registrant_factory()))

        with pytest.raises(CapacityExceededError):
            create_registration(event, RegistrationCreateSchema(**registrant_factory()))

        assert Registration.objects.count() == 1

    def test_failed_reservation_rolls_back_everything(
        self, event: Event, access_item_factory: AccessItemFactory, registrant_factory: RegistrantFactory
    ) -> None:
        """A seat lost between validation and reservation undoes every earlier reservation."""
        first = access_item_factory(max_capacity=5)
        second = access_item_factory(max_capacity=5, type=AccessItem.AccessType.DINNER)
        real_reserve = capacity.reserve_access_capacity

        def reserve(access_id: UUID, quantity: int = 1) -> None:
            if access_id == second.pk:
                raise CapacityExceededError("Sold out.", remaining=0, resource_id=access_id)
            real_reserve(access_id, quantity)

        payload = RegistrationCreateSchema(**registrant_factory(selections=_selections(first, second)))
        with patch.object(capacity, "reserve_access_capacity", side_effect=reserve):
            with pytest.raises(CapacityExceededError):
                create_registration(event, payload)

        first.refresh_from_db()
        event.refresh_from_db()
        assert first.registered_count == 0
        assert event.registered_count == 0
        assert not Registration.objects.exists()
        assert not RegistrationAccess.objects.exists()


@pytest.fixture
def registration(
    event: Event, access_item_factory: AccessItemFactory, registrant_factory: RegistrantFactory
) -> Registration:
    item = access_item_factory(price=2000, max_capacity=10)
    payload = RegistrationCreateSchema(**registrant_factory(selections=_selections(item)))
    registration, _ = create_registration(event, payload)
    return registration


class TestTransitionPaymentStatus:
    def test_confirm_payment_defaults_to_total(self, registration: Registration) -> None:
        updated = transition_payment_status(registration, Registration.PaymentStatus.PAID)

        assert updated.payment_status == Registration.PaymentStatus.PAID
        assert updated.paid_amount == 12000
        assert updated.paid_at is not None

    def test_confirm_partial_payment(self, registration: Registration) -> None:
        updated = transition_payment_status(registration, Registration.PaymentStatus.PAID, paid_amount=5000)
        assert updated.paid_amount == 5000

    @pytest.mark.parametrize(
        "target", [Registration.PaymentStatus.WAIVED, Registration.PaymentStatus.CANCELLED]
    )
    def test_pending_transitions(self, registration: Registration, target: Registration.PaymentStatus) -> None:
        assert transition_payment_status(registration, target).payment_status == target

    def test_refund_after_payment(self, registration: Registration) -> None:
        transition_payment_status(registration, Registration.PaymentStatus.PAID)
        updated = transition_payment_status(registration, Registration.PaymentStatus.REFUNDED)
        assert updated.payment_status == Registration.PaymentStatus.REFUNDED

    @pytest.mark.parametrize(
        "target", [Registration.PaymentStatus.REFUNDED, Registration.PaymentStatus.PENDING]
    )
    def test_invalid_transitions_from_pending(
        self, registration: Registration, target: Registration.PaymentStatus
    ) -> None:
        with pytest.raises(InvalidStatusTransitionError):
            transition_payment_status(registration, target)

    def test_cancelled_is_final(self, registration: Registration) -> None:
        transition_payment_status(registration, Registration.PaymentStatus.CANCELLED)
        with pytest.raises(InvalidStatusTransitionError):
            transition_payment_status(registration, Registration.PaymentStatus.PAID)

    def test_status_changes_keep_seats(self, event: Event, registration: Registration) -> None:
        transition_payment_status(registration, Registration.PaymentStatus.CANCELLED)
        event.refresh_from_db()
        assert event.registered_count == 1


class TestDeleteRegistration:
    def test_unpaid_registration_releases_seats(self, event: Event, registration: Registration) -> None:
        access_id = registration.access_selections.get().access_id

        delete_registration(registration)

        assert not Registration.objects.filter(pk=registration.pk).exists()
        event.refresh_from_db()
        assert event.registered_count == 0
        assert AccessItem.objects.get(pk=access_id).registered_count == 0

    def test_paid_registration_cannot_be_deleted(self, registration: Registration) -> None:
        transition_payment_status(registration, Registration.PaymentStatus.PAID)

        with pytest.raises(RegistrationDeleteBlockedError):
            delete_registration(registration)

        assert Registration.objects.filter(pk=registration.pk).exists()

    def test_deleting_gives_back_the_sponsorship_code(
        self, event: Event, registrant_factory: RegistrantFactory, sponsorship: Sponsorship
    ) -> None:
        sponsored, _ = create_registration(
            event, RegistrationCreateSchema(**registrant_factory(sponsorship_code=sponsorship.code))
        )

        delete_registration(sponsored)

        sponsorship.refresh_from_db()
        assert sponsorship.status == Sponsorship.SponsorshipStatus.ACTIVE
