import typing as t
from unittest.mock import patch

import orjson
import pytest
from django.shortcuts import reverse  # type: ignore[attr-defined]
from django.test.client import Client

from conftest import AccessItemFactory, RegistrantFactory
from events.exceptions import SponsorshipUnavailableError
from events.models import AccessItem, Event, Sponsorship
from events.service import sponsorship_service
from registrations.models import Registration
from registrations.schema import RegistrationCreateSchema
from registrations.service.registration_service import create_registration, transition_payment_status

pytestmark = pytest.mark.django_db


def _json(payload: dict[str, t.Any]) -> bytes:
    return orjson.dumps(payload)


@pytest.fixture
def workshop(access_item_factory: AccessItemFactory) -> AccessItem:
    return access_item_factory(name="Workshop", price=2000, max_capacity=1)


@pytest.fixture
def registration(event: Event, workshop: AccessItem, registrant_factory: RegistrantFactory) -> Registration:
    payload = RegistrationCreateSchema(**registrant_factory(selections=[{"access_id": workshop.pk}]))
    registration, _ = create_registration(event, payload)
    return registration


# --- Tests for POST /events/{event_id}/registrations ---


def test_create_registration(
    client: Client, event: Event, workshop: AccessItem, registrant_factory: RegistrantFactory
) -> None:
    url = reverse("api:create_registration", kwargs={"event_id": event.pk})
    payload = registrant_factory(selections=[{"access_id": str(workshop.pk)}], idempotency_key="k-1")

    response = client.post(url, data=_json(payload), content_type="application/json")

    assert response.status_code == 201
    data = response.json()
    assert data["total_amount"] == 12000
    assert data["payment_status"] == "pending"
    assert data["access_selections"][0]["access_name"] == "Workshop"

    replay = client.post(url, data=_json(payload), content_type="application/json")
    assert replay.status_code == 200
    assert replay.json()["id"] == data["id"]


def test_create_registration_duplicate_email(
    client: Client, event: Event, registrant_factory: RegistrantFactory
) -> None:
    url = reverse("api:create_registration", kwargs={"event_id": event.pk})
    client.post(url, data=_json(registrant_factory(email="same@example.com")), content_type="application/json")

    response = client.post(
        url, data=_json(registrant_factory(email="same@example.com")), content_type="application/json"
    )

    assert response.status_code == 409
    assert response.json()["code"] == "registration_already_exists"


def test_create_registration_idempotency_key_of_another_event(
    client: Client, event: Event, other_event: Event, registrant_factory: RegistrantFactory
) -> None:
    client.post(
        reverse("api:create_registration", kwargs={"event_id": event.pk}),
        data=_json(registrant_factory(email="first@example.com", idempotency_key="shared")),
        content_type="application/json",
    )

    response = client.post(
        reverse("api:create_registration", kwargs={"event_id": other_event.pk}),
        data=_json(registrant_factory(email="second@example.com", idempotency_key="shared")),
        content_type="application/json",
    )

    assert response.status_code == 201
    assert response.json()["email"] == "second@example.com"


def test_create_registration_sponsorship_claimed_concurrently(
    client: Client, event: Event, registrant_factory: RegistrantFactory, sponsorship: Sponsorship
) -> None:
    url = reverse("api:create_registration", kwargs={"event_id": event.pk})
    conflict = SponsorshipUnavailableError("Sponsorship code SP-ACME2024 is no longer available.", code=sponsorship.code)

    with patch.object(sponsorship_service, "redeem_sponsorship_code", side_effect=conflict):
        response = client.post(
            url, data=_json(registrant_factory(sponsorship_code=sponsorship.code)), content_type="application/json"
        )

    assert response.status_code == 409
    assert response.json()["code"] == "sponsorship_unavailable"
    assert response.json()["data"] == {"sponsorship_code": "SP-ACME2024"}
    assert not Registration.objects.exists()


def test_create_registration_sold_out_item(
    client: Client,
    event: Event,
    workshop: AccessItem,
    registration: Registration,
    registrant_factory: RegistrantFactory,
) -> None:
    url = reverse("api:create_registration", kwargs={"event_id": event.pk})
    payload = registrant_factory(selections=[{"access_id": str(workshop.pk)}])

    response = client.post(url, data=_json(payload), content_type="application/json")

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "invalid_selection"
    assert data["data"]["errors"][0]["code"] == "capacity_exceeded"


def test_create_registration_full_event(client: Client, event: Event, registrant_factory: RegistrantFactory) -> None:
    Event.objects.filter(pk=event.pk).update(max_capacity=0)
    url = reverse("api:create_registration", kwargs={"event_id": event.pk})

    response = client.post(url, data=_json(registrant_factory()), content_type="application/json")

    assert response.status_code == 409
    assert response.json()["code"] == "capacity_exceeded"
    assert response.json()["data"]["remaining"] == 0


def test_create_registration_closed_event(
    client: Client, event: Event, registrant_factory: RegistrantFactory
) -> None:
    event.status = Event.EventStatus.CLOSED
    event.save()
    url = reverse("api:create_registration", kwargs={"event_id": event.pk})

    response = client.post(url, data=_json(registrant_factory()), content_type="application/json")

    assert response.status_code == 400
    assert response.json()["code"] == "event_not_open"


def test_create_registration_invalid_email(client: Client, event: Event, registrant_factory: RegistrantFactory) -> None:
    url = reverse("api:create_registration", kwargs={"event_id": event.pk})

    response = client.post(url, data=_json(registrant_factory(email="nope")), content_type="application/json")

    assert response.status_code == 422


# --- Tests for /registrations/{registration_id} ---


def test_get_edit_info(client: Client, registration: Registration) -> None:
    url = reverse("api:get_registration_edit_info", kwargs={"registration_id": registration.pk})

    response = client.get(url)

    assert response.status_code == 200
    data = response.json()
    assert data["can_edit"] is True
    assert data["can_remove_access"] is True
    assert data["registration"]["id"] == str(registration.pk)


def test_amend_unpaid_registration(client: Client, registration: Registration, workshop: AccessItem) -> None:
    url = reverse("api:amend_registration", kwargs={"registration_id": registration.pk})

    response = client.patch(url, data=_json({"selections": []}), content_type="application/json")

    assert response.status_code == 200
    data = response.json()
    assert data["registration"]["total_amount"] == 10000
    assert data["amendment"]["sequence"] == 1
    assert data["price_breakdown"]["access_total"] == 0
    workshop.refresh_from_db()
    assert workshop.registered_count == 0


def test_amend_paid_registration_removal_is_blocked(
    client: Client, registration: Registration, workshop: AccessItem
) -> None:
    transition_payment_status(registration, Registration.PaymentStatus.PAID)
    url = reverse("api:amend_registration", kwargs={"registration_id": registration.pk})

    response = client.patch(url, data=_json({"selections": []}), content_type="application/json")

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "access_removal_blocked"
    assert data["data"]["attempted_removals"] == [str(workshop.pk)]


def test_list_amendments(client: Client, registration: Registration) -> None:
    amend_url = reverse("api:amend_registration", kwargs={"registration_id": registration.pk})
    for role in ("speaker", "sponsor"):
        client.patch(amend_url, data=_json({"form_data": {"role": role}}), content_type="application/json")
    url = reverse("api:list_amendments", kwargs={"registration_id": registration.pk})

    response = client.get(url)

    assert response.status_code == 200
    assert [amendment["sequence"] for amendment in response.json()] == [1, 2]
    assert response.json()[1]["form_data_changes"] == [
        {"field_id": "role", "old_value": "speaker", "new_value": "sponsor"}
    ]
