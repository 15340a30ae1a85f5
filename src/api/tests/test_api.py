from unittest.mock import patch

import pytest
from django.conf import settings
from django.test.client import Client

from api.exception_handlers import obfuscate

pytestmark = pytest.mark.django_db


def test_version(client: Client) -> None:
    response = client.get("/api/version")

    assert response.status_code == 200
    assert response.json() == {"version": settings.VERSION}


def test_healthcheck(client: Client) -> None:
    response = client.get("/api/healthcheck")

    assert response.status_code == 200


def test_unexpected_errors_are_masked(client: Client) -> None:
    with patch("api.api.VersionResponse", side_effect=RuntimeError("boom")):
        response = client.get("/api/version")

    assert response.status_code == 500
    assert response.json()["detail"] == "Internal Server Error."


def test_obfuscate() -> None:
    data = obfuscate({"Authorization": "Bearer x", "email": "a@example.com", "password": "secret"})

    assert data["Authorization"] == "********"
    assert data["password"] == "********"
    assert data["email"] == "a@example.com"
