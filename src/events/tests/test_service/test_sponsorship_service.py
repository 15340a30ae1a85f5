from datetime import timedelta

import pytest
from django.utils import timezone

from events.exceptions import SponsorshipUnavailableError
from events.models import Event, Sponsorship
from events.service.sponsorship_service import (
    redeem_sponsorship_code,
    release_sponsorship_code,
    validate_sponsorship_codes,
)

pytestmark = pytest.mark.django_db


class TestValidateSponsorshipCodes:
    def test_codes_are_case_insensitive_and_deduplicated(self, event: Event, sponsorship: Sponsorship) -> None:
        lines = validate_sponsorship_codes(event, ["sp-acme2024", " SP-ACME2024 ", ""])

        assert len(lines) == 1
        assert lines[0].code == "SP-ACME2024"
        assert lines[0].amount == 5000

    def test_cancelled_code(self, event: Event, sponsorship: Sponsorship) -> None:
        sponsorship.status = Sponsorship.SponsorshipStatus.CANCELLED
        sponsorship.save()

        (line,) = validate_sponsorship_codes(event, [sponsorship.code])

        assert line.valid is False
        assert line.reason == "cancelled"
        assert line.amount == 0

    def test_code_outside_validity_window(self, event: Event, sponsorship: Sponsorship) -> None:
        sponsorship.valid_to = timezone.now() - timedelta(days=1)
        sponsorship.save()

        (line,) = validate_sponsorship_codes(event, [sponsorship.code])

        assert line.reason == "outside_validity_window"

    def test_code_of_another_event_is_not_found(self, other_event: Event, sponsorship: Sponsorship) -> None:
        (line,) = validate_sponsorship_codes(other_event, [sponsorship.code])
        assert line.reason == "not_found"

    def test_generated_codes(self, event: Event) -> None:
        generated = Sponsorship.objects.create(event=event, sponsor_name="Globex", amount=1000)
        assert generated.code.startswith("SP-")
        assert len(generated.code) == 11

    def test_used_code(self, event: Event, sponsorship: Sponsorship) -> None:
        redeem_sponsorship_code(event, sponsorship.code)

        (line,) = validate_sponsorship_codes(event, [sponsorship.code])

        assert line.valid is False
        assert line.reason == "already_used"
        assert line.amount == 0

    def test_redeemed_code_keeps_its_amount(self, event: Event, sponsorship: Sponsorship) -> None:
        sponsorship.status = Sponsorship.SponsorshipStatus.CANCELLED
        sponsorship.amount = 1
        sponsorship.save()

        (line,) = validate_sponsorship_codes(event, [sponsorship.code], redeemed={"sp-acme2024": 5000})

        assert line.valid is True
        assert line.amount == 5000


# --- Tests for redeem_sponsorship_code / release_sponsorship_code ---


class TestRedeemSponsorshipCode:
    def test_redeem_marks_code_used(self, event: Event, sponsorship: Sponsorship) -> None:
        redeem_sponsorship_code(event, "sp-acme2024")

        sponsorship.refresh_from_db()
        assert sponsorship.status == Sponsorship.SponsorshipStatus.USED

    def test_code_can_only_be_redeemed_once(self, event: Event, sponsorship: Sponsorship) -> None:
        redeem_sponsorship_code(event, sponsorship.code)

        with pytest.raises(SponsorshipUnavailableError) as exc_info:
            redeem_sponsorship_code(event, sponsorship.code)

        assert exc_info.value.code == sponsorship.code

    def test_cancelled_code_cannot_be_redeemed(self, event: Event, sponsorship: Sponsorship) -> None:
        sponsorship.status = Sponsorship.SponsorshipStatus.CANCELLED
        sponsorship.save()

        with pytest.raises(SponsorshipUnavailableError):
            redeem_sponsorship_code(event, sponsorship.code)

    def test_release_makes_code_active_again(self, event: Event, sponsorship: Sponsorship) -> None:
        redeem_sponsorship_code(event, sponsorship.code)

        release_sponsorship_code(event, sponsorship.code)

        sponsorship.refresh_from_db()
        assert sponsorship.status == Sponsorship.SponsorshipStatus.ACTIVE

    def test_release_leaves_cancelled_code_cancelled(self, event: Event, sponsorship: Sponsorship) -> None:
        sponsorship.status = Sponsorship.SponsorshipStatus.CANCELLED
        sponsorship.save()

        release_sponsorship_code(event, sponsorship.code)

        sponsorship.refresh_from_db()
        assert sponsorship.status == Sponsorship.SponsorshipStatus.CANCELLED
