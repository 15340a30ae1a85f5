from collections.abc import Iterable, Mapping
from datetime import datetime

import structlog
from django.utils import timezone

from events.exceptions import SponsorshipUnavailableError
from events.models import Event, Sponsorship
from events.schema import SponsorshipLine

logger = structlog.get_logger(__name__)


def validate_sponsorship_codes(
    event: Event,
    codes: Iterable[str],
    now: datetime | None = None,
    *,
    redeemed: Mapping[str, int] | None = None,
) -> tuple[SponsorshipLine, ...]:
    """Look up sponsorship codes for an event.

    Codes are matched case-insensitively and duplicates are counted once. Unknown, used,
    cancelled or out-of-window codes are reported with an amount of zero.

    Args:
        event: The event the codes belong to.
        codes: The codes to check.
        now: Reference time for the validity window. Defaults to the current time.
        redeemed: Codes the registration being priced already holds, mapped to the amount
            they were redeemed for. They keep that amount whatever the code's current state.
    """
    now = now or timezone.now()
    redeemed = {code.strip().upper(): amount for code, amount in (redeemed or {}).items()}
    normalized = list(dict.fromkeys(code.strip().upper() for code in codes if code and code.strip()))
    if not normalized:
        return ()
    found = {s.code: s for s in Sponsorship.objects.filter(event=event, code__in=normalized)}

    lines = []
    for code in normalized:
        sponsorship = found.get(code)
        if code in redeemed:
            lines.append(SponsorshipLine(code=code, amount=redeemed[code], valid=True))
        elif sponsorship is None:
            lines.append(SponsorshipLine(code=code, amount=0, valid=False, reason="not_found"))
        elif sponsorship.status == Sponsorship.SponsorshipStatus.USED:
            lines.append(SponsorshipLine(code=code, amount=0, valid=False, reason="already_used"))
        elif sponsorship.status != Sponsorship.SponsorshipStatus.ACTIVE:
            lines.append(SponsorshipLine(code=code, amount=0, valid=False, reason="cancelled"))
        elif not sponsorship.is_redeemable_at(now):
            lines.append(SponsorshipLine(code=code, amount=0, valid=False, reason="outside_validity_window"))
        else:
            lines.append(SponsorshipLine(code=code, amount=sponsorship.amount, valid=True))
    invalid = [line.code for line in lines if not line.valid]
    if invalid:
        logger.info("sponsorship_codes_rejected", event_id=str(event.pk), codes=invalid)
    return tuple(lines)


def redeem_sponsorship_code(event: Event, code: str) -> None:
    """Mark an active code as used. Must run inside the transaction that links it to a registration.

    Raises:
        SponsorshipUnavailableError: If the code stopped being active since it was priced.
    """
    claimed = Sponsorship.objects.filter(
        event=event, code=code.strip().upper(), status=Sponsorship.SponsorshipStatus.ACTIVE
    ).update(status=Sponsorship.SponsorshipStatus.USED, updated_at=timezone.now())
    if not claimed:
        logger.warning("sponsorship_redeem_conflict", event_id=str(event.pk), code=code)
        raise SponsorshipUnavailableError(f"Sponsorship code {code} is no longer available.", code=code)
    logger.info("sponsorship_redeemed", event_id=str(event.pk), code=code)


def release_sponsorship_code(event: Event, code: str) -> None:
    """Make a used code available again. Cancelled codes stay cancelled."""
    released = Sponsorship.objects.filter(
        event=event, code=code.strip().upper(), status=Sponsorship.SponsorshipStatus.USED
    ).update(status=Sponsorship.SponsorshipStatus.ACTIVE, updated_at=timezone.now())
    if released:
        logger.info("sponsorship_released", event_id=str(event.pk), code=code)
