"""Time window inside which a paid booking may be refunded."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Final

DEFAULT_CUTOFF: Final = timedelta(hours=3)
_SECONDS_PER_HOUR: Final = Decimal(3600)
_HOURS_PLACES: Final = Decimal("0.1")


@dataclass(frozen=True, slots=True)
class RefundWindow:
    """Eligibility report for display alongside the refund button."""

    refund_available: bool
    hours_until_workshop: float
    workshop_starts_at: datetime
    message: str


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def is_refund_allowed(
    now: datetime, starts_at: datetime, *, cutoff: timedelta = DEFAULT_CUTOFF
) -> bool:
    """Return True while ``now`` is strictly before ``starts_at - cutoff``."""

    return _as_utc(now) < _as_utc(starts_at) - cutoff


def hours_until(now: datetime, starts_at: datetime) -> float:
    """Hours left before the workshop, clamped at zero and rounded to 0.1."""

    seconds = Decimal(str((_as_utc(starts_at) - _as_utc(now)).total_seconds()))
    hours = max(Decimal(0), seconds / _SECONDS_PER_HOUR)
    return float(hours.quantize(_HOURS_PLACES, rounding=ROUND_HALF_UP))


def refund_window(
    now: datetime, starts_at: datetime, *, cutoff: timedelta = DEFAULT_CUTOFF
) -> RefundWindow:
    """Describe whether a refund is currently possible for a workshop."""

    allowed = is_refund_allowed(now, starts_at, cutoff=cutoff)
    cutoff_hours = int(cutoff.total_seconds() // 3600)
    if allowed:
        message = "Refund is available"
    else:
        message = (
            f"Refund is not available less than {cutoff_hours} hours "
            "before the workshop"
        )
    return RefundWindow(
        refund_available=allowed,
        hours_until_workshop=hours_until(now, starts_at),
        workshop_starts_at=_as_utc(starts_at),
        message=message,
    )


__all__ = [
    "DEFAULT_CUTOFF",
    "RefundWindow",
    "hours_until",
    "is_refund_allowed",
    "refund_window",
]
