"""Send-today decisions for stored notification preferences."""

from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from models import EmailFrequency, NotificationPreference


def is_digest_enabled(pref: NotificationPreference) -> bool:
    """Enabled/off gate that a forced run never bypasses."""
    return pref.email_enabled and pref.frequency is not EmailFrequency.OFF


def should_send_today(pref: NotificationPreference, now: datetime) -> bool:
    """Return True when the subscriber's cadence selects the calendar day of ``now``.

    Only the date of ``now`` is consulted. ``preferred_day`` counts from
    Sunday (0) to Saturday (6).
    """
    if not is_digest_enabled(pref):
        return False

    frequency = pref.frequency
    if frequency is EmailFrequency.DAILY:
        return True
    if frequency is EmailFrequency.WEEKLY:
        return now.isoweekday() % 7 == pref.preferred_day
    if frequency is EmailFrequency.MONTHLY:
        return now.day == 1
    return False


def to_local(now: datetime, timezone: str) -> datetime:
    """Express ``now`` in the configured timezone; naive values are read as UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(ZoneInfo(timezone))
