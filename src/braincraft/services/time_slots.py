"""Helpers for "HH:mm" notification time slots."""
import re
from datetime import datetime, UTC
from typing import Iterable, List, Optional

from braincraft.config import settings

TIME_SLOT_PATTERN = re.compile(r"^(\d{1,2}):(\d{1,2})$")


def format_time_slot(hour: int, minute: int) -> str:
    """Format hour and minute as a zero-padded "HH:mm" string."""
    return f"{hour:02d}:{minute:02d}"


def normalize_time_slot(value) -> Optional[str]:
    """Normalize a raw time string to "HH:mm".

    Out-of-range numbers are clamped (hour to 0-23, minute to 0-59).
    Anything that is not an ``H:mm``/``HH:mm`` string returns None.
    """
    if not isinstance(value, str):
        return None
    match = TIME_SLOT_PATTERN.match(value.strip())
    if not match:
        return None
    hour = min(23, max(0, int(match.group(1))))
    minute = min(59, max(0, int(match.group(2))))
    return format_time_slot(hour, minute)


def normalize_time_slots(values: Iterable) -> List[str]:
    """Normalize every value, silently dropping malformed ones.

    Order is preserved and duplicates are kept so callers can report them.
    """
    normalized = []
    for value in values:
        slot = normalize_time_slot(value)
        if slot is not None:
            normalized.append(slot)
    return normalized


def find_duplicates(slots: Iterable[str]) -> List[str]:
    """Return slots occurring more than once, in first-seen order."""
    seen = set()
    duplicates = []
    for slot in slots:
        if slot in seen and slot not in duplicates:
            duplicates.append(slot)
        seen.add(slot)
    return duplicates


def stored_time_slots(value) -> List[str]:
    """Read a stored slot collection, tolerating corrupt data."""
    if not isinstance(value, (list, tuple, set)):
        return []
    return normalize_time_slots(value)


def notification_now(now: Optional[datetime] = None) -> datetime:
    """Return the current time in the notification time zone.

    Naive datetimes are taken to be UTC.
    """
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(settings.notification.tz)
