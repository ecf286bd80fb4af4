"""Service deciding who gets a reminder and what it says."""
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from braincraft.models.models import (
    ContentEntry,
    EntryType,
    NotificationPreference,
    User,
    normalize_list_name,
)
from braincraft.services.time_slots import (
    format_time_slot,
    notification_now,
    stored_time_slots,
)

logger = logging.getLogger(__name__)

TRANSLATION_MARKERS = ("（訳）", "(translation)")


def _entry_type(entry: ContentEntry) -> EntryType:
    try:
        return EntryType(entry.entry_type)
    except ValueError:
        return EntryType.WORD


def filter_entries(
    entries: Iterable[ContentEntry],
    list_prefs: Dict[str, bool],
    idiom_enabled: bool,
) -> List[ContentEntry]:
    """Keep unlearned entries from enabled lists, optionally without idioms."""
    selected = []
    for entry in entries:
        if entry.learned_at is not None:
            continue
        if list_prefs.get(normalize_list_name(entry.list_name), True) is False:
            continue
        if _entry_type(entry) is EntryType.IDIOM and not idiom_enabled:
            continue
        selected.append(entry)
    return selected


def _split_translation(example: str):
    for marker in TRANSLATION_MARKERS:
        index = example.find(marker)
        if index >= 0:
            return example[:index].strip(), example[index + len(marker):].strip()
    return example.strip(), ""


def format_entry(entry: ContentEntry) -> str:
    """Render one entry as a reminder block."""
    lines = [f"✅{entry.text}"]
    if entry.meaning:
        lines.append(f"(meaning) {entry.meaning}")
    if entry.example:
        example, translation = _split_translation(entry.example)
        if example:
            lines.append(f"(example) {example}")
        if translation:
            lines.append(f"(translation) {translation}")
    return "\n".join(lines)


def build_message(
    entries: Iterable[ContentEntry],
    list_prefs: Dict[str, bool],
    idiom_enabled: bool,
) -> str:
    """Build the reminder text. An empty string means nothing to send."""
    blocks = [format_entry(entry) for entry in filter_entries(entries, list_prefs, idiom_enabled)]
    return "\n\n".join(blocks)


def build_registration_message(entry: ContentEntry) -> str:
    """Build the confirmation pushed after an entry is registered."""
    lines = [f"【{entry.text}】"]
    if entry.meaning:
        lines.append(f"(meaning) {entry.meaning}")
    if entry.example:
        lines.append(f"(example) {entry.example}")
    return "\n".join(lines)


class NotificationService:
    """Service selecting users whose reminder is due."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def select_eligible_users(
        self,
        now_hour: int,
        now_minute: int,
        today: Optional[date] = None,
    ) -> Set[int]:
        """Get telegram ids of users with a matching, not yet sent slot.

        ``today`` defaults to the current date in the notification zone.
        """
        now_str = format_time_slot(now_hour, now_minute)
        if today is None:
            today = notification_now().date()

        eligible = set()
        rows = (
            self.db.query(User.telegram_id, NotificationPreference)
            .join(NotificationPreference, NotificationPreference.user_id == User.id)
            .all()
        )
        for telegram_id, preference in rows:
            if self.is_due(preference, now_str, today):
                eligible.add(telegram_id)

        logger.debug("%d user(s) due at %s on %s", len(eligible), now_str, today)
        return eligible

    @staticmethod
    def is_due(preference: NotificationPreference, now_str: str, today: date) -> bool:
        """Whether a preference record wants a push for (today, now_str)."""
        if preference.enabled is not True:
            return False
        if now_str not in stored_time_slots(preference.time_slots):
            return False
        if preference.last_sent_date == today and now_str in stored_time_slots(
            preference.last_sent_time_slots
        ):
            return False
        return True
