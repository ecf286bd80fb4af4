"""Service for managing a user's words and idioms."""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Any

from sqlalchemy.orm import Session

from braincraft.config import UNCATEGORIZED_LIST_NAME, settings
from braincraft.models.models import ContentEntry, EntryType, normalize_list_name
from braincraft.services.list_settings_service import ListSettingsService
from braincraft.services.user_service import UserService

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("text", "meaning", "example", "quiz_prompt", "quiz_answer", "list_name")


def _clean_text(text: Any) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ValueError("Entry text is required")
    return text.strip()


def _check_optional_fields(fields: Dict[str, Any]) -> None:
    for field_name, value in fields.items():
        if value is not None and not isinstance(value, str):
            raise ValueError(f"{field_name} must be a string")


class WordService:
    """Content store: ordered per-user collection of entries."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db
        self.user_service = UserService(db)
        self.list_settings = ListSettingsService(db)

    def _query(self, telegram_id: int):
        user = self.user_service.get_user_by_telegram_id(telegram_id)
        if not user:
            return None
        return self.db.query(ContentEntry).filter(ContentEntry.user_id == user.id)

    def add_entry(
        self,
        telegram_id: int,
        text: str,
        meaning: Optional[str] = None,
        example: Optional[str] = None,
        quiz_prompt: Optional[str] = None,
        quiz_answer: Optional[str] = None,
        list_name: Optional[str] = None,
        entry_type: EntryType = EntryType.WORD,
    ) -> ContentEntry:
        """Register a new entry at the top of the user's collection."""
        text = _clean_text(text)
        _check_optional_fields(
            {
                "meaning": meaning,
                "example": example,
                "quiz_prompt": quiz_prompt,
                "quiz_answer": quiz_answer,
                "list_name": list_name,
            }
        )

        user = self.user_service.get_or_create_user(telegram_id)
        entry = ContentEntry(
            user_id=user.id,
            text=text,
            meaning=meaning,
            example=example,
            quiz_prompt=quiz_prompt,
            quiz_answer=quiz_answer,
            list_name=normalize_list_name(list_name),
            entry_type=EntryType(entry_type),
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def list_entries(self, telegram_id: int) -> List[ContentEntry]:
        """Get all entries for a user, most recently added first."""
        query = self._query(telegram_id)
        if query is None:
            return []
        return query.order_by(ContentEntry.id.desc()).all()

    def get_entry(self, telegram_id: int, entry_id: str) -> Optional[ContentEntry]:
        """Get a single entry by its public id."""
        query = self._query(telegram_id)
        if query is None:
            return None
        return query.filter(ContentEntry.entry_id == entry_id).first()

    def update_entry(self, telegram_id: int, entry_id: str, /, **updates: Any) -> Optional[ContentEntry]:
        """Update editable fields of an entry. Returns None if not found."""
        invalid = sorted(set(updates) - set(UPDATABLE_FIELDS))
        if invalid:
            raise ValueError(f"Fields cannot be updated: {', '.join(invalid)}")
        if "text" in updates:
            updates["text"] = _clean_text(updates["text"])
        _check_optional_fields({k: v for k, v in updates.items() if k != "text"})

        entry = self.get_entry(telegram_id, entry_id)
        if not entry:
            return None

        for field_name, value in updates.items():
            if field_name == "list_name":
                value = normalize_list_name(value)
            setattr(entry, field_name, value)

        self.db.commit()
        return entry

    def mark_as_learned(
        self, telegram_id: int, entry_id: str, learned_on: Optional[date] = None
    ) -> bool:
        """Mark an entry learned, removing it from review and notifications."""
        entry = self.get_entry(telegram_id, entry_id)
        if not entry:
            return False

        if learned_on is None:
            learned_on = datetime.now(settings.notification.tz).date()
        entry.learned_at = learned_on
        self.db.commit()
        return True

    def delete_entry(self, telegram_id: int, entry_id: str) -> bool:
        """Delete an entry."""
        entry = self.get_entry(telegram_id, entry_id)
        if not entry:
            return False

        self.db.delete(entry)
        self.db.commit()
        return True

    def get_learned_entries(self, telegram_id: int) -> List[ContentEntry]:
        """Get learned entries, most recently learned first."""
        query = self._query(telegram_id)
        if query is None:
            return []
        return (
            query.filter(ContentEntry.learned_at.isnot(None))
            .order_by(ContentEntry.learned_at.desc(), ContentEntry.id.desc())
            .all()
        )

    def get_learned_stats(self, telegram_id: int, today: Optional[date] = None) -> Dict[str, int]:
        """Count learned entries overall and since Monday of the current week."""
        if today is None:
            today = datetime.now(settings.notification.tz).date()
        week_start = today - timedelta(days=today.weekday())
        learned = self.get_learned_entries(telegram_id)
        return {
            "thisWeekCount": sum(1 for entry in learned if entry.learned_at >= week_start),
            "totalCount": len(learned),
        }

    def get_list_names(self, telegram_id: int) -> List[str]:
        """Get list names, uncategorized first and the rest sorted."""
        names = {UNCATEGORIZED_LIST_NAME}
        for entry in self.list_entries(telegram_id):
            names.add(normalize_list_name(entry.list_name))
        names.discard(UNCATEGORIZED_LIST_NAME)
        return [UNCATEGORIZED_LIST_NAME] + sorted(names)

    def get_list_summary(self, telegram_id: int) -> List[Dict[str, Any]]:
        """Get list names with entry counts and notification toggles."""
        names = self.get_list_names(telegram_id)
        entries = self.list_entries(telegram_id)
        flags = self.list_settings.get_list_notification_map(telegram_id, names)
        counts: Dict[str, int] = {}
        for entry in entries:
            name = normalize_list_name(entry.list_name)
            counts[name] = counts.get(name, 0) + 1
        return [
            {
                "name": name,
                "count": counts.get(name, 0),
                "isNotificationEnabled": flags[name],
            }
            for name in names
        ]

    def rename_list(self, telegram_id: int, old_name: str, new_name: str) -> int:
        """Rename a list, moving its entries and its notification setting."""
        old_name = normalize_list_name(old_name)
        new_name = normalize_list_name(new_name)
        if old_name == UNCATEGORIZED_LIST_NAME:
            raise ValueError(f"{UNCATEGORIZED_LIST_NAME} cannot be renamed")
        if old_name == new_name:
            return 0

        query = self._query(telegram_id)
        if query is None:
            return 0

        count = 0
        for entry in query.filter(ContentEntry.list_name == old_name).all():
            entry.list_name = new_name
            count += 1
        self.db.commit()

        self.list_settings.rename_list_settings(telegram_id, old_name, new_name)
        logger.info("Renamed list %r to %r for user %d (%d entries)", old_name, new_name, telegram_id, count)
        return count

    def delete_list(self, telegram_id: int, list_name: str, hard: bool = False) -> int:
        """Delete a list.

        By default entries are moved to the uncategorized list; with
        ``hard=True`` they are deleted with it. Returns the number of
        affected entries.
        """
        list_name = normalize_list_name(list_name)
        if list_name == UNCATEGORIZED_LIST_NAME:
            raise ValueError(f"{UNCATEGORIZED_LIST_NAME} cannot be deleted")

        query = self._query(telegram_id)
        if query is None:
            return 0

        count = 0
        for entry in query.filter(ContentEntry.list_name == list_name).all():
            if hard:
                self.db.delete(entry)
            else:
                entry.list_name = UNCATEGORIZED_LIST_NAME
            count += 1
        self.db.commit()

        self.list_settings.delete_list_settings(telegram_id, list_name)
        return count
