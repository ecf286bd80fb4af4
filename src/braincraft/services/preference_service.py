"""Notification preference store and sent-tracking."""
import logging
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from braincraft.config import settings
from braincraft.models.models import NotificationPreference, User
from braincraft.services.time_slots import (
    find_duplicates,
    normalize_time_slot,
    normalize_time_slots,
    stored_time_slots,
)
from braincraft.services.user_service import UserService

logger = logging.getLogger(__name__)


class DuplicateTimeSlotError(ValueError):
    """Raised when submitted time slots repeat after normalization."""

    def __init__(self, duplicates: List[str]):
        self.duplicates = duplicates
        super().__init__(f"Duplicate time slots: {', '.join(duplicates)}")


class PreferenceService:
    """Service for reading and writing notification preferences."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db
        self.user_service = UserService(db)

    def _get_record(self, telegram_id: int) -> Optional[NotificationPreference]:
        return (
            self.db.query(NotificationPreference)
            .join(User)
            .filter(User.telegram_id == telegram_id)
            .first()
        )

    def _get_or_create_record(self, telegram_id: int) -> NotificationPreference:
        preference = self._get_record(telegram_id)
        if preference is None:
            user = self.user_service.get_or_create_user(telegram_id)
            preference = NotificationPreference(
                user_id=user.id,
                enabled=False,
                time_slots=[settings.notification.default_time_slot],
                idiom_notifications_enabled=True,
                last_sent_time_slots=[],
            )
            self.db.add(preference)
        return preference

    def get_preferences(self, telegram_id: int) -> NotificationPreference:
        """Get a user's preferences, falling back to unsaved defaults."""
        preference = self._get_record(telegram_id)
        if preference is None:
            return NotificationPreference(
                enabled=False,
                time_slots=[settings.notification.default_time_slot],
                idiom_notifications_enabled=True,
                last_sent_date=None,
                last_sent_time_slots=[],
            )
        return preference

    def is_idiom_notifications_enabled(self, telegram_id: int) -> bool:
        """Idiom toggle; anything but an explicit False counts as on."""
        return self.get_preferences(telegram_id).idiom_notifications_enabled is not False

    def update_preferences(
        self,
        telegram_id: int,
        enabled: Optional[bool] = None,
        time_slots: Optional[Iterable[str]] = None,
        idiom_notifications_enabled: Optional[bool] = None,
    ) -> NotificationPreference:
        """Apply a partial update, creating the record on first write.

        Time slots go through the same validation as ``set_time_slots``;
        on a duplicate nothing is persisted.
        """
        slots = None
        if time_slots is not None:
            slots = self.validate_time_slots(time_slots)

        preference = self._get_or_create_record(telegram_id)
        if enabled is not None:
            preference.enabled = bool(enabled)
        if idiom_notifications_enabled is not None:
            preference.idiom_notifications_enabled = bool(idiom_notifications_enabled)
        if slots is not None:
            preference.time_slots = slots
        self.db.commit()
        return preference

    def validate_time_slots(self, raw_slots: Iterable[str]) -> List[str]:
        """Normalize submitted slots and reject duplicates.

        Duplicates are checked on the full list, before truncation to the
        maximum number of slots.
        """
        normalized = normalize_time_slots(raw_slots)
        duplicates = find_duplicates(normalized)
        if duplicates:
            raise DuplicateTimeSlotError(duplicates)
        return normalized[: settings.notification.max_time_slots]

    def set_time_slots(self, telegram_id: int, raw_slots: Iterable[str]) -> NotificationPreference:
        """Replace a user's time slots."""
        return self.update_preferences(telegram_id, time_slots=list(raw_slots))

    def list_all_user_ids_with_preferences(self) -> List[int]:
        """Get telegram ids of every user with a stored preference record."""
        rows = (
            self.db.query(User.telegram_id)
            .join(NotificationPreference, NotificationPreference.user_id == User.id)
            .all()
        )
        return [row[0] for row in rows]

    def mark_notification_sent(self, telegram_id: int, sent_date: date, time_slot: str) -> NotificationPreference:
        """Record (sent_date, time_slot) as sent.

        The slot set is reset when the date rolls over and otherwise only
        grows. A concurrent writer makes the flush fail with StaleDataError;
        the record is then re-read and the slot added again.
        """
        slot = normalize_time_slot(time_slot)
        if slot is None:
            raise ValueError(f"Invalid time slot: {time_slot!r}")

        retries = settings.notification.sent_mark_retries
        for attempt in range(1, retries + 1):
            preference = self._get_or_create_record(telegram_id)
            if preference.last_sent_date == sent_date:
                sent_slots = stored_time_slots(preference.last_sent_time_slots)
            else:
                sent_slots = []
            if slot not in sent_slots:
                sent_slots.append(slot)

            preference.last_sent_date = sent_date
            # Assign a new list so the JSON column is flagged as changed
            preference.last_sent_time_slots = sent_slots
            try:
                self.db.commit()
                return preference
            except StaleDataError:
                self.db.rollback()
                self.db.expire_all()
                logger.warning(
                    "Concurrent update while marking %s sent for user %d (attempt %d/%d)",
                    slot,
                    telegram_id,
                    attempt,
                    retries,
                )

        raise RuntimeError(f"Could not mark {slot} sent for user {telegram_id} after {retries} attempts")
