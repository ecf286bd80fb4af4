"""Per-list notification settings.

A list that is switched off keeps all of its entries; it is only left out
when reminder messages are assembled.
"""
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from braincraft.models.models import ListPreference, normalize_list_name
from braincraft.services.user_service import UserService


class ListSettingsService:
    """List preference store."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db
        self.user_service = UserService(db)

    def _get(self, telegram_id: int, list_name: str) -> Optional[ListPreference]:
        user = self.user_service.get_user_by_telegram_id(telegram_id)
        if not user:
            return None
        return (
            self.db.query(ListPreference)
            .filter(
                ListPreference.user_id == user.id,
                ListPreference.list_name == normalize_list_name(list_name),
            )
            .first()
        )

    def is_list_notification_enabled(self, telegram_id: int, list_name: str) -> bool:
        """Whether a list is included in notifications (True when unset)."""
        preference = self._get(telegram_id, list_name)
        if preference is None:
            return True
        return preference.is_notification_enabled is not False

    def set_list_notification_enabled(self, telegram_id: int, list_name: str, enabled: bool) -> None:
        """Create or update the toggle for a list."""
        preference = self._get(telegram_id, list_name)
        if preference is None:
            user = self.user_service.get_or_create_user(telegram_id)
            preference = ListPreference(user_id=user.id, list_name=normalize_list_name(list_name))
            self.db.add(preference)
        preference.is_notification_enabled = bool(enabled)
        self.db.commit()

    def rename_list_settings(self, telegram_id: int, old_name: str, new_name: str) -> None:
        """Carry a list's setting over to its new name."""
        preference = self._get(telegram_id, old_name)
        if preference is None:
            return
        existing = self._get(telegram_id, new_name)
        if existing is not None:
            self.db.delete(existing)
            self.db.flush()
        preference.list_name = normalize_list_name(new_name)
        self.db.commit()

    def delete_list_settings(self, telegram_id: int, list_name: str) -> None:
        """Drop the setting of a deleted list."""
        preference = self._get(telegram_id, list_name)
        if preference is not None:
            self.db.delete(preference)
            self.db.commit()

    def get_list_notification_map(self, telegram_id: int, list_names: Iterable[str]) -> Dict[str, bool]:
        """Get toggles for several lists at once, defaulting to True."""
        stored: Dict[str, bool] = {}
        user = self.user_service.get_user_by_telegram_id(telegram_id)
        if user:
            for preference in self.db.query(ListPreference).filter(ListPreference.user_id == user.id):
                stored[preference.list_name] = preference.is_notification_enabled is not False

        return {
            name: stored.get(normalize_list_name(name), True)
            for name in list_names
        }
