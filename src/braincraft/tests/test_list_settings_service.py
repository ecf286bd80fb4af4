"""Tests for list settings service."""
import pytest
from sqlalchemy.orm import Session

from braincraft.services.list_settings_service import ListSettingsService


@pytest.fixture
def list_settings(db: Session) -> ListSettingsService:
    """Create a list settings service instance."""
    return ListSettingsService(db)


def test_defaults_to_enabled(list_settings: ListSettingsService, telegram_id: int) -> None:
    """Test that lists without a stored setting are enabled."""
    assert list_settings.is_list_notification_enabled(telegram_id, "Business") is True
    assert list_settings.get_list_notification_map(telegram_id, ["Business", "Uncategorized"]) == {
        "Business": True,
        "Uncategorized": True,
    }


def test_set_and_read_map(list_settings: ListSettingsService, telegram_id: int) -> None:
    """Test toggling lists and reading them in bulk."""
    list_settings.set_list_notification_enabled(telegram_id, "Business", False)
    list_settings.set_list_notification_enabled(telegram_id, "Travel", False)
    list_settings.set_list_notification_enabled(telegram_id, "Travel", True)

    assert list_settings.get_list_notification_map(telegram_id, ["Business", "Travel", "Daily"]) == {
        "Business": False,
        "Travel": True,
        "Daily": True,
    }
    # Settings are per user
    assert list_settings.is_list_notification_enabled(telegram_id + 1, "Business") is True


def test_empty_name_maps_to_uncategorized(list_settings: ListSettingsService, telegram_id: int) -> None:
    """Test that an empty list name refers to the uncategorized list."""
    list_settings.set_list_notification_enabled(telegram_id, "  ", False)

    assert list_settings.is_list_notification_enabled(telegram_id, "Uncategorized") is False


def test_rename_overwrites_target(list_settings: ListSettingsService, telegram_id: int) -> None:
    """Test that renaming onto an existing list keeps the renamed list's setting."""
    list_settings.set_list_notification_enabled(telegram_id, "Old", False)
    list_settings.set_list_notification_enabled(telegram_id, "New", True)

    list_settings.rename_list_settings(telegram_id, "Old", "New")

    assert list_settings.get_list_notification_map(telegram_id, ["Old", "New"]) == {"Old": True, "New": False}


def test_delete_list_settings(list_settings: ListSettingsService, telegram_id: int) -> None:
    """Test removing a list's setting."""
    list_settings.set_list_notification_enabled(telegram_id, "Business", False)
    list_settings.delete_list_settings(telegram_id, "Business")
    list_settings.delete_list_settings(telegram_id, "Never existed")

    assert list_settings.is_list_notification_enabled(telegram_id, "Business") is True
