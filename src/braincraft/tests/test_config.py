"""Tests for configuration settings."""
from datetime import timedelta

import pytest

from braincraft.config import (
    UNCATEGORIZED_LIST_NAME,
    NotificationSettings,
    Settings,
    settings,
)


def test_settings_defaults():
    """Test default settings values."""
    assert settings.notification.utc_offset_hours == 9
    assert settings.notification.tz.utcoffset(None) == timedelta(hours=9)
    assert settings.notification.max_time_slots == 5
    assert settings.notification.default_time_slot == "08:00"
    assert settings.bot.token == ""
    assert UNCATEGORIZED_LIST_NAME == "Uncategorized"


def test_validate_rejects_bad_offset():
    """Test validation of the notification offset."""
    test_settings = Settings(notification=NotificationSettings(utc_offset_hours=20))

    with pytest.raises(ValueError):
        test_settings.validate()


def test_validate_allows_missing_token():
    """Test that a missing bot token does not fail validation."""
    Settings().validate()


def test_tz_follows_offset():
    """Test that the notification zone is built from the configured offset."""
    assert NotificationSettings(utc_offset_hours=-5).tz.utcoffset(None) == timedelta(hours=-5)


if __name__ == "__main__":
    pytest.main([__file__])
