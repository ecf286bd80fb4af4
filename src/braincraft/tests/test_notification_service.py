"""Tests for notification service."""
from datetime import date

import pytest
from sqlalchemy.orm import Session

from braincraft.models.models import ContentEntry, EntryType, NotificationPreference
from braincraft.services.notification_service import (
    NotificationService,
    build_message,
    build_registration_message,
    filter_entries,
    format_entry,
)
from braincraft.services.preference_service import PreferenceService

TODAY = date(2026, 2, 16)


@pytest.fixture
def notification_service(db: Session) -> NotificationService:
    """Create a notification service instance."""
    return NotificationService(db)


@pytest.fixture
def preference_service(db: Session) -> PreferenceService:
    """Create a preference service instance."""
    return PreferenceService(db)


def entry(text: str, **kwargs) -> ContentEntry:
    return ContentEntry(text=text, **kwargs)


def test_select_eligible_users(
    notification_service: NotificationService,
    preference_service: PreferenceService,
    telegram_id: int,
) -> None:
    """Test slot matching against the current time."""
    preference_service.update_preferences(telegram_id, enabled=True, time_slots=["07:30", "20:00"])

    assert notification_service.select_eligible_users(7, 30, TODAY) == {telegram_id}
    assert notification_service.select_eligible_users(20, 0, TODAY) == {telegram_id}
    assert notification_service.select_eligible_users(7, 31, TODAY) == set()


def test_select_skips_disabled_users(
    notification_service: NotificationService,
    preference_service: PreferenceService,
    telegram_id: int,
) -> None:
    """Test the master switch."""
    preference_service.update_preferences(telegram_id, enabled=False, time_slots=["07:30"])

    assert notification_service.select_eligible_users(7, 30, TODAY) == set()


def test_select_skips_already_sent_slot(
    notification_service: NotificationService,
    preference_service: PreferenceService,
    telegram_id: int,
) -> None:
    """Test that a (date, slot) pair already sent is not selected again."""
    preference_service.update_preferences(telegram_id, enabled=True, time_slots=["07:30", "20:00"])
    preference_service.mark_notification_sent(telegram_id, TODAY, "07:30")

    assert notification_service.select_eligible_users(7, 30, TODAY) == set()
    assert notification_service.select_eligible_users(20, 0, TODAY) == {telegram_id}


def test_select_after_date_rollover(
    notification_service: NotificationService,
    preference_service: PreferenceService,
    telegram_id: int,
) -> None:
    """Test that yesterday's sent slots do not block today's."""
    preference_service.update_preferences(telegram_id, enabled=True, time_slots=["08:00"])
    preference_service.mark_notification_sent(telegram_id, date(2026, 2, 15), "08:00")

    assert notification_service.select_eligible_users(8, 0, date(2026, 2, 15)) == set()
    assert notification_service.select_eligible_users(8, 0, date(2026, 2, 16)) == {telegram_id}


def test_select_normalizes_stored_slots(
    db: Session,
    notification_service: NotificationService,
    preference_service: PreferenceService,
    telegram_id: int,
) -> None:
    """Test that stored "H:mm" values still match and garbage never raises."""
    preference = preference_service.update_preferences(telegram_id, enabled=True)
    preference.time_slots = ["7:30", "garbage", None, 12, "99:99:99"]
    db.commit()

    assert notification_service.select_eligible_users(7, 30, TODAY) == {telegram_id}
    assert notification_service.select_eligible_users(12, 0, TODAY) == set()


def test_select_handles_corrupt_slot_collection(
    db: Session,
    notification_service: NotificationService,
    preference_service: PreferenceService,
    telegram_id: int,
) -> None:
    """Test a stored slot field that is not a list at all."""
    preference = preference_service.update_preferences(telegram_id, enabled=True)
    preference.time_slots = "07:30"
    preference.last_sent_time_slots = {"broken": True}
    db.commit()

    assert notification_service.select_eligible_users(7, 30, TODAY) == set()


def test_is_due_is_total_over_garbage() -> None:
    """Test that non-boolean flags are treated as off."""
    preference = NotificationPreference(
        enabled="yes",
        time_slots=["07:30"],
        last_sent_date="not a date",
        last_sent_time_slots=None,
    )
    assert NotificationService.is_due(preference, "07:30", TODAY) is False

    preference.enabled = True
    assert NotificationService.is_due(preference, "07:30", TODAY) is True


def test_select_multiple_users(
    notification_service: NotificationService,
    preference_service: PreferenceService,
) -> None:
    """Test that each user is evaluated independently."""
    preference_service.update_preferences(101, enabled=True, time_slots=["09:00"])
    preference_service.update_preferences(102, enabled=True, time_slots=["9:00", "21:00"])
    preference_service.update_preferences(103, enabled=True, time_slots=["10:00"])
    preference_service.mark_notification_sent(102, TODAY, "09:00")

    assert notification_service.select_eligible_users(9, 0, TODAY) == {101}


def test_filter_entries() -> None:
    """Test learned, list and idiom filtering."""
    words = [
        entry("resilience"),
        entry("meticulous", learned_at=date(2026, 2, 1)),
        entry("incentive", list_name="Business"),
        entry("get back to", entry_type=EntryType.IDIOM),
        entry("versatile", list_name="Daily"),
    ]

    selected = filter_entries(words, {"Business": False}, idiom_enabled=True)
    assert [e.text for e in selected] == ["resilience", "get back to", "versatile"]

    selected = filter_entries(words, {}, idiom_enabled=False)
    assert [e.text for e in selected] == ["resilience", "incentive", "versatile"]


def test_filter_entries_normalizes_list_names() -> None:
    """Test that entries without a list follow the uncategorized toggle."""
    words = [entry("a", list_name=""), entry("b", list_name=None), entry("c", list_name="  Daily ")]

    selected = filter_entries(words, {"Uncategorized": False, "Daily": True}, idiom_enabled=True)
    assert [e.text for e in selected] == ["c"]


def test_format_entry() -> None:
    """Test block layout with the embedded translation split out."""
    block = format_entry(
        entry(
            "Resilience",
            meaning="the capacity to recover quickly",
            example="The community showed great resilience.（訳）地域社会は大きな回復力を示した。",
        )
    )

    assert block == (
        "✅Resilience\n"
        "(meaning) the capacity to recover quickly\n"
        "(example) The community showed great resilience.\n"
        "(translation) 地域社会は大きな回復力を示した。"
    )


def test_format_entry_optional_fields() -> None:
    """Test that missing meaning/example lines are omitted."""
    assert format_entry(entry("Paradigm")) == "✅Paradigm"
    assert format_entry(entry("Ambiguous", example="Unclear ending. (translation) Vague")) == (
        "✅Ambiguous\n(example) Unclear ending.\n(translation) Vague"
    )
    # Quiz fields never appear in reminders
    assert format_entry(entry("Persevere", quiz_prompt="Q?", quiz_answer="A")) == "✅Persevere"


def test_build_message() -> None:
    """Test that blocks are separated by a blank line."""
    message = build_message(
        [entry("Versatile", meaning="able to adapt"), entry("Pragmatic")],
        {},
        idiom_enabled=True,
    )

    assert message == "✅Versatile\n(meaning) able to adapt\n\n✅Pragmatic"


def test_build_message_empty() -> None:
    """Test that nothing eligible gives an empty message."""
    assert build_message([], {}, idiom_enabled=True) == ""
    assert build_message([entry("x", learned_at=TODAY)], {}, idiom_enabled=True) == ""
    assert build_message([entry("y", entry_type=EntryType.IDIOM)], {}, idiom_enabled=False) == ""


def test_build_registration_message() -> None:
    """Test the confirmation text for a newly registered entry."""
    assert build_registration_message(
        entry("Resilience", meaning="recovery", example="Great resilience.")
    ) == "【Resilience】\n(meaning) recovery\n(example) Great resilience."
    assert build_registration_message(entry("Paradigm")) == "【Paradigm】"
