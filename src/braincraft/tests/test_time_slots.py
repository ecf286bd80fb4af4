"""Tests for time slot helpers."""
from datetime import datetime, timedelta, timezone, UTC

import pytest

from braincraft.services.time_slots import (
    find_duplicates,
    format_time_slot,
    normalize_time_slot,
    normalize_time_slots,
    notification_now,
    stored_time_slots,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("9:5", "09:05"),
        ("07:30", "07:30"),
        (" 8:00 ", "08:00"),
        ("25:99", "23:59"),
        ("0:0", "00:00"),
    ],
)
def test_normalize_time_slot(raw: str, expected: str) -> None:
    """Test zero padding and clamping."""
    assert normalize_time_slot(raw) == expected


@pytest.mark.parametrize("raw", ["", "8", "08:00:00", "ab:cd", "-1:30", "123:00", None, 800, ["08:00"]])
def test_normalize_time_slot_malformed(raw) -> None:
    """Test that malformed values are rejected without raising."""
    assert normalize_time_slot(raw) is None


def test_normalize_time_slots_drops_malformed_and_keeps_order() -> None:
    """Test list normalization."""
    assert normalize_time_slots(["20:00", "oops", "7:3", "8:00", None]) == ["20:00", "07:03", "08:00"]


def test_find_duplicates() -> None:
    """Test duplicate detection after normalization."""
    assert find_duplicates(normalize_time_slots(["08:00", "8:00", "9:00", "09:0", "8:0"])) == ["08:00", "09:00"]
    assert find_duplicates(["07:00", "08:00"]) == []


def test_stored_time_slots_tolerates_garbage() -> None:
    """Test reading corrupt stored slot collections."""
    assert stored_time_slots(None) == []
    assert stored_time_slots("08:00") == []
    assert stored_time_slots({"08:00": True}) == []
    assert stored_time_slots(["8:00", 7, "x"]) == ["08:00"]


def test_format_time_slot() -> None:
    """Test formatting."""
    assert format_time_slot(7, 5) == "07:05"


def test_notification_now_uses_fixed_offset() -> None:
    """Test that the notification zone is UTC+9 regardless of input zone."""
    utc_time = datetime(2026, 2, 15, 23, 30, tzinfo=UTC)
    local = notification_now(utc_time)
    assert local.utcoffset() == timedelta(hours=9)
    assert (local.date().isoformat(), local.hour, local.minute) == ("2026-02-16", 8, 30)

    # Naive datetimes are taken to be UTC
    assert notification_now(datetime(2026, 2, 15, 23, 30)) == local

    other_zone = datetime(2026, 2, 15, 18, 30, tzinfo=timezone(timedelta(hours=-5)))
    assert notification_now(other_zone) == local
