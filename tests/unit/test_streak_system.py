"""Unit tests for Streak System (personalfit/gamification/streak_system.py)"""
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from personalfit.gamification.streak_system import update_streak


def _at(day: int, hour: int = 12, minute: int = 0) -> datetime:
    return datetime(2024, 6, day, hour, minute, tzinfo=timezone.utc)


UTC = ZoneInfo("UTC")


# ============================================================================
# Basic Streak Rules
# ============================================================================

def test_first_workout_starts_streak():
    result = update_streak(None, _at(10), current_streak=0, tz=UTC)

    assert result.new_streak == 1
    assert result.streak_broken is False


def test_next_day_continues_streak():
    result = update_streak(_at(10), _at(11), current_streak=4, tz=UTC)

    assert result.new_streak == 5
    assert result.streak_broken is False


def test_same_day_leaves_streak_unchanged():
    """Re-logging on the same day never inflates the streak"""
    result = update_streak(_at(10, 8), _at(10, 20), current_streak=3, tz=UTC)

    assert result.new_streak == 3
    assert result.streak_broken is False


def test_gap_breaks_streak():
    result = update_streak(_at(10), _at(13), current_streak=9, tz=UTC)

    assert result.new_streak == 1
    assert result.streak_broken is True


def test_back_dated_workout_leaves_streak_unchanged():
    result = update_streak(_at(10), _at(8), current_streak=6, tz=UTC)

    assert result.new_streak == 6
    assert result.streak_broken is False


# ============================================================================
# Calendar Day Boundaries
# ============================================================================

def test_calendar_days_not_24h_windows():
    """23:50 then 00:10 the next day is consecutive"""
    result = update_streak(_at(10, 23, 50), _at(11, 0, 10), current_streak=2, tz=UTC)

    assert result.new_streak == 3


def test_almost_48h_apart_on_consecutive_days():
    """00:10 then 23:50 the next day is still consecutive"""
    result = update_streak(_at(10, 0, 10), _at(11, 23, 50), current_streak=2, tz=UTC)

    assert result.new_streak == 3
    assert result.streak_broken is False


def test_timezone_defines_day_boundary():
    """Same two instants, different zones, different outcome"""
    last = datetime(2024, 6, 10, 20, 0, tzinfo=timezone.utc)
    current = datetime(2024, 6, 11, 3, 0, tzinfo=timezone.utc)

    in_utc = update_streak(last, current, current_streak=1, tz=UTC)
    # In New York both are on June 10th
    in_new_york = update_streak(last, current, current_streak=1, tz=ZoneInfo("America/New_York"))

    assert in_utc.new_streak == 2
    assert in_new_york.new_streak == 1


# ============================================================================
# Streak Freeze Tests
# ============================================================================

def test_freeze_on_missed_day_bridges_gap():
    result = update_streak(
        _at(10), _at(12), current_streak=5,
        last_freeze_date=date(2024, 6, 11), tz=UTC
    )

    assert result.new_streak == 6
    assert result.streak_broken is False
    assert result.streak_protected is True


def test_freeze_on_wrong_day_does_not_bridge():
    result = update_streak(
        _at(10), _at(12), current_streak=5,
        last_freeze_date=date(2024, 6, 9), tz=UTC
    )

    assert result.new_streak == 1
    assert result.streak_broken is True


def test_freeze_does_not_bridge_two_missed_days():
    result = update_streak(
        _at(10), _at(13), current_streak=5,
        last_freeze_date=date(2024, 6, 11), tz=UTC
    )

    assert result.new_streak == 1
    assert result.streak_broken is True


def test_accepts_plain_dates():
    result = update_streak(date(2024, 6, 10), date(2024, 6, 11), current_streak=1)

    assert result.new_streak == 2
