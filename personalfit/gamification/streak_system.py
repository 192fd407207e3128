"""
Workout Streak Calculation

Decides whether a completed workout starts, continues or breaks a streak.
Days are calendar days in the effective timezone, not 24h windows.

Rules:
- No previous workout: streak starts at 1
- Same day: streak unchanged (re-logging never inflates it)
- Next day: streak + 1
- Gap of 2+ days: reset to 1, flagged as broken
- A streak freeze used on the single missed day bridges the gap
"""

from datetime import date, datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo
import logging

from personalfit.models.gamification import StreakUpdate
from personalfit.utils.datetime_helpers import calendar_day, days_between

logger = logging.getLogger(__name__)


def update_streak(
    last_workout_date: Optional[Union[datetime, date]],
    workout_date: Union[datetime, date],
    current_streak: int,
    last_freeze_date: Optional[date] = None,
    tz: Optional[ZoneInfo] = None
) -> StreakUpdate:
    """
    Apply a workout date to a streak

    Args:
        last_workout_date: Previous completed workout, if any
        workout_date: The workout being recorded
        current_streak: Streak before this workout
        last_freeze_date: Day the user last spent a streak freeze on
        tz: Timezone that defines day boundaries (defaults to DEFAULT_TIMEZONE)

    Returns:
        StreakUpdate; the caller keeps longest = max(new, previous longest)
    """
    if last_workout_date is None:
        return StreakUpdate(new_streak=1, streak_broken=False)

    gap = days_between(last_workout_date, workout_date, tz)

    # Back-dated workouts count like a same-day re-log
    if gap <= 0:
        return StreakUpdate(new_streak=current_streak, streak_broken=False)

    if gap == 1:
        return StreakUpdate(new_streak=current_streak + 1, streak_broken=False)

    if gap == 2 and last_freeze_date is not None:
        missed_day = calendar_day(last_workout_date, tz).toordinal() + 1
        if last_freeze_date.toordinal() == missed_day:
            logger.debug(f"Streak freeze on {last_freeze_date} bridged a 1-day gap")
            return StreakUpdate(
                new_streak=current_streak + 1,
                streak_broken=False,
                streak_protected=True
            )

    return StreakUpdate(new_streak=1, streak_broken=True)
