"""
XP and Leveling System

Pure calculations for workout XP and level progression. Nothing here touches
the database; GamificationService commits the results.

Leveling Curve (20 levels):
- Level 1: 0 XP, Level 2: 500 XP, Level 3: 1,200 XP ... Level 20: 59,000 XP
- Gaps widen as levels rise

XP Award Rules:
- Workout completed: 100 XP (base)
- First workout ever: +200 XP (one-time)
- Streak bonus: +25 XP per streak day, capped at 30 days
- Personal record: +50 XP
"""

from typing import Dict
import logging

from personalfit.models.gamification import XpAward, XpBreakdownItem

logger = logging.getLogger(__name__)

XP_REWARDS: Dict[str, int] = {
    "workout_completed": 100,
    "personal_record": 50,
    "streak_bonus": 25,  # per day of current streak
    "first_workout": 200,
}

# Streak days beyond this no longer increase the bonus
STREAK_BONUS_CAP_DAYS = 30

LEVEL_THRESHOLDS = (
    0,      # Level 1
    500,    # Level 2
    1200,   # Level 3
    2200,   # Level 4
    3500,   # Level 5
    5100,   # Level 6
    7000,   # Level 7
    9200,   # Level 8
    11700,  # Level 9
    14500,  # Level 10
    17600,  # Level 11
    21000,  # Level 12
    24700,  # Level 13
    28700,  # Level 14
    33000,  # Level 15
    37600,  # Level 16
    42500,  # Level 17
    47700,  # Level 18
    53200,  # Level 19
    59000,  # Level 20
)

MAX_LEVEL = len(LEVEL_THRESHOLDS)

LEVEL_TITLES = (
    (1, "Beginner"),
    (3, "Novice"),
    (5, "Intermediate"),
    (8, "Advanced"),
    (12, "Expert"),
    (15, "Master"),
    (18, "Elite"),
    (20, "Legend"),
)


def calculate_level(total_xp: int) -> int:
    """
    Calculate level from total XP

    Highest level whose threshold has been reached. Total over all integers:
    anything below the first threshold (including negative XP) is level 1.
    """
    level = 1
    for index, threshold in enumerate(LEVEL_THRESHOLDS):
        if total_xp >= threshold:
            level = index + 1
        else:
            break
    return level


def get_xp_for_next_level(current_level: int) -> int:
    """
    Cumulative XP needed to reach the level after current_level

    At max level this is the max threshold.
    """
    if current_level >= MAX_LEVEL:
        return LEVEL_THRESHOLDS[MAX_LEVEL - 1]
    # current_level is 1-indexed, so this is the next level's threshold
    return LEVEL_THRESHOLDS[max(current_level, 1)]


def get_level_progress(total_xp: int) -> int:
    """
    Progress through the current level band as a whole percentage (0-100)
    """
    current_level = calculate_level(total_xp)

    if current_level >= MAX_LEVEL:
        return 100

    band_start = LEVEL_THRESHOLDS[current_level - 1]
    band_end = LEVEL_THRESHOLDS[current_level]
    xp_in_level = max(total_xp - band_start, 0)

    return round(xp_in_level / (band_end - band_start) * 100)


def get_level_title(level: int) -> str:
    """Cosmetic title for a level"""
    for max_level, title in LEVEL_TITLES:
        if level <= max_level:
            return title
    return "Max Level"


def calculate_streak_bonus(current_streak: int) -> int:
    """
    Streak bonus XP: per-day bonus times streak length, up to the cap
    """
    if current_streak <= 0:
        return 0
    return XP_REWARDS["streak_bonus"] * min(current_streak, STREAK_BONUS_CAP_DAYS)


def calculate_workout_xp(
    is_first_workout: bool,
    current_streak: int,
    had_personal_record: bool
) -> XpAward:
    """
    Calculate XP earned for completing a workout

    Args:
        is_first_workout: True if the user has never completed a workout
        current_streak: Streak length including this workout
        had_personal_record: True if a PR was set during the workout

    Returns:
        XpAward with the total and an itemised breakdown
    """
    breakdown = [
        XpBreakdownItem(source="Workout Completed", amount=XP_REWARDS["workout_completed"])
    ]

    if is_first_workout:
        breakdown.append(
            XpBreakdownItem(source="First Workout Bonus", amount=XP_REWARDS["first_workout"])
        )

    streak_bonus = calculate_streak_bonus(current_streak)
    if streak_bonus > 0:
        breakdown.append(
            XpBreakdownItem(source=f"{current_streak}-Day Streak Bonus", amount=streak_bonus)
        )

    if had_personal_record:
        breakdown.append(
            XpBreakdownItem(source="Personal Record", amount=XP_REWARDS["personal_record"])
        )

    return XpAward(
        total_xp=sum(item.amount for item in breakdown),
        breakdown=breakdown,
    )
