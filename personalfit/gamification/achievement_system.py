"""
Achievement System

Static catalog of 42 achievements across categories:
- Milestones (first workout, first PR, profile complete)
- Streaks (3 to 365 days)
- Volume (25 to 1000 workouts)
- Personal records
- Levels and total XP
- Daily challenges
- Special (early bird, night owl, comebacks, gems)

Evaluation is pure: compare a stats snapshot against the catalog and return
IDs that are newly satisfied and not already unlocked.
"""

from typing import Iterable, List, Optional
import logging

from personalfit.models.achievement import Achievement, AchievementCriteria, AchievementView
from personalfit.models.gamification import AchievementCategory, AchievementStats

logger = logging.getLogger(__name__)


def _achievement(
    id: str,
    name: str,
    description: str,
    icon: str,
    category: AchievementCategory,
    stat: str,
    minimum: int = 1
) -> Achievement:
    return Achievement(
        id=id,
        name=name,
        description=description,
        icon=icon,
        category=category,
        criteria=AchievementCriteria(stat=stat, minimum=minimum),
    )


_M = AchievementCategory.MILESTONE
_S = AchievementCategory.STREAK
_V = AchievementCategory.VOLUME
_P = AchievementCategory.PR
_L = AchievementCategory.LEVEL
_C = AchievementCategory.CHALLENGE
_X = AchievementCategory.SPECIAL

ACHIEVEMENTS: List[Achievement] = [
    # Getting started
    _achievement("first_workout", "Getting Started", "Complete your first workout", "trophy", _M, "total_workouts", 1),
    _achievement("first_week", "First Full Week", "Complete 7 workouts total", "calendar", _M, "total_workouts", 7),
    _achievement("first_month", "Monthly Milestone", "Complete 30 workouts total", "calendar-check", _M, "total_workouts", 30),
    _achievement("first_pr", "Personal Best", "Set your first personal record", "zap", _M, "total_prs", 1),
    _achievement("profile_complete", "All Set Up", "Complete your fitness profile", "user-check", _M, "profile_complete", 1),

    # Streaks
    _achievement("streak_3", "Getting Consistent", "Maintain a 3-day workout streak", "flame", _S, "current_streak", 3),
    _achievement("week_warrior", "Week Warrior", "Maintain a 7-day workout streak", "flame", _S, "current_streak", 7),
    _achievement("streak_14", "Two Week Titan", "Maintain a 14-day workout streak", "flame", _S, "current_streak", 14),
    _achievement("streak_21", "Habit Formed", "Maintain a 21-day workout streak", "brain", _S, "current_streak", 21),
    _achievement("month_master", "Month Master", "Maintain a 30-day workout streak", "star", _S, "current_streak", 30),
    _achievement("streak_60", "Unstoppable", "Maintain a 60-day workout streak", "rocket", _S, "current_streak", 60),
    _achievement("streak_90", "Quarterly Champion", "Maintain a 90-day workout streak", "medal", _S, "current_streak", 90),
    _achievement("streak_365", "Year of Iron", "Maintain a 365-day workout streak", "crown", _S, "current_streak", 365),

    # Workout volume
    _achievement("workouts_25", "Quarter Century", "Complete 25 workouts", "dumbbell", _V, "total_workouts", 25),
    _achievement("workouts_50", "Half Century", "Complete 50 workouts", "dumbbell", _V, "total_workouts", 50),
    _achievement("consistency_king", "Consistency King", "Complete 100 workouts", "crown", _V, "total_workouts", 100),
    _achievement("workouts_250", "Dedicated", "Complete 250 workouts", "target", _V, "total_workouts", 250),
    _achievement("workouts_500", "Fitness Fanatic", "Complete 500 workouts", "star", _V, "total_workouts", 500),
    _achievement("workouts_1000", "Thousand Club", "Complete 1000 workouts", "trophy", _V, "total_workouts", 1000),

    # Personal records
    _achievement("pr_crusher", "PR Crusher", "Set 5 personal records", "zap", _P, "total_prs", 5),
    _achievement("pr_10", "Record Breaker", "Set 10 personal records", "trending-up", _P, "total_prs", 10),
    _achievement("pr_25", "PR Machine", "Set 25 personal records", "activity", _P, "total_prs", 25),
    _achievement("pr_50", "Beast Mode", "Set 50 personal records", "flame", _P, "total_prs", 50),
    _achievement("pr_100", "Century of PRs", "Set 100 personal records", "award", _P, "total_prs", 100),
    _achievement("pr_week", "PR Week", "Set 3 personal records in one week", "calendar", _P, "prs_this_week", 3),
    _achievement("pr_day", "PR Day", "Set 2 personal records in one day", "sun", _P, "prs_today", 2),

    # Levels
    _achievement("level_5", "Rising Star", "Reach Level 5", "star", _L, "level", 5),
    _achievement("level_10", "Elite Athlete", "Reach Level 10", "medal", _L, "level", 10),
    _achievement("level_15", "Veteran", "Reach Level 15", "shield", _L, "level", 15),
    _achievement("level_20", "Fitness Legend", "Reach Level 20", "trophy", _L, "level", 20),
    _achievement("xp_10k", "10K Club", "Earn 10,000 total XP", "sparkles", _L, "total_xp", 10000),
    _achievement("xp_50k", "XP Master", "Earn 50,000 total XP", "gem", _L, "total_xp", 50000),

    # Daily challenges
    _achievement("daily_challenge_1", "Challenge Accepted", "Complete your first daily challenge", "target", _C, "challenges_completed", 1),
    _achievement("daily_challenge_10", "Challenge Hunter", "Complete 10 daily challenges", "crosshair", _C, "challenges_completed", 10),
    _achievement("daily_challenge_50", "Challenge Master", "Complete 50 daily challenges", "award", _C, "challenges_completed", 50),
    _achievement("perfect_day", "Perfect Day", "Complete all daily challenges in one day", "sun", _C, "perfect_days", 1),
    _achievement("perfect_week", "Perfect Week", "Complete all daily challenges for 7 consecutive days", "calendar-check", _C, "perfect_weeks", 1),

    # Special
    _achievement("early_bird", "Early Bird", "Complete a workout before 7 AM", "sunrise", _X, "early_workouts", 1),
    _achievement("night_owl", "Night Owl", "Complete a workout after 10 PM", "moon", _X, "late_workouts", 1),
    _achievement("weekend_warrior", "Weekend Warrior", "Complete workouts on 10 weekends", "calendar", _X, "weekend_workouts", 10),
    _achievement("comeback_kid", "Comeback Kid", "Return after a 2+ week break and complete a workout", "refresh-cw", _X, "comebacks", 1),
    _achievement("gem_collector", "Gem Collector", "Earn 500 gems total", "gem", _X, "total_gems", 500),
]

_ACHIEVEMENTS_BY_ID = {achievement.id: achievement for achievement in ACHIEVEMENTS}


def get_achievement(achievement_id: str) -> Optional[Achievement]:
    """Look up a catalog entry by ID"""
    return _ACHIEVEMENTS_BY_ID.get(achievement_id)


def check_achievements(
    current_achievements: Iterable[str],
    stats: AchievementStats
) -> List[str]:
    """
    Find achievements newly unlocked by a stats snapshot

    Args:
        current_achievements: IDs the user already has
        stats: Snapshot to evaluate

    Returns:
        IDs in catalog order that are satisfied and not already unlocked
    """
    unlocked = set(current_achievements)
    return [
        achievement.id
        for achievement in ACHIEVEMENTS
        if achievement.id not in unlocked and achievement.criteria.is_met(stats)
    ]


def list_achievements(unlocked: Iterable[str]) -> List[AchievementView]:
    """Full catalog with the user's unlocked flags"""
    unlocked_ids = set(unlocked)
    return [
        AchievementView(
            id=achievement.id,
            name=achievement.name,
            description=achievement.description,
            icon=achievement.icon,
            category=achievement.category,
            unlocked=achievement.id in unlocked_ids,
        )
        for achievement in ACHIEVEMENTS
    ]
