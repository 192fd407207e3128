"""Unit tests for Achievement System (personalfit/gamification/achievement_system.py)"""
from personalfit.gamification.achievement_system import (
    ACHIEVEMENTS,
    check_achievements,
    get_achievement,
    list_achievements,
)
from personalfit.models.gamification import AchievementCategory, AchievementStats


# ============================================================================
# Catalog Tests
# ============================================================================

def test_catalog_has_42_unique_achievements():
    ids = [achievement.id for achievement in ACHIEVEMENTS]

    assert len(ids) == 42
    assert len(set(ids)) == 42


def test_catalog_criteria_reference_real_stats():
    """Every rule names a field of the stats snapshot"""
    fields = set(AchievementStats.model_fields)
    assert all(achievement.criteria.stat in fields for achievement in ACHIEVEMENTS)


def test_get_achievement():
    achievement = get_achievement("week_warrior")

    assert achievement.name == "Week Warrior"
    assert achievement.category == AchievementCategory.STREAK
    assert get_achievement("does_not_exist") is None


# ============================================================================
# Achievement Checking Tests
# ============================================================================

def test_first_workout_unlocks_getting_started():
    result = check_achievements([], AchievementStats(total_workouts=1, current_streak=1))

    assert result == ["first_workout"]


def test_already_unlocked_not_returned_again():
    result = check_achievements(["first_workout"], AchievementStats(total_workouts=1))

    assert result == []


def test_multiple_unlocks_in_catalog_order():
    stats = AchievementStats(total_workouts=30, current_streak=7, level=5, total_xp=3500)

    result = check_achievements(["first_workout"], stats)

    assert result == ["first_week", "first_month", "streak_3", "week_warrior", "workouts_25", "level_5"]


def test_thresholds_are_inclusive():
    assert "pr_crusher" in check_achievements([], AchievementStats(total_prs=5))
    assert "pr_crusher" not in check_achievements([], AchievementStats(total_prs=4))


def test_profile_complete_flag():
    assert "profile_complete" in check_achievements([], AchievementStats(profile_complete=True))
    assert "profile_complete" not in check_achievements([], AchievementStats())


def test_empty_stats_unlock_nothing():
    assert check_achievements([], AchievementStats()) == []


# ============================================================================
# Listing Tests
# ============================================================================

def test_list_achievements_marks_unlocked():
    views = list_achievements(["first_workout", "level_5"])

    unlocked = {view.id for view in views if view.unlocked}
    assert unlocked == {"first_workout", "level_5"}
    assert len(views) == 42
