"""
Gamification engine for PersonalFit

Pure calculations behind the motivation layer:
- XP and leveling system
- Workout streaks with freeze bridging
- Achievement catalog
- Rewards shop and milestone gems

Persistence and concurrency control live in services.gamification_service.
"""

from personalfit.gamification.xp_system import (
    calculate_level,
    calculate_workout_xp,
    get_level_progress,
    get_level_title,
    get_xp_for_next_level,
)
from personalfit.gamification.streak_system import update_streak
from personalfit.gamification.achievement_system import (
    check_achievements,
    get_achievement,
    list_achievements,
)
from personalfit.gamification.rewards_shop import (
    check_milestone_rewards,
    get_available_shop_items,
    get_shop_item,
    validate_purchase,
)

__all__ = [
    "calculate_level",
    "calculate_workout_xp",
    "get_level_progress",
    "get_level_title",
    "get_xp_for_next_level",
    "update_streak",
    "check_achievements",
    "get_achievement",
    "list_achievements",
    "check_milestone_rewards",
    "get_available_shop_items",
    "get_shop_item",
    "validate_purchase",
]
