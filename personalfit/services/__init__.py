"""
Service Layer Package

Business logic services between the API layer and the data access layer
(database queries).

Core Services:
- GamificationService: XP, streaks, achievements, leaderboard, gems, shop
- AccountabilityService: Accountability streak, penalties, weekly stats
- MissedWorkoutService: Overdue session sweep
- PersonalRecordService: Personal record detection and history
"""

from personalfit.services.container import ServiceContainer, get_container, init_container

__all__ = [
    "ServiceContainer",
    "get_container",
    "init_container",
]
