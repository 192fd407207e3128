"""Gamification models"""
from enum import Enum
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class GamificationState(BaseModel):
    """Gamification sub-record of a user, with its optimistic-lock token"""
    user_id: str
    xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    total_workouts_completed: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_workout_date: Optional[datetime] = None
    achievements: list[str] = Field(default_factory=list)
    total_prs: int = Field(default=0, ge=0)
    streak_freezes_available: int = Field(default=0, ge=0)
    streak_freezes_used_this_month: int = Field(default=0, ge=0)
    last_streak_freeze_date: Optional[date] = None
    gems: int = Field(default=0, ge=0)
    total_gems_earned: int = Field(default=0, ge=0)
    purchased_items: list[str] = Field(default_factory=list)
    milestone_rewards_claimed: list[str] = Field(default_factory=list)
    version: int = 0


class XpBreakdownItem(BaseModel):
    """One line of an XP award"""
    source: str
    amount: int


class XpAward(BaseModel):
    """XP earned for a single workout"""
    total_xp: int
    breakdown: list[XpBreakdownItem]


class StreakUpdate(BaseModel):
    """Outcome of applying a workout date to a streak"""
    new_streak: int
    streak_broken: bool
    streak_protected: bool = False


class AchievementCategory(str, Enum):
    """Achievement categories"""
    MILESTONE = "milestone"
    STREAK = "streak"
    VOLUME = "volume"
    PR = "pr"
    LEVEL = "level"
    CHALLENGE = "challenge"
    SPECIAL = "special"


class AchievementStats(BaseModel):
    """Stats snapshot that achievement predicates are evaluated against"""
    total_workouts: int = 0
    current_streak: int = 0
    total_prs: int = 0
    level: int = 1
    total_xp: int = 0
    profile_complete: bool = False
    prs_this_week: int = 0
    prs_today: int = 0
    challenges_completed: int = 0
    perfect_days: int = 0
    perfect_weeks: int = 0
    early_workouts: int = 0
    late_workouts: int = 0
    weekend_workouts: int = 0
    comebacks: int = 0
    total_gems: int = 0


class ShopCategory(str, Enum):
    THEME = "theme"
    BADGE = "badge"
    TITLE = "title"
    AVATAR = "avatar"
    PROFILE = "profile"


class Rarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class ShopItem(BaseModel):
    """Cosmetic item that can be bought with gems"""
    id: str
    category: ShopCategory
    name: str
    description: str
    icon: str
    gems_price: int = Field(ge=0)
    rarity: Rarity
    unlocked: bool = False


class MilestoneReward(BaseModel):
    """One-time gem reward for reaching a level or streak threshold"""
    milestone_id: str
    gems_reward: int
    requirement: str
