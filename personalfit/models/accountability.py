"""Accountability models: penalties, weekly stats and the per-user ledger"""
from enum import Enum
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class PenaltySeverity(str, Enum):
    LIGHT = "light"
    MODERATE = "moderate"
    SEVERE = "severe"


class PenaltyType(str, Enum):
    MISSED_WORKOUT = "missed_workout"
    LATE_COMPLETION = "late_completion"
    CUSTOM = "custom"


class Penalty(BaseModel):
    """A penalty assigned to a user; only ever moves unresolved -> resolved"""
    id: str
    user_id: str
    assigned_date: datetime
    workout_date: datetime
    penalty_type: PenaltyType = PenaltyType.MISSED_WORKOUT
    severity: PenaltySeverity = PenaltySeverity.MODERATE
    description: Optional[str] = None
    resolved: bool = False
    resolved_date: Optional[datetime] = None


class WeeklyStat(BaseModel):
    """Planned/completed/missed counts for one Monday-start week"""
    week_start: date
    workouts_planned: int = Field(default=0, ge=0)
    workouts_completed: int = Field(default=0, ge=0)
    workouts_missed: int = Field(default=0, ge=0)
    completion_rate: float = Field(default=0, ge=0, le=100)


class AccountabilityStreak(BaseModel):
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_workout_date: Optional[datetime] = None
    streak_start_date: Optional[datetime] = None


class AccountabilityRecord(BaseModel):
    """One per user; tracked separately from the gamification streak"""
    user_id: str
    streak: AccountabilityStreak = Field(default_factory=AccountabilityStreak)
    penalties: list[Penalty] = Field(default_factory=list)
    weekly_stats: list[WeeklyStat] = Field(default_factory=list)
    total_workouts_completed: int = Field(default=0, ge=0)
    total_workouts_missed: int = Field(default=0, ge=0)
    total_penalties: int = Field(default=0, ge=0)


class SweepResult(BaseModel):
    """Counts reported by one missed-workout sweep"""
    processed: int = 0
    penalties_assigned: int = 0
    streaks_reset: int = 0
