"""Pydantic models for API request/response validation"""
from typing import Optional, List, Dict
from pydantic import BaseModel, Field
from datetime import date, datetime

from personalfit.models.workout import RecordCategory, RecordType


# ==========================================
# Requests
# ==========================================

class WorkoutXPRequest(BaseModel):
    """Request to award XP for a completed workout"""
    had_personal_record: bool = Field(default=False, description="A PR was set during the workout")
    workout_date: Optional[datetime] = Field(
        default=None,
        description="When the workout was completed (defaults to now)"
    )


class PurchaseRequest(BaseModel):
    """Request to buy a shop item"""
    item_id: str = Field(..., description="Shop item ID")


class StreakFreezeRequest(BaseModel):
    """Request to use a streak freeze"""
    freeze_date: Optional[date] = Field(default=None, description="Day to protect (defaults to today)")


class PenaltyCreateRequest(BaseModel):
    """Request to assign a penalty manually"""
    workout_date: Optional[datetime] = Field(default=None, description="Date of the missed workout")
    severity: str = Field(default="moderate", description="light, moderate or severe")
    description: Optional[str] = Field(default=None, max_length=500)
    penalty_type: str = Field(default="missed_workout", description="missed_workout, late_completion or custom")


class WorkoutCompletionRequest(BaseModel):
    """Request to record a completed workout on the accountability streak"""
    workout_date: Optional[datetime] = Field(default=None, description="Defaults to now")


class PersonalRecordRequest(BaseModel):
    """Request to check (and store) a personal record"""
    exercise_name: str = Field(..., min_length=1, description="Exercise name")
    category: RecordCategory
    record_type: RecordType
    value: float = Field(..., gt=0)
    unit: str = Field(default="kg")
    workout_session_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)


# ==========================================
# Responses
# ==========================================

class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    name: str
    xp: int
    level: int
    level_title: str
    current_streak: int
    total_workouts: int


class LeaderboardResponse(BaseModel):
    """Response with a leaderboard page"""
    leaderboard: List[LeaderboardEntry]
    limit: int
    offset: int


class SweepResponse(BaseModel):
    """Response of a missed-workout sweep"""
    success: bool
    result: Optional[Dict[str, int]] = None
    error: Optional[str] = None


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    database: str = Field(..., description="Database connection status")
    timestamp: datetime = Field(..., description="Check timestamp")

