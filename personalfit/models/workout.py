"""Workout session and personal record models"""
from enum import Enum
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CompletionStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class WorkoutSession(BaseModel):
    """Scheduled workout as supplied by the session store"""
    id: str
    user_id: str
    plan_id: Optional[str] = None
    session_date: datetime
    completion_status: CompletionStatus = CompletionStatus.PLANNED
    notes: Optional[str] = None


class MissedWorkout(BaseModel):
    """Overdue session found by the missed-workout sweep"""
    user_id: str
    session_id: str
    workout_date: datetime
    hours_overdue: int
    difficulty: Optional[str] = None


class RecordCategory(str, Enum):
    STRENGTH = "strength"
    CARDIO = "cardio"
    FLEXIBILITY = "flexibility"
    ENDURANCE = "endurance"


class RecordType(str, Enum):
    WEIGHT = "weight"
    REPS = "reps"
    TIME = "time"
    DISTANCE = "distance"


class PersonalRecord(BaseModel):
    """A personal best; immutable once stored"""
    id: str
    user_id: str
    exercise_name: str
    category: RecordCategory
    record_type: RecordType
    value: float
    unit: str = "kg"
    previous_value: Optional[float] = None
    improvement_percentage: Optional[float] = None
    achieved_at: datetime
    workout_session_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class PRCheckResult(BaseModel):
    is_new_pr: bool
    exercise_name: str
    record_type: RecordType
    new_value: float
    previous_value: Optional[float] = None
    improvement_percentage: Optional[float] = None
    record: Optional[PersonalRecord] = None
