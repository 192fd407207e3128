"""
PersonalRecordService - Personal Bests

Detects new personal records, keeps their history and keeps the
gamification PR count in step.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from personalfit.db import queries
from personalfit.exceptions import RecordNotFoundError, ValidationError
from personalfit.models.workout import PersonalRecord, PRCheckResult, RecordCategory, RecordType
from personalfit.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)

RECENT_PRS_LIMIT = 10


def normalize_exercise_name(exercise_name: str) -> str:
    return exercise_name.strip().lower()


def is_improvement(record_type: RecordType, value: float, best: float) -> bool:
    """Time records improve by going down, everything else by going up"""
    if record_type == RecordType.TIME:
        return value < best
    return value > best


def improvement_percentage(record_type: RecordType, value: float, best: float) -> Optional[float]:
    if best == 0:
        return None
    if record_type == RecordType.TIME:
        return (best - value) / best * 100
    return (value - best) / best * 100


class PersonalRecordService:
    """Service for personal record tracking"""

    def __init__(self, db_connection):
        self.db = db_connection
        logger.debug("PersonalRecordService initialized")

    async def check_for_pr(
        self,
        user_id: str,
        exercise_name: str,
        category: RecordCategory,
        record_type: RecordType,
        value: float,
        unit: str,
        workout_session_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> PRCheckResult:
        """
        Compare a result against the user's best and store it if it is a PR.

        The first result for an exercise and record type is always a PR.

        Args:
            user_id: User ID
            exercise_name: Exercise (case and surrounding spaces ignored)
            category: strength, cardio, flexibility or endurance
            record_type: weight, reps, time or distance
            value: Measured value
            unit: Unit of the value (kg, reps, s, km...)
            workout_session_id: Session the result came from
            notes: Free text, up to 500 characters

        Returns:
            PRCheckResult
        """
        record_type = RecordType(record_type)
        category = RecordCategory(category)
        exercise = normalize_exercise_name(exercise_name)
        if not exercise:
            raise ValidationError("exercise_name is required", field="exercise_name")
        if notes is not None and len(notes) > 500:
            raise ValidationError("notes cannot exceed 500 characters", field="notes")

        best = await queries.get_best_record(self.db, user_id, exercise, record_type.value)
        previous_value = best['value'] if best else None

        if previous_value is not None and not is_improvement(record_type, value, previous_value):
            return PRCheckResult(
                is_new_pr=False,
                exercise_name=exercise,
                record_type=record_type,
                new_value=value,
                previous_value=previous_value,
            )

        improvement = None
        if previous_value is not None:
            improvement = improvement_percentage(record_type, value, previous_value)

        row = await queries.insert_personal_record(
            self.db,
            user_id,
            exercise,
            category.value,
            record_type.value,
            value,
            unit,
            previous_value,
            improvement,
            now_utc(),
            workout_session_id=workout_session_id,
            notes=notes
        )
        await queries.increment_total_prs(self.db, user_id)

        logger.info(f"New PR for user {user_id}: {exercise} {record_type.value} {previous_value} -> {value}")
        return PRCheckResult(
            is_new_pr=True,
            exercise_name=exercise,
            record_type=record_type,
            new_value=value,
            previous_value=previous_value,
            improvement_percentage=improvement,
            record=PersonalRecord(**row),
        )

    async def get_pr_summary(self, user_id: str) -> Dict[str, Any]:
        """
        Returns:
            {'total_prs', 'recent_prs' (10 newest), 'prs_by_category', 'last_pr_date'}
        """
        by_category = await queries.count_records_by_category(self.db, user_id)
        recent = [PersonalRecord(**row) for row in await queries.get_recent_records(self.db, user_id, RECENT_PRS_LIMIT)]

        return {
            'total_prs': sum(by_category.values()),
            'recent_prs': recent,
            'prs_by_category': by_category,
            'last_pr_date': recent[0].achieved_at if recent else None,
        }

    async def get_exercise_history(self, user_id: str, exercise_name: str) -> List[PersonalRecord]:
        rows = await queries.get_exercise_history(self.db, user_id, normalize_exercise_name(exercise_name))
        return [PersonalRecord(**row) for row in rows]

    async def get_all_time_bests(self, user_id: str) -> List[PersonalRecord]:
        rows = await queries.get_all_time_bests(self.db, user_id)
        return [PersonalRecord(**row) for row in rows]

    async def delete_pr(self, user_id: str, pr_id: str) -> None:
        """
        Delete one of the user's PRs (for corrections)

        Raises:
            ValidationError: pr_id is not a valid ID
            RecordNotFoundError: No such PR belongs to the user
        """
        try:
            UUID(pr_id)
        except (ValueError, TypeError):
            raise ValidationError("Invalid personal record ID", field="pr_id", value=pr_id)

        if not await queries.delete_personal_record(self.db, user_id, pr_id):
            raise RecordNotFoundError(
                f"Personal record {pr_id} not found",
                record_type="PersonalRecord",
                record_id=pr_id,
                user_id=user_id
            )

        await queries.decrement_total_prs(self.db, user_id)
        logger.info(f"Deleted PR {pr_id} for user {user_id}")
