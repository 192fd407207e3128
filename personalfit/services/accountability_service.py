"""
AccountabilityService - Accountability Ledger

Tracks a per-user workout streak, the penalties assigned for missed
workouts, and weekly planned/completed/missed counts. This streak is
separate from the gamification streak: it is reset to 0 by the missed-workout
sweep, while the gamification streak only changes when a workout is logged.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from personalfit.config import ACCOUNTABILITY_UPDATE_MAX_ATTEMPTS
from personalfit.db import queries
from personalfit.exceptions import ConcurrencyConflictError, RecordNotFoundError, ValidationError
from personalfit.gamification.streak_system import update_streak
from personalfit.models.accountability import (
    AccountabilityRecord,
    AccountabilityStreak,
    Penalty,
    PenaltySeverity,
    PenaltyType,
    WeeklyStat,
)
from personalfit.monitoring import track_penalty, track_version_conflict
from personalfit.utils.datetime_helpers import now_utc, to_utc, week_bounds, week_start

logger = logging.getLogger(__name__)

WEEKLY_STATS_MAX_LIMIT = 52
RECENT_PENALTIES_LIMIT = 5


def _record_from_row(row: dict) -> AccountabilityRecord:
    return AccountabilityRecord(
        user_id=row['user_id'],
        streak=AccountabilityStreak(
            current_streak=row['current_streak'],
            longest_streak=row['longest_streak'],
            last_workout_date=row['last_workout_date'],
            streak_start_date=row['streak_start_date'],
        ),
        total_workouts_completed=row['total_workouts_completed'],
        total_workouts_missed=row['total_workouts_missed'],
        total_penalties=row['total_penalties'],
    )


def _parse_severity(value: Any) -> PenaltySeverity:
    try:
        return PenaltySeverity(value)
    except ValueError:
        raise ValidationError(
            "severity must be one of light, moderate, severe",
            field="severity",
            value=value
        )


def _parse_penalty_type(value: Any) -> PenaltyType:
    try:
        return PenaltyType(value)
    except ValueError:
        raise ValidationError(
            "penalty_type must be one of missed_workout, late_completion, custom",
            field="penalty_type",
            value=value
        )


class AccountabilityService:
    """
    Service for the accountability ledger.

    Responsibilities:
    - Lazy creation of the per-user record
    - Streak updates on completion and resets on missed workouts
    - Penalty assignment, resolution and listing
    - Current-week stats and weekly history
    """

    def __init__(self, db_connection):
        self.db = db_connection
        logger.debug("AccountabilityService initialized")

    async def get_or_create_accountability(self, user_id: str) -> AccountabilityRecord:
        """
        Get the user's record, creating a zeroed one on first access

        Raises:
            RecordNotFoundError: User does not exist
        """
        row = await queries.get_accountability_record(self.db, user_id)
        if row is None:
            await queries.create_accountability_if_absent(self.db, user_id)
            row = await queries.get_accountability_record(self.db, user_id)
            if row is None:
                raise RecordNotFoundError(
                    f"User {user_id} not found",
                    record_type="User",
                    record_id=user_id,
                    user_id=user_id
                )
        return _record_from_row(row)

    async def update_streak_on_completion(self, user_id: str, workout_date: datetime) -> AccountabilityRecord:
        """
        Apply a completed workout to the accountability streak.

        Uses the same calendar-day rules as the gamification streak. A broken
        or newly started streak stamps a new streak start date. The write is
        conditional on the streak read; if a sweep reset lands in between, the
        update is recomputed from a fresh read.

        Raises:
            ConcurrencyConflictError: Record kept changing for every attempt
        """
        completed_at = to_utc(workout_date)

        for attempt in range(1, ACCOUNTABILITY_UPDATE_MAX_ATTEMPTS + 1):
            record = await self.get_or_create_accountability(user_id)
            streak = record.streak

            result = update_streak(streak.last_workout_date, completed_at, streak.current_streak)
            # After a reset the streak is 0, so a same-day result keeps it at 0
            new_streak = max(result.new_streak, 1)

            streak_start = streak.streak_start_date
            if streak.last_workout_date is None or result.streak_broken or streak.current_streak == 0:
                streak_start = completed_at

            last_workout = completed_at
            if streak.last_workout_date is not None:
                last_workout = max(to_utc(streak.last_workout_date), completed_at)

            row = await queries.record_workout_completion(
                self.db,
                user_id,
                new_streak,
                last_workout,
                streak_start,
                streak.current_streak,
                streak.last_workout_date
            )
            if row is not None:
                logger.info(f"Accountability streak for user {user_id} is now {new_streak}")
                return _record_from_row(row)

            exhausted = attempt == ACCOUNTABILITY_UPDATE_MAX_ATTEMPTS
            track_version_conflict("update_streak_on_completion", "exhausted" if exhausted else "retried")
            logger.warning(
                f"Accountability record for user {user_id} changed during update "
                f"(attempt {attempt}/{ACCOUNTABILITY_UPDATE_MAX_ATTEMPTS})"
            )

        raise ConcurrencyConflictError(
            f"Could not update accountability streak after {ACCOUNTABILITY_UPDATE_MAX_ATTEMPTS} attempts",
            attempts=ACCOUNTABILITY_UPDATE_MAX_ATTEMPTS,
            user_id=user_id,
            operation="update_streak_on_completion"
        )

    async def reset_streak(self, user_id: str) -> AccountabilityRecord:
        """Zero the current streak and count a missed workout; longest is kept"""
        await self.get_or_create_accountability(user_id)
        row = await queries.reset_accountability_streak(self.db, user_id)
        logger.info(f"Accountability streak reset for user {user_id}")
        return _record_from_row(row)

    # ==========================================
    # Penalties
    # ==========================================

    async def assign_penalty(
        self,
        user_id: str,
        workout_date: datetime,
        severity: PenaltySeverity,
        description: Optional[str] = None,
        penalty_type: PenaltyType = PenaltyType.MISSED_WORKOUT
    ) -> Penalty:
        """Append an unresolved penalty to the user's ledger"""
        severity = _parse_severity(severity)
        penalty_type = _parse_penalty_type(penalty_type)

        await self.get_or_create_accountability(user_id)
        row = await queries.insert_penalty(
            self.db,
            user_id,
            to_utc(workout_date),
            penalty_type.value,
            severity.value,
            description
        )

        track_penalty(severity.value)
        logger.info(f"Assigned {severity.value} {penalty_type.value} penalty to user {user_id}")
        return Penalty(**row)

    async def create_penalty(self, user_id: str, payload: Dict[str, Any]) -> Penalty:
        """
        Create a penalty from a client payload

        Args:
            payload: {'workout_date', 'severity'?, 'description'?, 'penalty_type'?}

        Raises:
            ValidationError: Missing workout_date, unknown severity or penalty type
        """
        workout_date = payload.get('workout_date')
        if workout_date is None:
            raise ValidationError("workout_date is required", field="workout_date")
        if isinstance(workout_date, str):
            try:
                workout_date = datetime.fromisoformat(workout_date)
            except ValueError:
                raise ValidationError(
                    "workout_date must be an ISO 8601 datetime",
                    field="workout_date",
                    value=workout_date
                )

        return await self.assign_penalty(
            user_id,
            workout_date,
            _parse_severity(payload.get('severity', PenaltySeverity.MODERATE.value)),
            description=payload.get('description'),
            penalty_type=_parse_penalty_type(payload.get('penalty_type', PenaltyType.MISSED_WORKOUT.value))
        )

    async def record_missed_workout(
        self,
        user_id: str,
        session_id: str,
        workout_date: datetime,
        severity: PenaltySeverity,
        description: Optional[str] = None,
        note: Optional[str] = None
    ) -> Optional[Tuple[Penalty, Optional[AccountabilityRecord]]]:
        """
        Close an overdue session: mark it skipped, add a missed-workout
        penalty and reset the streak, all in one transaction.

        Returns:
            (penalty, record), or None if the session was already closed

        Raises:
            ValidationError: Unknown severity
        """
        severity = _parse_severity(severity)
        closed = await queries.close_missed_session(
            self.db,
            session_id,
            user_id,
            note or "Automatically marked as skipped",
            to_utc(workout_date),
            severity.value,
            description
        )
        if closed is None:
            return None

        track_penalty(severity.value)
        logger.info(
            f"Session {session_id} skipped: {severity.value} penalty and streak reset for user {user_id}"
        )
        record = _record_from_row(closed['record']) if closed['record'] else None
        return Penalty(**closed['penalty']), record

    async def resolve_penalty(self, user_id: str, penalty_id: str) -> List[Penalty]:
        """
        Mark one of the user's penalties resolved

        Returns:
            The user's full penalty list after the update

        Raises:
            ValidationError: penalty_id is not a valid ID
            RecordNotFoundError: No such penalty belongs to the user
        """
        try:
            UUID(penalty_id)
        except (ValueError, TypeError):
            raise ValidationError("Invalid penalty ID", field="penalty_id", value=penalty_id)

        row = await queries.resolve_penalty(self.db, user_id, penalty_id)
        if row is None:
            raise RecordNotFoundError(
                f"Penalty {penalty_id} not found",
                record_type="Penalty",
                record_id=penalty_id,
                user_id=user_id
            )

        logger.info(f"User {user_id} resolved penalty {penalty_id}")
        return await self.list_penalties(user_id)

    async def list_penalties(
        self,
        user_id: str,
        resolved: Optional[bool] = None,
        severity: Optional[str] = None
    ) -> List[Penalty]:
        """Penalties newest first, optionally filtered by status and severity"""
        severity_value = _parse_severity(severity).value if severity is not None else None
        rows = await queries.list_penalties(self.db, user_id, resolved=resolved, severity=severity_value)
        return [Penalty(**row) for row in rows]

    # ==========================================
    # Weekly stats
    # ==========================================

    async def get_current_week_stats(self, user_id: str, now: Optional[datetime] = None) -> WeeklyStat:
        """
        Planned/completed/missed counts for the current Monday-start week

        The snapshot is stored so it shows up in the weekly history.
        """
        reference = now or now_utc()
        await self.get_or_create_accountability(user_id)

        start, end = week_bounds(reference)
        counts = await queries.count_sessions_in_range(self.db, user_id, start, end)

        planned = counts['planned']
        completed = counts['completed']
        completion_rate = round(completed / planned * 100, 2) if planned > 0 else 0.0

        row = await queries.upsert_weekly_stat(
            self.db,
            user_id,
            week_start(reference),
            planned,
            completed,
            counts['missed'],
            completion_rate
        )
        return WeeklyStat(**row)

    async def get_weekly_stats(self, user_id: str, limit: Optional[int] = None) -> List[WeeklyStat]:
        """Stored weekly stats, most recent first (limit 1-52)"""
        if limit is not None and not 1 <= limit <= WEEKLY_STATS_MAX_LIMIT:
            raise ValidationError(
                f"limit must be between 1 and {WEEKLY_STATS_MAX_LIMIT}",
                field="limit",
                value=limit
            )
        rows = await queries.get_weekly_stats(self.db, user_id, limit)
        return [WeeklyStat(**row) for row in rows]

    # ==========================================
    # Views
    # ==========================================

    async def get_accountability_summary(self, user_id: str) -> Dict[str, Any]:
        """
        Accountability overview.

        Returns:
            {
                'streak': {'current', 'longest', 'last_workout'},
                'totals': {'workouts_completed', 'workouts_missed',
                           'penalties_assigned', 'penalties_unresolved'},
                'current_week': WeeklyStat,
                'recent_penalties': last 5 unresolved penalties
            }
        """
        record = await self.get_or_create_accountability(user_id)
        current_week = await self.get_current_week_stats(user_id)
        penalty_counts = await queries.count_penalties(self.db, user_id)
        recent = await queries.list_penalties(
            self.db, user_id, resolved=False, limit=RECENT_PENALTIES_LIMIT
        )

        return {
            'streak': {
                'current': record.streak.current_streak,
                'longest': record.streak.longest_streak,
                'last_workout': record.streak.last_workout_date,
            },
            'totals': {
                'workouts_completed': record.total_workouts_completed,
                'workouts_missed': record.total_workouts_missed,
                'penalties_assigned': penalty_counts['total'],
                'penalties_unresolved': penalty_counts['unresolved'],
            },
            'current_week': current_week,
            'recent_penalties': [Penalty(**row) for row in recent],
        }

    async def get_accountability_details(self, user_id: str) -> AccountabilityRecord:
        """Full record with every penalty and stored week"""
        record = await self.get_or_create_accountability(user_id)
        record.penalties = await self.list_penalties(user_id)
        record.weekly_stats = await self.get_weekly_stats(user_id)
        return record
