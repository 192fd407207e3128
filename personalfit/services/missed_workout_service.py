"""
MissedWorkoutService - Missed Workout Detection

Sweeps workout sessions that are still planned or in progress more than
MISSED_WORKOUT_GRACE_HOURS after their scheduled time. Each one is marked
skipped, penalised by severity and resets the user's accountability streak.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from personalfit.accountability.severity import calculate_penalty_severity
from personalfit.config import MISSED_WORKOUT_GRACE_HOURS
from personalfit.db import queries
from personalfit.models.accountability import SweepResult
from personalfit.models.workout import MissedWorkout, WorkoutSession
from personalfit.monitoring import track_missed_workout_sweep
from personalfit.services.accountability_service import AccountabilityService
from personalfit.utils.datetime_helpers import hours_since, now_utc, to_utc

logger = logging.getLogger(__name__)


class MissedWorkoutService:
    """Service that turns overdue sessions into penalties"""

    def __init__(self, db_connection, accountability_service: AccountabilityService):
        self.db = db_connection
        self.accountability = accountability_service
        logger.debug("MissedWorkoutService initialized")

    async def find_missed_workouts(self, now: Optional[datetime] = None) -> List[MissedWorkout]:
        """Sessions overdue by more than the grace period, oldest first"""
        reference = to_utc(now) if now else now_utc()
        cutoff = reference - timedelta(hours=MISSED_WORKOUT_GRACE_HOURS)

        rows = await queries.find_overdue_sessions(self.db, cutoff)
        missed = []
        for row in rows:
            session = WorkoutSession(
                id=row['id'],
                user_id=row['user_id'],
                plan_id=row.get('plan_id'),
                session_date=row['session_date'],
                completion_status=row['completion_status'],
            )
            missed.append(MissedWorkout(
                user_id=session.user_id,
                session_id=session.id,
                workout_date=session.session_date,
                hours_overdue=hours_since(session.session_date, reference),
                difficulty=row.get('difficulty'),
            ))
        return missed

    async def _process_one(self, missed: MissedWorkout, result: SweepResult) -> None:
        """Close one overdue session and count what was committed"""
        severity = calculate_penalty_severity(missed.difficulty, missed.hours_overdue)
        closed = await self.accountability.record_missed_workout(
            missed.user_id,
            missed.session_id,
            missed.workout_date,
            severity,
            description=f"Missed workout ({missed.hours_overdue}h overdue)",
            note=f"Automatically marked as skipped - {missed.hours_overdue}h overdue"
        )
        if closed is None:
            logger.info(f"Session {missed.session_id} already closed, skipping")
            return

        _, record = closed
        result.penalties_assigned += 1
        if record is not None:
            result.streaks_reset += 1

    async def process_missed_workouts(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Run one sweep.

        Each session is closed in its own transaction. A failure rolls that
        session back, so it stays open for the next sweep; it is logged,
        counted in `processed` only, and the sweep moves on.
        """
        with track_missed_workout_sweep():
            missed_workouts = await self.find_missed_workouts(now)
            result = SweepResult(processed=len(missed_workouts))

            for missed in missed_workouts:
                try:
                    await self._process_one(missed, result)
                except Exception as e:
                    logger.error(
                        f"Error processing missed workout {missed.session_id} "
                        f"for user {missed.user_id}: {e}",
                        exc_info=True
                    )

            logger.info(
                f"Missed-workout sweep: processed={result.processed}, "
                f"penalties={result.penalties_assigned}, resets={result.streaks_reset}"
            )
            return result

    async def trigger_missed_workout_detection(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Admin/cron entry point

        Returns:
            {'success': True, 'result': SweepResult} or {'success': False, 'error': str}
        """
        try:
            result = await self.process_missed_workouts(now)
            return {'success': True, 'result': result}
        except Exception as e:
            logger.error(f"Failed to process missed workouts: {e}", exc_info=True)
            return {'success': False, 'error': str(e)}
