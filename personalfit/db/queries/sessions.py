"""Workout session queries: overdue scan, missed-session close, weekly counts"""
import logging
from datetime import datetime
from typing import Optional

from personalfit.db.connection import Database
from personalfit.db.queries.accountability import PENALTY_COLUMNS, RECORD_COLUMNS

logger = logging.getLogger(__name__)


async def find_overdue_sessions(database: Database, cutoff: datetime) -> list[dict]:
    """
    Sessions still planned or in progress that were scheduled before cutoff

    The plan's experience level is joined in as `difficulty`; sessions without
    a plan (or with a deleted plan) get None.
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT s.id::text AS id, s.user_id, s.plan_id::text AS plan_id,
                       s.session_date, s.completion_status,
                       p.experience_level AS difficulty
                FROM workout_sessions s
                LEFT JOIN workout_plans p ON p.id = s.plan_id
                WHERE s.completion_status IN ('planned', 'in_progress')
                  AND s.session_date < %s
                ORDER BY s.session_date ASC
                """,
                (cutoff,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def close_missed_session(
    database: Database,
    session_id: str,
    user_id: str,
    note: str,
    workout_date: datetime,
    severity: str,
    description: Optional[str]
) -> Optional[dict]:
    """
    Skip an overdue session, record its penalty and reset the user's
    accountability streak in one transaction

    The skip only matches sessions that are still planned or in progress, so
    a session closed by a concurrent sweep is left alone. Any failure rolls
    back all three writes and the session is found again by the next sweep.

    Returns:
        {'penalty': row, 'record': row}, or None if the session was already closed
    """
    async with database.connection() as conn:
        async with conn.transaction():
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE workout_sessions
                    SET completion_status = 'skipped',
                        notes = %s,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE id = %s
                      AND completion_status IN ('planned', 'in_progress')
                    """,
                    (note, session_id)
                )
                if cur.rowcount != 1:
                    return None

                await cur.execute(
                    """
                    INSERT INTO accountability_records (user_id)
                    SELECT id FROM users WHERE id = %s
                    ON CONFLICT (user_id) DO NOTHING
                    """,
                    (user_id,)
                )
                await cur.execute(
                    f"""
                    INSERT INTO penalties (user_id, workout_date, penalty_type, severity, description)
                    VALUES (%s, %s, 'missed_workout', %s, %s)
                    RETURNING {PENALTY_COLUMNS}
                    """,
                    (user_id, workout_date, severity, description)
                )
                penalty = await cur.fetchone()

                await cur.execute(
                    f"""
                    UPDATE accountability_records
                    SET current_streak = 0,
                        total_workouts_missed = total_workouts_missed + 1,
                        total_penalties = total_penalties + 1,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE user_id = %s
                    RETURNING {RECORD_COLUMNS}
                    """,
                    (user_id,)
                )
                record = await cur.fetchone()

    return {'penalty': dict(penalty), 'record': dict(record) if record else None}


async def count_sessions_in_range(
    database: Database,
    user_id: str,
    start: datetime,
    end: datetime
) -> dict:
    """
    Session counts in [start, end)

    Returns:
        {'planned': all sessions, 'completed': int, 'missed': skipped sessions}
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS planned,
                       COUNT(*) FILTER (WHERE completion_status = 'completed') AS completed,
                       COUNT(*) FILTER (WHERE completion_status = 'skipped') AS missed
                FROM workout_sessions
                WHERE user_id = %s
                  AND session_date >= %s
                  AND session_date < %s
                """,
                (user_id, start, end)
            )
            row = await cur.fetchone()
            return dict(row) if row else {"planned": 0, "completed": 0, "missed": 0}
