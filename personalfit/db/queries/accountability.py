"""Accountability database queries: streak ledger, penalties, weekly stats"""
import logging
from datetime import date, datetime
from typing import Optional

from personalfit.db.connection import Database

logger = logging.getLogger(__name__)

RECORD_COLUMNS = """
    user_id, current_streak, longest_streak, last_workout_date, streak_start_date,
    total_workouts_completed, total_workouts_missed, total_penalties
"""

PENALTY_COLUMNS = """
    id::text AS id, user_id, assigned_date, workout_date, penalty_type, severity,
    description, resolved, resolved_date
"""


# ==========================================
# Accountability record
# ==========================================

async def get_accountability_record(database: Database, user_id: str) -> Optional[dict]:
    """Get the user's accountability row, or None if never created"""
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {RECORD_COLUMNS} FROM accountability_records WHERE user_id = %s",
                (user_id,)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def create_accountability_if_absent(database: Database, user_id: str) -> bool:
    """
    Create a zeroed accountability row for an existing user

    Returns:
        True if this call created the row
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO accountability_records (user_id)
                SELECT id FROM users WHERE id = %s
                ON CONFLICT (user_id) DO NOTHING
                """,
                (user_id,)
            )
            created = cur.rowcount == 1
            await conn.commit()

    if created:
        logger.info(f"Created accountability record for user {user_id}")
    return created


async def record_workout_completion(
    database: Database,
    user_id: str,
    current_streak: int,
    last_workout_date: datetime,
    streak_start_date: Optional[datetime],
    expected_streak: int,
    expected_last_workout_date: Optional[datetime]
) -> Optional[dict]:
    """
    Store the new streak and count one more completed workout

    Applies only if the streak and last workout date still match what the
    caller read, so a concurrent reset is never overwritten.

    Returns:
        Updated row, or None when the record changed since it was read
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                UPDATE accountability_records
                SET current_streak = %s,
                    longest_streak = GREATEST(longest_streak, %s),
                    last_workout_date = %s,
                    streak_start_date = %s,
                    total_workouts_completed = total_workouts_completed + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                  AND current_streak = %s
                  AND last_workout_date IS NOT DISTINCT FROM %s
                RETURNING {RECORD_COLUMNS}
                """,
                (
                    current_streak,
                    current_streak,
                    last_workout_date,
                    streak_start_date,
                    user_id,
                    expected_streak,
                    expected_last_workout_date
                )
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row) if row else None


async def reset_accountability_streak(database: Database, user_id: str) -> Optional[dict]:
    """Zero the current streak and count one more missed workout"""
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                UPDATE accountability_records
                SET current_streak = 0,
                    total_workouts_missed = total_workouts_missed + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                RETURNING {RECORD_COLUMNS}
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row) if row else None


# ==========================================
# Penalties
# ==========================================

async def insert_penalty(
    database: Database,
    user_id: str,
    workout_date: datetime,
    penalty_type: str,
    severity: str,
    description: Optional[str]
) -> dict:
    """
    Append a penalty and bump the user's penalty total in one transaction

    Returns:
        The new penalty row
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO penalties (user_id, workout_date, penalty_type, severity, description)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING {PENALTY_COLUMNS}
                """,
                (user_id, workout_date, penalty_type, severity, description)
            )
            row = await cur.fetchone()
            await cur.execute(
                """
                UPDATE accountability_records
                SET total_penalties = total_penalties + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                """,
                (user_id,)
            )
            await conn.commit()
            return dict(row)


async def resolve_penalty(database: Database, user_id: str, penalty_id: str) -> Optional[dict]:
    """
    Mark a penalty resolved

    Resolving twice keeps the first resolved_date.

    Returns:
        Updated penalty row, or None if no such penalty belongs to the user
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                UPDATE penalties
                SET resolved = TRUE,
                    resolved_date = COALESCE(resolved_date, CURRENT_TIMESTAMP)
                WHERE id = %s AND user_id = %s
                RETURNING {PENALTY_COLUMNS}
                """,
                (penalty_id, user_id)
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row) if row else None


async def list_penalties(
    database: Database,
    user_id: str,
    resolved: Optional[bool] = None,
    severity: Optional[str] = None,
    limit: Optional[int] = None
) -> list[dict]:
    """Penalties for a user, newest first, optionally filtered"""
    conditions = ["user_id = %s"]
    params: list = [user_id]

    if resolved is not None:
        conditions.append("resolved = %s")
        params.append(resolved)
    if severity is not None:
        conditions.append("severity = %s")
        params.append(severity)

    query = f"""
        SELECT {PENALTY_COLUMNS}
        FROM penalties
        WHERE {' AND '.join(conditions)}
        ORDER BY assigned_date DESC
    """
    if limit is not None:
        query += " LIMIT %s"
        params.append(limit)

    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(query, tuple(params))
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def count_penalties(database: Database, user_id: str) -> dict:
    """{'total': int, 'unresolved': int} for a user"""
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS total,
                       COUNT(*) FILTER (WHERE NOT resolved) AS unresolved
                FROM penalties
                WHERE user_id = %s
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return dict(row) if row else {"total": 0, "unresolved": 0}


# ==========================================
# Weekly stats
# ==========================================

async def upsert_weekly_stat(
    database: Database,
    user_id: str,
    week_start: date,
    workouts_planned: int,
    workouts_completed: int,
    workouts_missed: int,
    completion_rate: float
) -> dict:
    """Store the counts for one week, replacing an earlier snapshot"""
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO weekly_stats (
                    user_id, week_start, workouts_planned, workouts_completed,
                    workouts_missed, completion_rate
                )
                VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (user_id, week_start) DO UPDATE
                SET workouts_planned = EXCLUDED.workouts_planned,
                    workouts_completed = EXCLUDED.workouts_completed,
                    workouts_missed = EXCLUDED.workouts_missed,
                    completion_rate = EXCLUDED.completion_rate,
                    updated_at = CURRENT_TIMESTAMP
                RETURNING week_start, workouts_planned, workouts_completed,
                          workouts_missed, completion_rate
                """,
                (
                    user_id,
                    week_start,
                    workouts_planned,
                    workouts_completed,
                    workouts_missed,
                    completion_rate
                )
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row)


async def get_weekly_stats(database: Database, user_id: str, limit: Optional[int] = None) -> list[dict]:
    """Stored weekly stats, most recent week first"""
    query = """
        SELECT week_start, workouts_planned, workouts_completed, workouts_missed, completion_rate
        FROM weekly_stats
        WHERE user_id = %s
        ORDER BY week_start DESC
    """
    params: tuple = (user_id,)
    if limit is not None:
        query += " LIMIT %s"
        params = (user_id, limit)

    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(query, params)
            rows = await cur.fetchall()
            return [dict(row) for row in rows]
