"""Personal record queries"""
import logging
from datetime import datetime
from typing import Optional

from personalfit.db.connection import Database

logger = logging.getLogger(__name__)

PR_COLUMNS = """
    id::text AS id, user_id, exercise_name, category, record_type, value, unit,
    previous_value, improvement_percentage, achieved_at,
    workout_session_id::text AS workout_session_id, notes
"""


async def get_best_record(
    database: Database,
    user_id: str,
    exercise_name: str,
    record_type: str
) -> Optional[dict]:
    """
    Current best for an exercise and record type

    Time records: lowest value wins. Everything else: highest.
    """
    order = "ASC" if record_type == "time" else "DESC"
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {PR_COLUMNS}
                FROM personal_records
                WHERE user_id = %s AND exercise_name = %s AND record_type = %s
                ORDER BY value {order}
                LIMIT 1
                """,
                (user_id, exercise_name, record_type)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def insert_personal_record(
    database: Database,
    user_id: str,
    exercise_name: str,
    category: str,
    record_type: str,
    value: float,
    unit: str,
    previous_value: Optional[float],
    improvement_percentage: Optional[float],
    achieved_at: datetime,
    workout_session_id: Optional[str] = None,
    notes: Optional[str] = None
) -> dict:
    """Store a new personal record"""
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO personal_records (
                    user_id, exercise_name, category, record_type, value, unit,
                    previous_value, improvement_percentage, achieved_at,
                    workout_session_id, notes
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {PR_COLUMNS}
                """,
                (
                    user_id,
                    exercise_name,
                    category,
                    record_type,
                    value,
                    unit,
                    previous_value,
                    improvement_percentage,
                    achieved_at,
                    workout_session_id,
                    notes
                )
            )
            row = await cur.fetchone()
            await conn.commit()
            logger.info(f"Stored PR for user {user_id}: {exercise_name} {record_type}={value}{unit}")
            return dict(row)


async def get_recent_records(database: Database, user_id: str, limit: int = 10) -> list[dict]:
    """Most recent personal records first"""
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {PR_COLUMNS}
                FROM personal_records
                WHERE user_id = %s
                ORDER BY achieved_at DESC
                LIMIT %s
                """,
                (user_id, limit)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def count_records_by_category(database: Database, user_id: str) -> dict[str, int]:
    """{category: count} over all of a user's PRs"""
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT category, COUNT(*) AS count
                FROM personal_records
                WHERE user_id = %s
                GROUP BY category
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return {row['category']: row['count'] for row in rows}


async def get_exercise_history(database: Database, user_id: str, exercise_name: str) -> list[dict]:
    """All PRs for one exercise, newest first"""
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {PR_COLUMNS}
                FROM personal_records
                WHERE user_id = %s AND exercise_name = %s
                ORDER BY achieved_at DESC
                """,
                (user_id, exercise_name)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def get_all_time_bests(database: Database, user_id: str) -> list[dict]:
    """
    Latest PR per (exercise, record type)

    Every stored PR beat the one before it, so the latest is the best.
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT DISTINCT ON (exercise_name, record_type) {PR_COLUMNS}
                FROM personal_records
                WHERE user_id = %s
                ORDER BY exercise_name ASC, record_type ASC, achieved_at DESC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def delete_personal_record(database: Database, user_id: str, record_id: str) -> bool:
    """
    Delete a PR owned by the user

    Returns:
        False if no such record belongs to the user
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM personal_records WHERE id = %s AND user_id = %s",
                (record_id, user_id)
            )
            deleted = cur.rowcount == 1
            await conn.commit()
            return deleted
