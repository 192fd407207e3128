"""Gamification database queries

Every mutation here is a single conditional UPDATE, so the check and the write
cannot interleave with another request. A write whose predicate no longer
holds returns None and the caller decides what that means.
"""
import logging
from datetime import date
from typing import Any, Optional

from personalfit.db.connection import Database

logger = logging.getLogger(__name__)

STATE_COLUMNS = """
    user_id, xp, level, total_workouts_completed, current_streak, longest_streak,
    last_workout_date, achievements, total_prs, streak_freezes_available,
    streak_freezes_used_this_month, last_streak_freeze_date, gems,
    total_gems_earned, purchased_items, milestone_rewards_claimed, version
"""


# ==========================================
# Reads
# ==========================================

async def get_gamification_state(database: Database, user_id: str) -> Optional[dict]:
    """
    Read the gamification sub-record with its version token

    Returns:
        Row dict, or None when the state has not been initialised
        (or the user does not exist)
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {STATE_COLUMNS} FROM user_gamification WHERE user_id = %s",
                (user_id,)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def init_gamification_if_absent(
    database: Database,
    user_id: str,
    starting_gems: int,
    starting_freezes: int
) -> bool:
    """
    Create default gamification state for an existing user

    Race-safe: two concurrent first requests both succeed and exactly one row
    is created. Selecting from users means a missing user inserts nothing.

    Returns:
        True if this call created the row
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO user_gamification (
                    user_id, xp, level, gems, total_gems_earned, streak_freezes_available
                )
                SELECT id, 0, 1, %s, %s, %s FROM users WHERE id = %s
                ON CONFLICT (user_id) DO NOTHING
                """,
                (starting_gems, starting_gems, starting_freezes, user_id)
            )
            created = cur.rowcount == 1
            await conn.commit()

    if created:
        logger.info(f"Initialized gamification state for user {user_id}")
    return created


async def get_leaderboard(database: Database, limit: int, offset: int) -> list[dict]:
    """Users ordered by XP (ties broken by user ID for stable paging)"""
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT g.user_id, u.first_name, u.last_name, g.xp, g.level,
                       g.current_streak, g.total_workouts_completed
                FROM user_gamification g
                JOIN users u ON u.id = g.user_id
                ORDER BY g.xp DESC, g.user_id ASC
                LIMIT %s OFFSET %s
                """,
                (limit, offset)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def get_user_rank(database: Database, user_id: str) -> Optional[dict]:
    """
    Leaderboard position of one user

    Returns:
        {'xp', 'rank', 'total_users', 'next_rank_xp'} or None if not initialised
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT me.xp,
                       (SELECT COUNT(*) FROM user_gamification WHERE xp > me.xp) + 1 AS rank,
                       (SELECT COUNT(*) FROM user_gamification) AS total_users,
                       (SELECT MIN(xp) FROM user_gamification WHERE xp > me.xp) AS next_rank_xp
                FROM user_gamification me
                WHERE me.user_id = %s
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


# ==========================================
# Conditional writes
# ==========================================

async def apply_workout_award(
    database: Database,
    user_id: str,
    expected_version: int,
    changes: dict[str, Any]
) -> Optional[dict]:
    """
    Commit a computed workout award if nobody else wrote first

    Args:
        expected_version: Version the award was computed from
        changes: xp, level, total_workouts_completed, current_streak,
                 longest_streak, last_workout_date, achievements

    Returns:
        Updated row, or None when the version no longer matches
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                UPDATE user_gamification
                SET xp = %s,
                    level = %s,
                    total_workouts_completed = %s,
                    current_streak = %s,
                    longest_streak = %s,
                    last_workout_date = %s,
                    achievements = %s,
                    version = version + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s AND version = %s
                RETURNING {STATE_COLUMNS}
                """,
                (
                    changes['xp'],
                    changes['level'],
                    changes['total_workouts_completed'],
                    changes['current_streak'],
                    changes['longest_streak'],
                    changes['last_workout_date'],
                    changes['achievements'],
                    user_id,
                    expected_version
                )
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row) if row else None


async def purchase_item_atomic(
    database: Database,
    user_id: str,
    item_id: str,
    price: int
) -> Optional[dict]:
    """
    Debit gems and record ownership in one statement

    Returns:
        Updated row, or None when the balance is short, the item is already
        owned or the state does not exist
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                UPDATE user_gamification
                SET gems = gems - %s,
                    purchased_items = array_append(purchased_items, %s),
                    version = version + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                  AND gems >= %s
                  AND NOT (%s = ANY(purchased_items))
                RETURNING {STATE_COLUMNS}
                """,
                (price, item_id, user_id, price, item_id)
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row) if row else None


async def claim_milestones_atomic(
    database: Database,
    user_id: str,
    milestone_ids: list[str],
    gems_total: int
) -> Optional[dict]:
    """
    Credit milestone gems unless any of the milestones was already claimed

    Returns:
        Updated row, or None when a concurrent claim got there first
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                UPDATE user_gamification
                SET gems = gems + %s,
                    total_gems_earned = total_gems_earned + %s,
                    milestone_rewards_claimed = milestone_rewards_claimed || %s::text[],
                    version = version + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                  AND NOT (milestone_rewards_claimed && %s::text[])
                RETURNING {STATE_COLUMNS}
                """,
                (gems_total, gems_total, milestone_ids, user_id, milestone_ids)
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row) if row else None


async def consume_streak_freeze(database: Database, user_id: str, today: date) -> Optional[dict]:
    """Spend an available freeze, at most once per day"""
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                UPDATE user_gamification
                SET streak_freezes_available = streak_freezes_available - 1,
                    streak_freezes_used_this_month = streak_freezes_used_this_month + 1,
                    last_streak_freeze_date = %s,
                    version = version + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                  AND streak_freezes_available > 0
                  AND (last_streak_freeze_date IS NULL OR last_streak_freeze_date <> %s)
                RETURNING {STATE_COLUMNS}
                """,
                (today, user_id, today)
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row) if row else None


async def buy_streak_freeze(
    database: Database,
    user_id: str,
    today: date,
    price: int
) -> Optional[dict]:
    """Pay gems for a freeze and use it immediately, at most once per day"""
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                UPDATE user_gamification
                SET gems = gems - %s,
                    streak_freezes_used_this_month = streak_freezes_used_this_month + 1,
                    last_streak_freeze_date = %s,
                    version = version + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                  AND gems >= %s
                  AND (last_streak_freeze_date IS NULL OR last_streak_freeze_date <> %s)
                RETURNING {STATE_COLUMNS}
                """,
                (price, today, user_id, price, today)
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row) if row else None


async def award_monthly_streak_freezes(database: Database, amount: int) -> int:
    """
    Grant freezes to every initialised user and reset the monthly counter

    Returns:
        Number of users updated
    """
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE user_gamification
                SET streak_freezes_available = streak_freezes_available + %s,
                    streak_freezes_used_this_month = 0,
                    version = version + 1,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (amount,)
            )
            updated = cur.rowcount
            await conn.commit()

    logger.info(f"Granted {amount} streak freezes to {updated} users")
    return updated


async def increment_total_prs(database: Database, user_id: str) -> Optional[int]:
    """Add one PR to the user's count; returns the new count"""
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE user_gamification
                SET total_prs = total_prs + 1,
                    version = version + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                RETURNING total_prs
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            await conn.commit()
            return row['total_prs'] if row else None


async def decrement_total_prs(database: Database, user_id: str) -> Optional[int]:
    """Remove one PR from the user's count, never going below zero"""
    async with database.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE user_gamification
                SET total_prs = GREATEST(total_prs - 1, 0),
                    version = version + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                RETURNING total_prs
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            await conn.commit()
            return row['total_prs'] if row else None
