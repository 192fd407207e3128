"""
Database queries - Re-export all functions so callers can use
'from personalfit.db import queries' and 'queries.<function>'.

Every function takes the Database to run against as its first argument.

Module organization:
- gamification.py: Gamification state, conditional writes, leaderboard
- accountability.py: Accountability streak ledger, penalties, weekly stats
- sessions.py: Workout sessions (overdue scan, missed-session close, weekly counts)
- personal_records.py: Personal record history and bests
"""

# Gamification operations
from personalfit.db.queries.gamification import (
    get_gamification_state,
    init_gamification_if_absent,
    get_leaderboard,
    get_user_rank,
    apply_workout_award,
    purchase_item_atomic,
    claim_milestones_atomic,
    consume_streak_freeze,
    buy_streak_freeze,
    award_monthly_streak_freezes,
    increment_total_prs,
    decrement_total_prs,
)

# Accountability operations
from personalfit.db.queries.accountability import (
    get_accountability_record,
    create_accountability_if_absent,
    record_workout_completion,
    reset_accountability_streak,
    insert_penalty,
    resolve_penalty,
    list_penalties,
    count_penalties,
    upsert_weekly_stat,
    get_weekly_stats,
)

# Workout session operations
from personalfit.db.queries.sessions import (
    find_overdue_sessions,
    close_missed_session,
    count_sessions_in_range,
)

# Personal record operations
from personalfit.db.queries.personal_records import (
    get_best_record,
    insert_personal_record,
    get_recent_records,
    count_records_by_category,
    get_exercise_history,
    get_all_time_bests,
    delete_personal_record,
)

__all__ = [
    # Gamification
    "get_gamification_state",
    "init_gamification_if_absent",
    "get_leaderboard",
    "get_user_rank",
    "apply_workout_award",
    "purchase_item_atomic",
    "claim_milestones_atomic",
    "consume_streak_freeze",
    "buy_streak_freeze",
    "award_monthly_streak_freezes",
    "increment_total_prs",
    "decrement_total_prs",
    # Accountability
    "get_accountability_record",
    "create_accountability_if_absent",
    "record_workout_completion",
    "reset_accountability_streak",
    "insert_penalty",
    "resolve_penalty",
    "list_penalties",
    "count_penalties",
    "upsert_weekly_stat",
    "get_weekly_stats",
    # Sessions
    "find_overdue_sessions",
    "close_missed_session",
    "count_sessions_in_range",
    # Personal records
    "get_best_record",
    "insert_personal_record",
    "get_recent_records",
    "count_records_by_category",
    "get_exercise_history",
    "get_all_time_bests",
    "delete_personal_record",
]
