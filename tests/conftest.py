"""Global test fixtures and utilities for PersonalFit tests"""
import pytest
import asyncio
import copy
from datetime import datetime, date, timezone
from unittest.mock import AsyncMock, MagicMock, patch


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def mock_db_cursor():
    """Mock database cursor with standard query results"""
    cursor = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=None)
    cursor.fetchall = AsyncMock(return_value=[])
    cursor.execute = AsyncMock()
    cursor.rowcount = 0
    return cursor


@pytest.fixture
def mock_database(mock_db_cursor):
    """
    Database double whose connection() yields a mock connection

    Usage:
        result = await queries.some_query(mock_database, ...)
        mock_db_cursor.execute.call_args[0]  -> (sql, params)
    """
    conn = MagicMock()
    conn.cursor.return_value.__aenter__.return_value = mock_db_cursor
    conn.commit = AsyncMock()

    database = MagicMock()
    database.connection.return_value.__aenter__.return_value = conn
    database.conn = conn
    return database


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


@pytest.fixture
def test_api_key():
    """Standard test API key"""
    return "test_api_key_12345"


@pytest.fixture
def test_admin_api_key():
    """Standard test admin API key"""
    return "test_admin_key_67890"


# ============================================================================
# In-memory gamification store
# ============================================================================

def default_state(user_id: str, gems: int = 50, freezes: int = 2) -> dict:
    return {
        'user_id': user_id,
        'xp': 0,
        'level': 1,
        'total_workouts_completed': 0,
        'current_streak': 0,
        'longest_streak': 0,
        'last_workout_date': None,
        'achievements': [],
        'total_prs': 0,
        'streak_freezes_available': freezes,
        'streak_freezes_used_this_month': 0,
        'last_streak_freeze_date': None,
        'gems': gems,
        'total_gems_earned': gems,
        'purchased_items': [],
        'milestone_rewards_claimed': [],
        'version': 0,
    }


class FakeGamificationStore:
    """
    Stand-in for personalfit.db.queries backed by dicts

    Reads yield to the event loop before returning, so concurrent requests
    interleave between read and write. Each conditional write checks its
    predicate and applies the change without yielding, like a single
    UPDATE ... WHERE ... RETURNING statement.
    """

    def __init__(self):
        self.users: dict[str, dict] = {}
        self.states: dict[str, dict] = {}

    def add_user(self, user_id: str, first_name: str = "Test", last_name: str = "User", **state) -> None:
        self.users[user_id] = {'first_name': first_name, 'last_name': last_name}
        if state:
            row = default_state(user_id)
            row.update(state)
            self.states[user_id] = row

    # Reads

    async def get_gamification_state(self, database, user_id):
        await asyncio.sleep(0)
        row = self.states.get(user_id)
        return copy.deepcopy(row) if row else None

    async def init_gamification_if_absent(self, database, user_id, starting_gems, starting_freezes):
        await asyncio.sleep(0)
        if user_id not in self.users or user_id in self.states:
            return False
        self.states[user_id] = default_state(user_id, starting_gems, starting_freezes)
        return True

    async def get_leaderboard(self, database, limit, offset):
        await asyncio.sleep(0)
        ordered = sorted(self.states.values(), key=lambda s: (-s['xp'], s['user_id']))
        return [
            {
                'user_id': s['user_id'],
                'first_name': self.users[s['user_id']]['first_name'],
                'last_name': self.users[s['user_id']]['last_name'],
                'xp': s['xp'],
                'level': s['level'],
                'current_streak': s['current_streak'],
                'total_workouts_completed': s['total_workouts_completed'],
            }
            for s in ordered[offset:offset + limit]
        ]

    async def get_user_rank(self, database, user_id):
        await asyncio.sleep(0)
        me = self.states.get(user_id)
        if me is None:
            return None
        higher = [s['xp'] for s in self.states.values() if s['xp'] > me['xp']]
        return {
            'xp': me['xp'],
            'rank': len(higher) + 1,
            'total_users': len(self.states),
            'next_rank_xp': min(higher) if higher else None,
        }

    # Conditional writes

    def _commit(self, row: dict) -> dict:
        row['version'] += 1
        return copy.deepcopy(row)

    async def apply_workout_award(self, database, user_id, expected_version, changes):
        await asyncio.sleep(0)
        row = self.states.get(user_id)
        if row is None or row['version'] != expected_version:
            return None
        row.update(copy.deepcopy(changes))
        return self._commit(row)

    async def purchase_item_atomic(self, database, user_id, item_id, price):
        await asyncio.sleep(0)
        row = self.states.get(user_id)
        if row is None or row['gems'] < price or item_id in row['purchased_items']:
            return None
        row['gems'] -= price
        row['purchased_items'].append(item_id)
        return self._commit(row)

    async def claim_milestones_atomic(self, database, user_id, milestone_ids, gems_total):
        await asyncio.sleep(0)
        row = self.states.get(user_id)
        if row is None or set(milestone_ids) & set(row['milestone_rewards_claimed']):
            return None
        row['gems'] += gems_total
        row['total_gems_earned'] += gems_total
        row['milestone_rewards_claimed'].extend(milestone_ids)
        return self._commit(row)

    async def consume_streak_freeze(self, database, user_id, today):
        await asyncio.sleep(0)
        row = self.states.get(user_id)
        if row is None or row['streak_freezes_available'] <= 0 or row['last_streak_freeze_date'] == today:
            return None
        row['streak_freezes_available'] -= 1
        row['streak_freezes_used_this_month'] += 1
        row['last_streak_freeze_date'] = today
        return self._commit(row)

    async def buy_streak_freeze(self, database, user_id, today, price):
        await asyncio.sleep(0)
        row = self.states.get(user_id)
        if row is None or row['gems'] < price or row['last_streak_freeze_date'] == today:
            return None
        row['gems'] -= price
        row['streak_freezes_used_this_month'] += 1
        row['last_streak_freeze_date'] = today
        return self._commit(row)

    async def award_monthly_streak_freezes(self, database, amount):
        await asyncio.sleep(0)
        for row in self.states.values():
            row['streak_freezes_available'] += amount
            row['streak_freezes_used_this_month'] = 0
            row['version'] += 1
        return len(self.states)

    async def increment_total_prs(self, database, user_id):
        await asyncio.sleep(0)
        row = self.states.get(user_id)
        if row is None:
            return None
        row['total_prs'] += 1
        row['version'] += 1
        return row['total_prs']

    async def decrement_total_prs(self, database, user_id):
        await asyncio.sleep(0)
        row = self.states.get(user_id)
        if row is None:
            return None
        row['total_prs'] = max(row['total_prs'] - 1, 0)
        row['version'] += 1
        return row['total_prs']


@pytest.fixture
def fake_store():
    """In-memory store patched in as the gamification service's query module"""
    store = FakeGamificationStore()
    with patch('personalfit.services.gamification_service.queries', store):
        yield store


@pytest.fixture
def gamification_service(fake_store):
    """GamificationService running against the in-memory store"""
    from personalfit.services.gamification_service import GamificationService
    return GamificationService(db_connection=object())


# ============================================================================
# Time Fixtures
# ============================================================================

@pytest.fixture
def fixed_now():
    """Wednesday 2024-06-12 15:00 UTC"""
    return datetime(2024, 6, 12, 15, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_today():
    return date(2024, 6, 12)
