"""
GamificationService - Gamification Business Logic

Commits XP awards, streaks, achievements and the gem economy for a user's
gamification state.

Concurrency model:
- Workout XP awards read the state with its version, compute the award, and
  write it back only if the version is unchanged. A rejected write is a
  conflict that is retried from a fresh read, up to XP_AWARD_MAX_ATTEMPTS.
- Purchases, milestone claims and streak freezes are single conditional
  writes: the balance or ownership check is part of the UPDATE predicate.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from personalfit.config import (
    STARTING_GEMS,
    STARTING_STREAK_FREEZES,
    MONTHLY_STREAK_FREEZES,
    STREAK_FREEZE_GEM_PRICE,
    XP_AWARD_MAX_ATTEMPTS,
)
from personalfit.db import queries
from personalfit.exceptions import (
    ConcurrencyConflictError,
    InsufficientGemsError,
    ItemAlreadyOwnedError,
    RecordNotFoundError,
    StreakFreezeUnavailableError,
    ValidationError,
)
from personalfit.gamification.achievement_system import check_achievements, get_achievement, list_achievements
from personalfit.gamification.rewards_shop import (
    check_milestone_rewards,
    get_available_shop_items,
    get_shop_item,
    validate_purchase,
)
from personalfit.gamification.streak_system import update_streak
from personalfit.gamification.xp_system import (
    calculate_level,
    calculate_workout_xp,
    get_level_progress,
    get_level_title,
    get_xp_for_next_level,
)
from personalfit.models.gamification import AchievementStats, GamificationState, ShopCategory
from personalfit.monitoring import (
    track_milestone_gems,
    track_purchase,
    track_version_conflict,
    track_xp_award,
)
from personalfit.utils.datetime_helpers import calendar_day, now_utc, to_utc

logger = logging.getLogger(__name__)

LEADERBOARD_MAX_LIMIT = 100
# Initial claim plus one re-read after losing a race
MILESTONE_CLAIM_ATTEMPTS = 2


class AttemptStatus(str, Enum):
    """Outcome of one optimistic write attempt"""
    COMMITTED = "committed"
    CONFLICT = "conflict"


@dataclass
class AwardAttempt:
    status: AttemptStatus
    result: Optional[Dict[str, Any]] = None


class GamificationService:
    """
    Service for gamification features.

    Responsibilities:
    - Lazy initialisation of a user's gamification state
    - XP, level, streak and achievement updates for completed workouts
    - Leaderboard and rank
    - Rewards shop purchases, milestone gem claims and streak freezes
    """

    def __init__(self, db_connection):
        """
        Initialize GamificationService.

        Args:
            db_connection: Database instance the queries run against
        """
        self.db = db_connection
        logger.debug("GamificationService initialized")

    # ==========================================
    # State
    # ==========================================

    async def _load_state(self, user_id: str) -> GamificationState:
        """
        Read the user's state, creating the defaults on first access

        Raises:
            RecordNotFoundError: User does not exist
        """
        row = await queries.get_gamification_state(self.db, user_id)
        if row is None:
            await queries.init_gamification_if_absent(
                self.db, user_id, STARTING_GEMS, STARTING_STREAK_FREEZES
            )
            row = await queries.get_gamification_state(self.db, user_id)
            if row is None:
                raise RecordNotFoundError(
                    f"User {user_id} not found",
                    record_type="User",
                    record_id=user_id,
                    user_id=user_id
                )
        return GamificationState(**row)

    async def _read_state(self, user_id: str) -> GamificationState:
        """
        Re-read the state after a rejected conditional write

        Raises:
            RecordNotFoundError: The row is gone
        """
        row = await queries.get_gamification_state(self.db, user_id)
        if row is None:
            raise RecordNotFoundError(
                f"User {user_id} not found",
                record_type="User",
                record_id=user_id,
                user_id=user_id
            )
        return GamificationState(**row)

    @staticmethod
    def _stats(state: GamificationState) -> Dict[str, Any]:
        return {
            'xp': state.xp,
            'level': state.level,
            'level_title': get_level_title(state.level),
            'level_progress': get_level_progress(state.xp),
            'xp_for_next_level': get_xp_for_next_level(state.level),
            'total_workouts_completed': state.total_workouts_completed,
            'current_streak': state.current_streak,
            'longest_streak': state.longest_streak,
            'last_workout_date': state.last_workout_date,
            'achievements': list(state.achievements),
            'total_prs': state.total_prs,
            'gems': state.gems,
            'total_gems_earned': state.total_gems_earned,
            'purchased_items': list(state.purchased_items),
            'streak_freezes_available': state.streak_freezes_available,
            'streak_freezes_used_this_month': state.streak_freezes_used_this_month,
        }

    async def get_gamification_stats(self, user_id: str) -> Dict[str, Any]:
        """
        Current gamification stats for a user.

        Returns:
            {
                'xp', 'level', 'level_title', 'level_progress', 'xp_for_next_level',
                'total_workouts_completed', 'current_streak', 'longest_streak',
                'last_workout_date', 'achievements', 'total_prs', 'gems',
                'total_gems_earned', 'purchased_items', 'streak_freezes_available',
                'streak_freezes_used_this_month'
            }
        """
        state = await self._load_state(user_id)
        return self._stats(state)

    # ==========================================
    # Workout XP
    # ==========================================

    async def award_workout_xp(
        self,
        user_id: str,
        had_personal_record: bool = False,
        workout_date: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Award XP for a completed workout.

        Each attempt computes the award from one snapshot and commits it only
        if the snapshot is still current. Nothing is written by a failed
        attempt, so the XP is never applied twice.

        Args:
            user_id: User ID
            had_personal_record: A PR was set during the workout
            workout_date: When the workout was completed (defaults to now)

        Returns:
            {
                'xp_awarded', 'breakdown', 'leveled_up', 'old_level', 'new_level',
                'new_level_title', 'streak_broken', 'streak_protected',
                'current_streak', 'new_achievements', 'stats'
            }

        Raises:
            RecordNotFoundError: User does not exist
            ConcurrencyConflictError: Every attempt lost to a concurrent write
        """
        completed_at = to_utc(workout_date) if workout_date else now_utc()

        for attempt in range(1, XP_AWARD_MAX_ATTEMPTS + 1):
            state = await self._load_state(user_id)
            outcome = await self._attempt_workout_award(state, had_personal_record, completed_at)

            if outcome.status == AttemptStatus.COMMITTED:
                result = outcome.result
                track_xp_award(result['xp_awarded'])
                logger.info(
                    f"Workout XP awarded: user={user_id}, xp={result['xp_awarded']}, "
                    f"level={result['old_level']}->{result['new_level']}, "
                    f"streak={result['current_streak']}, attempt={attempt}, "
                    f"achievements={len(result['new_achievements'])}"
                )
                return result

            exhausted = attempt == XP_AWARD_MAX_ATTEMPTS
            track_version_conflict("award_workout_xp", "exhausted" if exhausted else "retried")
            logger.warning(
                f"Version conflict awarding XP to user {user_id} "
                f"(attempt {attempt}/{XP_AWARD_MAX_ATTEMPTS}, read version {state.version})"
            )

        raise ConcurrencyConflictError(
            f"Could not award workout XP after {XP_AWARD_MAX_ATTEMPTS} attempts",
            attempts=XP_AWARD_MAX_ATTEMPTS,
            user_id=user_id,
            operation="award_workout_xp"
        )

    async def _attempt_workout_award(
        self,
        state: GamificationState,
        had_personal_record: bool,
        completed_at: datetime
    ) -> AwardAttempt:
        """Compute the award from one snapshot and try to commit it"""
        streak = update_streak(
            state.last_workout_date,
            completed_at,
            state.current_streak,
            last_freeze_date=state.last_streak_freeze_date
        )

        award = calculate_workout_xp(
            is_first_workout=state.total_workouts_completed == 0,
            current_streak=streak.new_streak,
            had_personal_record=had_personal_record
        )

        new_xp = state.xp + award.total_xp
        new_level = calculate_level(new_xp)
        total_workouts = state.total_workouts_completed + 1
        longest_streak = max(state.longest_streak, streak.new_streak)

        # A back-dated workout never moves the last workout date backwards
        last_workout_date = completed_at
        if state.last_workout_date is not None:
            last_workout_date = max(to_utc(state.last_workout_date), completed_at)

        new_achievement_ids = check_achievements(
            state.achievements,
            AchievementStats(
                total_workouts=total_workouts,
                current_streak=streak.new_streak,
                total_prs=state.total_prs,
                level=new_level,
                total_xp=new_xp,
                total_gems=state.total_gems_earned,
            )
        )

        row = await queries.apply_workout_award(
            self.db,
            state.user_id,
            state.version,
            {
                'xp': new_xp,
                'level': new_level,
                'total_workouts_completed': total_workouts,
                'current_streak': streak.new_streak,
                'longest_streak': longest_streak,
                'last_workout_date': last_workout_date,
                'achievements': list(state.achievements) + new_achievement_ids,
            }
        )

        if row is None:
            return AwardAttempt(status=AttemptStatus.CONFLICT)

        updated = GamificationState(**row)
        return AwardAttempt(
            status=AttemptStatus.COMMITTED,
            result={
                'xp_awarded': award.total_xp,
                'breakdown': [item.model_dump() for item in award.breakdown],
                'leveled_up': new_level > state.level,
                'old_level': state.level,
                'new_level': new_level,
                'new_level_title': get_level_title(new_level),
                'streak_broken': streak.streak_broken,
                'streak_protected': streak.streak_protected,
                'current_streak': streak.new_streak,
                'new_achievements': [
                    get_achievement(achievement_id).model_dump(exclude={'criteria'})
                    for achievement_id in new_achievement_ids
                ],
                'stats': self._stats(updated),
            }
        )

    # ==========================================
    # Achievements & Leaderboard
    # ==========================================

    async def get_achievements(self, user_id: str) -> List[Dict[str, Any]]:
        """Full achievement catalog with the user's unlocked flags"""
        state = await self._load_state(user_id)
        return [view.model_dump() for view in list_achievements(state.achievements)]

    async def get_leaderboard(self, limit: int = 10, offset: int = 0) -> List[Dict[str, Any]]:
        """
        Users ranked by XP.

        Args:
            limit: Page size, 1-100
            offset: Rows to skip

        Returns:
            [{'rank', 'user_id', 'name', 'xp', 'level', 'level_title',
              'current_streak', 'total_workouts'}]
        """
        if not 1 <= limit <= LEADERBOARD_MAX_LIMIT:
            raise ValidationError(
                f"limit must be between 1 and {LEADERBOARD_MAX_LIMIT}",
                field="limit",
                value=limit
            )
        if offset < 0:
            raise ValidationError("offset cannot be negative", field="offset", value=offset)

        rows = await queries.get_leaderboard(self.db, limit, offset)

        leaderboard = []
        for index, row in enumerate(rows):
            name = " ".join(part for part in (row.get('first_name'), row.get('last_name')) if part)
            leaderboard.append({
                'rank': offset + index + 1,
                'user_id': row['user_id'],
                'name': name or "Anonymous",
                'xp': row['xp'],
                'level': row['level'],
                'level_title': get_level_title(row['level']),
                'current_streak': row['current_streak'],
                'total_workouts': row['total_workouts_completed'],
            })
        return leaderboard

    async def get_user_rank(self, user_id: str) -> Dict[str, Any]:
        """
        The user's leaderboard position.

        Returns:
            {'rank', 'xp', 'total_users', 'xp_to_next_rank'}
        """
        await self._load_state(user_id)
        row = await queries.get_user_rank(self.db, user_id)
        if row is None:
            raise RecordNotFoundError(
                f"User {user_id} not found",
                record_type="User",
                record_id=user_id,
                user_id=user_id
            )

        next_rank_xp = row.get('next_rank_xp')
        return {
            'rank': row['rank'],
            'xp': row['xp'],
            'total_users': row['total_users'],
            'xp_to_next_rank': next_rank_xp - row['xp'] if next_rank_xp is not None else 0,
        }

    # ==========================================
    # Gem economy
    # ==========================================

    async def get_gem_balance(self, user_id: str) -> Dict[str, int]:
        state = await self._load_state(user_id)
        return {'gems': state.gems, 'total_gems_earned': state.total_gems_earned}

    async def get_shop_items(
        self,
        user_id: str,
        category: Optional[ShopCategory] = None
    ) -> Dict[str, Any]:
        """Shop catalog with ownership flags and the user's balance"""
        state = await self._load_state(user_id)
        items = get_available_shop_items(state.purchased_items, category)
        return {
            'items': [item.model_dump() for item in items],
            'gems': state.gems,
        }

    async def purchase_shop_item(self, user_id: str, item_id: str) -> Dict[str, Any]:
        """
        Buy a shop item with gems.

        The debit, the ownership check and the balance check are one
        conditional write, so concurrent purchases can never overspend or
        buy the same item twice.

        Returns:
            {'success': True, 'item', 'gems_remaining', 'purchased_items'}

        Raises:
            RecordNotFoundError: Unknown item or user
            ItemAlreadyOwnedError: Item already purchased
            InsufficientGemsError: Not enough gems
            ConcurrencyConflictError: Rejected write that a fresh read would allow
        """
        item = get_shop_item(item_id)
        if item is None:
            track_purchase("not_found")
            raise RecordNotFoundError(
                f"Shop item {item_id} not found",
                record_type="ShopItem",
                record_id=item_id,
                user_id=user_id
            )

        await self._load_state(user_id)
        row = await queries.purchase_item_atomic(self.db, user_id, item_id, item.gems_price)

        if row is None:
            # Re-read only to explain the rejection
            try:
                current = await self._read_state(user_id)
                validate_purchase(
                    item_id,
                    current.gems,
                    current.purchased_items,
                    user_id=user_id,
                    operation="purchase_shop_item"
                )
            except RecordNotFoundError:
                track_purchase("not_found")
                raise
            except ItemAlreadyOwnedError:
                track_purchase("already_owned")
                raise
            except InsufficientGemsError:
                track_purchase("insufficient_gems")
                raise
            # The fresh read would allow it: the state moved between the write and the read
            track_purchase("conflict")
            raise ConcurrencyConflictError(
                f"Purchase of {item_id} raced with another update",
                attempts=1,
                user_id=user_id,
                operation="purchase_shop_item"
            )

        track_purchase("success")
        logger.info(
            f"User {user_id} purchased {item_id} for {item.gems_price} gems "
            f"({row['gems']} remaining)"
        )
        return {
            'success': True,
            'item': item.model_copy(update={'unlocked': True}).model_dump(),
            'gems_remaining': row['gems'],
            'purchased_items': list(row['purchased_items']),
        }

    async def claim_milestone_rewards(self, user_id: str) -> Dict[str, Any]:
        """
        Credit gems for every reached, unclaimed milestone.

        The write only applies if none of the milestones computed from the
        read has been claimed meanwhile, so a milestone pays out once even
        under concurrent claims. After a lost race the state is read once
        more and whatever the winner left unclaimed is claimed.

        Returns:
            {'total_gems_awarded', 'claimed_milestones', 'total_gems'}
        """
        state = await self._load_state(user_id)

        for attempt in range(1, MILESTONE_CLAIM_ATTEMPTS + 1):
            eligible = check_milestone_rewards(
                state.level,
                state.current_streak,
                state.milestone_rewards_claimed
            )
            if not eligible:
                break

            milestone_ids = [reward.milestone_id for reward in eligible]
            gems_total = sum(reward.gems_reward for reward in eligible)

            row = await queries.claim_milestones_atomic(self.db, user_id, milestone_ids, gems_total)
            if row is not None:
                track_milestone_gems(gems_total)
                logger.info(f"User {user_id} claimed milestones {milestone_ids} for {gems_total} gems")
                return {
                    'total_gems_awarded': gems_total,
                    'claimed_milestones': [reward.model_dump() for reward in eligible],
                    'total_gems': row['gems'],
                }

            logger.info(
                f"Milestones {milestone_ids} for user {user_id} overlapped a concurrent claim "
                f"(attempt {attempt}/{MILESTONE_CLAIM_ATTEMPTS})"
            )
            state = await self._read_state(user_id)

        return {
            'total_gems_awarded': 0,
            'claimed_milestones': [],
            'total_gems': state.gems,
        }

    # ==========================================
    # Streak freezes
    # ==========================================

    async def use_streak_freeze(self, user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Protect today's streak with a freeze.

        Uses an available freeze first, otherwise buys one for
        STREAK_FREEZE_GEM_PRICE gems. At most one freeze per day.

        Returns:
            {'success': True, 'freeze_date', 'gems_spent', 'streak_freezes_available', 'gems'}

        Raises:
            StreakFreezeUnavailableError: Already used today, or no freeze and not enough gems
            RecordNotFoundError: User does not exist
        """
        freeze_date = today or calendar_day(now_utc())
        state = await self._load_state(user_id)

        if state.last_streak_freeze_date == freeze_date:
            raise StreakFreezeUnavailableError("Streak freeze already used today", user_id=user_id)

        row = None
        gems_spent = 0
        if state.streak_freezes_available > 0:
            row = await queries.consume_streak_freeze(self.db, user_id, freeze_date)
        if row is None:
            row = await queries.buy_streak_freeze(self.db, user_id, freeze_date, STREAK_FREEZE_GEM_PRICE)
            gems_spent = STREAK_FREEZE_GEM_PRICE if row is not None else 0

        if row is None:
            current = await self._read_state(user_id)
            if current.last_streak_freeze_date == freeze_date:
                raise StreakFreezeUnavailableError("Streak freeze already used today", user_id=user_id)
            raise StreakFreezeUnavailableError(
                f"No streak freezes available. Need {STREAK_FREEZE_GEM_PRICE} gems, have {current.gems}",
                user_id=user_id
            )

        logger.info(f"User {user_id} used a streak freeze for {freeze_date} (gems spent: {gems_spent})")
        return {
            'success': True,
            'freeze_date': freeze_date,
            'gems_spent': gems_spent,
            'streak_freezes_available': row['streak_freezes_available'],
            'gems': row['gems'],
        }

    async def award_monthly_streak_freezes(self) -> int:
        """Grant the monthly streak freezes to every user; returns users updated"""
        return await queries.award_monthly_streak_freezes(self.db, MONTHLY_STREAK_FREEZES)
