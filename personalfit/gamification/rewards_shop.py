"""
Rewards Shop

Cosmetic items bought with gems, and one-time gem rewards for reaching level
and streak milestones. Catalog lookups and eligibility checks only; the
atomic balance changes happen in GamificationService.
"""

from typing import Iterable, List, Optional
import logging

from personalfit.exceptions import (
    InsufficientGemsError,
    ItemAlreadyOwnedError,
    RecordNotFoundError,
)
from personalfit.models.gamification import (
    MilestoneReward,
    Rarity,
    ShopCategory,
    ShopItem,
)

logger = logging.getLogger(__name__)


SHOP_ITEMS: dict[str, ShopItem] = {
    item.id: item
    for item in [
        # Themes
        ShopItem(
            id="theme_dark",
            category=ShopCategory.THEME,
            name="Dark Mode",
            description="Sleek dark theme for the app",
            icon="moon",
            gems_price=0,
            rarity=Rarity.COMMON,
        ),
        ShopItem(
            id="theme_ocean",
            category=ShopCategory.THEME,
            name="Ocean Breeze",
            description="Calming ocean-inspired colors",
            icon="waves",
            gems_price=50,
            rarity=Rarity.UNCOMMON,
        ),
        ShopItem(
            id="theme_sunset",
            category=ShopCategory.THEME,
            name="Sunset Glow",
            description="Warm sunset-inspired colors",
            icon="sun",
            gems_price=50,
            rarity=Rarity.UNCOMMON,
        ),
        ShopItem(
            id="theme_neon",
            category=ShopCategory.THEME,
            name="Neon Nights",
            description="Vibrant neon colors",
            icon="zap",
            gems_price=100,
            rarity=Rarity.RARE,
        ),
        # Badges
        ShopItem(
            id="badge_gold",
            category=ShopCategory.BADGE,
            name="Gold Badge",
            description="Show your premium status",
            icon="badge",
            gems_price=75,
            rarity=Rarity.UNCOMMON,
        ),
        ShopItem(
            id="badge_diamond",
            category=ShopCategory.BADGE,
            name="Diamond Badge",
            description="Ultra-rare premium badge",
            icon="gem",
            gems_price=200,
            rarity=Rarity.LEGENDARY,
        ),
        # Titles
        ShopItem(
            id="title_legend",
            category=ShopCategory.TITLE,
            name='"The Legend"',
            description="Display this title next to your name",
            icon="crown",
            gems_price=150,
            rarity=Rarity.EPIC,
        ),
        ShopItem(
            id="title_champion",
            category=ShopCategory.TITLE,
            name='"The Champion"',
            description="For the workout champions",
            icon="trophy",
            gems_price=100,
            rarity=Rarity.RARE,
        ),
        ShopItem(
            id="title_warrior",
            category=ShopCategory.TITLE,
            name='"The Warrior"',
            description="For the fitness warriors",
            icon="shield",
            gems_price=75,
            rarity=Rarity.UNCOMMON,
        ),
        # Profile effects
        ShopItem(
            id="profile_flame",
            category=ShopCategory.PROFILE,
            name="Flame Border",
            description="Flaming profile card border",
            icon="flame",
            gems_price=80,
            rarity=Rarity.RARE,
        ),
        ShopItem(
            id="profile_glow",
            category=ShopCategory.PROFILE,
            name="Glow Effect",
            description="Mystical glow around your profile",
            icon="sparkles",
            gems_price=120,
            rarity=Rarity.EPIC,
        ),
    ]
}

# (milestone_id, gems, requirement, threshold)
LEVEL_MILESTONES = (
    ("milestone_5", 50, "Reach Level 5", 5),
    ("milestone_10", 100, "Reach Level 10", 10),
    ("milestone_15", 150, "Reach Level 15", 15),
    ("milestone_20", 200, "Reach Level 20", 20),
)

STREAK_MILESTONES = (
    ("milestone_streak_7", 25, "Maintain 7-day streak", 7),
    ("milestone_streak_14", 50, "Maintain 14-day streak", 14),
    ("milestone_streak_30", 100, "Maintain 30-day streak", 30),
)

MILESTONE_REWARDS: dict[str, MilestoneReward] = {
    milestone_id: MilestoneReward(
        milestone_id=milestone_id,
        gems_reward=gems,
        requirement=requirement,
    )
    for milestone_id, gems, requirement, _ in LEVEL_MILESTONES + STREAK_MILESTONES
}


def get_shop_item(item_id: str) -> Optional[ShopItem]:
    """Get shop item by ID"""
    return SHOP_ITEMS.get(item_id)


def get_available_shop_items(
    purchased_items: Iterable[str] = (),
    category: Optional[ShopCategory] = None
) -> List[ShopItem]:
    """
    Shop catalog with the user's ownership flags

    Args:
        purchased_items: Item IDs the user already owns
        category: Only return items in this category

    Returns:
        Copies of the catalog items with `unlocked` set
    """
    owned = set(purchased_items)
    return [
        item.model_copy(update={"unlocked": item.id in owned})
        for item in SHOP_ITEMS.values()
        if category is None or item.category == category
    ]


def validate_purchase(item_id: str, user_gems: int, purchased_items: Iterable[str], **error_context) -> ShopItem:
    """
    Check a purchase against a state snapshot

    The conditional write in the service enforces the balance and ownership
    rules; this classifies a rejected write from a fresh read. error_context
    (user_id, operation) is passed to the raised error.

    Raises:
        RecordNotFoundError: Unknown item
        ItemAlreadyOwnedError: Item already purchased
        InsufficientGemsError: Balance lower than price
    """
    item = get_shop_item(item_id)
    if item is None:
        raise RecordNotFoundError(
            f"Shop item {item_id} not found",
            record_type="ShopItem",
            record_id=item_id,
            **error_context
        )

    if item_id in set(purchased_items):
        raise ItemAlreadyOwnedError(item_id, **error_context)

    if user_gems < item.gems_price:
        raise InsufficientGemsError(required=item.gems_price, available=user_gems, **error_context)

    return item


def check_milestone_rewards(
    level: int,
    streak: int,
    claimed: Iterable[str]
) -> List[MilestoneReward]:
    """
    Milestones reached but not yet claimed

    Level milestones are checked before streak milestones, each in ascending
    threshold order.
    """
    already_claimed = set(claimed)
    rewards = []

    for milestone_id, _, _, threshold in LEVEL_MILESTONES:
        if level >= threshold and milestone_id not in already_claimed:
            rewards.append(MILESTONE_REWARDS[milestone_id])

    for milestone_id, _, _, threshold in STREAK_MILESTONES:
        if streak >= threshold and milestone_id not in already_claimed:
            rewards.append(MILESTONE_REWARDS[milestone_id])

    return rewards
