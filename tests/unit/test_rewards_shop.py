"""Unit tests for Rewards Shop (personalfit/gamification/rewards_shop.py)"""
import pytest

from personalfit.exceptions import InsufficientGemsError, ItemAlreadyOwnedError, RecordNotFoundError
from personalfit.gamification.rewards_shop import (
    SHOP_ITEMS,
    check_milestone_rewards,
    get_available_shop_items,
    get_shop_item,
    validate_purchase,
)
from personalfit.models.gamification import ShopCategory


# ============================================================================
# Catalog Tests
# ============================================================================

def test_catalog_contents():
    assert len(SHOP_ITEMS) == 11
    assert get_shop_item("theme_dark").gems_price == 0
    assert get_shop_item("badge_diamond").gems_price == 200
    assert get_shop_item("unknown") is None


def test_available_items_flags_owned():
    items = get_available_shop_items(["theme_ocean"])

    owned = [item.id for item in items if item.unlocked]
    assert owned == ["theme_ocean"]
    # Catalog entries themselves are never mutated
    assert SHOP_ITEMS["theme_ocean"].unlocked is False


def test_available_items_by_category():
    items = get_available_shop_items([], ShopCategory.TITLE)

    assert {item.id for item in items} == {"title_legend", "title_champion", "title_warrior"}


# ============================================================================
# Purchase Validation Tests
# ============================================================================

def test_validate_purchase_ok():
    item = validate_purchase("theme_ocean", user_gems=50, purchased_items=[])
    assert item.id == "theme_ocean"


def test_validate_purchase_unknown_item():
    with pytest.raises(RecordNotFoundError):
        validate_purchase("nope", user_gems=500, purchased_items=[])


def test_validate_purchase_already_owned():
    with pytest.raises(ItemAlreadyOwnedError):
        validate_purchase("theme_ocean", user_gems=500, purchased_items=["theme_ocean"])


def test_validate_purchase_insufficient_gems():
    with pytest.raises(InsufficientGemsError) as exc_info:
        validate_purchase("theme_neon", user_gems=99, purchased_items=[])

    assert exc_info.value.required == 100
    assert exc_info.value.available == 99


# ============================================================================
# Milestone Tests
# ============================================================================

def test_no_milestones_below_thresholds():
    assert check_milestone_rewards(level=4, streak=6, claimed=[]) == []


def test_level_milestones_before_streak_milestones():
    rewards = check_milestone_rewards(level=10, streak=14, claimed=[])

    assert [r.milestone_id for r in rewards] == [
        "milestone_5", "milestone_10", "milestone_streak_7", "milestone_streak_14"
    ]
    assert sum(r.gems_reward for r in rewards) == 50 + 100 + 25 + 50


def test_claimed_milestones_excluded():
    rewards = check_milestone_rewards(level=10, streak=0, claimed=["milestone_5"])

    assert [r.milestone_id for r in rewards] == ["milestone_10"]
