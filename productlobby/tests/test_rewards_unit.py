"""
test_rewards_unit.py
--------------------
Unit tests for the reward program's pure helpers: points per event type and
the bronze/silver/gold/platinum tier table.
"""

import pytest

from productlobby.services.rewards import (
    DEFAULT_REWARDS,
    TIER_ORDER,
    event_points,
    points_to_next_tier,
    tier_for_points,
    visible_to_tier,
)


@pytest.mark.parametrize("points,tier", [
    (0, "bronze"),
    (99, "bronze"),
    (100, "silver"),
    (499, "silver"),
    (500, "gold"),
    (999, "gold"),
    (1000, "platinum"),
    (2000, "platinum"),
])
def test_tier_thresholds(points, tier):
    assert tier_for_points(points) == tier


def test_tier_is_monotonic():
    """More points never means a lower tier."""
    ranks = [TIER_ORDER.index(tier_for_points(p)) for p in range(0, 2500, 7)]
    assert ranks == sorted(ranks)


def test_points_to_next_tier():
    assert points_to_next_tier(0) == 100
    assert points_to_next_tier(99) == 1
    assert points_to_next_tier(100) == 400
    assert points_to_next_tier(2000) is None


def test_event_points_fixed_and_stored():
    assert event_points("SOCIAL_SHARE") == 25
    assert event_points("REFERRAL_SIGNUP") == 100
    assert event_points("REWARD_CLAIM", 999) == 0
    assert event_points("SHARE", 7) == 5
    # types without a fixed value fall back to the stored points
    assert event_points("LEGACY_IMPORT", 7) == 7
    assert event_points("LEGACY_IMPORT", None) == 0


def test_visible_to_tier():
    assert visible_to_tier("bronze", "bronze")
    assert visible_to_tier("silver", "gold")
    assert not visible_to_tier("platinum", "gold")


def test_default_catalog_covers_every_tier():
    assert {r["tier"] for r in DEFAULT_REWARDS} == set(TIER_ORDER)
