"""
Reward program: points, tiers and reward claims.

Points are never stored per user; they are summed from the user's
ContributionEvents on the campaign every time they are needed. A claim is
itself recorded as a REWARD_CLAIM event (worth 0 points) whose meta holds the
reward id and its cost, which is how claimed rewards and spent points are
recovered later.

Tiers (by earned points):
    < 100  -> bronze
    < 500  -> silver
    < 1000 -> gold
    else   -> platinum
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..errors import NotFoundError, ValidationError
from ..models import Campaign, ContributionEvent, Reward, User

logger = logging.getLogger("productlobby.rewards")

POINTS_BY_EVENT: Dict[str, int] = {
    "PREFERENCE_SUBMITTED": 10,
    "WISHLIST_SUBMITTED":   15,
    "REFERRAL_SIGNUP":      100,
    "COMMENT_ENGAGEMENT":   5,
    "SOCIAL_SHARE":         25,
    "SHARE":                5,
    "BRAND_OUTREACH":       50,
    "LOBBY":                10,
    "REWARD_CLAIM":         0,
}

TIER_ORDER = ("bronze", "silver", "gold", "platinum")
TIER_RANK: Dict[str, int] = {tier: rank for rank, tier in enumerate(TIER_ORDER)}

# Points needed to leave each tier; platinum is the top.
NEXT_TIER_POINTS: Dict[str, Optional[int]] = {
    "bronze": 100,
    "silver": 500,
    "gold": 1000,
    "platinum": None,
}

DEFAULT_REWARDS = (
    {"name": "Early Supporter Badge", "description": "Exclusive badge recognizing your early support",
     "type": "badge", "points_cost": 50, "quantity": 500, "tier": "bronze"},
    {"name": "10% Discount Code", "description": "Use code SUPPORTER10 for 10% off",
     "type": "discount", "points_cost": 150, "quantity": 250, "tier": "silver"},
    {"name": "Beta Access Pass", "description": "Get early access to beta features and updates",
     "type": "early_access", "points_cost": 300, "quantity": 100, "tier": "gold"},
    {"name": "Exclusive Update", "description": "Receive exclusive updates and insider news",
     "type": "exclusive", "points_cost": 250, "quantity": 150, "tier": "gold"},
    {"name": "VIP Advocate Status", "description": "VIP status with special recognition and perks",
     "type": "points", "points_cost": 500, "quantity": 50, "tier": "platinum"},
)


def event_points(event_type: str, stored_points: Optional[int] = 0) -> int:
    """Points an event is worth: fixed per type, else whatever was stored on the row."""
    if event_type in POINTS_BY_EVENT:
        return POINTS_BY_EVENT[event_type]
    return stored_points or 0


def tier_for_points(points: int) -> str:
    for tier in TIER_ORDER[:-1]:
        if points < NEXT_TIER_POINTS[tier]:
            return tier
    return "platinum"


def points_to_next_tier(points: int) -> Optional[int]:
    threshold = NEXT_TIER_POINTS[tier_for_points(points)]
    return None if threshold is None else threshold - points


def visible_to_tier(reward_tier: str, user_tier: str) -> bool:
    """Users see rewards of their own tier and below."""
    return TIER_RANK[reward_tier] <= TIER_RANK[user_tier]


def seed_default_rewards(db: Session, campaign: Campaign) -> List[Reward]:
    rows = [Reward(campaign_id=campaign.id, claimed=0, **entry) for entry in DEFAULT_REWARDS]
    db.add_all(rows)
    return rows


@dataclass
class RewardStatus:
    total_points: int
    spent_points: int
    current_tier: str
    claimed_rewards: List[int] = field(default_factory=list)
    available_rewards: List[Reward] = field(default_factory=list)

    @property
    def available_points(self) -> int:
        return self.total_points - self.spent_points

    @property
    def next_tier_points(self) -> Optional[int]:
        return NEXT_TIER_POINTS[self.current_tier]

    @property
    def points_to_next_tier(self) -> Optional[int]:
        return points_to_next_tier(self.total_points)


def _user_ledger(db: Session, campaign_id: int, user_id: int):
    """(earned points, spent points, claimed reward ids in claim order)."""
    rows = db.execute(
        select(ContributionEvent.event_type, ContributionEvent.points, ContributionEvent.meta)
        .where(ContributionEvent.campaign_id == campaign_id)
        .where(ContributionEvent.user_id == user_id)
        .order_by(ContributionEvent.created_at, ContributionEvent.id)
    ).all()

    earned = 0
    spent = 0
    claimed: List[int] = []
    for event_type, points, meta in rows:
        earned += event_points(event_type, points)
        if event_type == "REWARD_CLAIM" and meta:
            spent += int(meta.get("pointsCost", 0))
            reward_id = meta.get("rewardId")
            if reward_id is not None and reward_id not in claimed:
                claimed.append(reward_id)
    return earned, spent, claimed


def reward_status(db: Session, campaign: Campaign, user: User) -> RewardStatus:
    earned, spent, claimed = _user_ledger(db, campaign.id, user.id)
    tier = tier_for_points(earned)
    rewards = db.execute(
        select(Reward).where(Reward.campaign_id == campaign.id).order_by(Reward.id)
    ).scalars().all()
    return RewardStatus(
        total_points=earned,
        spent_points=spent,
        current_tier=tier,
        claimed_rewards=claimed,
        available_rewards=[r for r in rewards if visible_to_tier(r.tier, tier)],
    )


def claim_reward(db: Session, campaign: Campaign, user: User, reward_id: int) -> RewardStatus:
    """
    Claim a reward for `user`, then return their refreshed status.

    Checked in order: reward exists on this campaign, not already claimed by
    this user, not sold out, enough unspent points.
    """
    reward = db.get(Reward, reward_id)
    if reward is None or reward.campaign_id != campaign.id:
        raise NotFoundError("Reward not found")

    earned, spent, claimed = _user_ledger(db, campaign.id, user.id)
    if reward.id in claimed:
        raise ValidationError("Reward already claimed")
    if reward.claimed >= reward.quantity:
        raise ValidationError("This reward is sold out")
    available = earned - spent
    if available < reward.points_cost:
        raise ValidationError(
            f"Insufficient points. You have {available} points but need {reward.points_cost}"
        )

    # increment only while stock remains
    taken = db.execute(
        update(Reward)
        .where(Reward.id == reward.id)
        .where(Reward.claimed < Reward.quantity)
        .values(claimed=Reward.claimed + 1)
        .execution_options(synchronize_session=False)
    )
    if taken.rowcount != 1:
        db.rollback()
        raise ValidationError("This reward is sold out")

    db.add(ContributionEvent(
        user_id=user.id,
        campaign_id=campaign.id,
        event_type="REWARD_CLAIM",
        points=0,
        meta={
            "action": "reward_claim",
            "rewardId": reward.id,
            "rewardName": reward.name,
            "pointsCost": reward.points_cost,
        },
    ))
    db.commit()
    logger.info("User %s claimed reward %s on campaign %s", user.id, reward.id, campaign.id)

    return reward_status(db, campaign, user)
