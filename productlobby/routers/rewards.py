"""Reward status and claims for the calling user."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_campaign, get_current_user
from ..errors import ValidationError
from ..models import Campaign, User
from ..schemas import ClaimIn, Envelope, RewardOut, RewardStatusOut
from ..services.rewards import RewardStatus, claim_reward, reward_status

router = APIRouter(prefix="/api/campaigns", tags=["Rewards"])


def status_out(status: RewardStatus) -> RewardStatusOut:
    return RewardStatusOut(
        totalPoints=status.total_points,
        spentPoints=status.spent_points,
        availablePoints=status.available_points,
        currentTier=status.current_tier,
        nextTierPoints=status.next_tier_points,
        pointsToNextTier=status.points_to_next_tier,
        claimedRewards=status.claimed_rewards,
        availableRewards=[
            RewardOut(
                id=r.id,
                name=r.name,
                description=r.description,
                type=r.type,
                pointsCost=r.points_cost,
                quantity=r.quantity,
                claimed=r.claimed,
                tier=r.tier,
            )
            for r in status.available_rewards
        ],
    )


@router.get("/{campaign_id}/rewards", response_model=Envelope[RewardStatusOut])
def get_rewards(
    user: User = Depends(get_current_user),
    campaign: Campaign = Depends(get_campaign),
    db: Session = Depends(get_db),
):
    return Envelope(data=status_out(reward_status(db, campaign, user)))


@router.post("/{campaign_id}/rewards", response_model=Envelope[RewardStatusOut])
def post_reward_claim(
    payload: ClaimIn,
    user: User = Depends(get_current_user),
    campaign: Campaign = Depends(get_campaign),
    db: Session = Depends(get_db),
):
    """Claim `rewardId`; 400 when sold out, already claimed or short on points."""
    if payload.rewardId is None:
        raise ValidationError("Reward ID is required")
    return Envelope(data=status_out(claim_reward(db, campaign, user, payload.rewardId)))
