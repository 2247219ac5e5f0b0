"""Demand-signal report for a campaign."""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_campaign, get_current_user, require_team_member
from ..models import Campaign, User
from ..schemas import DemandSignalOut, Envelope
from ..services.metrics import LOBBY_TYPES, collect_campaign_metrics, daily_counts
from ..services.scoring import WEIGHTS, build_demand_signal

router = APIRouter(prefix="/api/campaigns", tags=["Demand"])

VELOCITY_DAYS = 30


@router.get("/{campaign_id}/demand-signal", response_model=Envelope[DemandSignalOut])
def demand_signal(
    user: User = Depends(get_current_user),
    campaign: Campaign = Depends(get_campaign),
    db: Session = Depends(get_db),
):
    """
    Compute the campaign's demand score and the numbers behind it.

    The score is a weighted average (0..100) of four normalized components:
    - lobbies       (total LOBBY events)
    - growth        (last 7d vs previous 7d lobbies; 50 = flat)
    - comments      (total COMMENT_ENGAGEMENT events)
    - contributors  (distinct users with any event)

    Nothing is cached: every call recomputes from the event log. Only the
    creator and collaborators may read it.
    """
    require_team_member(db, campaign, user)

    now = datetime.utcnow()
    metrics = collect_campaign_metrics(db, campaign, now)
    signal = build_demand_signal(metrics)

    return Envelope(data=DemandSignalOut(
        campaignId=campaign.id,
        campaignSlug=campaign.slug,
        campaignTitle=campaign.title,
        totalLobbies=metrics.total_lobbies,
        lobbiesLastSevenDays=metrics.lobbies_last_7,
        lobbiesPreviousSevenDays=metrics.lobbies_prev_7,
        growthRate=signal.growth_rate,
        growthIsNew=signal.growth_is_new,
        commentCount=metrics.comment_count,
        uniqueContributorCount=metrics.unique_contributors,
        brandResponseStatus=campaign.brand_response_status,
        demandScore=signal.demand_score,
        demandTier=signal.demand_tier,
        componentScores=signal.component_scores,
        breakdown=signal.breakdown,
        weights=WEIGHTS,
        growthBars=signal.growth_bars,
        velocity=daily_counts(db, campaign.id, LOBBY_TYPES, days=VELOCITY_DAYS, now=now),
    ))
