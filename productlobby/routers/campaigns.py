"""Campaign router: create, list, fetch, status transitions, collaborators."""

import logging
import re
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_campaign, get_current_user, require_creator
from ..errors import NotFoundError, ValidationError
from ..models import (
    Brand, Campaign, CampaignCollaborator, User, CAMPAIGN_STATUSES, STATUS_TRANSITIONS,
)
from ..schemas import (
    CampaignIn, CampaignOut, CollaboratorIn, CollaboratorOut, Envelope, StatusIn,
)
from ..services.rewards import seed_default_rewards

logger = logging.getLogger("productlobby.campaigns")

router = APIRouter(prefix="/api/campaigns", tags=["Campaigns"])

COLLABORATOR_ROLES = ("editor", "viewer")


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "campaign"


def campaign_out(campaign: Campaign) -> CampaignOut:
    return CampaignOut(
        id=campaign.id,
        slug=campaign.slug,
        title=campaign.title,
        status=campaign.status,
        creatorId=campaign.creator_id,
        brandId=campaign.brand_id,
        brandResponseStatus=campaign.brand_response_status,
        createdAt=campaign.created_at,
    )


@router.post("", status_code=201, response_model=Envelope[CampaignOut])
def create_campaign(
    payload: CampaignIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Create a draft campaign owned by the caller.

    The slug defaults to a slugified title; slugs are unique and never
    all-digit, so `{id}` path lookups stay unambiguous. New campaigns get the
    default reward catalog.
    """
    slug = slugify(payload.slug or payload.title)
    if slug.isdigit():
        raise ValidationError("Slug must contain at least one letter")
    if db.execute(select(Campaign.id).where(Campaign.slug == slug)).first():
        raise ValidationError(f"Slug '{slug}' is already taken")
    if payload.brandId is not None and db.get(Brand, payload.brandId) is None:
        raise ValidationError("Unknown brand")

    campaign = Campaign(
        slug=slug,
        title=payload.title.strip(),
        status="draft",
        creator_id=user.id,
        brand_id=payload.brandId,
        meta={},
    )
    db.add(campaign)
    db.flush()
    seed_default_rewards(db, campaign)
    db.commit()
    db.refresh(campaign)
    logger.info("User %s created campaign %s (%s)", user.id, campaign.id, campaign.slug)
    return Envelope(data=campaign_out(campaign))


@router.get("", response_model=Envelope[List[CampaignOut]])
def list_campaigns(status: Optional[str] = None, db: Session = Depends(get_db)):
    stmt = select(Campaign).order_by(Campaign.created_at.desc(), Campaign.id.desc())
    if status is not None:
        if status not in CAMPAIGN_STATUSES:
            raise ValidationError(f"Unknown status '{status}'")
        stmt = stmt.where(Campaign.status == status)
    return Envelope(data=[campaign_out(c) for c in db.execute(stmt).scalars().all()])


@router.get("/{campaign_id}", response_model=Envelope[CampaignOut])
def read_campaign(campaign: Campaign = Depends(get_campaign)):
    return Envelope(data=campaign_out(campaign))


@router.patch("/{campaign_id}/status", response_model=Envelope[CampaignOut])
def change_status(
    payload: StatusIn,
    user: User = Depends(get_current_user),
    campaign: Campaign = Depends(get_campaign),
    db: Session = Depends(get_db),
):
    """Move a campaign through draft -> live <-> paused -> closed."""
    require_creator(campaign, user)
    if payload.status not in CAMPAIGN_STATUSES:
        raise ValidationError(f"Unknown status '{payload.status}'")
    if payload.status not in STATUS_TRANSITIONS[campaign.status]:
        raise ValidationError(f"Cannot change status from {campaign.status} to {payload.status}")

    previous = campaign.status
    campaign.status = payload.status
    db.commit()
    db.refresh(campaign)
    logger.info("Campaign %s status %s -> %s", campaign.id, previous, campaign.status)
    return Envelope(data=campaign_out(campaign))


@router.post("/{campaign_id}/collaborators", status_code=201, response_model=Envelope[CollaboratorOut])
def add_collaborator(
    payload: CollaboratorIn,
    user: User = Depends(get_current_user),
    campaign: Campaign = Depends(get_campaign),
    db: Session = Depends(get_db),
):
    require_creator(campaign, user)
    if payload.role not in COLLABORATOR_ROLES:
        raise ValidationError(f"Unknown role '{payload.role}'")
    if db.get(User, payload.userId) is None:
        raise NotFoundError("User not found")
    if payload.userId == campaign.creator_id:
        raise ValidationError("The creator is already on the campaign team")
    existing = db.execute(
        select(CampaignCollaborator.id)
        .where(CampaignCollaborator.campaign_id == campaign.id)
        .where(CampaignCollaborator.user_id == payload.userId)
    ).first()
    if existing:
        raise ValidationError("User is already a collaborator")

    db.add(CampaignCollaborator(campaign_id=campaign.id, user_id=payload.userId, role=payload.role))
    db.commit()
    return Envelope(data=CollaboratorOut(campaignId=campaign.id, userId=payload.userId, role=payload.role))
