"""Audience segment endpoints (creator only)."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_campaign, get_current_user, require_creator
from ..errors import ValidationError
from ..models import Campaign, User
from ..schemas import AudienceSegmentOut, Envelope, SegmentIn
from ..services.segments import create_custom_segment, list_segments

router = APIRouter(prefix="/api/campaigns", tags=["Segments"])


@router.get("/{campaign_id}/segments", response_model=Envelope[List[AudienceSegmentOut]])
def get_segments(
    user: User = Depends(get_current_user),
    campaign: Campaign = Depends(get_campaign),
    db: Session = Depends(get_db),
):
    """The five predefined segments, then any custom segments, evaluated now."""
    require_creator(campaign, user)
    return Envelope(data=list_segments(db, campaign))


@router.post("/{campaign_id}/segments", response_model=Envelope[AudienceSegmentOut])
def post_segment(
    payload: SegmentIn,
    user: User = Depends(get_current_user),
    campaign: Campaign = Depends(get_campaign),
    db: Session = Depends(get_db),
):
    """Store a custom segment definition and return it with its live member count."""
    require_creator(campaign, user)
    if not payload.name or not payload.rules:
        raise ValidationError("Invalid request: name and rules are required")
    rules = [r.model_dump() for r in payload.rules]
    return Envelope(data=create_custom_segment(db, campaign, payload.name, payload.description, rules))
