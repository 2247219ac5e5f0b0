"""Contribution event ingestion."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_campaign, get_current_user
from ..errors import ValidationError
from ..models import Campaign, ContributionEvent, User, EVENT_TYPES
from ..schemas import Envelope, EventIn, EventOut

logger = logging.getLogger("productlobby.events")

router = APIRouter(prefix="/api/campaigns", tags=["Ingest"])

# REWARD_CLAIM rows are written by the rewards flow only
INGESTIBLE_EVENT_TYPES = tuple(t for t in EVENT_TYPES if t != "REWARD_CLAIM")
OPEN_STATUSES = ("live", "paused")


def parse_timestamp(raw: str) -> datetime:
    """ISO 8601 to naive UTC. Accepts a trailing `Z` on every supported Python."""
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        ts = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError("Invalid timestamp: expected ISO 8601")
    if ts.tzinfo is not None:
        ts = ts.replace(tzinfo=None) - ts.utcoffset()
    return ts


@router.post("/{campaign_id}/events", status_code=201, response_model=Envelope[EventOut])
def add_event(
    payload: EventIn,
    user: User = Depends(get_current_user),
    campaign: Campaign = Depends(get_campaign),
    db: Session = Depends(get_db),
):
    """
    Record one ContributionEvent for the caller.

    Events are append-only: this is the only write path besides reward claims,
    and nothing updates or deletes them afterwards. If `timestamp` is omitted
    the event is stamped "now" (UTC).
    """
    if payload.eventType not in INGESTIBLE_EVENT_TYPES:
        raise ValidationError(f"Unknown event type '{payload.eventType}'")
    if campaign.status not in OPEN_STATUSES:
        raise ValidationError(f"Campaign is {campaign.status} and not accepting contributions")

    now = datetime.utcnow()
    ts = parse_timestamp(payload.timestamp) if payload.timestamp else now
    if ts > now:
        raise ValidationError("Invalid timestamp: cannot be in the future")

    # points are derived server-side from the event type
    ev = ContributionEvent(
        user_id=user.id,
        campaign_id=campaign.id,
        event_type=payload.eventType,
        points=0,
        meta=payload.meta or {},
        created_at=ts,
    )
    db.add(ev)
    db.commit()
    db.refresh(ev)
    logger.info("Recorded %s event %s for user %s on campaign %s",
                ev.event_type, ev.id, user.id, campaign.id)

    return Envelope(data=EventOut(
        id=ev.id,
        campaignId=ev.campaign_id,
        userId=ev.user_id,
        eventType=ev.event_type,
        points=ev.points,
        createdAt=ev.created_at,
    ))
