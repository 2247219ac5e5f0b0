"""
SQLAlchemy ORM models for the ProductLobby API.

- User: supporters and campaign creators
- Brand: the company a campaign is lobbying
- Campaign: a product idea supporters rally around; status-transitioned, never deleted
- CampaignCollaborator: extra users allowed to read a campaign's analytics
- ContributionEvent: append-only log of user actions; the sole input to scoring
- Reward: per-campaign reward catalog entries claimable with points

Scores, segments and reward status are never stored; they are derived from
ContributionEvent rows at read time.
"""

from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, JSON, Text, UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship

from .db import Base

CAMPAIGN_STATUSES = ("draft", "live", "paused", "closed")

# from-status -> allowed to-statuses
STATUS_TRANSITIONS = {
    "draft": {"live"},
    "live": {"paused", "closed"},
    "paused": {"live", "closed"},
    "closed": set(),
}

BRAND_RESPONSE_STATUSES = ("none", "pending", "responded", "declined")

EVENT_TYPES = (
    "LOBBY",
    "COMMENT_ENGAGEMENT",
    "SHARE",
    "SOCIAL_SHARE",
    "PREFERENCE_SUBMITTED",
    "WISHLIST_SUBMITTED",
    "REFERRAL_SIGNUP",
    "BRAND_OUTREACH",
    "REWARD_CLAIM",
)

REWARD_TYPES = ("badge", "discount", "early_access", "exclusive", "points")
TIERS = ("bronze", "silver", "gold", "platinum")


class User(Base):
    """Platform account. `created_at` feeds the new-supporters segment."""
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    handle = Column(String, nullable=False, unique=True)
    display_name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    campaigns = relationship("Campaign", back_populates="creator")
    events = relationship("ContributionEvent", back_populates="user")


class Brand(Base):
    __tablename__ = "brands"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)

    campaigns = relationship("Campaign", back_populates="brand")


class Campaign(Base):
    """Product idea with a creator, optional target brand and lifecycle status."""
    __tablename__ = "campaigns"
    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String, nullable=False, unique=True, index=True)
    title = Column(String, nullable=False)
    status = Column(String, nullable=False, default="draft")  # draft | live | paused | closed
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id"), nullable=True)
    brand_response_status = Column(String, nullable=False, default="none")
    meta = Column(JSON, nullable=True)  # {"customSegments": [...]}
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    creator = relationship("User", back_populates="campaigns")
    brand = relationship("Brand", back_populates="campaigns")
    collaborators = relationship("CampaignCollaborator", back_populates="campaign")
    events = relationship("ContributionEvent", back_populates="campaign")
    rewards = relationship("Reward", back_populates="campaign", order_by="Reward.id")


class CampaignCollaborator(Base):
    __tablename__ = "campaign_collaborators"
    __table_args__ = (UniqueConstraint("campaign_id", "user_id", name="uq_collaborator"),)
    id = Column(Integer, primary_key=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    role = Column(String, nullable=False, default="viewer")  # editor | viewer

    campaign = relationship("Campaign", back_populates="collaborators")
    user = relationship("User")


class ContributionEvent(Base):
    """Immutable record of one user action against a campaign."""
    __tablename__ = "contribution_events"
    __table_args__ = (
        Index("ix_events_campaign_created", "campaign_id", "created_at"),
    )
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=False, index=True)
    event_type = Column(String, nullable=False)
    points = Column(Integer, nullable=False, default=0)  # only used for types without a fixed value
    meta = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    user = relationship("User", back_populates="events")
    campaign = relationship("Campaign", back_populates="events")


class Reward(Base):
    """Claimable reward; `claimed` counts successful claims across all users."""
    __tablename__ = "rewards"
    id = Column(Integer, primary_key=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    type = Column(String, nullable=False)
    points_cost = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)
    claimed = Column(Integer, nullable=False, default=0)
    tier = Column(String, nullable=False)

    campaign = relationship("Campaign", back_populates="rewards")
