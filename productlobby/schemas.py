"""
Pydantic schemas for API input/output.

Field names are camelCase because they are the JSON contract the web client
already consumes. Every response is wrapped in `Envelope`:
`{"success": true, "data": ...}`; errors use the envelope in `errors.py`.
"""

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, Field

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T


# --- campaigns ---------------------------------------------------------------

class CampaignIn(BaseModel):
    """Body for POST /api/campaigns."""
    title: str = Field(min_length=1)
    slug: Optional[str] = None
    brandId: Optional[int] = None


class CampaignOut(BaseModel):
    id: int
    slug: str
    title: str
    status: str
    creatorId: int
    brandId: Optional[int] = None
    brandResponseStatus: str
    createdAt: datetime


class StatusIn(BaseModel):
    status: str


class CollaboratorIn(BaseModel):
    userId: int
    role: str = "viewer"


class CollaboratorOut(BaseModel):
    campaignId: int
    userId: int
    role: str


# --- events ------------------------------------------------------------------

class EventIn(BaseModel):
    """Body for POST /api/campaigns/{id}/events."""
    eventType: str
    timestamp: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None


class EventOut(BaseModel):
    id: int
    campaignId: int
    userId: int
    eventType: str
    points: int
    createdAt: datetime


# --- demand signal -----------------------------------------------------------

class ComponentScores(BaseModel):
    lobbies: float
    growth: float
    comments: float
    contributors: float


class GrowthBars(BaseModel):
    lastSevenDays: float
    previousSevenDays: float


class VelocityPoint(BaseModel):
    date: str
    count: int
    cumulative: int


class DemandSignalOut(BaseModel):
    """Detailed breakdown returned by GET /api/campaigns/{id}/demand-signal."""
    campaignId: int
    campaignSlug: str
    campaignTitle: str
    totalLobbies: int
    lobbiesLastSevenDays: int
    lobbiesPreviousSevenDays: int
    growthRate: float
    growthIsNew: bool
    commentCount: int
    uniqueContributorCount: int
    brandResponseStatus: str
    demandScore: float
    demandTier: str
    componentScores: ComponentScores
    breakdown: ComponentScores
    weights: Dict[str, float]
    growthBars: GrowthBars
    velocity: List[VelocityPoint]


# --- segments ----------------------------------------------------------------

class SegmentRuleIn(BaseModel):
    field: str
    operator: str
    value: Union[float, str]


class SegmentIn(BaseModel):
    """
    Body for POST /api/campaigns/{id}/segments.

    `name` and `rules` are optional at the schema level so a missing field
    yields the same 400 message as an empty one.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    rules: Optional[List[SegmentRuleIn]] = None


class SegmentStats(BaseModel):
    avgEngagement: float
    totalContributions: int
    retentionRate: float
    growthRate: float


class AudienceSegmentOut(BaseModel):
    id: str
    name: str
    description: str
    memberCount: int
    color: str
    badge: str
    criteria: List[str]
    activityScore: float
    lastUpdated: str
    stats: SegmentStats
    custom: bool = False


# --- rewards -----------------------------------------------------------------

class RewardOut(BaseModel):
    id: int
    name: str
    description: str
    type: str
    pointsCost: int
    quantity: int
    claimed: int
    tier: str


class RewardStatusOut(BaseModel):
    totalPoints: int
    spentPoints: int
    availablePoints: int
    currentTier: str
    nextTierPoints: Optional[int] = None
    pointsToNextTier: Optional[int] = None
    claimedRewards: List[int]
    availableRewards: List[RewardOut]


class ClaimIn(BaseModel):
    rewardId: Optional[int] = None
