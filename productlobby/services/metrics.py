"""
Metric aggregation over the ContributionEvent log.

Every number the scoring layer sees comes from here. Windows are measured
back from `now`:
- last 7 days          -> [now-7d, now)
- previous 7 days      -> [now-14d, now-7d)
- 30 / 60 day windows  -> [now-Nd, now)

Lower bounds are inclusive and upper bounds exclusive, so adjacent windows
never double count. Zero events yields zero counts, never an error.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from ..models import Campaign, ContributionEvent, User
from .rewards import event_points

LOBBY_TYPES = ("LOBBY",)
COMMENT_TYPES = ("COMMENT_ENGAGEMENT",)


@dataclass(frozen=True)
class Windows:
    now: datetime
    d7: datetime
    d14: datetime
    d30: datetime
    d60: datetime


def window_bounds(now: Optional[datetime] = None) -> Windows:
    now = now or datetime.utcnow()
    return Windows(
        now=now,
        d7=now - timedelta(days=7),
        d14=now - timedelta(days=14),
        d30=now - timedelta(days=30),
        d60=now - timedelta(days=60),
    )


def _filtered(stmt, campaign_id: int, event_types: Optional[Iterable[str]],
              since: Optional[datetime], until: Optional[datetime]):
    stmt = stmt.where(ContributionEvent.campaign_id == campaign_id)
    if event_types is not None:
        stmt = stmt.where(ContributionEvent.event_type.in_(list(event_types)))
    if since is not None:
        stmt = stmt.where(ContributionEvent.created_at >= since)
    if until is not None:
        stmt = stmt.where(ContributionEvent.created_at < until)
    return stmt


def count_events(db: Session, campaign_id: int, event_types: Optional[Iterable[str]] = None,
                 since: Optional[datetime] = None, until: Optional[datetime] = None) -> int:
    stmt = _filtered(select(func.count()).select_from(ContributionEvent),
                     campaign_id, event_types, since, until)
    return db.execute(stmt).scalar() or 0


def count_distinct_contributors(db: Session, campaign_id: int,
                                event_types: Optional[Iterable[str]] = None,
                                until: Optional[datetime] = None) -> int:
    stmt = _filtered(select(func.count(func.distinct(ContributionEvent.user_id))),
                     campaign_id, event_types, None, until)
    return db.execute(stmt).scalar() or 0


def per_user_counts(db: Session, campaign_id: int, event_types: Optional[Iterable[str]] = None,
                    since: Optional[datetime] = None,
                    until: Optional[datetime] = None) -> Dict[int, int]:
    """{user_id: event count}. Users without matching events are absent."""
    stmt = _filtered(
        select(ContributionEvent.user_id, func.count()).group_by(ContributionEvent.user_id),
        campaign_id, event_types, since, until,
    )
    return {user_id: count for user_id, count in db.execute(stmt).all()}


def daily_counts(db: Session, campaign_id: int, event_types: Optional[Iterable[str]] = None,
                 days: int = 30, now: Optional[datetime] = None) -> List[dict]:
    """
    Per-day event counts for the last `days` calendar days (oldest first).

    Bucketing happens in Python on the fetched timestamps so the query stays
    portable between Postgres and SQLite.
    """
    now = now or datetime.utcnow()
    today = now.date()
    first_day = today - timedelta(days=days - 1)
    start = datetime.combine(first_day, datetime.min.time())

    stmt = _filtered(select(ContributionEvent.created_at), campaign_id, event_types, start, now)
    buckets: Dict = {}
    for (ts,) in db.execute(stmt).all():
        buckets[ts.date()] = buckets.get(ts.date(), 0) + 1

    series = []
    cumulative = 0
    for offset in range(days):
        day = first_day + timedelta(days=offset)
        count = buckets.get(day, 0)
        cumulative += count
        series.append({"date": day.isoformat(), "count": count, "cumulative": cumulative})
    return series


@dataclass
class CampaignMetrics:
    """Raw counts behind a demand-signal report."""
    total_lobbies: int = 0
    lobbies_last_7: int = 0
    lobbies_prev_7: int = 0
    comment_count: int = 0
    unique_contributors: int = 0


def collect_campaign_metrics(db: Session, campaign: Campaign,
                             now: Optional[datetime] = None) -> CampaignMetrics:
    w = window_bounds(now)
    return CampaignMetrics(
        total_lobbies=count_events(db, campaign.id, LOBBY_TYPES, until=w.now),
        lobbies_last_7=count_events(db, campaign.id, LOBBY_TYPES, since=w.d7, until=w.now),
        lobbies_prev_7=count_events(db, campaign.id, LOBBY_TYPES, since=w.d14, until=w.d7),
        comment_count=count_events(db, campaign.id, COMMENT_TYPES, until=w.now),
        unique_contributors=count_distinct_contributors(db, campaign.id, until=w.now),
    )


@dataclass
class SupporterProfile:
    """Per-user activity summary on one campaign, consumed by segment rules."""
    user_id: int
    account_created_at: datetime
    total_events: int = 0
    events_last_7: int = 0
    events_prev_7: int = 0
    events_last_30: int = 0
    events_last_60: int = 0
    type_counts: Dict[str, int] = field(default_factory=dict)
    first_activity: Optional[datetime] = None
    last_activity: Optional[datetime] = None
    points: int = 0


def collect_supporter_profiles(db: Session, campaign_id: int,
                               now: Optional[datetime] = None) -> List[SupporterProfile]:
    """
    Build one SupporterProfile per user with at least one event on the campaign.

    One pass over the campaign's events joined with the user's creation date.
    REWARD_CLAIM rows are bookkeeping, not engagement, and are skipped.
    Events at or after `now` are ignored.
    """
    w = window_bounds(now)
    stmt = (
        select(
            ContributionEvent.user_id,
            ContributionEvent.event_type,
            ContributionEvent.points,
            ContributionEvent.created_at,
            User.created_at,
        )
        .join(User, User.id == ContributionEvent.user_id)
        .where(ContributionEvent.campaign_id == campaign_id)
        .where(ContributionEvent.event_type != "REWARD_CLAIM")
        .where(ContributionEvent.created_at < w.now)
        .order_by(ContributionEvent.user_id, ContributionEvent.created_at)
    )

    profiles: Dict[int, SupporterProfile] = {}
    for user_id, event_type, points, created_at, joined_at in db.execute(stmt).all():
        p = profiles.get(user_id)
        if p is None:
            p = profiles[user_id] = SupporterProfile(user_id=user_id, account_created_at=joined_at)
        p.total_events += 1
        p.type_counts[event_type] = p.type_counts.get(event_type, 0) + 1
        p.points += event_points(event_type, points)
        if p.first_activity is None or created_at < p.first_activity:
            p.first_activity = created_at
        if p.last_activity is None or created_at > p.last_activity:
            p.last_activity = created_at
        if created_at >= w.d7:
            p.events_last_7 += 1
        elif created_at >= w.d14:
            p.events_prev_7 += 1
        if created_at >= w.d30:
            p.events_last_30 += 1
        if created_at >= w.d60:
            p.events_last_60 += 1
    return list(profiles.values())
