"""
Audience segments for a campaign.

Five predefined segments are independent membership filters over supporter
profiles; a supporter can sit in several at once (or none). Creators can add
custom segments made of `{field, operator, value}` rules, all of which must
hold for a supporter to be a member. Custom definitions live in
`campaign.meta["customSegments"]` and are evaluated live on every read.

Activity score and stats are computed from the members' profiles:
- activityScore   = min(100, mean 30-day events per member / 10 * 100)
- avgEngagement   = mean total events per member
- totalContributions = sum of members' events
- retentionRate   = % of members active in the last 30 days
- growthRate      = week-over-week change in active members
"""

import logging
import operator
import random
import string
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from ..errors import ValidationError
from ..models import Campaign, EVENT_TYPES
from .metrics import SupporterProfile, Windows, collect_supporter_profiles, window_bounds
from .scoring import growth_rate

logger = logging.getLogger("productlobby.segments")

POWER_USER_MIN_EVENTS_7D = 5
NEW_SUPPORTER_MAX_ACCOUNT_DAYS = 30
DORMANT_MIN_IDLE_DAYS = 60
TOP_VOTER_MIN_VOTES = 10
SOCIAL_SHARER_MIN_SHARES = 5

# 30-day events per member that earns a full activity score
ACTIVITY_TARGET_30D = 10


@dataclass(frozen=True)
class SegmentDefinition:
    id: str
    name: str
    description: str
    color: str
    badge: str
    criteria: tuple
    is_member: Callable[[SupporterProfile, Windows], bool]


PREDEFINED_SEGMENTS = (
    SegmentDefinition(
        id="power-users",
        name="Power Users",
        description="Most active contributors with multiple interactions",
        color="from-amber-500 to-orange-600",
        badge="bg-amber-100 text-amber-700",
        criteria=("5+ contributions", "Active within 7 days", "High engagement score"),
        is_member=lambda p, w: p.events_last_7 >= POWER_USER_MIN_EVENTS_7D,
    ),
    SegmentDefinition(
        id="new-supporters",
        name="New Supporters",
        description="Recently joined supporters",
        color="from-green-500 to-emerald-600",
        badge="bg-green-100 text-green-700",
        criteria=("Joined within 30 days", "Initial contribution made"),
        is_member=lambda p, w: p.total_events >= 1 and p.account_created_at >= w.d30,
    ),
    SegmentDefinition(
        id="dormant",
        name="Dormant Supporters",
        description="Inactive for more than 60 days",
        color="from-gray-500 to-slate-600",
        badge="bg-gray-100 text-gray-700",
        criteria=("No activity for 60+ days", "Previous contributor"),
        is_member=lambda p, w: p.last_activity is not None and p.last_activity < w.d60,
    ),
    SegmentDefinition(
        id="top-voters",
        name="Top Voters",
        description="Frequent voters on polls and proposals",
        color="from-purple-500 to-indigo-600",
        badge="bg-purple-100 text-purple-700",
        criteria=("10+ votes cast", "Regular voter", "High voting consistency"),
        is_member=lambda p, w: p.type_counts.get("PREFERENCE_SUBMITTED", 0) >= TOP_VOTER_MIN_VOTES,
    ),
    SegmentDefinition(
        id="social-sharers",
        name="Social Sharers",
        description="Actively sharing campaign on social media",
        color="from-pink-500 to-rose-600",
        badge="bg-pink-100 text-pink-700",
        criteria=("5+ social shares", "Recent activity", "High amplification impact"),
        is_member=lambda p, w: p.type_counts.get("SOCIAL_SHARE", 0) >= SOCIAL_SHARER_MIN_SHARES,
    ),
)

CUSTOM_COLOR = "from-indigo-500 to-purple-600"
CUSTOM_BADGE = "bg-indigo-100 text-indigo-700"


# --- custom rule interpreter -------------------------------------------------

def _days_since(ts: Optional[datetime], now: datetime) -> float:
    if ts is None:
        return float("inf")
    return (now - ts).total_seconds() / 86400.0


RULE_FIELDS: Dict[str, Callable[[SupporterProfile, Windows], float]] = {
    "totalEvents": lambda p, w: p.total_events,
    "eventsLast7Days": lambda p, w: p.events_last_7,
    "eventsLast30Days": lambda p, w: p.events_last_30,
    "eventsLast60Days": lambda p, w: p.events_last_60,
    "daysSinceLastActivity": lambda p, w: _days_since(p.last_activity, w.now),
    "accountAgeDays": lambda p, w: _days_since(p.account_created_at, w.now),
    "points": lambda p, w: p.points,
}
COUNT_FIELD_PREFIX = "count:"
COUNTABLE_EVENT_TYPES = tuple(t for t in EVENT_TYPES if t != "REWARD_CLAIM")

RULE_OPERATORS: Dict[str, Callable[[float, float], bool]] = {
    "gt": operator.gt, ">": operator.gt,
    "gte": operator.ge, ">=": operator.ge,
    "lt": operator.lt, "<": operator.lt,
    "lte": operator.le, "<=": operator.le,
    "eq": operator.eq, "==": operator.eq,
    "neq": operator.ne, "!=": operator.ne,
}


def _field_getter(name: str) -> Optional[Callable[[SupporterProfile, Windows], float]]:
    if name in RULE_FIELDS:
        return RULE_FIELDS[name]
    if name.startswith(COUNT_FIELD_PREFIX):
        event_type = name[len(COUNT_FIELD_PREFIX):]
        if event_type in COUNTABLE_EVENT_TYPES:
            return lambda p, w: p.type_counts.get(event_type, 0)
    return None


def validate_rules(rules: List[dict]) -> List[dict]:
    """
    Check custom rules and return them normalized to `{field, operator, value}`
    with a numeric value. Raises ValidationError on the first bad rule.
    """
    if not rules:
        raise ValidationError("Invalid request: name and rules are required")

    normalized = []
    for i, rule in enumerate(rules):
        field_name = str(rule.get("field", "")).strip()
        op = str(rule.get("operator", "")).strip()
        raw = rule.get("value")
        if _field_getter(field_name) is None:
            raise ValidationError(f"Invalid rule {i}: unknown field '{field_name}'")
        if op not in RULE_OPERATORS:
            raise ValidationError(f"Invalid rule {i}: unknown operator '{op}'")
        try:
            value = float(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid rule {i}: value must be numeric")
        normalized.append({"field": field_name, "operator": op, "value": value})
    return normalized


def matches_rules(profile: SupporterProfile, rules: List[dict], windows: Windows) -> bool:
    for rule in rules:
        getter = _field_getter(rule["field"])
        compare = RULE_OPERATORS[rule["operator"]]
        if getter is None or not compare(getter(profile, windows), float(rule["value"])):
            return False
    return True


def _format_value(value) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else str(value)


def describe_rule(rule: dict) -> str:
    return f"{rule['field']} {rule['operator']} {_format_value(rule['value'])}"


# --- scoring & stats ---------------------------------------------------------

def activity_score(members: List[SupporterProfile]) -> float:
    if not members:
        return 0.0
    mean_30d = sum(m.events_last_30 for m in members) / float(len(members))
    return round(min(100.0, mean_30d / ACTIVITY_TARGET_30D * 100.0), 1)


def segment_stats(members: List[SupporterProfile]) -> dict:
    if not members:
        return {"avgEngagement": 0.0, "totalContributions": 0, "retentionRate": 0.0, "growthRate": 0.0}
    total = sum(m.total_events for m in members)
    retained = sum(1 for m in members if m.events_last_30 > 0)
    active_now = sum(1 for m in members if m.events_last_7 > 0)
    active_before = sum(1 for m in members if m.events_prev_7 > 0)
    return {
        "avgEngagement": round(total / float(len(members)), 1),
        "totalContributions": total,
        "retentionRate": round(retained / float(len(members)) * 100.0, 1),
        "growthRate": growth_rate(active_now, active_before),
    }


def _segment_payload(seg_id: str, name: str, description: str, color: str, badge: str,
                     criteria: List[str], members: List[SupporterProfile], now: datetime,
                     custom: bool) -> dict:
    return {
        "id": seg_id,
        "name": name,
        "description": description,
        "memberCount": len(members),
        "color": color,
        "badge": badge,
        "criteria": list(criteria),
        "activityScore": activity_score(members),
        "lastUpdated": now.isoformat(),
        "stats": segment_stats(members),
        "custom": custom,
    }


def _custom_segment_payload(entry: dict, profiles: List[SupporterProfile], windows: Windows) -> dict:
    rules = entry.get("rules") or []
    members = [p for p in profiles if matches_rules(p, rules, windows)]
    return _segment_payload(
        entry["id"], entry["name"], entry.get("description", ""), CUSTOM_COLOR, CUSTOM_BADGE,
        [describe_rule(r) for r in rules], members, windows.now, custom=True,
    )


def list_segments(db: Session, campaign: Campaign, now: Optional[datetime] = None) -> List[dict]:
    """Five predefined segments followed by the campaign's custom segments."""
    windows = window_bounds(now)
    profiles = collect_supporter_profiles(db, campaign.id, windows.now)

    segments = []
    for definition in PREDEFINED_SEGMENTS:
        members = [p for p in profiles if definition.is_member(p, windows)]
        segments.append(_segment_payload(
            definition.id, definition.name, definition.description, definition.color,
            definition.badge, definition.criteria, members, windows.now, custom=False,
        ))

    for entry in (campaign.meta or {}).get("customSegments", []):
        segments.append(_custom_segment_payload(entry, profiles, windows))
    return segments


def new_segment_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"segment_{int(time.time() * 1000)}_{suffix}"


def create_custom_segment(db: Session, campaign: Campaign, name: str, description: Optional[str],
                          rules: List[dict], now: Optional[datetime] = None) -> dict:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Invalid request: name and rules are required")
    normalized = validate_rules(rules)

    windows = window_bounds(now)
    entry = {
        "id": new_segment_id(),
        "name": name,
        "description": description or "",
        "rules": normalized,
        "createdAt": windows.now.isoformat(),
    }

    # reassign so SQLAlchemy sees the JSON column change
    meta = dict(campaign.meta or {})
    meta["customSegments"] = list(meta.get("customSegments", [])) + [entry]
    campaign.meta = meta
    db.commit()
    logger.info("Created custom segment %s on campaign %s", entry["id"], campaign.id)

    profiles = collect_supporter_profiles(db, campaign.id, windows.now)
    return _custom_segment_payload(entry, profiles, windows)
