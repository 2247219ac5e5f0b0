# productlobby/services/scoring.py
"""
Demand score utilities.

Components (0..100) -> weighted sum (0..100).
- lobbies:      total LOBBY events vs LOBBY_TARGET
- growth:       last 7d vs previous 7d LOBBY events (50 = flat)
- comments:     total COMMENT_ENGAGEMENT events vs COMMENT_TARGET
- contributors: distinct users with any event vs CONTRIBUTOR_TARGET

`breakdown` carries each component's weighted share, so the breakdown always
sums to the headline demandScore.
"""

from dataclasses import dataclass
from typing import Dict

from .metrics import CampaignMetrics

WEIGHTS: Dict[str, float] = {
    "lobbies":      0.35,
    "growth":       0.20,
    "comments":     0.15,
    "contributors": 0.30,
}

LOBBY_TARGET: int = 500
COMMENT_TARGET: int = 100
CONTRIBUTOR_TARGET: int = 200

# (min score, tier), checked top-down
DEMAND_TIERS = (
    (80.0, "very_high"),
    (55.0, "high"),
    (35.0, "medium"),
    (0.0, "low"),
)


def _clamp01(x: float) -> float:
    return 0.0 if x < 0.0 else 1.0 if x > 1.0 else x


def _pct(x: float) -> float:
    return _clamp01(x) * 100.0


def clamp_score(x: float) -> float:
    return 0.0 if x < 0.0 else 100.0 if x > 100.0 else x


def score_volume(count: int, target: int) -> float:
    """Linear count -> 0..100 against a target, capped at 100."""
    return round(_pct(count / float(max(1, target))), 2)


def growth_rate(last_7: int, prev_7: int) -> float:
    """
    Week-over-week growth in percent.

    No previous-week baseline means there is nothing to grow from: 0.0, not
    Infinity. Callers flag that case separately (see `is_new_growth`).
    """
    if prev_7 <= 0:
        return 0.0
    return round((last_7 - prev_7) / float(prev_7) * 100.0, 1)


def is_new_growth(last_7: int, prev_7: int) -> bool:
    return prev_7 <= 0 < last_7


def score_growth(last_7: int, prev_7: int, smoothing: int = 3) -> float:
    """
    Map momentum to 0..100 with 50 meaning "flat".

    Smoothing keeps tiny denominators from swinging the score to the extremes.
    With no lobbies in either week there is no momentum evidence at all, so
    the component is 0.
    """
    if last_7 <= 0 and prev_7 <= 0:
        return 0.0
    ratio = (last_7 + smoothing) / float(max(1, prev_7 + smoothing))
    return round(50.0 + 50.0 * (ratio - 1.0) / (ratio + 1.0), 2)


def bar_width(value: int, total: int, last_7: int, prev_7: int) -> float:
    """Width (0..100) of a growth-trend bar relative to the largest of the three counts."""
    if total <= 0:
        return 0.0
    top = max(total, last_7, prev_7)
    return round(_pct(value / float(top)), 2)


def weighted_score(components: Dict[str, float]) -> float:
    total = 0.0
    for name, w in WEIGHTS.items():
        total += w * components.get(name, 0.0)
    return round(clamp_score(total), 2)


def breakdown(components: Dict[str, float]) -> Dict[str, float]:
    return {name: round(w * components.get(name, 0.0), 2) for name, w in WEIGHTS.items()}


def demand_tier(score: float) -> str:
    for floor, tier in DEMAND_TIERS:
        if score >= floor:
            return tier
    return "low"


@dataclass
class DemandSignal:
    metrics: CampaignMetrics
    growth_rate: float
    growth_is_new: bool
    component_scores: Dict[str, float]
    breakdown: Dict[str, float]
    demand_score: float
    demand_tier: str
    growth_bars: Dict[str, float]


def build_demand_signal(metrics: CampaignMetrics) -> DemandSignal:
    """Normalize raw campaign counts and combine them into the demand score."""
    components = {
        "lobbies": score_volume(metrics.total_lobbies, LOBBY_TARGET),
        "growth": score_growth(metrics.lobbies_last_7, metrics.lobbies_prev_7),
        "comments": score_volume(metrics.comment_count, COMMENT_TARGET),
        "contributors": score_volume(metrics.unique_contributors, CONTRIBUTOR_TARGET),
    }
    score = weighted_score(components)
    return DemandSignal(
        metrics=metrics,
        growth_rate=growth_rate(metrics.lobbies_last_7, metrics.lobbies_prev_7),
        growth_is_new=is_new_growth(metrics.lobbies_last_7, metrics.lobbies_prev_7),
        component_scores=components,
        breakdown=breakdown(components),
        demand_score=score,
        demand_tier=demand_tier(score),
        growth_bars={
            "lastSevenDays": bar_width(metrics.lobbies_last_7, metrics.total_lobbies,
                                       metrics.lobbies_last_7, metrics.lobbies_prev_7),
            "previousSevenDays": bar_width(metrics.lobbies_prev_7, metrics.total_lobbies,
                                           metrics.lobbies_last_7, metrics.lobbies_prev_7),
        },
    )
