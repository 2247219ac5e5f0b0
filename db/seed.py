# db/seed.py
"""
Populate the development DB with *realistic & correlated* supporter activity so
demand scores, segments and reward tiers spread out instead of all being zero.

- Brands and creators with a handful of live campaigns each
- Supporter personas (power user / voter / sharer / casual / dormant) that
  drive event mix, volume and recency
- Campaign "momentum" so some campaigns grow week-over-week and others fade
- Default reward catalog per campaign, plus a few claims by high-point users
"""

import argparse
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Tuple

from faker import Faker
from sqlalchemy import func, select

from productlobby.db import Base, engine, SessionLocal
from productlobby.models import Brand, Campaign, ContributionEvent, User
from productlobby.routers.campaigns import slugify
from productlobby.services.rewards import claim_reward, reward_status, seed_default_rewards

fake = Faker()


# ----------------------------
# Persona model
# ----------------------------
@dataclass(frozen=True)
class Persona:
    events_per_30: Tuple[int, int]       # mean events per 30 days (sampled range)
    active_days_back: Tuple[int, int]    # most recent activity window (days ago, lo..hi)
    mix: Dict[str, float]                # event type -> relative weight


PERSONAS = {
    "power_user": Persona((20, 40), (0, 3), {
        "LOBBY": 0.3, "COMMENT_ENGAGEMENT": 0.25, "PREFERENCE_SUBMITTED": 0.2,
        "SOCIAL_SHARE": 0.15, "WISHLIST_SUBMITTED": 0.1,
    }),
    "voter": Persona((10, 20), (0, 10), {
        "PREFERENCE_SUBMITTED": 0.7, "LOBBY": 0.2, "COMMENT_ENGAGEMENT": 0.1,
    }),
    "sharer": Persona((6, 14), (0, 14), {
        "SOCIAL_SHARE": 0.6, "SHARE": 0.2, "LOBBY": 0.15, "REFERRAL_SIGNUP": 0.05,
    }),
    "casual": Persona((1, 4), (0, 45), {
        "LOBBY": 0.7, "COMMENT_ENGAGEMENT": 0.2, "WISHLIST_SUBMITTED": 0.1,
    }),
    "dormant": Persona((2, 6), (65, 120), {
        "LOBBY": 0.6, "COMMENT_ENGAGEMENT": 0.2, "SOCIAL_SHARE": 0.2,
    }),
}

PERSONA_WEIGHTS = {
    "power_user": 0.08,
    "voter": 0.15,
    "sharer": 0.12,
    "casual": 0.45,
    "dormant": 0.20,
}

CATEGORIES = ["kitchen", "outdoor", "wearables", "audio", "home office", "pet care"]


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Seed the ProductLobby DB with correlated supporter activity.")
    p.add_argument("--campaigns", type=int, default=12)
    p.add_argument("--supporters", type=int, default=300)
    p.add_argument("--reset", action="store_true")
    p.add_argument("--seed", type=int, default=None)
    return p.parse_args()


def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def ensure_tables() -> None:
    Base.metadata.create_all(bind=engine)


def _sample_int(lo_hi: Tuple[int, int]) -> int:
    lo, hi = lo_hi
    return random.randint(lo, hi)


def new_user(max_age_days: int = 720) -> User:
    profile = fake.simple_profile()
    return User(
        handle=f"{profile['username']}{random.randint(100, 999)}",
        display_name=profile["name"],
        email=profile["mail"],
        created_at=datetime.utcnow() - timedelta(days=random.randint(0, max_age_days)),
    )


def seed_brands(session, count: int = 5) -> List[Brand]:
    brands = []
    for _ in range(count):
        name = fake.company()
        brands.append(Brand(name=name, slug=f"{slugify(name)}-{random.randint(10, 99)}"))
    session.add_all(brands)
    session.commit()
    return brands


def seed_campaigns(session, creators: List[User], brands: List[Brand], count: int) -> List[Campaign]:
    campaigns = []
    for _ in range(count):
        title = f"{fake.catch_phrase()} for {random.choice(CATEGORIES)}"
        campaign = Campaign(
            slug=f"{slugify(title)}-{random.randint(1000, 9999)}",
            title=title,
            status=random.choices(["live", "paused", "closed"], weights=[0.75, 0.15, 0.10], k=1)[0],
            creator_id=random.choice(creators).id,
            brand_id=random.choice(brands).id if random.random() < 0.7 else None,
            brand_response_status=random.choice(["none", "none", "pending", "responded", "declined"]),
            meta={},
            created_at=datetime.utcnow() - timedelta(days=random.randint(30, 180)),
        )
        session.add(campaign)
        session.flush()
        seed_default_rewards(session, campaign)
        campaigns.append(campaign)
    session.commit()
    return campaigns


def choose_persona() -> Tuple[str, Persona]:
    label = random.choices(list(PERSONA_WEIGHTS), weights=list(PERSONA_WEIGHTS.values()), k=1)[0]
    return label, PERSONAS[label]


def seed_supporter_activity(session, user: User, campaign: Campaign, persona: Persona,
                            momentum: float) -> int:
    """
    Emit ~60 days of events for one supporter on one campaign.

    `momentum` > 1 concentrates activity in the most recent week (growing
    campaign); < 1 pushes it back into older weeks (fading campaign).
    """
    per_30 = _sample_int(persona.events_per_30)
    total = max(1, int(per_30 * 2 * random.uniform(0.7, 1.3)))
    newest = _sample_int(persona.active_days_back)
    oldest = newest + 60

    types = list(persona.mix)
    weights = list(persona.mix.values())
    rows = []
    for _ in range(total):
        # bias recency by momentum: a larger exponent pulls samples toward `newest`
        frac = random.random() ** momentum
        days_ago = newest + frac * (oldest - newest)
        ts = datetime.utcnow() - timedelta(days=days_ago, minutes=random.randint(0, 1439))
        if ts < user.created_at:
            ts = min(user.created_at + timedelta(minutes=random.randint(1, 600)),
                     datetime.utcnow() - timedelta(minutes=1))
        event_type = random.choices(types, weights=weights, k=1)[0]
        rows.append(ContributionEvent(
            user_id=user.id,
            campaign_id=campaign.id,
            event_type=event_type,
            points=0,
            meta={},
            created_at=ts,
        ))
    session.bulk_save_objects(rows)
    return len(rows)


def seed_claims(session, campaign: Campaign, users: List[User]) -> int:
    """Let a few supporters redeem the cheapest reward they can afford."""
    claims = 0
    for user in random.sample(users, k=min(5, len(users))):
        status = reward_status(session, campaign, user)
        affordable = [
            r for r in status.available_rewards
            if r.points_cost <= status.available_points
            and r.claimed < r.quantity
            and r.id not in status.claimed_rewards
        ]
        if affordable and random.random() < 0.5:
            cheapest = min(affordable, key=lambda r: r.points_cost)
            claim_reward(session, campaign, user, cheapest.id)
            claims += 1
    return claims


def main() -> None:
    args = parse_args()
    if args.seed is not None:
        random.seed(args.seed); Faker.seed(args.seed)

    if args.reset:
        print("Dropping & recreating tables ..."); reset_db()
    else:
        ensure_tables()

    session = SessionLocal()

    existing = session.execute(select(func.count()).select_from(Campaign)).scalar()
    if existing > 0 and not args.reset:
        print(f"DB already has {existing} campaigns; use --reset to reseed.")
        session.close(); return

    target = max(5, int(args.campaigns))
    print(f"Creating {target} campaigns and {args.supporters} supporters ...")
    brands = seed_brands(session)
    creators = [new_user() for _ in range(max(3, target // 3))]
    supporters = [new_user() for _ in range(max(20, int(args.supporters)))]
    session.add_all(creators + supporters)
    session.commit()
    campaigns = seed_campaigns(session, creators, brands, target)

    events = 0
    claims = 0
    for campaign in campaigns:
        momentum = random.choice([0.6, 1.0, 1.0, 1.6, 2.2])
        crowd = random.sample(supporters, k=random.randint(len(supporters) // 10, len(supporters) // 2))
        for user in crowd:
            _, persona = choose_persona()
            events += seed_supporter_activity(session, user, campaign, persona, momentum)
        session.commit()
        claims += seed_claims(session, campaign, crowd)

    print("\nSeed complete")
    print(f"Campaigns:       {target}")
    print(f"Users:           {len(creators) + len(supporters)}")
    print(f"Events:          {events}")
    print(f"Reward claims:   {claims}")
    session.close()


if __name__ == "__main__":
    main()
