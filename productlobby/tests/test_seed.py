"""
test_seed.py
------------
The dev-data seeder only lets supporters claim rewards they can pay for.
"""

import random

from db.seed import seed_claims
from productlobby.services.rewards import reward_status


def test_seed_claims_stay_within_available_points(db_session, make_user, make_campaign,
                                                  add_events, monkeypatch):
    campaign = make_campaign(make_user())
    broke = [make_user() for _ in range(3)]
    rich = [make_user() for _ in range(2)]
    for user in rich:
        add_events(user, campaign, "REFERRAL_SIGNUP", count=2)  # 200 points

    monkeypatch.setattr(random, "random", lambda: 0.0)  # always try to claim
    claims = seed_claims(db_session, campaign, broke + rich)
    assert claims == 2

    for user in broke + rich:
        status = reward_status(db_session, campaign, user)
        assert status.available_points >= 0
    for user in rich:
        status = reward_status(db_session, campaign, user)
        # cheapest visible reward is the 50-point badge
        assert status.spent_points == 50
    for user in broke:
        assert reward_status(db_session, campaign, user).claimed_rewards == []
