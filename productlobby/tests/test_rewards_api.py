"""
test_rewards_api.py
-------------------
Integration tests for GET/POST /api/campaigns/{id}/rewards.

Covers points from events, tier-gated reward visibility and the claim rules:
insufficient points, sold out, double claims and unknown rewards.
"""

import pytest
from sqlalchemy import func, select, update

from productlobby.errors import ValidationError
from productlobby.models import ContributionEvent, Reward
from productlobby.services.rewards import claim_reward


def _reward(db_session, campaign, name):
    return db_session.execute(
        select(Reward).where(Reward.campaign_id == campaign.id).where(Reward.name == name)
    ).scalar_one()


def test_rewards_require_auth(client, make_user, make_campaign):
    campaign = make_campaign(make_user())
    assert client.get(f"/api/campaigns/{campaign.id}/rewards").status_code == 401
    assert client.post(f"/api/campaigns/{campaign.id}/rewards", json={"rewardId": 1}).status_code == 401


def test_rewards_unknown_campaign(client, make_user, auth_headers):
    res = client.get("/api/campaigns/31337/rewards", headers=auth_headers(make_user()))
    assert res.status_code == 404


def test_status_without_events_is_bronze(client, make_user, make_campaign, auth_headers):
    campaign = make_campaign(make_user())
    supporter = make_user()

    res = client.get(f"/api/campaigns/{campaign.id}/rewards", headers=auth_headers(supporter))
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["totalPoints"] == 0
    assert data["availablePoints"] == 0
    assert data["currentTier"] == "bronze"
    assert data["nextTierPoints"] == 100
    assert data["pointsToNextTier"] == 100
    assert data["claimedRewards"] == []
    assert [r["tier"] for r in data["availableRewards"]] == ["bronze"]


def test_points_unlock_higher_tier_rewards(client, make_user, make_campaign, add_events, auth_headers):
    campaign = make_campaign(make_user())
    supporter = make_user()
    add_events(supporter, campaign, "SOCIAL_SHARE", count=10)  # 250 points

    data = client.get(f"/api/campaigns/{campaign.id}/rewards",
                      headers=auth_headers(supporter)).json()["data"]
    assert data["totalPoints"] == 250
    assert data["currentTier"] == "silver"
    assert data["pointsToNextTier"] == 250
    assert {r["tier"] for r in data["availableRewards"]} == {"bronze", "silver"}


def test_points_are_per_user_and_per_campaign(client, make_user, make_campaign, add_events, auth_headers):
    creator = make_user()
    campaign, other = make_campaign(creator), make_campaign(creator)
    supporter, someone_else = make_user(), make_user()
    add_events(supporter, campaign, "REFERRAL_SIGNUP", count=1)     # 100
    add_events(supporter, other, "REFERRAL_SIGNUP", count=5)        # other campaign
    add_events(someone_else, campaign, "REFERRAL_SIGNUP", count=5)  # other user
    add_events(supporter, campaign, "SHARE", count=2)               # 5 each

    data = client.get(f"/api/campaigns/{campaign.id}/rewards",
                      headers=auth_headers(supporter)).json()["data"]
    assert data["totalPoints"] == 110


def test_claim_reward_success(client, db_session, make_user, make_campaign, add_events, auth_headers):
    campaign = make_campaign(make_user())
    supporter = make_user()
    add_events(supporter, campaign, "SOCIAL_SHARE", count=3)  # 75 points
    badge = _reward(db_session, campaign, "Early Supporter Badge")

    res = client.post(f"/api/campaigns/{campaign.id}/rewards", json={"rewardId": badge.id},
                      headers=auth_headers(supporter))
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["claimedRewards"] == [badge.id]
    assert data["totalPoints"] == 75
    assert data["spentPoints"] == 50
    assert data["availablePoints"] == 25
    assert data["currentTier"] == "bronze"

    db_session.refresh(badge)
    assert badge.claimed == 1

    # claims persist across reads
    again = client.get(f"/api/campaigns/{campaign.id}/rewards",
                       headers=auth_headers(supporter)).json()["data"]
    assert again["claimedRewards"] == [badge.id]


def test_claim_twice_rejected(client, db_session, make_user, make_campaign, add_events, auth_headers):
    campaign = make_campaign(make_user())
    supporter = make_user()
    add_events(supporter, campaign, "BRAND_OUTREACH", count=4)  # 200 points
    badge = _reward(db_session, campaign, "Early Supporter Badge")
    url = f"/api/campaigns/{campaign.id}/rewards"

    assert client.post(url, json={"rewardId": badge.id}, headers=auth_headers(supporter)).status_code == 200
    res = client.post(url, json={"rewardId": badge.id}, headers=auth_headers(supporter))
    assert res.status_code == 400
    assert res.json()["error"] == "Reward already claimed"


def test_claim_insufficient_points(client, db_session, make_user, make_campaign, add_events, auth_headers):
    campaign = make_campaign(make_user())
    supporter = make_user()
    add_events(supporter, campaign, "COMMENT_ENGAGEMENT", count=2)  # 10 points
    badge = _reward(db_session, campaign, "Early Supporter Badge")

    res = client.post(f"/api/campaigns/{campaign.id}/rewards", json={"rewardId": badge.id},
                      headers=auth_headers(supporter))
    assert res.status_code == 400
    assert res.json()["error"] == "Insufficient points. You have 10 points but need 50"


def test_spent_points_count_against_next_claim(client, db_session, make_user, make_campaign,
                                               add_events, auth_headers):
    campaign = make_campaign(make_user())
    supporter = make_user()
    add_events(supporter, campaign, "BRAND_OUTREACH", count=4)  # 200 points -> silver
    url = f"/api/campaigns/{campaign.id}/rewards"
    discount = _reward(db_session, campaign, "10% Discount Code")   # 150
    badge = _reward(db_session, campaign, "Early Supporter Badge")  # 50

    assert client.post(url, json={"rewardId": discount.id}, headers=auth_headers(supporter)).status_code == 200
    assert client.post(url, json={"rewardId": badge.id}, headers=auth_headers(supporter)).status_code == 200

    data = client.get(url, headers=auth_headers(supporter)).json()["data"]
    assert data["availablePoints"] == 0
    assert data["spentPoints"] == 200
    assert data["totalPoints"] == 200
    assert data["currentTier"] == "silver"


def test_claim_sold_out(client, db_session, make_user, make_campaign, add_events, auth_headers):
    campaign = make_campaign(make_user())
    supporter = make_user()
    add_events(supporter, campaign, "REFERRAL_SIGNUP", count=1)
    badge = _reward(db_session, campaign, "Early Supporter Badge")
    badge.claimed = badge.quantity
    db_session.commit()

    res = client.post(f"/api/campaigns/{campaign.id}/rewards", json={"rewardId": badge.id},
                      headers=auth_headers(supporter))
    assert res.status_code == 400
    assert res.json()["error"] == "This reward is sold out"


def test_claim_requires_reward_id_and_known_reward(client, make_user, make_campaign, auth_headers):
    creator = make_user()
    campaign, other = make_campaign(creator), make_campaign(creator)
    supporter = make_user()
    url = f"/api/campaigns/{campaign.id}/rewards"

    res = client.post(url, json={}, headers=auth_headers(supporter))
    assert res.status_code == 400
    assert res.json()["error"] == "Reward ID is required"

    assert client.post(url, json={"rewardId": 987654}, headers=auth_headers(supporter)).status_code == 404

    foreign = other.rewards[0]
    res = client.post(url, json={"rewardId": foreign.id}, headers=auth_headers(supporter))
    assert res.status_code == 404
    assert res.json()["error"] == "Reward not found"


def test_client_supplied_points_are_ignored(client, db_session, make_user, make_campaign, auth_headers):
    campaign = make_campaign(make_user())
    supporter = make_user()
    headers = auth_headers(supporter)
    vip = _reward(db_session, campaign, "VIP Advocate Status")

    res = client.post(f"/api/campaigns/{campaign.id}/events",
                      json={"eventType": "SHARE", "points": 1000000}, headers=headers)
    assert res.status_code == 201
    assert res.json()["data"]["points"] == 0

    data = client.get(f"/api/campaigns/{campaign.id}/rewards", headers=headers).json()["data"]
    assert data["totalPoints"] == 5
    assert data["currentTier"] == "bronze"

    res = client.post(f"/api/campaigns/{campaign.id}/rewards", json={"rewardId": vip.id}, headers=headers)
    assert res.status_code == 400
    assert res.json()["error"] == "Insufficient points. You have 5 points but need 500"


def test_claim_fails_when_stock_ran_out_after_read(db_session, make_user, make_campaign, add_events):
    """The last unit goes to someone else between our read and our write."""
    campaign = make_campaign(make_user())
    supporter = make_user()
    add_events(supporter, campaign, "REFERRAL_SIGNUP", count=1)
    badge = _reward(db_session, campaign, "Early Supporter Badge")
    assert badge.claimed == 0

    # bypass the identity map so `badge` still reads as in stock
    db_session.execute(
        update(Reward).where(Reward.id == badge.id).values(claimed=Reward.quantity)
        .execution_options(synchronize_session=False)
    )
    assert badge.claimed == 0

    with pytest.raises(ValidationError, match="sold out"):
        claim_reward(db_session, campaign, supporter, badge.id)

    db_session.expire_all()
    assert db_session.get(Reward, badge.id).claimed == 0
    ev_count = db_session.execute(
        select(func.count()).select_from(ContributionEvent)
        .where(ContributionEvent.event_type == "REWARD_CLAIM")
    ).scalar()
    assert ev_count == 0
