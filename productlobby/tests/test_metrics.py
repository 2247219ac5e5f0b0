"""
test_metrics.py
---------------
Aggregation queries against a real (SQLite) session: per-user grouping and
the half-open window bounds.
"""

from datetime import datetime, timedelta

from productlobby.services.metrics import count_events, per_user_counts


def test_per_user_counts_groups_by_supporter(db_session, make_user, make_campaign, add_events):
    creator = make_user()
    campaign, other = make_campaign(creator), make_campaign(creator)
    alice, bob, quiet = make_user(), make_user(), make_user()
    add_events(alice, campaign, "LOBBY", count=3)
    add_events(alice, campaign, "COMMENT_ENGAGEMENT", count=2)
    add_events(bob, campaign, "LOBBY", count=1, days_ago=20)
    add_events(quiet, other, "LOBBY", count=4)

    assert per_user_counts(db_session, campaign.id) == {alice.id: 5, bob.id: 1}
    assert per_user_counts(db_session, campaign.id, ["LOBBY"]) == {alice.id: 3, bob.id: 1}

    week_ago = datetime.utcnow() - timedelta(days=7)
    assert per_user_counts(db_session, campaign.id, ["LOBBY"], since=week_ago) == {alice.id: 3}
    assert per_user_counts(db_session, campaign.id, until=week_ago) == {bob.id: 1}


def test_per_user_counts_empty_campaign(db_session, make_user, make_campaign):
    campaign = make_campaign(make_user())
    assert per_user_counts(db_session, campaign.id) == {}


def test_count_events_upper_bound_is_exclusive(db_session, make_user, make_campaign, add_events):
    campaign = make_campaign(make_user())
    add_events(make_user(), campaign, "LOBBY", count=2, days_ago=-1)
    now = datetime.utcnow()
    assert count_events(db_session, campaign.id, ["LOBBY"]) == 2
    assert count_events(db_session, campaign.id, ["LOBBY"], until=now) == 0
