"""
conftest.py
------------
Pytest fixtures for FastAPI + SQLAlchemy tests.

Goals:
- Run against a throwaway **file-backed** SQLite database, never the real Postgres.
  In-memory SQLite is connection-local, and the TestClient may use other
  threads, so a temp file gives every connection the same data.
- Override the app's `get_db` dependency so API tests share the test Session.
- Create tables once per test session and wipe rows between tests.
- Offer small factories (users, campaigns, events) and JWT auth headers.

`DATABASE_URL` and `LOG_DIR` are pointed at temp locations *before* the app
is imported, so the app's own engine (used by the startup hook) hits the
same SQLite file.
"""

import itertools
import os
import tempfile
from datetime import datetime, timedelta

import pytest

_fd, TEST_DB_PATH = tempfile.mkstemp(suffix=".db")
os.close(_fd)
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="productlobby-logs-")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from productlobby.db import Base, get_db  # noqa: E402
from productlobby.deps import create_access_token  # noqa: E402
from productlobby.main import app  # noqa: E402
from productlobby.models import Campaign, ContributionEvent, User  # noqa: E402
from productlobby.services.rewards import seed_default_rewards  # noqa: E402


@pytest.fixture(scope="session")
def test_engine():
    """
    SQLAlchemy Engine bound to the temporary SQLite file; tables created once.

    `check_same_thread=False` lets the TestClient's worker threads reuse
    connections.
    """
    engine = create_engine(
        f"sqlite:///{TEST_DB_PATH}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine

    engine.dispose()  # release file handle before removing it
    try:
        os.remove(TEST_DB_PATH)
    except FileNotFoundError:
        pass


@pytest.fixture(scope="function")
def db_session(test_engine):
    """
    Fresh Session per test. Afterwards every table is emptied in reverse
    dependency order so child rows go before their parents.
    """
    TestingSessionLocal = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        for tbl in reversed(Base.metadata.sorted_tables):
            session.execute(tbl.delete())
        session.commit()
        session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """TestClient whose requests all use `db_session`."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}
    return _headers


@pytest.fixture
def make_user(db_session):
    """
    Create a user. Accounts default to a year old so they only land in
    "new-supporters" when a test asks for it via `account_age_days`.
    """
    counter = itertools.count(1)

    def _make(handle=None, account_age_days=365):
        n = next(counter)
        user = User(
            handle=handle or f"supporter{n}",
            display_name=f"Supporter {n}",
            email=f"supporter{n}@example.com",
            created_at=datetime.utcnow() - timedelta(days=account_age_days),
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def make_campaign(db_session):
    counter = itertools.count(1)

    def _make(creator, status="live", slug=None, title=None):
        n = next(counter)
        campaign = Campaign(
            slug=slug or f"campaign-{n}",
            title=title or f"Campaign {n}",
            status=status,
            creator_id=creator.id,
            meta={},
        )
        db_session.add(campaign)
        db_session.flush()
        seed_default_rewards(db_session, campaign)
        db_session.commit()
        return campaign
    return _make


@pytest.fixture
def add_events(db_session):
    """
    Insert `count` events of one type, `days_ago` days in the past.

    A minute is subtracted so "today" events are safely before the handler's
    own `now`.
    """
    def _add(user, campaign, event_type, count=1, days_ago=0, points=0):
        ts = datetime.utcnow() - timedelta(days=days_ago, minutes=1)
        for _ in range(count):
            db_session.add(ContributionEvent(
                user_id=user.id,
                campaign_id=campaign.id,
                event_type=event_type,
                points=points,
                created_at=ts,
            ))
        db_session.commit()
    return _add
