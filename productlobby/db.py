# productlobby/db.py
"""
Database configuration and session management for the ProductLobby API.

Sets up the SQLAlchemy engine, session factory, and declarative base for the
ORM models, plus the FastAPI dependency (`get_db`) that hands a session to
each request handler.

- Default connection string points at the `db` service in Docker.
- `pool_pre_ping=True` keeps the pool usable across brief DB restarts.
- SQLAlchemy 2.0 style (`future=True`).
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import DATABASE_URL

# SQLite (local dev, tests) needs cross-thread connections for the TestClient/uvicorn threadpool
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, future=True, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)

Base = declarative_base()


# FastAPI dependency
def get_db():
    """
    Provide a SQLAlchemy session to FastAPI request handlers.

    Usage in a route:
        @router.get("/api/campaigns/{campaign_id}")
        def read_campaign(campaign_id: str, db: Session = Depends(get_db)):
            ...

    The session is opened when the request starts and closed when it ends.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
