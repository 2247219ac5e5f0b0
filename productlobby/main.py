"""
main.py
FastAPI application entrypoint for the ProductLobby demand API.

What this service does
----------------------
- Records contribution events (lobbies, comments, shares, votes...) against campaigns
- Computes a campaign's *derived* demand signal: component scores and a 0..100 demand score
- Classifies supporters into audience segments (five predefined + creator-defined rules)
- Runs the reward program: points from events, bronze..platinum tiers, reward claims

Design decisions (high level)
-----------------------------
- Tables are created on startup if they don't exist (idempotent, safe for local dev).
- Nothing derived is stored: scores, segments and reward status are recomputed
  from the ContributionEvent log on every request.
- Every response uses the `{success, data}` / `{success, error}` envelope.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from . import __version__
from .config import ALLOWED_ORIGINS, check_production_settings
from .db import Base, engine
from .errors import register_exception_handlers
from .logging_config import setup_logging
from .routers import campaigns, demand_signal, events, rewards, segments

logger = logging.getLogger("productlobby.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Run once around the server's lifetime.

    Tables are created if missing. Seeding is *not* done here; sample data
    comes from the separate `db/seed.py` script.
    """
    setup_logging()
    check_production_settings()
    logger.info("ProductLobby API starting up")
    Base.metadata.create_all(bind=engine)
    try:
        yield
    finally:
        logger.info("ProductLobby API shutting down")
        engine.dispose()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.2fs)",
            request.method,
            request.url.path,
            response.status_code,
            time.time() - start,
        )
        return response


app = FastAPI(
    title="ProductLobby API",
    description="Campaign demand signals, audience segments and supporter rewards.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(campaigns.router)
app.include_router(events.router)
app.include_router(demand_signal.router)
app.include_router(segments.router)
app.include_router(rewards.router)


@app.get("/api/health", tags=["Meta"])
def health() -> dict:
    """Liveness probe."""
    return {"success": True, "data": {"status": "ok"}}


@app.get("/", tags=["Meta"])
def root() -> dict:
    """Lightweight service check."""
    return {"message": "Hello from ProductLobby"}
