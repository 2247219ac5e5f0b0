"""
Runtime configuration for the ProductLobby API.

Values come from the process environment; a local `.env` file is loaded first
so developers don't need to export anything by hand. Defaults target the
docker-compose setup (Postgres reachable as `db`).
"""

import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "postgresql+psycopg2://postgres:postgres@db:5432/productlobby",
)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

_DEFAULT_SECRET = "productlobby-dev-secret-change-in-production"
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", _DEFAULT_SECRET)
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "24"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")

_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000")
ALLOWED_ORIGINS = [o.strip() for o in _origins.split(",") if o.strip()]


def check_production_settings() -> None:
    """Refuse to boot a production instance with the shared dev JWT secret."""
    if ENVIRONMENT == "production" and JWT_SECRET_KEY == _DEFAULT_SECRET:
        raise RuntimeError("JWT_SECRET_KEY must be set in production!")
