"""JWT authentication and campaign access dependencies for FastAPI."""

from datetime import datetime, timedelta, timezone

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from .config import JWT_ALGORITHM, JWT_EXPIRE_HOURS, JWT_SECRET_KEY
from .db import get_db
from .errors import AuthError, ForbiddenError, NotFoundError
from .models import Campaign, CampaignCollaborator, User

_bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: int, expires_in: timedelta = None) -> str:
    """Create a signed access token whose subject is the user id."""
    expire = datetime.now(timezone.utc) + (expires_in or timedelta(hours=JWT_EXPIRE_HOURS))
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the Bearer token to a User, or fail with 401."""
    if credentials is None or not credentials.credentials:
        raise AuthError("Unauthorized")

    try:
        payload = jwt.decode(credentials.credentials, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise AuthError("Unauthorized")

    user = db.get(User, user_id)
    if user is None:
        raise AuthError("Unauthorized")
    return user


def find_campaign(db: Session, id_or_slug: str) -> Campaign:
    """Look a campaign up by numeric id or slug; 404 if neither matches."""
    conditions = [Campaign.slug == id_or_slug]
    if id_or_slug.isdigit():
        conditions.append(Campaign.id == int(id_or_slug))
    campaign = db.execute(select(Campaign).where(or_(*conditions))).scalars().first()
    if campaign is None:
        raise NotFoundError("Campaign not found")
    return campaign


def get_campaign(campaign_id: str, db: Session = Depends(get_db)) -> Campaign:
    return find_campaign(db, campaign_id)


def is_collaborator(db: Session, campaign: Campaign, user: User) -> bool:
    row = db.execute(
        select(CampaignCollaborator.id)
        .where(CampaignCollaborator.campaign_id == campaign.id)
        .where(CampaignCollaborator.user_id == user.id)
    ).first()
    return row is not None


def require_creator(campaign: Campaign, user: User) -> None:
    if campaign.creator_id != user.id:
        raise ForbiddenError("Forbidden")


def require_team_member(db: Session, campaign: Campaign, user: User) -> None:
    """Creator or any collaborator."""
    if campaign.creator_id == user.id:
        return
    if not is_collaborator(db, campaign, user):
        raise ForbiddenError("Forbidden")
