from datetime import datetime, timedelta

import structlog
from jose import jwt, JWTError
from fastapi import Depends, HTTPException, Request
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from classroom.config import settings
from classroom.db.database import get_session
from classroom.models import Organization, User, UserOrganization

logger = structlog.get_logger()

JWT_SECRET = settings.JWT_SECRET

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET is not set in environment variables")

# last_active_at is only rewritten once it is older than this
ACTIVITY_INTERVAL = timedelta(minutes=5)


def user_id_from_bearer(authorization: str) -> int:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing Bearer token")

    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=["HS256"],
            options={"verify_aud": False},
        )
        return int(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError) as e:
        logger.warning("JWT decode error", error=str(e))
        raise HTTPException(status_code=401, detail="Invalid token")


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> User:
    user_id = request.session.get("user_id")
    if user_id is None:
        raise HTTPException(status_code=401, detail="Not signed in")

    user = await session.get(User, user_id)
    if user is None:
        request.session.pop("user_id", None)
        raise HTTPException(status_code=401, detail="Not signed in")

    now = datetime.now()
    if user.last_active_at is None or now - user.last_active_at >= ACTIVITY_INTERVAL:
        user.last_active_at = now
        session.add(user)
        await session.commit()
    return user


async def get_organization_or_404(session: AsyncSession, key: str) -> Organization:
    """Find an organization by slug, falling back to its numeric id."""
    result = await session.exec(select(Organization).where(Organization.slug == key))
    organization = result.first()
    if organization is None and key.isdigit():
        organization = await session.get(Organization, int(key))
    if organization is None:
        raise HTTPException(status_code=404, detail="Organization not found")
    return organization


async def get_authorized_organization(
    org: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Organization:
    organization = await get_organization_or_404(session, org)
    if user.site_admin:
        return organization

    membership = await session.exec(
        select(UserOrganization).where(
            UserOrganization.user_id == user.id,
            UserOrganization.organization_id == organization.id,
        )
    )
    if membership.first() is None:
        raise HTTPException(status_code=403, detail="You are not a member of this organization")
    return organization
