from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from classroom.auth.dependencies import get_current_user
from classroom.db.database import get_session
from classroom.models import Organization, User, UserOrganization
from classroom.routes.responses import pop_flash
from classroom.services.pagination import paginate

router = APIRouter(tags=["User"])


class UserResponse(SQLModel):
    id: int
    uid: int
    site_admin: bool
    token_scopes: List[str]
    last_active_at: Optional[datetime] = None


def organizations_for_user_statement(user: User):
    return (
        select(Organization)
        .join(UserOrganization, UserOrganization.organization_id == Organization.id)
        .where(UserOrganization.user_id == user.id)
        .order_by(Organization.title, Organization.id)
    )


# Scoped to the signed-in user's own organizations, so no organization authorization here.
@router.get("/users/me")
async def get_my_profile(
    request: Request,
    page: Optional[str] = None,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    organizations = await paginate(session, organizations_for_user_statement(user), page)
    return {
        "user": UserResponse(
            id=user.id,
            uid=user.uid,
            site_admin=user.site_admin,
            token_scopes=user.token_scopes or [],
            last_active_at=user.last_active_at,
        ),
        "organizations": organizations,
        "flash": pop_flash(request),
    }
