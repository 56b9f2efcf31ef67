from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from classroom.auth.dependencies import user_id_from_bearer
from classroom.db.database import get_session
from classroom.models import User

router = APIRouter(prefix="/sessions", tags=["Session"])


@router.post("")
async def sign_in(
    request: Request,
    authorization: str = Header(...),
    session: AsyncSession = Depends(get_session),
):
    user_id = user_id_from_bearer(authorization)
    user = await session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")

    request.session["user_id"] = user.id
    return {"id": user.id}


@router.delete("")
async def sign_out(request: Request):
    request.session.clear()
    return {"signed_out": True}
