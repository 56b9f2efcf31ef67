from math import ceil
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from classroom.config import settings

T = TypeVar("T")

# OFFSET is bound as a signed 64-bit integer
MAX_OFFSET = 2**63 - 1


class Page(BaseModel, Generic[T]):
    items: List[T]
    page: int
    per_page: int
    total_count: int
    total_pages: int


def normalize_page(page: Any) -> int:
    """Coerce a ``page`` query value to a 1-based page number."""
    try:
        number = int(page)
    except (TypeError, ValueError):
        return 1
    return max(number, 1)


async def paginate(
    session: AsyncSession,
    statement,
    page: Any = 1,
    per_page: Optional[int] = None,
) -> Page:
    per_page = per_page or settings.PER_PAGE
    page = min(normalize_page(page), MAX_OFFSET // per_page + 1)

    count_statement = select(func.count()).select_from(statement.order_by(None).subquery())
    total_count = (await session.exec(count_statement)).one()

    result = await session.exec(statement.offset((page - 1) * per_page).limit(per_page))
    return Page(
        items=result.all(),
        page=page,
        per_page=per_page,
        total_count=total_count,
        total_pages=ceil(total_count / per_page) if total_count else 0,
    )
