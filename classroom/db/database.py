# classroom/db/database.py
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine

from classroom.config import settings

DATABASE_URL = settings.DB_URL

if not DATABASE_URL:
    raise RuntimeError("DB_URL is not set in environment variables")

# Ensure the URL uses SQLAlchemy's async driver. If the environment provides a
# sync driver or no driver at all, convert it to use ``+asyncpg`` so that the
# async engine works correctly.
if "+asyncpg" not in DATABASE_URL and DATABASE_URL.startswith("postgresql"):
    if "+psycopg" in DATABASE_URL:
        DATABASE_URL = DATABASE_URL.replace("+psycopg", "+asyncpg")
    elif DATABASE_URL.startswith("postgresql://"):
        DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)

engine: AsyncEngine = create_async_engine(DATABASE_URL)


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session():
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session
