"""Database engine, session factory, and declarative base.

One DeclarativeBase for all quote tables. FastAPI routes get a session
through `get_db()`, which commits on success and rolls back on error.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"echo": settings.debug}
    return {"echo": settings.debug, "pool_size": 20, "max_overflow": 10}


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    """Base class for every quote-wizard table."""
    pass


async def get_db() -> AsyncSession:
    """Yield a request-scoped session."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
