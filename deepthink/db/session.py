"""Async SQLAlchemy engine, session factory and FastAPI dependency."""
from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from deepthink.core.config import get_settings

settings = get_settings()

Base = declarative_base()

engine = create_async_engine(settings.database_url, echo=settings.debug, future=True)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Dependency yielding a database session."""
    async with AsyncSessionLocal() as db:
        yield db
