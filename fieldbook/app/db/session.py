from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fieldbook.app.core.config import settings
from fieldbook.app.scheduling.clock import ServiceClock
from fieldbook.app.services.store import SqlRecordStore


engine = create_async_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
)

SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a scoped AsyncSession for request handling."""
    async with SessionLocal() as session:
        yield session


async def get_store(session: AsyncSession = Depends(get_session)) -> SqlRecordStore:
    """Record store bound to the request's session."""
    return SqlRecordStore(session, ServiceClock(settings.SERVICE_DAY_ROLLOVER))
