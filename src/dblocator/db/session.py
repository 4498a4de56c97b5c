# src/dblocator/db/session.py

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from dblocator.core.config import settings

def _engine_options(url: str) -> dict:
    options = {"pool_pre_ping": True, "pool_recycle": 3600}
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.DB_POOL_SIZE
        options["max_overflow"] = settings.DB_MAX_OVERFLOW
    return options

engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = async_sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
    class_=AsyncSession
)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides one session per request.

    Services commit explicitly before they start physical provisioning, so the
    session is not wrapped in a single ``begin()`` block: the directory change
    and each provisioning completion marker must survive a later failure.
    Whatever is still pending when the request ends is committed, and an
    exception rolls the pending part back.
    """
    async with SessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
