import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.config import settings
from src.utils.retry import retry_with_backoff, with_timeout

logger = logging.getLogger(__name__)

engine = create_async_engine(settings.database_url, echo=settings.debug)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


async def _create_all() -> None:
    # Import models so their tables are registered on Base.metadata
    import src.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    await retry_with_backoff(
        lambda: with_timeout(_create_all(), settings.db_connect_timeout_seconds),
        max_retries=settings.db_connect_retries,
        initial_delay=settings.db_retry_initial_delay_seconds,
    )
    logger.info("Database schema ready")
