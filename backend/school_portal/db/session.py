"""Async SQLAlchemy engine and session helpers.

Provides a configured async engine, the shared sessionmaker and the startup
helper that creates the tables.
"""

from config.config import settings
from core.logging import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base


def _engine_options(url: str) -> dict:
    # NOTE: pool sizing only applies to server databases; SQLite (used by the
    # test suite) manages its own pool.
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True}


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    **_engine_options(settings.DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()


async def initialize_database():
    """Create all metadata tables defined on the declarative `Base`.

    Raises:
        Exception: Re-raises any exception encountered while initializing.
    """

    # NOTE: models must be imported so their tables are registered on Base.
    import models.auth  # noqa: F401
    import models.principals  # noqa: F401
    import models.school  # noqa: F401

    logger.info("Initializing database tables")
    async with engine.begin() as conn:
        try:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database initialization complete")
        except Exception:
            logger.exception("Database initialization failed")
            raise
