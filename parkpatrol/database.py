"""Database setup with SQLAlchemy async over an embedded SQLite file."""

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from parkpatrol.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


async def init_db(db_engine: AsyncEngine = engine) -> None:
    """Create tables that do not exist yet."""
    # Register models on the metadata before create_all
    from parkpatrol import models  # noqa: F401

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db_ready(db_engine: AsyncEngine = engine) -> None:
    """
    Verify database connectivity and expected schema.

    Raises RuntimeError when the reports table is missing.
    """
    async with db_engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

        has_reports = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).has_table("reports")
        )
        if not has_reports:
            raise RuntimeError(
                "Database schema is missing tables: reports (run database init)."
            )
