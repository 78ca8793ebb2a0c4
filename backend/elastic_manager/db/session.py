"""
Database session management for the elastic application manager
Async SQLAlchemy setup with PostgreSQL/SQLite support
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text
import logging
import asyncio

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


def is_postgres_url(database_url: str) -> bool:
    return "postgresql" in database_url.lower()


def create_engine(database_url: str) -> AsyncEngine:
    """Create an async engine tuned for PostgreSQL or SQLite"""
    if is_postgres_url(database_url):
        engine = create_async_engine(
            database_url,
            echo=False,
            pool_size=10,
            max_overflow=5,
            pool_timeout=3,
            pool_recycle=3600,
            pool_pre_ping=True,  # Validate connections before use
            connect_args={
                "command_timeout": 30,
                "server_settings": {
                    "application_name": "elastic_manager",
                    "statement_timeout": "30s",
                }
            }
        )
    else:
        engine = create_async_engine(
            database_url,
            echo=False,
            connect_args={
                "check_same_thread": False,
                "timeout": 10,  # seconds to wait on a locked SQLite database
            }
        )

    logger.info(f"Database engine created for {'PostgreSQL' if is_postgres_url(database_url) else 'SQLite'}")
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create tables that do not exist yet"""
    # Import models so they are registered on the metadata
    from elastic_manager.models import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database initialized successfully")


async def validate_db_setup(engine: AsyncEngine) -> bool:
    """Validate database connectivity"""
    try:
        async with asyncio.timeout(10):
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        logger.info("Database connectivity validated")
        return True
    except asyncio.TimeoutError:
        logger.error("Database validation timed out")
        return False
    except Exception as e:
        logger.error(f"Database validation failed: {e}")
        return False


async def cleanup_db_connections(engine: AsyncEngine) -> None:
    """Dispose the engine and its connection pool"""
    logger.info("Cleaning up database connections...")
    await engine.dispose()
    logger.info("Database connections cleaned up successfully")
