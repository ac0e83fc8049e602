"""Async engine, session dependency and database lifecycle."""

import time
from collections.abc import AsyncGenerator
from typing import Any, Dict

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from profile_enrichment.core.config import DatabaseSettings, settings
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for subjects, raw data records and enrichment results."""


def build_engine(db_settings: DatabaseSettings) -> AsyncEngine:
    return create_async_engine(
        db_settings.url,
        pool_size=db_settings.pool_size,
        max_overflow=db_settings.max_overflow,
        echo=db_settings.echo,
        pool_pre_ping=True,
        # PgBouncer in transaction mode cannot keep prepared statements
        connect_args={"statement_cache_size": 0},
    )


engine = build_engine(settings.db)

async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with async_session_maker() as session:
        yield session


class DatabaseClient:
    """Startup, shutdown and health probing for the service database."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        self._connected = True
        LOGGER.info("Database connection successful")

    async def create_tables(self) -> None:
        """Create any missing table; existing tables are left untouched."""
        from profile_enrichment.database import models  # noqa: F401  (registers the tables)

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            table_names = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

        LOGGER.info(
            "Database tables verified",
            extra={"tables": sorted(set(table_names) & set(Base.metadata.tables))}
        )

    async def disconnect(self) -> None:
        await self.engine.dispose()
        self._connected = False
        LOGGER.info("Database connection closed")

    async def health_check(self) -> Dict[str, Any]:
        start_time = time.perf_counter()
        try:
            async with self.engine.connect() as conn:
                await conn.scalar(text("SELECT 1"))
        except Exception as e:
            self._connected = False
            LOGGER.error("Database health check failed", extra={"error": str(e)})
            return {"status": "unhealthy", "connected": False, "error": str(e)}

        self._connected = True
        return {
            "status": "healthy",
            "connected": True,
            "latency_ms": round((time.perf_counter() - start_time) * 1000, 2),
        }


db_client = DatabaseClient(engine)


async def init_database(create_tables: bool = True) -> None:
    """Connect and, unless disabled, create missing tables.

    Raises:
        Exception: Whatever the driver raised; the caller decides whether startup continues
    """
    LOGGER.info("Initializing database connection...")
    try:
        await db_client.connect()
        if create_tables:
            await db_client.create_tables()
    except Exception:
        LOGGER.error("Database initialization failed", exc_info=True)
        raise


async def close_database() -> None:
    try:
        await db_client.disconnect()
    except Exception as e:
        LOGGER.error("Error closing database", exc_info=True, extra={"error": str(e)})
