"""
Revi Audit — Database engine, sessions and the declarative base

One async engine serves the whole process.  In Cloud Run it reaches Cloud
SQL through the Python connector (IAM auth, no password in the URL);
everywhere else it is built from ``DATABASE_URL``.

Routes receive a session from ``get_db``: the session commits when the
handler returns and rolls back when it raises, so handlers only ``flush``.
"""

from __future__ import annotations

from typing import Any, AsyncGenerator

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import Settings, get_settings

logger = structlog.get_logger("audit.database")

ASYNC_DRIVER_PREFIX = "postgresql+asyncpg://"

# Primary keys are PostgreSQL ``integer`` columns.
MAX_INTEGER_ID = 2**31 - 1


class Base(DeclarativeBase):
    """Base for every audit table.

    ``created_at`` and other server defaults are read back on INSERT, so a
    row can be serialised straight after ``flush``.
    """

    __mapper_args__ = {"eager_defaults": True}


def is_storable_id(value: int) -> bool:
    """True when ``value`` fits an integer primary key column."""
    return 1 <= value <= MAX_INTEGER_ID


def normalise_database_url(url: str) -> str:
    """Point plain ``postgres://`` / ``postgresql://`` URLs at asyncpg."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return ASYNC_DRIVER_PREFIX + url[len(prefix):]
    return url


def engine_options(settings: Settings) -> dict[str, Any]:
    return {
        "echo": settings.LOG_LEVEL == "DEBUG",
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": 30,
        "pool_recycle": settings.DB_POOL_RECYCLE_SECONDS,
        "pool_pre_ping": True,
    }


def uses_cloud_sql(settings: Settings) -> bool:
    return bool(settings.CLOUD_SQL_USE_UNIX_SOCKET and settings.CLOUD_SQL_INSTANCE_CONNECTION)


def build_engine(settings: Settings) -> AsyncEngine:
    if not uses_cloud_sql(settings):
        engine = create_async_engine(
            normalise_database_url(settings.DATABASE_URL),
            **engine_options(settings),
        )
        logger.info("database_engine_created", mode="url")
        return engine

    from google.cloud.sql.connector import Connector

    connector = Connector()

    async def _connect():
        return await connector.connect_async(
            settings.CLOUD_SQL_INSTANCE_CONNECTION,
            "asyncpg",
            user=settings.DB_USER,
            password=settings.DB_PASSWORD,
            db=settings.DB_NAME,
            enable_iam_auth=True,
        )

    engine = create_async_engine(
        ASYNC_DRIVER_PREFIX,
        async_creator=_connect,
        **engine_options(settings),
    )
    logger.info(
        "database_engine_created",
        mode="cloud_sql",
        instance=settings.CLOUD_SQL_INSTANCE_CONNECTION,
    )
    return engine


engine = build_engine(get_settings())

async_session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: commit on success, roll back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
