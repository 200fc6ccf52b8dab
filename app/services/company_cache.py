"""
Revi Audit — Company lookup cache

Survey sessions and form completions resolve a company by its unique name
on every request.  ``CompanyCache`` keeps a ``name -> id`` mapping in Redis
and always loads the row itself from the request's session, so callers
never receive a detached or stale ORM object.

Redis is an optimisation only: any Redis failure is logged and the lookup
falls back to the database.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.company import Company

logger = structlog.get_logger("audit.company_cache")

_REDIS_KEY_PREFIX = "audit:company:name:"


def cache_key(name: str) -> str:
    return f"{_REDIS_KEY_PREFIX}{name}"


class CompanyCache:
    """Read-through ``company name -> Company`` lookup."""

    def __init__(self, redis_client: Any | None = None) -> None:
        self._redis: Any | None = redis_client

    def use_redis(self, redis_client: Any) -> None:
        """Share an already-open client (the application's lifespan client)."""
        self._redis = redis_client

    async def _get_redis(self) -> Any:
        """Return an async Redis client, creating it on first call."""
        if self._redis is None:
            import redis.asyncio as aioredis

            settings = get_settings()
            self._redis = aioredis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5,
            )
            logger.info("company_cache_redis_connected")
        return self._redis

    async def _read(self, name: str) -> int | None:
        try:
            redis = await self._get_redis()
            raw = await redis.get(cache_key(name))
        except Exception as exc:
            logger.warning("company_cache_read_failed", company_name=name, error=str(exc))
            return None
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning("company_cache_corrupt_entry", company_name=name, raw=raw)
            return None

    async def _write(self, name: str, company_id: int) -> None:
        ttl = get_settings().COMPANY_CACHE_TTL_SECONDS
        try:
            redis = await self._get_redis()
            await redis.setex(cache_key(name), ttl, str(company_id))
        except Exception as exc:
            logger.warning("company_cache_write_failed", company_name=name, error=str(exc))

    async def get_by_name(
        self,
        name: str,
        db_session: AsyncSession,
    ) -> Company | None:
        """Return the company called ``name`` or ``None``.

        A cached id that no longer resolves (or resolves to a renamed
        company) is discarded and the lookup repeated against the database.
        """
        log = logger.bind(company_name=name)

        cached_id = await self._read(name)
        if cached_id is not None:
            company = await db_session.get(Company, cached_id)
            if company is not None and company.name == name:
                log.debug("company_cache_hit", company_id=cached_id)
                return company
            log.info("company_cache_stale", company_id=cached_id)
            await self.invalidate(name)

        log.debug("company_cache_miss")
        result = await db_session.execute(select(Company).where(Company.name == name))
        company = result.scalar_one_or_none()
        if company is not None:
            await self._write(name, company.id)
        return company

    async def invalidate(self, *names: str | None) -> None:
        """Drop the cache entries for every given company name."""
        keys = [cache_key(n) for n in names if n]
        if not keys:
            return
        try:
            redis = await self._get_redis()
            await redis.delete(*keys)
            logger.info("company_cache_invalidated", keys=keys)
        except Exception as exc:
            logger.warning("company_cache_invalidate_failed", keys=keys, error=str(exc))


_company_cache: CompanyCache | None = None


def get_company_cache() -> CompanyCache:
    """FastAPI dependency returning the process-wide cache."""
    global _company_cache
    if _company_cache is None:
        _company_cache = CompanyCache()
    return _company_cache
