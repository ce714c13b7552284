"""Admin dashboard statistics, gathered concurrently and cached in Redis."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import suppress
from typing import Any

from redis.asyncio import Redis
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.common import lifespan_session

from .checkout import REQUESTED_STATUS
from .metrics import DASHBOARD_CACHE_EVENTS_TOTAL
from .models import Certificate, Course, Enrollment, Gadget, Order, ServiceRequest

logger = logging.getLogger(__name__)

CACHE_KEY = "storefront:dashboard:stats"


def _queries() -> dict[str, Select[Any]]:
    return {
        "totalOrders": select(func.count(Order.id)),
        "pendingOrders": select(func.count(Order.id)).where(Order.status == REQUESTED_STATUS),
        "revenue": select(func.coalesce(func.sum(Order.total_price), 0)),
        "gadgets": select(func.count(Gadget.id)),
        "gadgetsInStock": select(func.count(Gadget.id)).where(Gadget.in_stock.is_(True)),
        "serviceRequests": select(func.count(ServiceRequest.id)),
        "pendingServiceRequests": select(func.count(ServiceRequest.id)).where(ServiceRequest.status == "pending"),
        "enrollments": select(func.count(Enrollment.id)),
        "courses": select(func.count(Course.id)),
        "certificates": select(func.count(Certificate.id)),
    }


class DashboardAggregator:
    """Runs one query per statistic, each on its own session, and caches the result."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        redis: Redis | None,
        cache_ttl: int,
    ) -> None:
        self._session_factory = session_factory
        self._redis = redis
        self._cache_ttl = cache_ttl

    @property
    def caching(self) -> bool:
        return self._redis is not None and self._cache_ttl > 0

    async def collect(self) -> dict[str, int]:
        cached = await self._read_cache()
        if cached is not None:
            return cached

        queries = _queries()
        values = await asyncio.gather(*(self._scalar(query) for query in queries.values()))
        stats = {name: int(value or 0) for name, value in zip(queries, values)}
        await self._write_cache(stats)
        return stats

    async def invalidate(self) -> None:
        if not self.caching:
            return
        try:
            await self._redis.delete(CACHE_KEY)
        except Exception:
            logger.warning("Failed to invalidate dashboard cache", exc_info=True)
            DASHBOARD_CACHE_EVENTS_TOTAL.labels(event="error").inc()
            return
        DASHBOARD_CACHE_EVENTS_TOTAL.labels(event="invalidate").inc()

    async def _scalar(self, query: Select[Any]) -> Any:
        async with lifespan_session(self._session_factory) as session:
            result = await session.execute(query)
            return result.scalar_one()

    async def _read_cache(self) -> dict[str, int] | None:
        if not self.caching:
            return None
        try:
            cached = await self._redis.get(CACHE_KEY)
        except Exception:
            logger.warning("Dashboard cache read failed; querying the database", exc_info=True)
            DASHBOARD_CACHE_EVENTS_TOTAL.labels(event="error").inc()
            return None
        if not cached:
            DASHBOARD_CACHE_EVENTS_TOTAL.labels(event="miss").inc()
            return None
        try:
            data = json.loads(cached)
        except json.JSONDecodeError:
            DASHBOARD_CACHE_EVENTS_TOTAL.labels(event="miss").inc()
            with suppress(Exception):
                await self._redis.delete(CACHE_KEY)
            return None
        DASHBOARD_CACHE_EVENTS_TOTAL.labels(event="hit").inc()
        return data

    async def _write_cache(self, stats: dict[str, int]) -> None:
        if not self.caching:
            return
        try:
            await self._redis.set(CACHE_KEY, json.dumps(stats), ex=self._cache_ttl)
        except Exception:
            logger.warning("Dashboard cache write failed", exc_info=True)
            DASHBOARD_CACHE_EVENTS_TOTAL.labels(event="error").inc()
            return
        DASHBOARD_CACHE_EVENTS_TOTAL.labels(event="write").inc()
