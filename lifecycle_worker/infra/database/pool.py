"""Primary/replica connection pools with explicit back-pressure.

Each pool wraps one SQLAlchemy ``AsyncEngine`` whose own pool is sized to
``connection_limit`` with no overflow. In front of it sits a bounded
``asyncio.Semaphore`` and a bounded count of blocked waiters:

- a free slot is taken immediately
- with no free slot and ``wait_for_connections=False`` the caller fails fast
- with no free slot and ``queue_limit`` waiters already blocked the caller
  fails fast
- otherwise the caller blocks until a lease is released

Every rejection raises ``PoolSaturated`` and is counted and logged.

Routing rule: reads go to the replica; writes, and reads whose result gates
a write in the same operation, go to the primary.

Example:
    pools = PoolManager.from_settings(get_db_settings())

    async with pools.read() as session:
        events = await repo.fetch_unpublished(session, limit=100)

    async with pools.write() as session:
        await repo.mark_published(session, event.id)
    # committed on exit, rolled back on error
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from enum import StrEnum
import logging
import time
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from lifecycle_worker.core.exceptions import PoolSaturated
from lifecycle_worker.infra.metrics.prometheus import (
    pool_acquire_wait_seconds,
    pool_connections_in_use,
    pool_saturated_total,
    pool_waiters,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from lifecycle_worker.core.settings.database import DatabaseSettings, PoolSettings

logger = logging.getLogger(__name__)


class PoolKind(StrEnum):
    """Which store a unit of work is routed to."""

    PRIMARY = "primary"
    REPLICA = "replica"


class ConnectionPool:
    """A bounded pool of database sessions for one store.

    Attributes:
        name: Pool label used in logs and metrics
        settings: Pool configuration
        engine: Underlying SQLAlchemy async engine
    """

    def __init__(
        self,
        name: str,
        settings: PoolSettings,
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        """Initialize the pool.

        Args:
            name: Pool label ("primary" or "replica")
            settings: Pool configuration
            engine: Pre-built engine (tests, shared engines). Built from
                ``settings`` when omitted.
        """
        self.name = name
        self.settings = settings
        self.engine = engine or create_async_engine(settings.url, **settings.engine_kwargs())
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._slots = asyncio.Semaphore(settings.connection_limit)
        self._in_use = 0
        self._waiting = 0

    @property
    def in_use(self) -> int:
        """Number of leases currently held."""
        return self._in_use

    @property
    def waiting(self) -> int:
        """Number of callers blocked waiting for a lease."""
        return self._waiting

    def _saturated(self, reason: str) -> PoolSaturated:
        pool_saturated_total.labels(pool=self.name).inc()
        extra = {
            "pool": self.name,
            "reason": reason,
            "in_use": self._in_use,
            "waiting": self._waiting,
            "connection_limit": self.settings.connection_limit,
            "queue_limit": self.settings.queue_limit,
        }
        logger.warning("Connection pool saturated", extra=extra)
        return PoolSaturated(f"Connection pool {self.name!r} saturated ({reason})", extra=extra)

    async def _reserve(self) -> None:
        if not self._slots.locked():
            # Does not suspend when a slot is free
            await self._slots.acquire()
        else:
            if not self.settings.wait_for_connections:
                raise self._saturated("no_wait")
            if self.settings.queue_limit and self._waiting >= self.settings.queue_limit:
                raise self._saturated("queue_full")

            self._waiting += 1
            pool_waiters.labels(pool=self.name).set(self._waiting)
            start = time.perf_counter()
            try:
                await self._slots.acquire()
            finally:
                self._waiting -= 1
                pool_waiters.labels(pool=self.name).set(self._waiting)
                pool_acquire_wait_seconds.labels(pool=self.name).observe(
                    time.perf_counter() - start
                )

        self._in_use += 1
        pool_connections_in_use.labels(pool=self.name).set(self._in_use)

    def _release(self) -> None:
        self._in_use -= 1
        pool_connections_in_use.labels(pool=self.name).set(self._in_use)
        self._slots.release()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[AsyncSession]:
        """Lease a session for one unit of work.

        The lease is returned on every exit path, including cancellation.

        Raises:
            PoolSaturated: If the pool is exhausted and the caller may not wait.
        """
        await self._reserve()
        try:
            async with self._session_factory() as session:
                yield session
        finally:
            self._release()

    def stats(self) -> dict[str, Any]:
        """Current lease accounting for status output."""
        return {
            "pool": self.name,
            "in_use": self._in_use,
            "waiting": self._waiting,
            "connection_limit": self.settings.connection_limit,
            "wait_for_connections": self.settings.wait_for_connections,
            "queue_limit": self.settings.queue_limit,
        }

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()


class PoolManager:
    """Owns the primary and replica pools and routes units of work to them."""

    def __init__(self, primary: ConnectionPool, replica: ConnectionPool) -> None:
        self.primary = primary
        self.replica = replica

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> PoolManager:
        """Build both pools from ``master``/``slave`` configuration."""
        return cls(
            primary=ConnectionPool(PoolKind.PRIMARY, settings.master),
            replica=ConnectionPool(PoolKind.REPLICA, settings.slave),
        )

    def pool(self, kind: PoolKind) -> ConnectionPool:
        """Return the pool for ``kind``."""
        return self.primary if kind is PoolKind.PRIMARY else self.replica

    def acquire(self, kind: PoolKind = PoolKind.REPLICA):
        """Lease a session from the given pool (replica by default)."""
        return self.pool(kind).acquire()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[AsyncSession]:
        """Lease a replica session for reads that do not gate a write."""
        async with self.replica.acquire() as session:
            yield session

    @asynccontextmanager
    async def write(self) -> AsyncIterator[AsyncSession]:
        """Lease a primary session; commit on success, roll back on error."""
        async with self.primary.acquire() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    def stats(self) -> dict[str, dict[str, Any]]:
        """Lease accounting for both pools."""
        return {
            PoolKind.PRIMARY.value: self.primary.stats(),
            PoolKind.REPLICA.value: self.replica.stats(),
        }

    async def dispose(self) -> None:
        """Dispose both engines (once if they are shared)."""
        await self.primary.dispose()
        if self.replica.engine is not self.primary.engine:
            await self.replica.dispose()
        logger.info("Connection pools disposed")


__all__ = ["ConnectionPool", "PoolKind", "PoolManager"]
