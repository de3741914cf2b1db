"""Unit tests for the bounded primary/replica pools."""
from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import text

from lifecycle_worker.core.exceptions import PoolSaturated
from lifecycle_worker.infra.database import PoolKind


@pytest.mark.unit
@pytest.mark.asyncio
class TestConnectionPool:
    """Test suite for lease accounting and back-pressure."""

    async def test_lease_runs_queries(self, pools):
        async with pools.read() as session:
            result = await session.execute(text("SELECT 1"))

        assert result.scalar_one() == 1
        assert pools.replica.in_use == 0

    async def test_limit_one_queue_one(self, make_pools):
        """Second caller waits, third is rejected, waiter proceeds after release."""
        pools = make_pools(connection_limit=1, wait_for_connections=True, queue_limit=1)
        pool = pools.pool(PoolKind.PRIMARY)
        release_first = asyncio.Event()
        second_acquired = asyncio.Event()

        async def first():
            async with pool.acquire():
                await release_first.wait()

        async def second():
            async with pool.acquire():
                second_acquired.set()

        first_task = asyncio.create_task(first())
        await asyncio.sleep(0)
        second_task = asyncio.create_task(second())
        await asyncio.sleep(0)

        assert pool.in_use == 1
        assert pool.waiting == 1

        with pytest.raises(PoolSaturated):
            async with pool.acquire():
                pass

        release_first.set()
        await asyncio.wait_for(asyncio.gather(first_task, second_task), timeout=5)

        assert second_acquired.is_set()
        assert pool.in_use == 0
        assert pool.waiting == 0

    async def test_no_wait_fails_immediately(self, make_pools):
        pools = make_pools(connection_limit=1, wait_for_connections=False)
        pool = pools.pool(PoolKind.REPLICA)

        async with pool.acquire():
            with pytest.raises(PoolSaturated) as exc_info:
                async with pool.acquire():
                    pass

        assert exc_info.value.extra["reason"] == "no_wait"
        assert pool.in_use == 0

    async def test_zero_queue_limit_is_unbounded(self, make_pools):
        pools = make_pools(connection_limit=1, queue_limit=0)
        pool = pools.pool(PoolKind.PRIMARY)
        release = asyncio.Event()

        async def holder():
            async with pool.acquire():
                await release.wait()

        async def waiter():
            async with pool.acquire():
                pass

        held = asyncio.create_task(holder())
        await asyncio.sleep(0)
        waiters = [asyncio.create_task(waiter()) for _ in range(5)]
        await asyncio.sleep(0)

        assert pool.waiting == 5

        release.set()
        await asyncio.wait_for(asyncio.gather(held, *waiters), timeout=5)
        assert pool.in_use == 0

    async def test_cancelled_waiter_leaves_queue(self, make_pools):
        pools = make_pools(connection_limit=1, queue_limit=1)
        pool = pools.pool(PoolKind.PRIMARY)
        release = asyncio.Event()

        async def holder():
            async with pool.acquire():
                await release.wait()

        async def waiter():
            async with pool.acquire():
                pass

        held = asyncio.create_task(holder())
        await asyncio.sleep(0)
        blocked = asyncio.create_task(waiter())
        await asyncio.sleep(0)
        assert pool.waiting == 1

        blocked.cancel()
        with pytest.raises(asyncio.CancelledError):
            await blocked

        assert pool.waiting == 0
        assert pool.in_use == 1

        release.set()
        await asyncio.wait_for(held, timeout=5)
        assert pool.in_use == 0

        # The freed queue slot and lease are usable again
        async with pool.acquire() as session:
            result = await session.execute(text("SELECT 1"))
        assert result.scalar_one() == 1
        assert pool.in_use == 0

    async def test_cancelled_holder_returns_lease(self, make_pools):
        pools = make_pools(connection_limit=1, wait_for_connections=False)
        pool = pools.pool(PoolKind.REPLICA)
        entered = asyncio.Event()

        async def holder():
            async with pool.acquire():
                entered.set()
                await asyncio.Event().wait()

        task = asyncio.create_task(holder())
        await asyncio.wait_for(entered.wait(), timeout=5)
        assert pool.in_use == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert pool.in_use == 0
        assert pool.waiting == 0
        async with pool.acquire():
            assert pool.in_use == 1
        assert pool.in_use == 0

    async def test_lease_released_on_error(self, pools):
        with pytest.raises(RuntimeError):
            async with pools.write():
                raise RuntimeError("boom")

        assert pools.primary.in_use == 0

    async def test_stats(self, pools):
        stats = pools.stats()

        assert stats["primary"]["connection_limit"] == 10
        assert stats["replica"]["in_use"] == 0
