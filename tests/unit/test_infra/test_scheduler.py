"""Unit tests for the APScheduler wiring."""
from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from lifecycle_worker.infra.tasks import RecurringJob
from lifecycle_worker.infra.tasks.scheduler import JobScheduler


class CountingJob(RecurringJob):
    name = "counting"
    start_immediately = True

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.ran = asyncio.Event()

    async def run_once(self) -> int:
        self.ran.set()
        return 0


class IdleJob(CountingJob):
    name = "idle"
    start_immediately = False


class SlowJob(RecurringJob):
    name = "slow"
    start_immediately = True

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.started = asyncio.Event()
        self.finished = False

    async def run_once(self) -> int:
        self.started.set()
        await asyncio.sleep(0.5)
        self.finished = True
        return 1


@pytest.mark.unit
@pytest.mark.asyncio
class TestJobScheduler:
    """Test suite for JobScheduler."""

    async def test_starts_immediately(self):
        job = CountingJob(interval_seconds=60)
        scheduler = JobScheduler([job])

        scheduler.start()
        try:
            await asyncio.wait_for(job.ran.wait(), timeout=5)
        finally:
            assert await scheduler.shutdown(timeout=1) is True

        assert scheduler.running is False

    async def test_disabled_job_not_scheduled(self):
        scheduler = JobScheduler([CountingJob(interval_seconds=60, enabled=False), IdleJob(interval_seconds=60)])

        scheduler.start()
        try:
            assert scheduler._scheduler.get_job("counting") is None
            assert scheduler._scheduler.get_job("idle") is not None
        finally:
            await scheduler.shutdown(timeout=1)

    async def test_max_instances_counts_dropped_tick(self):
        job = IdleJob(interval_seconds=60)
        scheduler = JobScheduler([job])

        scheduler._on_max_instances(SimpleNamespace(job_id="idle"))

        assert job.dropped_ticks == 1

    async def test_shutdown_lets_in_flight_run_finish(self):
        job = SlowJob(interval_seconds=60)
        scheduler = JobScheduler([job])

        scheduler.start()
        await asyncio.wait_for(job.started.wait(), timeout=5)

        assert await scheduler.shutdown(timeout=5) is True
        assert job.finished is True
        assert job.running is False
        assert scheduler.running is False
