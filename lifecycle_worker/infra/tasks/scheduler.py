"""APScheduler wiring for the recurring jobs.

Each job gets an ``IntervalTrigger`` with optional jitter so that several
worker processes sharing one store do not tick in lockstep. APScheduler's
``max_instances=1`` is a second guard against overlap: when it refuses to
start a run, the job's dropped-tick counter is bumped through the
``EVENT_JOB_MAX_INSTANCES`` listener.

Architecture:
    AsyncIOScheduler (in-process) -> RecurringJob.tick() -> run_once()
"""

from __future__ import annotations

from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING

from apscheduler.events import EVENT_JOB_MAX_INSTANCES  # type: ignore[import-untyped]
from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from collections.abc import Sequence

    from lifecycle_worker.infra.tasks.recurring import RecurringJob

logger = logging.getLogger(__name__)


class JobScheduler:
    """Drives a set of recurring jobs on their own intervals."""

    def __init__(self, jobs: Sequence[RecurringJob], *, misfire_grace_time: int = 60) -> None:
        self.jobs = {job.name: job for job in jobs}
        self._scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,  # Combine missed runs into one
                "max_instances": 1,  # Only one instance of each job at a time
                "misfire_grace_time": misfire_grace_time,
            },
        )
        self._scheduler.add_listener(self._on_max_instances, EVENT_JOB_MAX_INSTANCES)

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def _on_max_instances(self, event) -> None:
        job = self.jobs.get(event.job_id)
        if job is not None:
            job.record_dropped()

    def start(self) -> None:
        """Register enabled jobs and start ticking.

        Must be called from within a running event loop.
        """
        for job in self.jobs.values():
            if not job.enabled:
                logger.info("Job disabled, not scheduled", extra={"job": job.name})
                continue

            trigger = IntervalTrigger(
                seconds=job.interval_seconds,
                jitter=job.interval_seconds * job.jitter or None,
                timezone="UTC",
            )
            kwargs = {}
            if job.start_immediately:
                kwargs["next_run_time"] = datetime.now(UTC)

            self._scheduler.add_job(
                job.tick,
                trigger,
                id=job.name,
                name=job.name,
                replace_existing=True,
                **kwargs,
            )
            logger.info(
                "Job scheduled",
                extra={
                    "job": job.name,
                    "interval_seconds": job.interval_seconds,
                    "jitter": job.jitter,
                },
            )

        self._scheduler.start()

    async def shutdown(self, timeout: float = 30.0) -> bool:
        """Stop scheduling new ticks, then let in-flight runs finish.

        The scheduler is paused rather than shut down while runs drain: its
        asyncio executor cancels running coroutine jobs on shutdown.

        Args:
            timeout: Seconds to wait for in-flight runs per job

        Returns:
            True if every job went idle within the timeout
        """
        if self._scheduler.running:
            self._scheduler.pause()

        all_idle = True
        for job in self.jobs.values():
            if not await job.wait_idle(timeout):
                all_idle = False
                logger.warning(
                    "Job still running at shutdown timeout",
                    extra={"job": job.name, "timeout": timeout},
                )

        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

        logger.info("Scheduler stopped", extra={"all_idle": all_idle})
        return all_idle


__all__ = ["JobScheduler"]
