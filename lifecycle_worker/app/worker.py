"""Worker process composition.

Startup Order:
1. Connection pools (primary and replica) and the schema gate
2. Token signer and notification sink, only when a publish URL is set
3. Recurring jobs (outbox publisher, pruner) and the scheduler

Shutdown Order: scheduler first so no new tick starts, then a bounded wait
for in-flight runs, then the sink client and the pools.

A signing key that cannot be loaded disables the publisher only; pruning
keeps running.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import TYPE_CHECKING

from lifecycle_worker.core.exceptions import KeyLoadError
from lifecycle_worker.infra.database import PoolManager, SchemaGate
from lifecycle_worker.infra.events.outbox import NotificationSink, OutboxPublisher
from lifecycle_worker.infra.events.signing import TokenSigner
from lifecycle_worker.infra.pruning import Pruner
from lifecycle_worker.infra.tasks.scheduler import JobScheduler

if TYPE_CHECKING:
    from lifecycle_worker.core.settings import Settings
    from lifecycle_worker.infra.tasks.recurring import RecurringJob

logger = logging.getLogger(__name__)


class LifecycleWorker:
    """Owns every long-lived resource of the worker process."""

    def __init__(
        self,
        settings: Settings,
        *,
        pools: PoolManager | None = None,
        sink: NotificationSink | None = None,
    ) -> None:
        self.settings = settings
        self.pools = pools or PoolManager.from_settings(settings.db)
        self.gate = SchemaGate(self.pools, settings.app.patch_key)
        self.sink = sink
        self.publisher = self._build_publisher()
        self.pruner = Pruner.from_settings(settings.pruning, pools=self.pools, gate=self.gate)
        self.scheduler = JobScheduler(self.jobs)

    @property
    def jobs(self) -> list[RecurringJob]:
        jobs: list[RecurringJob] = [self.pruner]
        if self.publisher is not None:
            jobs.insert(0, self.publisher)
        return jobs

    def _build_publisher(self) -> OutboxPublisher | None:
        notifications = self.settings.notifications
        if not notifications.is_enabled:
            logger.info("No publish URL configured, outbox publisher disabled")
            return None

        try:
            signer = TokenSigner.from_file(notifications.jwt.secret_key_file)
        except KeyLoadError as e:
            logger.error("Signing key unavailable, outbox publisher disabled", extra=e.to_log_extra())
            return None

        if self.sink is None:
            self.sink = NotificationSink(
                notifications.publish_url,
                timeout_seconds=notifications.request_timeout,
            )
        return OutboxPublisher.from_settings(
            notifications,
            pools=self.pools,
            gate=self.gate,
            signer=signer,
            sink=self.sink,
        )

    def start(self) -> None:
        """Start ticking. Must be called from within a running event loop."""
        self.scheduler.start()
        logger.info(
            "Worker started",
            extra={
                "env": self.settings.app.env,
                "jobs": [job.name for job in self.jobs if job.enabled],
            },
        )

    async def stop(self, timeout: float | None = None) -> bool:
        """Stop scheduling, drain in-flight runs, release resources.

        Returns:
            True if every in-flight run finished within the timeout
        """
        if timeout is None:
            timeout = self.settings.app.shutdown_timeout
        drained = await self.scheduler.shutdown(timeout)
        if self.sink is not None:
            await self.sink.aclose()
        await self.pools.dispose()
        logger.info("Worker stopped", extra={"drained": drained})
        return drained


async def run_forever(worker: LifecycleWorker) -> None:
    """Run the worker until SIGINT or SIGTERM."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    worker.start()
    try:
        await stop_event.wait()
        logger.info("Shutdown signal received")
    finally:
        await worker.stop()


__all__ = ["LifecycleWorker", "run_forever"]
