"""Non-overlapping recurring jobs.

A ``RecurringJob`` moves ``Idle -> Running -> Idle`` once per tick. A tick that
arrives while the previous run is still in progress is dropped and counted,
never queued. ``tick`` is the job's error boundary: whatever ``run_once``
raises is logged with the run's ``job``/``run_id`` context and turned into a
result, so the next tick simply tries again.

The running flag is in-memory and per process. Sibling processes sharing the
store do not coordinate; ``run_once`` implementations must be idempotent.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from dataclasses import dataclass
from enum import StrEnum
import logging
import time
import uuid

from opentelemetry import trace

from lifecycle_worker.core.exceptions import MetadataMissing, SchemaNotReady, WorkerError
from lifecycle_worker.infra.logging.context import log_context
from lifecycle_worker.infra.metrics.prometheus import (
    job_duration_seconds,
    job_overlap_dropped_total,
    job_runs_total,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class JobOutcome(StrEnum):
    """How a tick ended."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"
    DROPPED = "dropped"
    DISABLED = "disabled"


@dataclass(frozen=True, slots=True)
class JobResult:
    """Outcome of one tick.

    Attributes:
        outcome: How the tick ended
        processed: Items handled by ``run_once`` (events published, rows pruned)
        run_id: Correlation id stamped on the tick's log records
        error: Error message when skipped or failed
    """

    outcome: JobOutcome
    processed: int = 0
    run_id: str | None = None
    error: str | None = None


class RecurringJob(ABC):
    """Base class for the publisher and the pruner.

    Subclasses implement ``run_once`` and set ``name``.
    """

    name: str = "job"
    #: Fire the first tick as soon as the scheduler starts
    start_immediately: bool = False

    def __init__(
        self,
        *,
        interval_seconds: float,
        enabled: bool = True,
        jitter: float = 0.0,
    ) -> None:
        """Initialize scheduling state.

        Args:
            interval_seconds: Nominal time between ticks
            enabled: Disabled jobs return without doing anything
            jitter: Random fraction of the interval added to each tick
        """
        self.interval_seconds = interval_seconds
        self.enabled = enabled
        self.jitter = jitter
        self.dropped_ticks = 0
        self.last_result: JobResult | None = None
        self._running = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def running(self) -> bool:
        """Whether a run is in progress."""
        return self._running

    @abstractmethod
    async def run_once(self) -> int:
        """Perform one unit of work and return how many items it handled."""

    def record_dropped(self) -> None:
        """Account for a tick dropped because a run was still in progress."""
        self.dropped_ticks += 1
        job_overlap_dropped_total.labels(job=self.name).inc()
        job_runs_total.labels(job=self.name, outcome=JobOutcome.DROPPED).inc()
        logger.info(
            "Tick dropped, previous run still in progress",
            extra={"job": self.name, "dropped_ticks": self.dropped_ticks},
        )

    async def tick(self) -> JobResult:
        """Run once unless disabled or already running; never raises WorkerError."""
        if not self.enabled:
            return JobResult(JobOutcome.DISABLED)

        if self._running:
            self.record_dropped()
            return JobResult(JobOutcome.DROPPED)

        self._running = True
        self._idle.clear()
        run_id = uuid.uuid4().hex[:12]
        start = time.perf_counter()

        with log_context(job=self.name, run_id=run_id):
            try:
                with tracer.start_as_current_span(f"{self.name}.run") as span:
                    span.set_attribute("lifecycle.run_id", run_id)
                    processed = await self.run_once()
                    span.set_attribute("lifecycle.processed", processed)
                result = JobResult(JobOutcome.SUCCESS, processed=processed, run_id=run_id)
            except SchemaNotReady as e:
                logger.info("Schema not ready, skipping run", extra=e.to_log_extra())
                result = JobResult(JobOutcome.SKIPPED, run_id=run_id, error=e.detail)
            except MetadataMissing as e:
                logger.warning("Schema metadata missing, skipping run", extra=e.to_log_extra())
                result = JobResult(JobOutcome.SKIPPED, run_id=run_id, error=e.detail)
            except WorkerError as e:
                logger.warning("Run failed, retrying next tick", extra=e.to_log_extra())
                result = JobResult(JobOutcome.FAILED, run_id=run_id, error=e.detail)
            except Exception as e:
                logger.exception("Run failed unexpectedly, retrying next tick")
                result = JobResult(JobOutcome.FAILED, run_id=run_id, error=str(e))
            finally:
                self._running = False
                self._idle.set()
                job_duration_seconds.labels(job=self.name).observe(time.perf_counter() - start)

        job_runs_total.labels(job=self.name, outcome=result.outcome).inc()
        self.last_result = result
        return result

    async def wait_idle(self, timeout: float | None = None) -> bool:
        """Wait for an in-flight run to finish.

        Returns:
            True if the job is idle, False if ``timeout`` expired first
        """
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True


__all__ = ["JobOutcome", "JobResult", "RecurringJob"]
