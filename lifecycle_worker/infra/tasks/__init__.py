"""Recurring job machinery and scheduler wiring."""

from lifecycle_worker.infra.tasks.recurring import JobOutcome, JobResult, RecurringJob

__all__ = ["JobOutcome", "JobResult", "RecurringJob"]
