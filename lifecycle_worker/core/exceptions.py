"""Custom exception classes for the background worker.

Every error raised inside a scheduled job derives from ``WorkerError``. The
job boundary (``RecurringJob.tick``) catches them, logs them with the run's
context and converts them into "skip this tick, try again next tick".
"""

from __future__ import annotations

from typing import Any


class WorkerError(Exception):
    """Base worker exception.

    Attributes:
        detail: Human-readable error message.
        extra: Additional context-specific information about the error.
        retryable: Whether the condition is expected to clear on a later tick.

    Example:
            raise WorkerError(
            "Store unavailable",
            extra={"pool": "primary"},
        )
    """

    retryable: bool = True

    def __init__(self, detail: str, *, extra: dict[str, Any] | None = None) -> None:
        """Initialize worker exception.

        Args:
            detail: Human-readable error message.
            extra: Additional context about the error.
        """
        self.detail = detail
        self.extra = extra or {}
        super().__init__(detail)

    def to_log_extra(self) -> dict[str, Any]:
        """Structured fields suitable for ``logger.*(..., extra=...)``."""
        return {"error": self.detail, "error_type": type(self).__name__, **self.extra}


class PoolSaturated(WorkerError):
    """No connection is available and the waiter queue is full (or waiting is disabled).

    Example:
            raise PoolSaturated(
            "Pool primary saturated",
            extra={"pool": "primary", "in_use": 10, "waiting": 100},
        )
    """


class MetadataMissing(WorkerError):
    """The schema patch-level row is absent or unreadable.

    Treated as "schema not ready": the tick is skipped.
    """


class SchemaNotReady(WorkerError):
    """The store's patch level is below what a job requires."""

    def __init__(self, current: int, required: int, *, extra: dict[str, Any] | None = None) -> None:
        self.current = current
        self.required = required
        super().__init__(
            f"Schema patch level {current} is below required level {required}",
            extra={"patch_level": current, "required_patch_level": required, **(extra or {})},
        )


class DeliveryFailure(WorkerError):
    """The notification sink was unreachable or rejected an event.

    Halts the remaining events of the current publisher run.
    """

    def __init__(
        self,
        detail: str,
        *,
        event_id: int | None = None,
        status_code: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.event_id = event_id
        self.status_code = status_code
        super().__init__(
            detail,
            extra={"event_id": event_id, "status_code": status_code, **(extra or {})},
        )


class KeyLoadError(WorkerError):
    """Signing key material is unreadable or malformed.

    Fatal to the outbox publisher only; the rest of the process keeps running.
    """

    retryable = False


class BatchDeleteFailure(WorkerError):
    """A pruning batch failed; prior batches of the same tick stay committed."""

    def __init__(
        self,
        detail: str,
        *,
        target: str,
        deleted_before_failure: int = 0,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.target = target
        self.deleted_before_failure = deleted_before_failure
        super().__init__(
            detail,
            extra={
                "target": target,
                "deleted_before_failure": deleted_before_failure,
                **(extra or {}),
            },
        )


__all__ = [
    "BatchDeleteFailure",
    "DeliveryFailure",
    "KeyLoadError",
    "MetadataMissing",
    "PoolSaturated",
    "SchemaNotReady",
    "WorkerError",
]
