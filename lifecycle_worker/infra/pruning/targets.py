"""What the pruning scheduler deletes.

A target names a table, the timestamp column that ages its rows, and how old
a row must be before it is removed. Extra criteria narrow the match further.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime, timedelta

    from sqlalchemy import ColumnElement, Table


@dataclass(frozen=True)
class PruneTarget:
    """One expiry rule.

    Attributes:
        name: Label for logs and metrics
        table: Table to prune (single-column primary key)
        timestamp_column: Column compared against the cutoff
        max_age: Rows older than this are expired
        extra_criteria: Additional WHERE clauses
    """

    name: str
    table: Table
    timestamp_column: str
    max_age: timedelta
    extra_criteria: tuple[ColumnElement[bool], ...] = field(default=())

    def __post_init__(self) -> None:
        if len(self.table.primary_key.columns) != 1:
            msg = f"Prune target {self.name!r} needs a single-column primary key"
            raise ValueError(msg)
        if self.timestamp_column not in self.table.c:
            msg = f"Prune target {self.name!r}: no column {self.timestamp_column!r}"
            raise ValueError(msg)

    @property
    def primary_key(self) -> Any:
        return next(iter(self.table.primary_key.columns))

    def cutoff(self, run_started_at: datetime) -> datetime:
        """Expiry horizon for a run that started at ``run_started_at``."""
        return run_started_at - self.max_age

    def criteria(self, cutoff: datetime) -> tuple[ColumnElement[bool], ...]:
        """WHERE clauses selecting expired rows."""
        column = self.table.c[self.timestamp_column]
        return (column.is_not(None), column < cutoff, *self.extra_criteria)


def published_events_target(retention: timedelta) -> PruneTarget:
    """Published events older than ``retention``.

    Unpublished events have a NULL ``published_at`` and never match.
    """
    from lifecycle_worker.infra.events.outbox.models import AccountEvent

    return PruneTarget(
        name="published_events",
        table=AccountEvent.__table__,  # type: ignore[arg-type]
        timestamp_column="published_at",
        max_age=retention,
    )


__all__ = ["PruneTarget", "published_events_target"]
