"""Pruning scheduler.

On each tick, if enabled and the schema gate passes, expired rows of every
target are deleted in bounded batches. Each batch is its own transaction on
the primary, so a failing batch keeps the work of earlier ones. A target is
done when a batch deletes nothing or ``max_batches`` is reached; the rest is
left for the next tick.
"""

from __future__ import annotations

from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from lifecycle_worker.core.exceptions import BatchDeleteFailure
from lifecycle_worker.infra.metrics.prometheus import prune_batches_total, rows_pruned_total
from lifecycle_worker.infra.pruning.repository import PruneRepository
from lifecycle_worker.infra.pruning.targets import published_events_target
from lifecycle_worker.infra.tasks.recurring import RecurringJob

if TYPE_CHECKING:
    from collections.abc import Sequence

    from lifecycle_worker.core.settings.pruning import PruningSettings
    from lifecycle_worker.infra.database.pool import PoolManager
    from lifecycle_worker.infra.database.schema_gate import SchemaGate
    from lifecycle_worker.infra.pruning.targets import PruneTarget

logger = logging.getLogger(__name__)


class Pruner(RecurringJob):
    """Deletes expired rows on an approximate interval."""

    name = "pruner"

    def __init__(
        self,
        *,
        pools: PoolManager,
        gate: SchemaGate,
        targets: Sequence[PruneTarget],
        interval_seconds: float,
        enabled: bool = True,
        batch_size: int = 1000,
        max_batches: int = 50,
        min_patch_level: int = 0,
        jitter: float = 0.0,
        repository: PruneRepository | None = None,
    ) -> None:
        super().__init__(interval_seconds=interval_seconds, enabled=enabled, jitter=jitter)
        self.pools = pools
        self.gate = gate
        self.targets = tuple(targets)
        self.batch_size = batch_size
        self.max_batches = max_batches
        self.min_patch_level = min_patch_level
        self.repository = repository or PruneRepository()

    @classmethod
    def from_settings(
        cls,
        settings: PruningSettings,
        *,
        pools: PoolManager,
        gate: SchemaGate,
        targets: Sequence[PruneTarget] | None = None,
    ) -> Pruner:
        return cls(
            pools=pools,
            gate=gate,
            targets=targets or (published_events_target(settings.event_retention),),
            interval_seconds=settings.interval_seconds,
            enabled=settings.enable_pruning,
            batch_size=settings.prune_batch_size,
            max_batches=settings.prune_max_batches,
            min_patch_level=settings.prune_min_patch_level,
            jitter=settings.prune_jitter,
        )

    async def run_once(self) -> int:
        """Prune every target once.

        Returns:
            Total rows deleted in this run

        Raises:
            BatchDeleteFailure: A batch failed; the remaining batches and
                targets of this run are skipped.
        """
        if not self.enabled:
            logger.debug("Pruning disabled, nothing to do")
            return 0

        await self.gate.require(self.min_patch_level)

        started_at = datetime.now(UTC)
        total = 0
        for target in self.targets:
            total += await self._prune_target(target, target.cutoff(started_at))

        logger.info("Prune run finished", extra={"deleted": total})
        return total

    async def _prune_target(self, target: PruneTarget, cutoff: datetime) -> int:
        deleted = 0
        for batch_number in range(1, self.max_batches + 1):
            try:
                async with self.pools.write() as session:
                    count = await self.repository.delete_batch(
                        session, target, cutoff, self.batch_size
                    )
            except SQLAlchemyError as e:
                raise BatchDeleteFailure(
                    f"Batch delete failed for {target.name}: {e}",
                    target=target.name,
                    deleted_before_failure=deleted,
                    extra={"batch": batch_number},
                ) from e

            prune_batches_total.labels(target=target.name).inc()
            if count == 0:
                break
            deleted += count
            rows_pruned_total.labels(target=target.name).inc(count)
        else:
            logger.info(
                "Max batches reached, remaining rows left for next tick",
                extra={"target": target.name, "max_batches": self.max_batches},
            )

        logger.debug(
            "Target pruned",
            extra={"target": target.name, "deleted": deleted, "cutoff": cutoff.isoformat()},
        )
        return deleted


__all__ = ["Pruner"]
