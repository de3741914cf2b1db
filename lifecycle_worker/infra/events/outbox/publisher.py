"""Outbox publisher for account lifecycle events.

Each run:
1. Checks the schema gate
2. Reads a page of unpublished events from the replica, ordered by ``id``
3. For each event in order: signs it, delivers it, then marks it published
   on the primary (the durability point)

Delivery is at-least-once. An event is marked only after the sink accepted
it, so a crash between delivery and mark leads to a redelivery, never a
loss. The first delivery failure ends the run: later events are not marked
while an earlier one is stuck, and the next run resumes from that event.
"""

from __future__ import annotations

from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING

from lifecycle_worker.infra.events.outbox.repository import OutboxRepository
from lifecycle_worker.infra.events.signing import event_claims
from lifecycle_worker.infra.metrics.prometheus import (
    events_published_total,
    outbox_backlog,
    outbox_oldest_unpublished_age_seconds,
)
from lifecycle_worker.infra.tasks.recurring import RecurringJob

if TYPE_CHECKING:
    from lifecycle_worker.core.settings.notifications import NotificationSettings
    from lifecycle_worker.infra.database.pool import PoolManager
    from lifecycle_worker.infra.database.schema_gate import SchemaGate
    from lifecycle_worker.infra.events.outbox.sink import NotificationSink
    from lifecycle_worker.infra.events.signing import TokenClaims, TokenSigner

logger = logging.getLogger(__name__)


class OutboxPublisher(RecurringJob):
    """Polls the outbox and publishes events to the notification sink.

    Attributes:
        page_size: Maximum events read per run
        min_patch_level: Schema patch level required before publishing
    """

    name = "outbox-publisher"
    start_immediately = True

    def __init__(
        self,
        *,
        pools: PoolManager,
        gate: SchemaGate,
        signer: TokenSigner,
        claims: TokenClaims,
        sink: NotificationSink | None,
        interval_seconds: float = 10.0,
        page_size: int = 100,
        min_patch_level: int = 0,
        jitter: float = 0.0,
        repository: OutboxRepository | None = None,
    ) -> None:
        """Initialize the publisher.

        Args:
            pools: Primary/replica pools
            gate: Schema version gate
            signer: Token signer holding the loaded private key
            claims: Issuer identity for every token
            sink: Delivery endpoint; None makes every run a no-op
            interval_seconds: Seconds between polls
            page_size: Events read per run
            min_patch_level: Required schema patch level
            jitter: Random fraction of the interval added to each tick
            repository: Outbox queries (injectable for tests)
        """
        super().__init__(interval_seconds=interval_seconds, enabled=True, jitter=jitter)
        self.pools = pools
        self.gate = gate
        self.signer = signer
        self.claims = claims
        self.sink = sink
        self.page_size = page_size
        self.min_patch_level = min_patch_level
        self.repository = repository or OutboxRepository()

    @classmethod
    def from_settings(
        cls,
        settings: NotificationSettings,
        *,
        pools: PoolManager,
        gate: SchemaGate,
        signer: TokenSigner,
        sink: NotificationSink | None,
    ) -> OutboxPublisher:
        from lifecycle_worker.infra.events.signing import TokenClaims

        return cls(
            pools=pools,
            gate=gate,
            signer=signer,
            claims=TokenClaims.from_settings(settings.jwt),
            sink=sink,
            interval_seconds=settings.poll_interval_seconds,
            page_size=settings.page_size,
            min_patch_level=settings.min_patch_level,
            jitter=settings.jitter,
        )

    async def run_once(self) -> int:
        """Publish one page of events.

        Returns:
            Number of events delivered and marked published in this run
        """
        if self.sink is None:
            logger.debug("No publish URL configured, nothing to do")
            return 0

        await self.gate.require(self.min_patch_level)

        async with self.pools.read() as session:
            events = await self.repository.fetch_unpublished(session, limit=self.page_size)

        if not events:
            await self._record_backlog()
            return 0

        published = 0
        try:
            for event in events:
                token = self.signer.sign(event_claims(event), self.claims)
                await self.sink.deliver(event.id, token)

                async with self.pools.write() as session:
                    marked = await self.repository.mark_published(
                        session, event.id, published_at=datetime.now(UTC)
                    )

                published += 1
                events_published_total.labels(event_type=event.event_type).inc()
                if not marked:
                    logger.debug(
                        "Event already marked published by another worker",
                        extra={"event_id": event.id},
                    )
        finally:
            logger.info(
                "Outbox run finished",
                extra={"published": published, "fetched": len(events)},
            )

        await self._record_backlog()
        return published

    async def _record_backlog(self) -> None:
        async with self.pools.read() as session:
            backlog = await self.repository.count_unpublished(session)
            oldest = await self.repository.oldest_unpublished_created_at(session)

        outbox_backlog.set(backlog)
        age = (datetime.now(UTC) - oldest).total_seconds() if oldest else 0.0
        outbox_oldest_unpublished_age_seconds.set(max(age, 0.0))


__all__ = ["OutboxPublisher"]
