"""Repository for AccountEvent outbox operations.

Provides methods for:
- Staging events on the write path's own transaction
- Fetching unpublished events in delivery order
- Marking events as published
- Backlog figures for monitoring
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update

from lifecycle_worker.infra.events.outbox.models import AccountEvent

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


class OutboxRepository:
    """Queries used by the outbox publisher and by the account write path."""

    def append(
        self,
        session: AsyncSession,
        *,
        account_id: str,
        event_type: str,
        payload: dict[str, Any] | None = None,
        created_at: datetime | None = None,
    ) -> AccountEvent:
        """Stage an event on the caller's session.

        Nothing is committed here: the event becomes durable together with
        the caller's account mutation, or not at all.

        Example:
            async with session.begin():
                account.email_verified = True
                repo.append(session, account_id=account.uid, event_type="verified")
        """
        event = AccountEvent(
            account_id=account_id,
            event_type=str(event_type),
            payload=payload or {},
            created_at=created_at or datetime.now(UTC),
        )
        session.add(event)
        return event

    async def fetch_unpublished(
        self,
        session: AsyncSession,
        *,
        limit: int = 100,
    ) -> Sequence[AccountEvent]:
        """Fetch a page of unpublished events, oldest first by ``id``.

        Args:
            session: Database session (replica)
            limit: Maximum number of events to fetch

        Returns:
            Unpublished events in non-decreasing ``id`` order
        """
        stmt = (
            select(AccountEvent)
            .where(AccountEvent.published_at.is_(None))
            .order_by(AccountEvent.id.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def mark_published(
        self,
        session: AsyncSession,
        event_id: int,
        *,
        published_at: datetime | None = None,
    ) -> bool:
        """Set ``published_at`` for one event.

        A row that is already published keeps its original timestamp.

        Args:
            session: Database session (primary)
            event_id: ID of the delivered event
            published_at: Delivery time, defaults to now

        Returns:
            True if this call marked the row, False if it was already marked
            (or no longer exists)
        """
        stmt = (
            update(AccountEvent)
            .where(AccountEvent.id == event_id, AccountEvent.published_at.is_(None))
            .values(published_at=published_at or datetime.now(UTC))
        )
        result = await session.execute(stmt)
        return bool(result.rowcount)

    async def count_unpublished(self, session: AsyncSession) -> int:
        """Count events waiting to be published."""
        stmt = (
            select(func.count())
            .select_from(AccountEvent)
            .where(AccountEvent.published_at.is_(None))
        )
        result = await session.execute(stmt)
        return result.scalar_one()

    async def oldest_unpublished_created_at(self, session: AsyncSession) -> datetime | None:
        """Creation time of the oldest unpublished event, if any."""
        stmt = select(func.min(AccountEvent.created_at)).where(AccountEvent.published_at.is_(None))
        result = await session.execute(stmt)
        oldest = result.scalar_one_or_none()
        if oldest is not None and oldest.tzinfo is None:
            oldest = oldest.replace(tzinfo=UTC)
        return oldest


__all__ = ["OutboxRepository"]
