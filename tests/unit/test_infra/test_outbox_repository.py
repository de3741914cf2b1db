"""Unit tests for the outbox repository."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from lifecycle_worker.infra.events.outbox import AccountEvent, AccountEventType, OutboxRepository


@pytest.mark.unit
@pytest.mark.asyncio
class TestOutboxRepository:
    """Test suite for OutboxRepository."""

    async def test_append_commits_with_caller(self, pools):
        repo = OutboxRepository()

        with pytest.raises(RuntimeError):
            async with pools.write() as session:
                repo.append(session, account_id="acct-1", event_type=AccountEventType.DELETE)
                raise RuntimeError("account write failed")

        async with pools.read() as session:
            assert await repo.count_unpublished(session) == 0

    async def test_fetch_unpublished_in_id_order(self, pools, add_events):
        published = await add_events(2, published_at=datetime.now(UTC))
        pending = await add_events(3)

        async with pools.read() as session:
            events = await OutboxRepository().fetch_unpublished(session, limit=10)

        assert [e.id for e in events] == pending
        assert not set(published) & {e.id for e in events}

    async def test_fetch_respects_limit(self, pools, add_events):
        ids = await add_events(5)

        async with pools.read() as session:
            events = await OutboxRepository().fetch_unpublished(session, limit=2)

        assert [e.id for e in events] == ids[:2]

    async def test_mark_published_once(self, pools, add_events):
        (event_id,) = await add_events(1)
        first_mark = datetime.now(UTC) - timedelta(minutes=5)
        repo = OutboxRepository()

        async with pools.write() as session:
            assert await repo.mark_published(session, event_id, published_at=first_mark) is True
        async with pools.write() as session:
            assert await repo.mark_published(session, event_id) is False

        async with pools.read() as session:
            event = await session.get(AccountEvent, event_id)
        assert event.published_at.replace(tzinfo=UTC) == first_mark

    async def test_backlog_figures(self, pools, add_events):
        created = datetime.now(UTC) - timedelta(hours=1)
        await add_events(2, created_at=created)
        repo = OutboxRepository()

        async with pools.read() as session:
            assert await repo.count_unpublished(session) == 2
            oldest = await repo.oldest_unpublished_created_at(session)

        assert oldest == created

    async def test_no_backlog(self, pools):
        async with pools.read() as session:
            assert await OutboxRepository().oldest_unpublished_created_at(session) is None
