"""Transactional outbox for account lifecycle events.

The outbox pattern ensures reliable event publishing by:
1. Writing events to a database table in the same transaction as the account change
2. Polling that table from a background publisher that signs and delivers each event
3. Marking events as published only after successful delivery

This guarantees at-least-once delivery semantics.
"""

from lifecycle_worker.infra.events.outbox.models import AccountEvent, AccountEventType
from lifecycle_worker.infra.events.outbox.publisher import OutboxPublisher
from lifecycle_worker.infra.events.outbox.repository import OutboxRepository
from lifecycle_worker.infra.events.outbox.sink import NotificationSink

__all__ = [
    "AccountEvent",
    "AccountEventType",
    "NotificationSink",
    "OutboxPublisher",
    "OutboxRepository",
]
