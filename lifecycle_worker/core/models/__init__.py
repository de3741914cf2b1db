"""ORM models owned by the worker.

Importing this package registers every table on ``Base.metadata``.
"""

from lifecycle_worker.core.models.metadata import DbMetadata
from lifecycle_worker.infra.events.outbox.models import AccountEvent, AccountEventType

__all__ = ["AccountEvent", "AccountEventType", "DbMetadata"]
