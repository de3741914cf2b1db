"""AccountEvent SQLAlchemy model for the transactional outbox.

Account lifecycle events are written to this table by the account write path
in the same transaction as the mutation that produced them. The outbox
publisher reads unpublished rows in ``id`` order, delivers them and sets
``published_at``.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lifecycle_worker.core.database.base import Base, IntegerPKMixin, TimestampMixin


class AccountEventType(StrEnum):
    """Lifecycle kinds emitted by the account system."""

    VERIFIED = "verified"
    PASSWORD_RESET = "reset"
    PASSWORD_CHANGE = "passwordChange"
    DELETE = "delete"
    PRIMARY_EMAIL_CHANGED = "primaryEmailChanged"
    PROFILE_DATA_CHANGE = "profileDataChange"
    LOGIN = "login"


class AccountEvent(Base, IntegerPKMixin, TimestampMixin):
    """Outbox row for one account lifecycle fact.

    Attributes:
        id: Monotonic primary key; defines delivery order
        account_id: Account the event belongs to
        event_type: Lifecycle kind (see AccountEventType)
        payload: Opaque structured event data
        created_at: When the write path recorded the event
        published_at: When the publisher confirmed delivery; NULL until then

    ``published_at`` is never cleared once set.
    """

    __tablename__ = "account_events"

    account_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment="Account identifier",
    )
    event_type: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Lifecycle event kind",
    )
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Event data",
    )
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the event was successfully delivered",
    )

    __table_args__ = (
        # Unpublished events in delivery order
        Index(
            "ix_account_events_unpublished",
            "published_at",
            "id",
            postgresql_where=(published_at.is_(None)),
        ),
    )

    @property
    def is_published(self) -> bool:
        """Check if the event has been delivered."""
        return self.published_at is not None

    def __repr__(self) -> str:
        status = "published" if self.is_published else "pending"
        return f"AccountEvent(id={self.id}, event_type={self.event_type!r}, status={status})"


__all__ = ["AccountEvent", "AccountEventType"]
