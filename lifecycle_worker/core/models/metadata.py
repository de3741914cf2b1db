"""Key/value metadata table maintained by migration tooling."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from lifecycle_worker.core.database.base import Base


class DbMetadata(Base):
    """One row per key; the worker only reads it.

    The row named by ``AppSettings.patch_key`` holds the schema patch level.
    """

    __tablename__ = "db_metadata"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"DbMetadata(name={self.name!r}, value={self.value!r})"


__all__ = ["DbMetadata"]
