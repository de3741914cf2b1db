"""Schema version gate.

Reads the schema patch level from the ``db_metadata`` row named by the
configured patch key. Jobs call ``require`` once per run and skip the run
when the store is not yet at the level they need.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from lifecycle_worker.core.exceptions import MetadataMissing, SchemaNotReady
from lifecycle_worker.core.models.metadata import DbMetadata
from lifecycle_worker.infra.database.pool import PoolKind

if TYPE_CHECKING:
    from lifecycle_worker.infra.database.pool import PoolManager

logger = logging.getLogger(__name__)


class SchemaGate:
    """Read-only view of the persisted schema patch level."""

    def __init__(self, pools: PoolManager, patch_key: str) -> None:
        self._pools = pools
        self.patch_key = patch_key

    async def current_patch_level(self) -> int:
        """Return the store's current patch level.

        Read from the primary: the answer decides whether a job mutates.

        Raises:
            MetadataMissing: If the row is absent or not an integer.
        """
        async with self._pools.acquire(PoolKind.PRIMARY) as session:
            result = await session.execute(
                select(DbMetadata.value).where(DbMetadata.name == self.patch_key)
            )
            value = result.scalar_one_or_none()

        if value is None:
            raise MetadataMissing(
                f"Metadata row {self.patch_key!r} not found",
                extra={"patch_key": self.patch_key},
            )
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise MetadataMissing(
                f"Metadata row {self.patch_key!r} holds a non-integer value",
                extra={"patch_key": self.patch_key, "value": value},
            ) from e

    async def require(self, minimum: int) -> int:
        """Return the patch level if it is at least ``minimum``.

        Raises:
            MetadataMissing: If the patch level cannot be read.
            SchemaNotReady: If the patch level is below ``minimum``.
        """
        level = await self.current_patch_level()
        if level < minimum:
            raise SchemaNotReady(level, minimum, extra={"patch_key": self.patch_key})
        logger.debug(
            "Schema gate passed",
            extra={"patch_key": self.patch_key, "patch_level": level, "required": minimum},
        )
        return level


__all__ = ["SchemaGate"]
