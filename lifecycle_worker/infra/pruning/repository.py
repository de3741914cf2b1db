"""Bounded batch deletes for expired rows."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

    from lifecycle_worker.infra.pruning.targets import PruneTarget


class PruneRepository:
    """Delete and count expired rows of a prune target."""

    async def delete_batch(
        self,
        session: AsyncSession,
        target: PruneTarget,
        cutoff: datetime,
        batch_size: int,
    ) -> int:
        """Delete at most ``batch_size`` expired rows, lowest primary key first.

        The ids are selected first and deleted by list: MySQL rejects a
        ``LIMIT`` inside an ``IN`` subquery.

        Args:
            session: Database session (primary); the caller commits
            target: Expiry rule
            cutoff: Rows with a timestamp before this are expired
            batch_size: Upper bound on rows deleted

        Returns:
            Number of rows deleted
        """
        pk = target.primary_key
        batch = (
            select(pk)
            .where(*target.criteria(cutoff))
            .order_by(pk)
            .limit(batch_size)
        )
        ids = (await session.execute(batch)).scalars().all()
        if not ids:
            return 0

        result = await session.execute(delete(target.table).where(pk.in_(ids)))
        # Some drivers report -1 for a DELETE
        return result.rowcount if result.rowcount >= 0 else len(ids)

    async def count_expired(
        self,
        session: AsyncSession,
        target: PruneTarget,
        cutoff: datetime,
    ) -> int:
        """Count rows a run starting now would delete."""
        stmt = select(func.count()).select_from(target.table).where(*target.criteria(cutoff))
        result = await session.execute(stmt)
        return result.scalar_one()


__all__ = ["PruneRepository"]
