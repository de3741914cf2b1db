"""Declarative base and model mixins."""

from lifecycle_worker.core.database.base import Base, IntegerPKMixin, TimestampMixin

__all__ = ["Base", "IntegerPKMixin", "TimestampMixin"]
