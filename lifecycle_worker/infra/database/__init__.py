"""Database infrastructure: bounded primary/replica pools and the schema gate."""

from lifecycle_worker.infra.database.pool import ConnectionPool, PoolKind, PoolManager
from lifecycle_worker.infra.database.schema_gate import SchemaGate

__all__ = ["ConnectionPool", "PoolKind", "PoolManager", "SchemaGate"]
