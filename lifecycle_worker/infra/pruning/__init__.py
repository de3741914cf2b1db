"""Expired-row pruning."""

from lifecycle_worker.infra.pruning.pruner import Pruner
from lifecycle_worker.infra.pruning.repository import PruneRepository
from lifecycle_worker.infra.pruning.targets import PruneTarget, published_events_target

__all__ = ["PruneRepository", "PruneTarget", "Pruner", "published_events_target"]
