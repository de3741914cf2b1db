"""Metrics infrastructure."""

from lifecycle_worker.infra.metrics.prometheus import REGISTRY

__all__ = ["REGISTRY"]
