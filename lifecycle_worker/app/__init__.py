"""Worker process composition."""

from lifecycle_worker.app.worker import LifecycleWorker, run_forever

__all__ = ["LifecycleWorker", "run_forever"]
