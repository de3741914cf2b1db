"""CLI utilities for running async operations and formatting output."""

from lifecycle_worker.cli.utils.async_runner import coro
from lifecycle_worker.cli.utils.formatters import emit, fail, job_result, note, row, section

__all__ = ["coro", "emit", "fail", "job_result", "note", "row", "section"]
