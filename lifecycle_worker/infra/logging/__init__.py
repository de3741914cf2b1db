"""Logging infrastructure.

Structured JSONL logging with automatic context injection:

    from lifecycle_worker.infra.logging import set_log_context
    import logging

    logger = logging.getLogger(__name__)

    set_log_context(job="pruner", run_id="3f2a")
    logger.info("Pruning started")  # Includes job and run_id
"""

from lifecycle_worker.infra.logging.config import (
    complete,
    configure_logging,
    setup_logging,
    shutdown,
)
from lifecycle_worker.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    log_context,
    set_log_context,
)
from lifecycle_worker.infra.logging.formatters import JSONFormatter

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "clear_log_context",
    "complete",
    "configure_logging",
    "get_log_context",
    "log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
