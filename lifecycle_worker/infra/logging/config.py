"""Process-wide logging setup.

The root logger gets a single ``QueueHandler``; a ``QueueListener`` thread
drains the queue into the console and (optionally) a rotating file, so job
coroutines never block on log I/O. Records are JSON Lines by default and
carry the ``job``/``run_id`` log context of the tick that emitted them.
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue
import time
from typing import TYPE_CHECKING, Any

from lifecycle_worker.infra.logging.context import ContextInjectingFilter

if TYPE_CHECKING:
    from lifecycle_worker.core.settings.logs import LoggingSettings

_log_queue: Queue[logging.LogRecord] | None = None
_listener: QueueListener | None = None
_queue_handler: QueueHandler | None = None
_LOGGING_INITIALIZED = False

logger = logging.getLogger(__name__)

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_TEXT_FORMAT_WITH_FUNC = "%(asctime)s %(levelname)-8s %(name)s.%(funcName)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def complete(max_wait: float = 5.0) -> None:
    """Block until the listener has drained the queue (or ``max_wait`` passes)."""
    if _log_queue is None or _listener is None:
        return

    deadline = time.monotonic() + max_wait
    while not _log_queue.empty() and time.monotonic() < deadline:
        time.sleep(0.01)


def shutdown() -> None:
    """Flush, stop the listener and detach the queue handler."""
    global _log_queue, _listener, _queue_handler

    if _listener is not None:
        complete()
        _listener.stop()
        _listener = None

    if _queue_handler is not None:
        logging.getLogger().removeHandler(_queue_handler)
        _queue_handler = None

    _log_queue = None


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **overrides: Any,
) -> None:
    """Configure logging once per process.

    Args:
        log_settings: Settings to apply; loaded from the environment when omitted.
        force: Apply again even if logging is already configured.
        **overrides: Keyword arguments passed through to ``configure_logging``.
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    if log_settings is None:
        from lifecycle_worker.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    configure_logging(**{**log_settings.to_logging_kwargs(), **overrides})
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    console_level: str | None = None,
    file_level: str | None = None,
    file_path: str | Path | None = None,
    json_logs: bool = True,
    console_enabled: bool = True,
    include_context: bool = True,
    capture_warnings: bool = True,
    include_function_name: bool = False,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    service_name: str = "lifecycle-worker",
) -> None:
    """Install the queue-based logging pipeline, replacing any previous one.

    Args:
        log_level: Root level.
        console_level: Console threshold, defaults to ``log_level``.
        file_level: File threshold, defaults to ``log_level``.
        file_path: Rotating log file; None writes no file.
        json_logs: JSON Lines output instead of plain text.
        console_enabled: Write to stderr.
        include_context: Copy the contextvar log context onto each record.
        capture_warnings: Route ``warnings.warn`` through logging.
        include_function_name: Add the emitting function to each record.
        file_max_bytes: Rotation size.
        file_backup_count: Rotated files kept.
        service_name: ``service`` field on every JSON record.
    """
    if capture_warnings:
        logging.captureWarnings(True)

    shutdown()

    path = Path(file_path) if file_path else None
    if path:
        path.parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "root": {"level": log_level.upper(), "handlers": []},
        }
    )

    formatter = _build_formatter(json_logs, include_function_name, service_name)
    handlers: list[logging.Handler] = []
    if console_enabled:
        console = logging.StreamHandler()
        console.setLevel((console_level or log_level).upper())
        console.setFormatter(formatter)
        handlers.append(console)
    if path:
        rotating = RotatingFileHandler(
            path,
            maxBytes=file_max_bytes,
            backupCount=file_backup_count,
            encoding="utf-8",
        )
        rotating.setLevel((file_level or log_level).upper())
        rotating.setFormatter(formatter)
        handlers.append(rotating)

    _install_queue(handlers, include_context=include_context)
    logger.debug(
        "Logging configured",
        extra={"console": console_enabled, "file": str(path) if path else None},
    )


def _build_formatter(
    json_logs: bool,
    include_function_name: bool,
    service_name: str,
) -> logging.Formatter:
    if not json_logs:
        fmt = _TEXT_FORMAT_WITH_FUNC if include_function_name else _TEXT_FORMAT
        return logging.Formatter(fmt=fmt, datefmt=_DATE_FORMAT)

    from lifecycle_worker.infra.logging.formatters import JSONFormatter

    fmt_keys = {"level": "levelname", "logger": "name", "message": "message"}
    if include_function_name:
        fmt_keys["function"] = "funcName"
    return JSONFormatter(fmt_keys=fmt_keys, static={"service": service_name})


def _install_queue(handlers: list[logging.Handler], *, include_context: bool) -> None:
    global _log_queue, _listener, _queue_handler

    _log_queue = Queue()
    if handlers:
        _listener = QueueListener(_log_queue, *handlers, respect_handler_level=True)
        _listener.start()
        atexit.register(shutdown)

    _queue_handler = QueueHandler(_log_queue)
    if include_context:
        # Handler-level so records propagated from child loggers get the context too
        _queue_handler.addFilter(ContextInjectingFilter())
    logging.getLogger().addHandler(_queue_handler)


__all__ = ["complete", "configure_logging", "setup_logging", "shutdown"]
