"""Terminal output for the worker commands.

Every line starts with a short bracketed tag (``[ok]``, ``[skip]``,
``[fail]``, ``[note]``) so output stays greppable when colour is stripped,
e.g. in container logs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from lifecycle_worker.infra.tasks import JobOutcome

if TYPE_CHECKING:
    from lifecycle_worker.infra.tasks import JobResult

_TAG_COLOURS = {"ok": "green", "skip": "yellow", "fail": "red", "note": "blue"}


def emit(tag: str, message: str, *, err: bool = False) -> None:
    """Print ``message`` behind a coloured ``[tag]``."""
    label = click.style(f"[{tag}]", fg=_TAG_COLOURS[tag], bold=True)
    click.echo(f"{label} {message}", err=err)


def note(message: str) -> None:
    emit("note", message)


def fail(message: str) -> None:
    emit("fail", message, err=True)


def section(title: str) -> None:
    """Start a titled block of ``key  value`` rows."""
    click.echo()
    click.secho(title, bold=True, underline=True)


def row(key: str, value: object, width: int = 20) -> None:
    click.echo(f"  {key + ':':<{width}} {value}")


def job_result(job_name: str, result: JobResult) -> bool:
    """Print the outcome of one job run.

    Returns:
        False if the run failed, True otherwise (including skipped and disabled).
    """
    if result.outcome is JobOutcome.SUCCESS:
        emit("ok", f"{job_name}: processed {result.processed} (run {result.run_id})")
    elif result.outcome is JobOutcome.DISABLED:
        emit("skip", f"{job_name}: disabled")
    elif result.outcome in (JobOutcome.SKIPPED, JobOutcome.DROPPED):
        emit("skip", f"{job_name}: {result.error or result.outcome}")
    else:
        fail(f"{job_name}: {result.outcome} ({result.error})")
        return False
    return True
