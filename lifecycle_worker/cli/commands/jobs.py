"""Commands that run the worker or a single job tick."""

from __future__ import annotations

import asyncio
import sys

import click

from lifecycle_worker.app import LifecycleWorker, run_forever
from lifecycle_worker.cli.utils import coro, fail, job_result, note
from lifecycle_worker.core.settings import get_settings


@click.command(name="run")
@click.option(
    "--serve-metrics/--no-serve-metrics",
    default=False,
    help="Expose Prometheus metrics on APP_METRICS_HOST:APP_METRICS_PORT",
)
def run(serve_metrics: bool) -> None:
    """Run the publisher and pruner until SIGINT/SIGTERM."""
    settings = get_settings()

    if serve_metrics:
        from prometheus_client import start_http_server

        from lifecycle_worker.infra.metrics import REGISTRY

        start_http_server(settings.app.metrics_port, addr=settings.app.metrics_host, registry=REGISTRY)
        note(f"Metrics on http://{settings.app.metrics_host}:{settings.app.metrics_port}/metrics")

    worker = LifecycleWorker(settings)
    asyncio.run(run_forever(worker))


@click.command(name="publish-once")
@coro
async def publish_once() -> None:
    """Publish one page of outbox events and exit."""
    worker = LifecycleWorker(get_settings())
    try:
        if worker.publisher is None:
            fail("Outbox publisher is disabled (no publish URL or signing key)")
            sys.exit(1)
        result = await worker.publisher.tick()
    finally:
        await worker.stop()
    if not job_result(worker.publisher.name, result):
        sys.exit(1)


@click.command(name="prune-once")
@click.option("--force", is_flag=True, help="Prune even if ENABLE_PRUNING is false")
@coro
async def prune_once(force: bool) -> None:
    """Run one pruning pass and exit."""
    worker = LifecycleWorker(get_settings())
    if force:
        worker.pruner.enabled = True
    try:
        result = await worker.pruner.tick()
    finally:
        await worker.stop()
    if not job_result(worker.pruner.name, result):
        sys.exit(1)
