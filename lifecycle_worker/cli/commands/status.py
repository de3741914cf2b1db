"""Outbox and schema status."""

from __future__ import annotations

from datetime import UTC, datetime
import json
from typing import Any

import click

from lifecycle_worker.cli.utils import coro, row, section
from lifecycle_worker.core.exceptions import MetadataMissing
from lifecycle_worker.core.settings import get_settings
from lifecycle_worker.infra.database import PoolManager, SchemaGate
from lifecycle_worker.infra.events.outbox import OutboxRepository


async def collect_status(pools: PoolManager, patch_key: str) -> dict[str, Any]:
    """Backlog, oldest unpublished age and schema patch level."""
    repository = OutboxRepository()
    async with pools.read() as session:
        backlog = await repository.count_unpublished(session)
        oldest = await repository.oldest_unpublished_created_at(session)

    try:
        patch_level: int | None = await SchemaGate(pools, patch_key).current_patch_level()
    except MetadataMissing:
        patch_level = None

    age = (datetime.now(UTC) - oldest).total_seconds() if oldest is not None else None
    return {
        "backlog": backlog,
        "oldest_unpublished_age_seconds": age,
        "patch_level": patch_level,
        "pools": pools.stats(),
    }


@click.command(name="status")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@coro
async def status(output_format: str) -> None:
    """Show outbox backlog and schema patch level."""
    settings = get_settings()
    pools = PoolManager.from_settings(settings.db)
    try:
        data = await collect_status(pools, settings.app.patch_key)
    finally:
        await pools.dispose()

    if output_format == "json":
        click.echo(json.dumps(data, indent=2))
        return

    section("Lifecycle Worker Status")
    age = data["oldest_unpublished_age_seconds"]
    level = data["patch_level"]
    row("Backlog", data["backlog"])
    row("Oldest unpublished", "-" if age is None else f"{age:.0f}s")
    row("Schema patch level", "missing" if level is None else level)
