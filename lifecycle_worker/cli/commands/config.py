"""Configuration management commands."""

import json

import click

from lifecycle_worker.cli.utils import note, row, section
from lifecycle_worker.core.settings import get_settings


@click.group(name="config")
def config() -> None:
    """Configuration management commands."""


@config.command()
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "table"]),
    default="table",
    help="Output format",
)
def show(output_format: str) -> None:
    """Display current configuration settings (secrets masked)."""
    data = get_settings().masked_dump()

    if output_format == "json":
        click.echo(json.dumps(data, indent=2))
        return

    note("Secrets are masked.")
    for domain, values in data.items():
        section(domain)
        for key, value in _flatten(values):
            row(key, value, width=36)


def _flatten(values: dict, prefix: str = "") -> list[tuple[str, object]]:
    rows: list[tuple[str, object]] = []
    for key, value in values.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            rows.extend(_flatten(value, f"{name}."))
        else:
            rows.append((name, value))
    return rows
