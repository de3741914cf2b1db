"""Main CLI entry point for lifecycle-worker commands."""

import click

from lifecycle_worker.cli.commands import config, jobs, status
from lifecycle_worker.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="lifecycle-worker")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Lifecycle Worker - outbox publishing and pruning for account events.

    \b
    Commands:
      run           Run the scheduled jobs until signalled
      publish-once  Publish one page of pending events
      prune-once    Run one pruning pass
      status        Outbox backlog and schema patch level
      config show   Effective configuration (secrets masked)
    """
    ctx.ensure_object(dict)


cli.add_command(jobs.run)
cli.add_command(jobs.publish_once)
cli.add_command(jobs.prune_once)
cli.add_command(status.status)
cli.add_command(config.config)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
