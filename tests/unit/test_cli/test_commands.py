"""Smoke tests for the click CLI."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
import json

from click.testing import CliRunner
import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session

from lifecycle_worker.cli.main import cli
from lifecycle_worker.core.database import Base
from lifecycle_worker.core.models import AccountEvent, DbMetadata


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def cli_db(tmp_path, monkeypatch):
    """SQLite file with tables, wired into DB_MASTER/DB_SLAVE settings."""
    path = tmp_path / "cli.db"
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)

    url = f"sqlite+aiosqlite:///{path}"
    monkeypatch.setenv("DB_MASTER__DSN", url)
    monkeypatch.setenv("DB_SLAVE__DSN", url)
    try:
        yield engine
    finally:
        engine.dispose()


def seed(engine, *, patch_level: int | None = None, published: int = 0, pending: int = 0) -> None:
    long_ago = datetime.now(UTC) - timedelta(days=90)
    with Session(engine) as session:
        if patch_level is not None:
            session.add(DbMetadata(name="schema-patch-level", value=str(patch_level)))
        for i in range(published):
            session.add(AccountEvent(account_id=f"p{i}", event_type="login", payload={}, created_at=long_ago, published_at=long_ago))
        for i in range(pending):
            session.add(AccountEvent(account_id=f"u{i}", event_type="verified", payload={}, created_at=long_ago))
        session.commit()


def count_events(engine) -> int:
    with Session(engine) as session:
        return session.execute(select(func.count()).select_from(AccountEvent)).scalar_one()


@pytest.mark.unit
class TestCli:
    """Test suite for the lifecycle-worker command group."""

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("run", "publish-once", "prune-once", "status", "config"):
            assert command in result.output

    def test_config_show_masks_secrets(self, runner, monkeypatch):
        monkeypatch.setenv("DB_MASTER__PASSWORD", "hunter2")

        result = runner.invoke(cli, ["config", "show", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["app"]["patch_key"] == "schema-patch-level"
        assert "hunter2" not in result.output

    def test_config_show_table(self, runner):
        result = runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0
        assert "pruning" in result.output
        assert "master.connection_limit" in result.output

    def test_status_json(self, runner, cli_db):
        seed(cli_db, patch_level=4, pending=3)

        result = runner.invoke(cli, ["status", "--format", "json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["backlog"] == 3
        assert data["patch_level"] == 4
        assert data["oldest_unpublished_age_seconds"] > 0

    def test_status_without_metadata(self, runner, cli_db):
        result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0, result.output
        assert "missing" in result.output

    def test_prune_once_disabled(self, runner, cli_db):
        seed(cli_db, patch_level=0, published=2)

        result = runner.invoke(cli, ["prune-once"])

        assert result.exit_code == 0, result.output
        assert "disabled" in result.output
        assert count_events(cli_db) == 2

    def test_prune_once_forced(self, runner, cli_db):
        seed(cli_db, patch_level=0, published=2, pending=1)

        result = runner.invoke(cli, ["prune-once", "--force"])

        assert result.exit_code == 0, result.output
        assert "processed 2" in result.output
        assert count_events(cli_db) == 1

    def test_publish_once_without_url(self, runner, cli_db):
        result = runner.invoke(cli, ["publish-once"])

        assert result.exit_code == 1

    def test_run_serves_metrics_on_own_port(self, runner, cli_db, monkeypatch):
        import prometheus_client

        from lifecycle_worker.cli.commands import jobs

        bound = []
        monkeypatch.setattr(prometheus_client, "start_http_server", lambda port, addr, registry: bound.append((addr, port)))

        async def no_loop(worker):
            return None

        monkeypatch.setattr(jobs, "run_forever", no_loop)
        monkeypatch.setenv("APP_PORT", "8000")
        monkeypatch.setenv("APP_METRICS_HOST", "127.0.0.1")
        monkeypatch.setenv("APP_METRICS_PORT", "9100")

        result = runner.invoke(cli, ["run", "--serve-metrics"])

        assert result.exit_code == 0, result.output
        assert bound == [("127.0.0.1", 9100)]
