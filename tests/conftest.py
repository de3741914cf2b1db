"""Pytest configuration and shared fixtures.

Organization:
    - Database Fixtures: file-backed SQLite engine, pool manager, metadata seeding
    - Signing Fixtures: RSA key material, signer and issuer claims
    - Sink Fixtures: recording HTTP endpoint on httpx.MockTransport

Stores are file-backed SQLite (aiosqlite) so that several sessions see the
same data, as the primary and replica do in production.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass, field
import os
from typing import TYPE_CHECKING

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

    from lifecycle_worker.infra.database import PoolManager

# Ensure tests run without external infrastructure
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("NOTIFICATIONS_PUBLISH_URL", "")
os.environ.setdefault("ENABLE_PRUNING", "false")

_HOST_ENV_PREFIXES = ("MYSQL_", "NOTIFICATIONS_JWT_", "APP_METRICS_")
_HOST_ENV_NAMES = ("NODE_ENV", "HOST", "PORT", "SCHEMA_PATCH_KEY", "NOTIFICATIONS_POLL_INTERVAL", "CONFIG_DIR", "CONFIG_FILES")


@pytest.fixture(autouse=True)
def _isolate_host_env(monkeypatch):
    """Unprefixed names read by the settings must not leak in from the host environment."""
    for name in list(os.environ):
        if name in _HOST_ENV_NAMES or name.startswith(_HOST_ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Settings loaders are lru_cached; start every test from the environment."""
    from lifecycle_worker.core.settings import clear_all_caches

    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    """SQLAlchemy URL of a fresh SQLite file for this test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'worker.db'}"


@pytest.fixture
async def db_engine(db_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create async engine with all tables created.

    Yields:
        Async SQLAlchemy engine connected to a file-backed SQLite database.
    """
    from lifecycle_worker.core.database import Base
    import lifecycle_worker.core.models  # noqa: F401  (register tables)

    engine = create_async_engine(db_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def make_pools(db_engine: AsyncEngine) -> Callable[..., PoolManager]:
    """Factory for pool managers sharing the test engine.

    Example:
        pools = make_pools(connection_limit=1, queue_limit=1)
    """
    from lifecycle_worker.core.settings import PoolSettings
    from lifecycle_worker.infra.database import ConnectionPool, PoolKind, PoolManager

    def factory(**pool_settings) -> PoolManager:
        settings = PoolSettings(**pool_settings)
        return PoolManager(
            primary=ConnectionPool(PoolKind.PRIMARY, settings, engine=db_engine),
            replica=ConnectionPool(PoolKind.REPLICA, settings, engine=db_engine),
        )

    return factory


@pytest.fixture
def pools(make_pools) -> PoolManager:
    """Pool manager with default limits over the test engine."""
    return make_pools()


@pytest.fixture
def set_patch_level(pools: PoolManager) -> Callable[[int | str], Awaitable[None]]:
    """Write the ``schema-patch-level`` metadata row."""
    from sqlalchemy import delete

    from lifecycle_worker.core.models import DbMetadata

    async def setter(level: int | str, key: str = "schema-patch-level") -> None:
        async with pools.write() as session:
            await session.execute(delete(DbMetadata).where(DbMetadata.name == key))
            session.add(DbMetadata(name=key, value=str(level)))

    return setter


@pytest.fixture
def add_events(pools: PoolManager) -> Callable[..., Awaitable[list[int]]]:
    """Insert outbox events and return their ids.

    Example:
        ids = await add_events(3)
        ids = await add_events(2, published_at=datetime.now(UTC) - timedelta(days=40))
    """
    from lifecycle_worker.infra.events.outbox import OutboxRepository

    repository = OutboxRepository()

    async def adder(count: int, *, event_type: str = "verified", published_at=None, **kwargs) -> list[int]:
        async with pools.write() as session:
            events = [
                repository.append(
                    session,
                    account_id=f"acct-{i}",
                    event_type=event_type,
                    payload={"n": i},
                    **kwargs,
                )
                for i in range(count)
            ]
            for event in events:
                event.published_at = published_at
            await session.flush()
            return [event.id for event in events]

    return adder


# ============================================================================
# Signing Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def rsa_private_pem() -> str:
    """PEM-encoded 2048-bit RSA private key."""
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def rsa_public_pem(rsa_private_pem: str) -> str:
    """Public half of ``rsa_private_pem``."""
    from cryptography.hazmat.primitives import serialization

    key = serialization.load_pem_private_key(rsa_private_pem.encode(), password=None)
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture
def key_file(tmp_path: Path, rsa_private_pem: str) -> Path:
    """Private key written to a file, as deployed."""
    path = tmp_path / "secret-key.pem"
    path.write_text(rsa_private_pem)
    return path


@pytest.fixture
def signer(rsa_private_pem: str):
    from lifecycle_worker.infra.events.signing import TokenSigner

    return TokenSigner(rsa_private_pem)


@pytest.fixture
def claims():
    from lifecycle_worker.infra.events.signing import TokenClaims

    return TokenClaims(issuer="localhost", key_id="test", jwk_url="localhost")


# ============================================================================
# Sink Fixtures
# ============================================================================


@dataclass
class RecordingEndpoint:
    """Fake notification endpoint.

    Attributes:
        requests: Every request received, in order
        fail_on: 1-based call numbers that answer ``fail_status``
    """

    requests: list[httpx.Request] = field(default_factory=list)
    fail_on: set[int] = field(default_factory=set)
    fail_status: int = 503

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.requests) in self.fail_on:
            return httpx.Response(self.fail_status, text="unavailable")
        return httpx.Response(202)

    @property
    def event_ids(self) -> list[int]:
        return [int(r.headers["X-Event-Id"]) for r in self.requests]


@pytest.fixture
def endpoint() -> RecordingEndpoint:
    return RecordingEndpoint()


@pytest.fixture
async def sink(endpoint: RecordingEndpoint):
    """NotificationSink posting to ``endpoint`` through a MockTransport."""
    from lifecycle_worker.infra.events.outbox import NotificationSink

    client = httpx.AsyncClient(transport=httpx.MockTransport(endpoint.handler))
    try:
        yield NotificationSink("https://notify.test/events", client=client)
    finally:
        await client.aclose()
