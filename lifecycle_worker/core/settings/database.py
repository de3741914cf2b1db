"""Primary/replica connection pool settings.

Two independently configured pools are supported:
- ``master``: the authoritative writable store
- ``slave``: a read-preferred replica

Nested fields are read with a double-underscore delimiter, e.g.
``DB_MASTER__HOST=db-primary`` or ``DB_SLAVE__CONNECTION_LIMIT=20``.
The flat names ``MYSQL_HOST`` and ``MYSQL_SLAVE_HOST`` (and likewise for the
other pool fields) are accepted at lower precedence.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote_plus

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .sources import JsonConfigFileSource, LegacyEnvSource

_LEGACY_POOL_FIELDS = (
    "user",
    "password",
    "database",
    "host",
    "port",
    "connection_limit",
    "wait_for_connections",
    "queue_limit",
)

LEGACY_POOL_ENV: dict[str, tuple[str, ...]] = {
    f"{prefix}{name.upper()}": (pool, name)
    for prefix, pool in (("MYSQL_", "master"), ("MYSQL_SLAVE_", "slave"))
    for name in _LEGACY_POOL_FIELDS
}


class PoolSettings(BaseModel):
    """Configuration of a single connection pool.

    Attributes:
        user: Database username.
        password: Database password.
        database: Database name.
        host: Server hostname or IP address.
        port: Server port.
        connection_limit: Maximum live connections held by the pool.
        wait_for_connections: Block callers when the pool is exhausted (True)
            or reject them immediately (False).
        queue_limit: Maximum number of blocked waiters when
            ``wait_for_connections`` is set. 0 means no limit.
        driver: SQLAlchemy async driver name.
        dsn: Full SQLAlchemy URL; overrides the component fields when set.
    """

    model_config = ConfigDict(frozen=True)

    user: str = Field(default="postgres", min_length=1, max_length=100)
    password: SecretStr = Field(default=SecretStr(""))
    database: str = Field(default="fxa", min_length=1, max_length=100)
    host: str = Field(default="127.0.0.1", min_length=1, max_length=255)
    port: int = Field(default=5432, ge=1, le=65535)
    connection_limit: int = Field(default=10, ge=1, le=1000)
    wait_for_connections: bool = Field(default=True)
    queue_limit: int = Field(default=100, ge=0, le=100_000)
    driver: str = Field(
        default="postgresql+psycopg",
        description="SQLAlchemy URL scheme (async driver), e.g. postgresql+psycopg",
    )
    dsn: SecretStr | None = Field(
        default=None,
        description="Full SQLAlchemy URL, e.g. sqlite+aiosqlite:///worker.db; overrides components",
    )
    pool_recycle: int = Field(default=1800, ge=-1, le=86400)
    pool_pre_ping: bool = Field(default=True)
    echo: bool = Field(default=False)

    @model_validator(mode="after")
    def _queue_limit_requires_wait(self) -> PoolSettings:
        """A queue limit is only meaningful for pools that wait."""
        if not self.wait_for_connections and self.queue_limit:
            object.__setattr__(self, "queue_limit", 0)
        return self

    @property
    def url(self) -> str:
        """SQLAlchemy URL built from component fields."""
        if self.dsn:
            return self.dsn.get_secret_value()
        safe_password = quote_plus(self.password.get_secret_value())
        credentials = f"{quote_plus(self.user)}:{safe_password}" if safe_password else quote_plus(self.user)
        return f"{self.driver}://{credentials}@{self.host}:{self.port}/{self.database}"

    def engine_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``create_async_engine``.

        The engine's own pool is sized to the connection limit with no
        overflow; back-pressure is applied in front of it by the pool manager.
        """
        return {
            "pool_size": self.connection_limit,
            "max_overflow": 0,
            "pool_recycle": self.pool_recycle,
            "pool_pre_ping": self.pool_pre_ping,
            "echo": self.echo,
        }


class DatabaseSettings(BaseSettings):
    """Primary (``master``) and replica (``slave``) pool settings.

    Environment variables use DB_ prefix with ``__`` as nested delimiter.
    """

    master: PoolSettings = Field(default_factory=PoolSettings)
    slave: PoolSettings = Field(default_factory=PoolSettings)

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize settings source precedence: init > env > MYSQL_* env > dotenv > json files > secrets."""
        return (
            init_settings,
            env_settings,
            LegacyEnvSource(settings_cls, LEGACY_POOL_ENV),
            dotenv_settings,
            JsonConfigFileSource(settings_cls),
            file_secret_settings,
        )
