"""Process-level settings shared by the background jobs."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .sources import JsonConfigFileSource

Environment = Literal["dev", "test", "stage", "prod"]


class AppSettings(BaseSettings):
    """Worker process settings.

    Environment variables use APP_ prefix.
    Example: APP_ENV=stage, APP_PATCH_KEY=schema-patch-level

    The unprefixed names NODE_ENV, HOST, PORT and SCHEMA_PATCH_KEY are
    accepted too; the APP_ name wins when both are set.
    """

    service_name: str = Field(
        default="lifecycle-worker",
        min_length=1,
        max_length=100,
        pattern=r"^[a-z0-9]+(-[a-z0-9]+)*$",
        description="Service name for logging/tracing (lowercase, hyphens allowed)",
    )
    env: Environment = Field(
        default="prod",
        validation_alias=AliasChoices("app_env", "node_env"),
        description="Deployment environment: dev|test|stage|prod",
    )
    hostname: str = Field(
        default="127.0.0.1",
        validation_alias=AliasChoices("app_hostname", "host"),
        min_length=1,
        max_length=255,
        description="Network identity of the process (bind address of the co-located API)",
    )
    port: int = Field(
        default=8000,
        validation_alias=AliasChoices("app_port", "port"),
        ge=1,
        le=65535,
        description="Network port of the process (co-located API)",
    )
    patch_key: str = Field(
        default="schema-patch-level",
        validation_alias=AliasChoices("app_patch_key", "schema_patch_key"),
        min_length=1,
        max_length=255,
        description="Name of the db_metadata row which stores the schema patch level",
    )
    metrics_host: str = Field(
        default="0.0.0.0",
        min_length=1,
        max_length=255,
        description="Bind address of the Prometheus endpoint served by `run --serve-metrics`",
    )
    metrics_port: int = Field(
        default=9464,
        ge=1,
        le=65535,
        description="Port of the Prometheus endpoint; separate from the co-located API port",
    )
    shutdown_timeout: float = Field(
        default=30.0,
        ge=0.0,
        le=600.0,
        description="Seconds to let in-flight batches and deliveries finish on shutdown",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
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
        """Customize settings source precedence: init > env > dotenv > json files > secrets."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigFileSource(settings_cls),
            file_secret_settings,
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "prod"
