"""Outbox publisher settings: delivery sink, polling and JWT signing."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .sources import JsonConfigFileSource, LegacyEnvSource

LEGACY_JWT_ENV: dict[str, tuple[str, ...]] = {
    f"NOTIFICATIONS_JWT_{name.upper()}": ("jwt", name)
    for name in ("secret_key_file", "iss", "kid", "jku")
}


class JwtSettings(BaseModel):
    """Key material and claims used to sign published events."""

    model_config = ConfigDict(frozen=True)

    secret_key_file: Path = Field(
        default=Path("config/secret-key.pem"),
        description="PEM-encoded RSA private key used for signing JWTs",
    )
    iss: str = Field(default="localhost", min_length=1, description="Issuer claim")
    kid: str = Field(default="test", min_length=1, description="Key-ID header")
    jku: str = Field(default="localhost", min_length=1, description="JWK set URL header")


class NotificationSettings(BaseSettings):
    """Account lifecycle event publishing.

    Environment variables use NOTIFICATIONS_ prefix.
    Example: NOTIFICATIONS_PUBLISH_URL=https://hub.example.com/v1/events,
    NOTIFICATIONS_JWT__KID=2024-01

    NOTIFICATIONS_POLL_INTERVAL and the single-underscore
    NOTIFICATIONS_JWT_KID style names are accepted too.
    """

    publish_url: str = Field(
        default="",
        description="URL at which to publish account lifecycle events (empty to disable publishing)",
    )
    poll_interval_seconds: float = Field(
        default=10.0,
        validation_alias=AliasChoices(
            "notifications_poll_interval_seconds",
            "notifications_poll_interval",
        ),
        gt=0.0,
        le=3600.0,
        description="Interval to sleep between polling for unpublished events, in seconds",
    )
    page_size: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description="Maximum number of unpublished events read per run",
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0.0,
        le=300.0,
        description="HTTP timeout (seconds) for a single delivery",
    )
    jitter: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Random fraction of the interval added to each tick",
    )
    min_patch_level: int = Field(
        default=0,
        ge=0,
        description="Minimum schema patch level required before publishing",
    )
    jwt: JwtSettings = Field(default_factory=JwtSettings)

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATIONS_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
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
        """Customize settings source precedence: init > env > legacy jwt env > dotenv > json files > secrets."""
        return (
            init_settings,
            env_settings,
            LegacyEnvSource(settings_cls, LEGACY_JWT_ENV),
            dotenv_settings,
            JsonConfigFileSource(settings_cls, section="notifications"),
            file_secret_settings,
        )

    @field_validator("publish_url", mode="before")
    @classmethod
    def _strip_url(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def is_enabled(self) -> bool:
        """Publishing is active only when a sink URL is configured."""
        return bool(self.publish_url)
