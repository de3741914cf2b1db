"""Pruning scheduler settings.

Field names map directly onto environment variables (no prefix), so the
toggle and interval are ``ENABLE_PRUNING`` and ``PRUNE_EVERY``.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .sources import JsonConfigFileSource


class PruningSettings(BaseSettings):
    """Expired-row pruning configuration."""

    enable_pruning: bool = Field(
        default=False,
        description="Enables (true) or disables (false) pruning",
    )
    prune_every: int = Field(
        default=30 * 60 * 1000,
        ge=1,
        description="Approximate time between prunes (in ms)",
    )
    prune_jitter: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Random fraction of the interval added to each tick",
    )
    prune_batch_size: int = Field(
        default=1000,
        ge=1,
        le=100_000,
        description="Maximum rows deleted per batch (one transaction per batch)",
    )
    prune_max_batches: int = Field(
        default=50,
        ge=1,
        le=100_000,
        description="Maximum batches per target in a single tick",
    )
    prune_event_retention_days: float = Field(
        default=30.0,
        gt=0.0,
        description="Published events older than this (by published_at) are pruned",
    )
    prune_min_patch_level: int = Field(
        default=0,
        ge=0,
        description="Minimum schema patch level required before pruning",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
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
        """Customize settings source precedence: init > env > dotenv > json files > secrets."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigFileSource(settings_cls),
            file_secret_settings,
        )

    @property
    def interval_seconds(self) -> float:
        """Nominal tick interval in seconds."""
        return self.prune_every / 1000.0

    @property
    def event_retention(self) -> timedelta:
        """Retention horizon for published events."""
        return timedelta(days=self.prune_event_retention_days)
