"""Unified settings composition for convenient access.

Usage:
    from lifecycle_worker.core.settings import get_settings

    settings = get_settings()
    print(settings.db.master.host)
    print(settings.notifications.poll_interval_seconds)

Each nested settings class still respects its own env prefix. Code that only
needs one domain should prefer the individual get_*_settings() loaders.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .app import AppSettings
from .database import DatabaseSettings
from .logs import LoggingSettings
from .notifications import NotificationSettings
from .pruning import PruningSettings


class Settings(BaseModel):
    """All settings domains in one object."""

    model_config = ConfigDict(frozen=True)

    app: AppSettings = Field(default_factory=AppSettings)
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    pruning: PruningSettings = Field(default_factory=PruningSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def masked_dump(self) -> dict[str, Any]:
        """Serialize every domain with secrets masked."""
        return self.model_dump(mode="json")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached unified settings."""
    return Settings()
