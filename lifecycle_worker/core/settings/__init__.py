"""Modular Pydantic Settings v2 configuration.

Settings are split by domain (app, db pools, notifications, pruning, logging),
read from environment variables and an optional ``.env`` file, and cached by
the ``get_*_settings()`` loaders. Models are frozen and secrets use SecretStr.

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables (production)
    3. Legacy flat names (MYSQL_HOST, NOTIFICATIONS_JWT_KID, ...)
    4. .env file (development only)
    5. JSON config files: config/<env>.json, then CONFIG_FILES (see sources.py)
"""

from __future__ import annotations

from .app import AppSettings
from .database import DatabaseSettings, PoolSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_notification_settings,
    get_pruning_settings,
)
from .logs import LoggingSettings
from .notifications import JwtSettings, NotificationSettings
from .pruning import PruningSettings
from .unified import Settings, get_settings

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "JwtSettings",
    "LoggingSettings",
    "NotificationSettings",
    "PoolSettings",
    "PruningSettings",
    "Settings",
    "clear_all_caches",
    "get_app_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_notification_settings",
    "get_pruning_settings",
    "get_settings",
]
