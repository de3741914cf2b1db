"""JSON config files and legacy environment names for the settings classes.

Config files are overlaid in order, later files winning:
    1. ``<CONFIG_DIR>/<env>.json``, env from APP_ENV (or NODE_ENV), default prod
    2. each path in the comma-separated ``CONFIG_FILES``

Files that do not exist are skipped. Keys may be camelCase
(``pollIntervalSeconds``) or snake_case (``poll_interval_seconds``).

Example ``config/stage.json``:
    {
        "patchKey": "schema-patch-level",
        "master": {"host": "db-primary", "connectionLimit": 20},
        "notifications": {"publishUrl": "https://hub.example.com/v1/events",
                          "jwt": {"kid": "2024-01"}},
        "logging": {"level": "info"}
    }

Environment variables always take precedence over files.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import json
import os
from pathlib import Path
import re
from typing import TYPE_CHECKING, Any

from pydantic_settings import InitSettingsSource, PydanticBaseSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo
    from pydantic_settings import BaseSettings

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _snake_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Snake-case every key of a nested mapping; values are left alone."""
    return {
        _snake(key): _snake_keys(value) if isinstance(value, dict) else value
        for key, value in data.items()
    }


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_json(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    return _snake_keys(data) if isinstance(data, dict) else {}


def config_file_paths() -> list[Path]:
    """Existing config files for this process, in overlay order."""
    env = os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "prod"
    base = Path(os.getenv("CONFIG_DIR", "config"))

    candidates = [base / f"{env}.json"]
    extra = os.getenv("CONFIG_FILES", "")
    candidates.extend(Path(p.strip()) for p in extra.split(",") if p.strip())
    return [p for p in candidates if p.is_file()]


class JsonConfigFileSource(InitSettingsSource):
    """Settings values from the overlaid JSON config files.

    Args:
        settings_cls: The settings class being configured.
        section: Top-level key holding this class's values (e.g.
            ``"notifications"``); None reads top-level keys.
        files: Files to overlay; resolved with ``config_file_paths`` when omitted.
    """

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        *,
        section: str | None = None,
        files: Sequence[Path] | None = None,
    ) -> None:
        self.files = list(files) if files is not None else config_file_paths()

        merged: dict[str, Any] = {}
        for path in self.files:
            merged = _deep_merge(merged, _load_json(path))

        data = merged.get(section, {}) if section else merged
        if not isinstance(data, dict):
            data = {}
        fields = settings_cls.model_fields
        super().__init__(settings_cls, {k: v for k, v in data.items() if k in fields})

    def __repr__(self) -> str:
        files_str = ", ".join(str(f) for f in self.files)
        return f"{self.__class__.__name__}(files=[{files_str}])"


class LegacyEnvSource(PydanticBaseSettingsSource):
    """Flat environment names mapped onto nested settings fields.

    Example:
        LegacyEnvSource(DatabaseSettings, {"MYSQL_HOST": ("master", "host")})
    """

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        mapping: Mapping[str, tuple[str, ...]],
    ) -> None:
        super().__init__(settings_cls)
        self.mapping = mapping

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        # Values are assembled in __call__
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        environ = {name.upper(): value for name, value in os.environ.items()}
        data: dict[str, Any] = {}
        for env_name, path in self.mapping.items():
            value = environ.get(env_name.upper())
            if not value:
                continue
            node = data
            for key in path[:-1]:
                node = node.setdefault(key, {})
            node[path[-1]] = value
        return data

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(names={sorted(self.mapping)})"


__all__ = ["JsonConfigFileSource", "LegacyEnvSource", "config_file_paths"]
