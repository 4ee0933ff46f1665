from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from relaywatch.core.errors import ConfigError
from relaywatch.schemas.events import WatchTarget

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _snake_case(key: str) -> str:
    if "_" in key or key.islower():
        return key.lower()
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Map ``MonitorFiles`` style keys onto field names; snake_case keys win on conflict."""
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(key, str) and _snake_case(key) != key:
            normalized.setdefault(_snake_case(key), value)
    for key, value in data.items():
        if isinstance(key, str) and _snake_case(key) == key:
            normalized[key] = value
    return normalized


class _CamelCaseTomlSource(TomlConfigSettingsSource):
    def __call__(self) -> dict[str, Any]:
        return normalize_keys(super().__call__())


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RELAYWATCH_", extra="ignore", frozen=True)

    host: str = "127.0.0.1"
    port: int = 3306
    database: str = ""
    user: str = ""
    password: str = ""
    database_url: str | None = None
    store_timeout_seconds: float | None = Field(default=None, gt=0)

    source: str = Field(..., min_length=1, description="Label of this instance, emitted as the target")
    monitor_files: list[str] = Field(default_factory=list)
    monitor_folders: list[str] = Field(default_factory=list)
    file_name_pattern: str = ""

    poll_interval_seconds: float = Field(default=0.001, gt=0)
    watch_backend: Literal["polling", "native"] = "polling"
    log_level: str = "INFO"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, _CamelCaseTomlSource(settings_cls))

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value}")
        return level

    @model_validator(mode="after")
    def _check_required(self) -> "Settings":
        if not any(item.strip() for item in [*self.monitor_files, *self.monitor_folders]):
            raise ValueError("at least one of monitor_files or monitor_folders must be set")
        if not self.database_url and not (self.database and self.user):
            raise ValueError("database and user are required unless database_url is set")
        return self

    @property
    def watch_targets(self) -> list[WatchTarget]:
        targets = [
            WatchTarget(path=Path(os.path.abspath(item)), recursive=False)
            for item in self.monitor_files
            if item.strip()
        ]
        targets.extend(
            WatchTarget(path=Path(os.path.abspath(item)), recursive=True)
            for item in self.monitor_folders
            if item.strip()
        )
        return targets


def resolve_config_path(config_path: str | os.PathLike[str], base_dir: Path | None = None) -> Path:
    path = Path(config_path)
    if not path.is_absolute():
        path = (base_dir or Path.cwd()) / path
    return path


def load_settings(config_path: str | os.PathLike[str], base_dir: Path | None = None) -> Settings:
    path = resolve_config_path(config_path, base_dir)
    if not path.is_file():
        raise ConfigError(f"config file not found: {path}")

    class FileSettings(Settings):
        model_config = SettingsConfigDict(toml_file=path)

    try:
        return FileSettings()
    except (ValueError, OSError) as exc:
        # pydantic ValidationError and tomllib.TOMLDecodeError are both ValueErrors
        raise ConfigError(f"invalid config {path}: {exc}") from exc
