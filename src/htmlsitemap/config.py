"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (HTMLSITEMAP__SERVER__PORT=9090)
  2. htmlsitemap.yaml       (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional. All fields have sensible defaults.

These are process settings. The per-render sitemap options live in the
stored settings record and are merged by ``htmlsitemap.resolver``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("htmlsitemap")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "cache.db")
_DEFAULT_CONTENT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "content.db")


def _find_config_file() -> str | None:
    """Return the path of the first htmlsitemap.yaml found, or None."""
    candidates = [
        Path("htmlsitemap.yaml"),
        Path(platformdirs.user_config_dir("htmlsitemap")) / "htmlsitemap.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8080
    auth_enabled: bool = False
    auth_key: str = ""


class CacheSettings(BaseModel):
    db_path: str = _DEFAULT_DB_PATH
    cleanup_interval_hours: int = 6
    invalidation_cooldown_seconds: int = Field(default=60, ge=0)


class SourceSettings(BaseModel):
    db_path: str = _DEFAULT_CONTENT_DB_PATH


class RenderSettings(BaseModel):
    memory_limit_mb: int = Field(default=1024, ge=0)  # 0 disables the ceiling
    max_memory_percent: int = Field(default=80, ge=1, le=100)

    @property
    def memory_ceiling_bytes(self) -> int | None:
        if self.memory_limit_mb == 0:
            return None
        return self.memory_limit_mb * 1024 * 1024 * self.max_memory_percent // 100


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: HTMLSITEMAP__SERVER__PORT=9090
        env_prefix="HTMLSITEMAP__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    cache: CacheSettings = CacheSettings()
    source: SourceSettings = SourceSettings()
    render: RenderSettings = RenderSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
