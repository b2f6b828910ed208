"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (PRIVACYPAL__WATCHER__DEBOUNCE_MS=500)
  2. privacypal.yaml        (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; every field has a default.
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

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("privacypal")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "storage.db")


def _find_config_file() -> str | None:
    """Return the path of the first privacypal.yaml found, or None."""
    candidates = [
        Path("privacypal.yaml"),
        Path(platformdirs.user_config_dir("privacypal")) / "privacypal.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ScraperSettings(BaseModel):
    endpoint: str = "http://localhost:3000/scrape"
    timeout_seconds: float = Field(default=30.0, gt=0)


class WatcherSettings(BaseModel):
    # Quiet window used to coalesce DOM mutation bursts into one scan
    debounce_ms: int = Field(default=1000, ge=0)


class StorageSettings(BaseModel):
    db_path: str = _DEFAULT_DB_PATH


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    render_timeout_seconds: float = Field(default=30.0, gt=0)


class AnalyzerSettings(BaseModel):
    max_content_chars: int = Field(default=14000, gt=0)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: PRIVACYPAL__SERVER__PORT=9090
        env_prefix="PRIVACYPAL__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    scraper: ScraperSettings = ScraperSettings()
    watcher: WatcherSettings = WatcherSettings()
    storage: StorageSettings = StorageSettings()
    server: ServerSettings = ServerSettings()
    analyzer: AnalyzerSettings = AnalyzerSettings()
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
