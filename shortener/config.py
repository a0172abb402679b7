"""Configuration management for the URL shortener application.

This module provides centralized configuration management using Pydantic BaseSettings
with a YAML config file, environment variable overrides and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌──────────┐  ┌─────────┐
│ init →   │  │ Return  │
│ env →    │  │ cached  │
│ .env →   │  │ value   │
│ YAML file│  └─────────┘
└──────────┘

How to Use
===========
**Step 1 — Import**::
    from shortener.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    db_url = settings.database.sqlalchemy_url

**Step 3 — Override from the environment**::
    ANALYTICS__WORKER_COUNT=8 SERVER__PORT=9000 shortener run-server

Key Behaviours
===============
- Settings are cached after first access for performance.
- Values come from ``configs/config.yaml`` (or ``SHORTENER_CONFIG_FILE``).
- A missing config file is not an error: defaults are used.
- Environment variables override file values (``__`` separates sections).

Classes:
    ServerSettings:  HTTP server options (``server.*``).
    DatabaseSettings:  Durable store options (``database.*``).
    AnalyticsSettings:  Click queue and worker pool options (``analytics.*``).
    MonitorSettings:  URL health monitor options (``monitor.*``).
    Settings:  Root settings object.
"""

__all__ = [
    "AnalyticsSettings",
    "DatabaseSettings",
    "MonitorSettings",
    "ServerSettings",
    "Settings",
    "get_settings",
]

import os
from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

CONFIG_FILE_ENV = "SHORTENER_CONFIG_FILE"
DEFAULT_CONFIG_FILE = "configs/config.yaml"


class ServerSettings(BaseModel):
    port: int = 8080
    base_url: str = "http://localhost:8080"


class DatabaseSettings(BaseModel):
    name: str = "url_shortener.db"
    # Full SQLAlchemy URL, e.g. postgresql+asyncpg://...; wins over ``name``
    url: str | None = None
    echo: bool = False

    @property
    def sqlalchemy_url(self) -> str:
        return self.url or f"sqlite+aiosqlite:///{self.name}"


class AnalyticsSettings(BaseModel):
    buffer_size: int = Field(1000, ge=1)
    worker_count: int = Field(5, ge=1)
    shutdown_grace_seconds: float = Field(5.0, ge=0)


class MonitorSettings(BaseModel):
    enabled: bool = True
    interval_minutes: float = Field(5, gt=0)
    probe_timeout_seconds: float = Field(5.0, gt=0)
    max_concurrent_probes: int = Field(10, ge=1)

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60


class Settings(BaseSettings):
    app_name: str = "url-shortener"
    app_env: str = "development"
    log_level: str = "INFO"

    server: ServerSettings = Field(default_factory=ServerSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        yaml_file = os.getenv(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file),
            file_secret_settings,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
