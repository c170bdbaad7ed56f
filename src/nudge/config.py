"""
Nudge Configuration System

Loads configuration from:
1. Default config (config/default.yaml in package)
2. User config (~/.nudge/config/nudge.yaml)
3. Environment variables (NUDGE_ prefix)

Uses Pydantic for validation and type coercion.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def expand_path(path: str | Path | None) -> Path | None:
    """Expand ~ and environment variables in paths."""
    if path is None:
        return None
    expanded = os.path.expandvars(os.path.expanduser(str(path)))
    return Path(expanded)


class NudgeMeta(BaseModel):
    """Core Nudge metadata."""

    name: str = "Nudge"
    version: str = "0.1.0"


class LogConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: Path | None = None

    @field_validator("file", mode="before")
    @classmethod
    def expand_file_path(cls, v: Any) -> Path | None:
        return expand_path(v)


class StoreConfig(BaseModel):
    """Task persistence configuration."""

    path: Path = Path("~/.nudge/data/nudge.db")
    key: str = "nudgeTasks"
    echo: bool = False

    @field_validator("path", mode="before")
    @classmethod
    def expand_store_path(cls, v: Any) -> Path:
        expanded = expand_path(v)
        return expanded if expanded else Path("~/.nudge/data/nudge.db")


class ReminderConfig(BaseModel):
    """Reminder loop and motivation settings."""

    interval: float = 1.0
    motivation_window: int = 60  # seconds between random motivation checks
    motivation_probability: float = Field(default=0.20, ge=0.0, le=1.0)
    escalation_cooldown: int = 10  # quiet seconds after any announcement


class SpeechConfig(BaseModel):
    """Text-to-speech configuration."""

    enabled: bool = True
    piper_path: str | None = None  # Auto-detect if None
    models_dir: str | None = None  # Auto-detect if None
    preferred_langs: list[str] = Field(default_factory=lambda: ["ur-PK", "hi-IN"])
    fallback_lang: str = "hi-IN"
    rate: float = 0.9  # Slightly slow for clarity
    sample_rate: int = 22050


class EventsConfig(BaseModel):
    """Event bus configuration."""

    max_queue_size: int = 1000
    handler_timeout: float = 30.0


class DaemonConfig(BaseModel):
    """Daemon process configuration."""

    shutdown_timeout: float = 5.0


class NudgeConfig(BaseSettings):
    """
    Main Nudge configuration.

    Loads from YAML files and environment variables.
    Environment variables use NUDGE_ prefix and __ for nesting.
    Example: NUDGE_LOG__LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="NUDGE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    nudge: NudgeMeta = Field(default_factory=NudgeMeta)
    log: LogConfig = Field(default_factory=LogConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    reminder: ReminderConfig = Field(default_factory=ReminderConfig)
    speech: SpeechConfig = Field(default_factory=SpeechConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    daemon: DaemonConfig = Field(default_factory=DaemonConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats YAML values passed in as init kwargs
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def find_config_file() -> Path | None:
    """
    Find the configuration file.

    Search order:
    1. ~/.nudge/config/nudge.yaml (user config)
    2. ./config/default.yaml (development default)
    3. Package default (installed)
    """
    user_config = Path.home() / ".nudge" / "config" / "nudge.yaml"
    if user_config.exists():
        return user_config

    dev_config = Path.cwd() / "config" / "default.yaml"
    if dev_config.exists():
        return dev_config

    package_config = Path(__file__).parent.parent.parent / "config" / "default.yaml"
    if package_config.exists():
        return package_config

    return None


def load_yaml_config(path: Path | None) -> dict[str, Any]:
    """Load configuration from YAML file."""
    if path is None or not path.exists():
        return {}

    with open(path) as f:
        data = yaml.safe_load(f)

    return data if data else {}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_config(overrides: dict[str, Any] | None = None) -> NudgeConfig:
    """
    Load complete configuration.

    Merges:
    1. Pydantic defaults
    2. YAML file configuration
    3. Explicit overrides (e.g. from the command line)
    4. Environment variables (highest priority)
    """
    yaml_config = load_yaml_config(find_config_file())
    if overrides:
        yaml_config = deep_merge(yaml_config, overrides)

    return NudgeConfig(**yaml_config)

