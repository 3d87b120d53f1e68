"""
Configuration management for the DentalSync application.

This module provides centralized configuration using Pydantic Settings
for environment-based configuration management.
"""

import os
from pathlib import Path
from typing import List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class DatabaseSettings(BaseSettings):
    """Database configuration settings."""

    model_config = SettingsConfigDict(env_prefix="MONGO_")

    uri: str = Field(
        default="mongodb://localhost:27017", description="MongoDB connection URI"
    )
    db_name: str = Field(default="dentalsync", description="MongoDB database name")
    server_selection_timeout_ms: int = Field(
        default=15000, description="Driver server selection timeout in milliseconds"
    )

    @field_validator("uri")
    @classmethod
    def validate_mongo_uri(cls, v: str) -> str:
        """Validate MongoDB URI format."""
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError(
                "MongoDB URI must start with 'mongodb://' or 'mongodb+srv://'"
            )
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="json", description="Log format (json or text)")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v.lower() not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class ReconciliationSettings(BaseSettings):
    """Timing and scoping of the record reconciliation engine."""

    model_config = SettingsConfigDict(env_prefix="RECONCILE_")

    autosave_quiet_period_ms: int = Field(
        default=800, description="Quiet period after the last section edit before it is written"
    )
    post_write_reload_delay_ms: int = Field(
        default=750,
        description="Delay after a tooth save before re-reading the latest-per-tooth view",
    )
    realtime_tables: List[str] = Field(
        default=["tooth_records", "treatments"],
        description="Backing collections whose changes invalidate the tooth chart",
    )

    @field_validator("autosave_quiet_period_ms")
    @classmethod
    def validate_quiet_period(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Autosave quiet period must be positive")
        return v

    @field_validator("post_write_reload_delay_ms")
    @classmethod
    def validate_reload_delay(cls, v: int) -> int:
        """Keep the propagation delay inside the 500ms-1s window."""
        if not 500 <= v <= 1000:
            raise ValueError("Post-write reload delay must be between 500 and 1000 ms")
        return v

    @field_validator("realtime_tables")
    @classmethod
    def validate_tables(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("At least one realtime table is required")
        return v


class VoiceSettings(BaseSettings):
    """AI voice extraction gate settings."""

    model_config = SettingsConfigDict(env_prefix="VOICE_")

    min_confidence: int = Field(
        default=60, description="Extractions scoring below this are rejected outright"
    )

    @field_validator("min_confidence")
    @classmethod
    def validate_min_confidence(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("Minimum confidence must be between 0 and 100")
        return v


class SuggestionSettings(BaseSettings):
    """AI suggestion scoring settings."""

    model_config = SettingsConfigDict(env_prefix="SUGGESTION_")

    unsupported_confidence_penalty: int = Field(
        default=10,
        description="Flat confidence reduction for suggestions produced without evidence",
    )

    @field_validator("unsupported_confidence_penalty")
    @classmethod
    def validate_penalty(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("Confidence penalty must be between 0 and 100")
        return v


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    app_name: str = Field(default="DentalSync", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    app_env: str = Field(default="development", description="Application environment")
    debug: bool = Field(default=False, description="Debug mode")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    reconciliation: ReconciliationSettings = Field(default_factory=ReconciliationSettings)
    voice: VoiceSettings = Field(default_factory=VoiceSettings)
    suggestion: SuggestionSettings = Field(default_factory=SuggestionSettings)

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate application environment."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"App environment must be one of: {valid_envs}")
        return v.lower()

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number."""
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_testing(self) -> bool:
        return self.app_env == "testing"


# Global settings instance (loaded after attempting to read .env)
_settings: Optional[Settings] = None


def _load_env_file_if_available() -> None:
    """Load the nearest .env walking up from the working directory.

    Already-set environment variables always win over file values.
    """
    from dotenv import load_dotenv

    cwd = Path(os.getcwd()).resolve()
    for parent in [cwd, *cwd.parents]:
        candidate = parent / ".env"
        if candidate.exists():
            load_dotenv(dotenv_path=str(candidate), override=False)
            break


def get_settings() -> Settings:
    """Get application settings instance (lazy-init with .env discovery).

    Raises:
        ConfigurationError: an environment variable failed validation
    """
    global _settings
    if _settings is None:
        _load_env_file_if_available()
        try:
            _settings = Settings()
        except ValidationError as exc:
            fields = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
            raise ConfigurationError(
                f"Invalid settings: {exc.error_count()} error(s)", {"fields": fields}
            ) from exc
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
