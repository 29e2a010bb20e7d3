"""Configuration management for slimetodo."""

import os
import sys
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_FOLDER_NAME = "GajiGaji"
LEGACY_APP_FOLDER_NAME = "SlimeTodo"


def _local_app_data_root() -> Path:
    """Return the per-user application data root for the current platform."""
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA")
        if local:
            return Path(local)
        return Path.home() / "AppData" / "Local"
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".local" / "share"


def default_data_dir() -> Path:
    """Default location of data.json, backups and the lock file."""
    return _local_app_data_root() / APP_FOLDER_NAME


def default_legacy_data_dir() -> Path:
    """Folder used by releases before the rename; copied over once on first start."""
    return _local_app_data_root() / LEGACY_APP_FOLDER_NAME


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SLIMETODO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    data_dir: Path = Field(default_factory=default_data_dir, description="Directory holding data.json and backups")
    legacy_data_dir: Path | None = Field(
        default_factory=default_legacy_data_dir,
        description="Old data directory migrated once on startup (unset to disable)",
    )
    backup_retention_days: int = Field(default=7, description="Daily backups older than this are deleted")

    # Engine
    undo_max_depth: int = Field(default=50, description="Maximum number of undoable actions kept")
    reminder_interval_seconds: int = Field(default=60, description="How often pending reminders are scanned")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    log_level: str = Field(default="INFO", description="Root log level for the standard logging module")

    @field_validator("backup_retention_days", "undo_max_depth", "reminder_interval_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Reject zero or negative limits."""
        if v < 1:
            msg = "Value must be a positive integer"
            raise ValueError(msg)
        return v


# Application Constants
class Constants:
    """Application-wide constants."""

    # Persisted schema
    SCHEMA_VERSION: int = 1

    # File names inside the data directory
    DATA_FILE_NAME: str = "data.json"
    TEMP_FILE_NAME: str = "data.json.tmp"
    BACKUP_DIR_NAME: str = "backups"
    BACKUP_FILE_PREFIX: str = "backup_"
    LOCK_FILE_NAME: str = ".lock"
    LOCK_ATTEMPTS: int = 3
    UI_SETTINGS_FILE_NAME: str = "ui_settings.json"

    # Import ceilings
    MAX_IMPORT_BYTES: int = 10_000_000
    MAX_IMPORT_TASKS: int = 10_000

    # Statistics & engagement
    STATISTICS_WINDOW_DAYS: int = 30
    COMPLETIONS_PER_LEVEL: int = 10
    MAX_LEVEL: int = 999

    # Tags
    DEFAULT_TAG_COLOR: str = "#9B59B6"
    TAG_PALETTE: tuple[str, ...] = (
        "#E74C3C",  # red
        "#E67E22",  # orange
        "#F1C40F",  # yellow
        "#2ECC71",  # green
        "#1ABC9C",  # teal
        "#3498DB",  # blue
        "#9B59B6",  # purple
        "#E91E63",  # pink
        "#95A5A6",  # grey
        "#34495E",  # dark grey
    )


def get_settings() -> Settings:
    """Build application settings from the environment."""
    return Settings()
