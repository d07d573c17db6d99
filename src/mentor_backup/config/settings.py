"""Application settings management using Pydantic Settings."""

from pathlib import Path
from typing import Literal, Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_default_db_path() -> str:
    """Get default database path in user's data directory."""
    return str(Path.cwd() / "data" / "mentor.db")


def _get_default_backup_dir() -> str:
    """Get default directory for backup files."""
    return str(Path.cwd() / "data" / "backups")


class Settings(BaseSettings):
    """Application configuration settings.

    All settings can be configured via environment variables with the
    prefix `MENTOR_BACKUP_`. For example, `MENTOR_BACKUP_DATABASE_PATH`.
    """

    # Database
    database_path: str = Field(
        default_factory=_get_default_db_path,
        description="SQLite database file path",
    )

    # Backup files
    backup_dir: str = Field(
        default_factory=_get_default_backup_dir,
        description="Directory that backup files are read from and written to",
    )
    export_indent: int | None = Field(
        default=2,
        ge=0,
        le=8,
        description="JSON indentation for exported documents (None = compact)",
    )

    # Redaction
    redaction_sentinel: str = Field(
        default="***REDACTED***",
        min_length=1,
        description="Placeholder written in place of sensitive values on export",
    )

    # Import
    default_import_mode: Literal["replace", "merge"] = Field(
        default="replace", description="Import mode used when none is given"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_prefix="MENTOR_BACKUP_", env_file=".env", env_file_encoding="utf-8"
    )

    @model_validator(mode="after")
    def validate_log_level(self) -> Self:
        """Normalize and validate the logging level name."""
        level = self.log_level.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log_level: {self.log_level}")
        self.log_level = level
        return self
