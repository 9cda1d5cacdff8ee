"""
Configuration management using environment variables.
Handles database, book storage and logging settings with validation and defaults.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class StorageConfig(BaseSettings):
    """
    Configuration class for the relational store, the book file area and logging.
    Uses pydantic BaseSettings for environment variable management.
    """

    # Database Configuration
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432)
    db_name: str = Field(default="cloud_library")
    db_user: str = Field(default="postgres")
    db_password: str = Field(default="")
    database_url: Optional[str] = Field(default=None)  # Overrides the db_* fields when set
    database_echo: bool = Field(default=False)

    # Book file storage
    books_storage_path: str = Field(default="books")

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    # Development/Testing
    debug: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields from .env
    )

    @field_validator("db_port")
    @classmethod
    def validate_port(cls, v):
        """Ensure the database port is a valid TCP port."""
        if v < 1 or v > 65535:
            raise ValueError("db_port must be between 1 and 65535")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ["json", "console"]
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {valid_formats}")
        return v.lower()

    def get_database_url(self) -> str:
        """Build the SQLAlchemy async connection URL."""
        if self.database_url:
            return self.database_url
        return URL.create(
            "postgresql+asyncpg",
            username=self.db_user,
            password=self.db_password or None,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        ).render_as_string(hide_password=False)

    def get_books_storage_path(self) -> Path:
        """Get the book file directory as Path object."""
        return Path(self.books_storage_path)

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None
