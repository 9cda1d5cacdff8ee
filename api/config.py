"""
API configuration settings.
"""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Cloud Library API"
    api_version: str = "1.0.0"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False
    log_level: str = "INFO"

    # Security Settings
    jwt_sign_key: Optional[str] = None
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    bcrypt_rounds: int = 12

    # Uploads
    max_book_file_size: int = 10 << 20  # 10 MiB

    # CORS Settings
    cors_origins: list = ["*"]
    cors_allow_credentials: bool = False
    cors_allow_methods: list = ["*"]
    cors_allow_headers: list = ["*"]

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        extra="ignore",  # Ignore extra fields from .env
    )

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_algorithm(cls, v):
        """Only symmetric HMAC signing is supported."""
        if v.upper() not in HMAC_ALGORITHMS:
            raise ValueError(f"jwt_algorithm must be one of: {list(HMAC_ALGORITHMS)}")
        return v.upper()

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, v):
        """bcrypt accepts cost factors between 4 and 31."""
        if v < 4 or v > 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")
        return v

    @field_validator("access_token_expire_minutes", "max_book_file_size")
    @classmethod
    def validate_positive(cls, v):
        """Ensure limits are positive."""
        if v <= 0:
            raise ValueError("value must be positive")
        return v
