"""
Application Configuration Module

This module uses Pydantic Settings for type-safe configuration management.

Every setting can be overridden with an environment variable of the same
name (case-insensitive) or through a local .env file:

    DATABASE_URL=sqlite:///books.sqlite
    UPLOAD_DIR=/var/lib/bookreview/uploads
    SECRET_KEY=$(openssl rand -hex 32)

PATTERN: Settings Singleton
===========================
A single Settings instance is cached with @lru_cache, so the .env file is
read once and all modules share the same configuration.

Usage:
    from bookreview.config import get_settings

    settings = get_settings()
    print(settings.upload_dir)
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    SECURITY NOTE:
    ==============
    - secret_key signs the session cookie and is validated at startup
    - Placeholder values raise errors so an insecure key never ships
    """

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------
    app_name: str = Field(
        default="Book Review",
        description="Application name displayed in page titles and logs"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode (SQL echo, auto-reload)"
    )
    host: str = Field(
        default="localhost",
        description="Host to bind the server to"
    )
    port: int = Field(
        default=4000,
        description="Port to bind the server to"
    )
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # -------------------------------------------------------------------------
    # Database Settings
    # -------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite:///db.sqlite",
        description="SQLAlchemy connection URL"
    )

    # -------------------------------------------------------------------------
    # Books & Uploads
    # -------------------------------------------------------------------------
    upload_dir: str = Field(
        default="uploads",
        description="Directory where uploaded book covers are stored"
    )
    max_upload_size: int = Field(
        default=5 * 1024 * 1024,
        description="Maximum size of a multipart request body in bytes"
    )
    page_size: int = Field(
        default=8,
        description="Number of books per page on the books list"
    )
    recent_limit: int = Field(
        default=2,
        description="How many recent books/reviews the home page shows"
    )

    # -------------------------------------------------------------------------
    # Security Settings
    # -------------------------------------------------------------------------
    secret_key: str = Field(
        default="REPLACE_WITH_YOUR_GENERATED_SECRET_KEY",
        description="Secret key used to sign session cookies"
    )
    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=31,
        description="bcrypt work factor used when hashing passwords"
    )
    session_lifetime: int = Field(
        default=12 * 60 * 60,
        description="Session cookie lifetime in seconds"
    )
    csrf_enabled: bool = Field(
        default=True,
        description="Verify the CSRF token on every POST request"
    )

    # -------------------------------------------------------------------------
    # Rate Limiting Settings
    # -------------------------------------------------------------------------
    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable request rate limiting"
    )
    rate_limit_default: str = Field(
        default="200/minute",
        description="Default limit applied to every route"
    )
    rate_limit_auth: str = Field(
        default="10/minute",
        description="Limit for login and registration submissions"
    )

    # -------------------------------------------------------------------------
    # Logging Settings
    # -------------------------------------------------------------------------
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_sqlite(self) -> bool:
        """SQLite needs per-connection pragmas and thread settings."""
        return self.database_url.startswith("sqlite")

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """
        Validate that secret_key is not a placeholder value.

        The application fails to start if SECRET_KEY is not properly set.

        Raises:
            ValueError: If secret key is a placeholder or too short
        """
        placeholder_indicators = [
            "REPLACE_WITH",
            "change-me",
            "your-secret",
            "generate-with",
        ]

        for indicator in placeholder_indicators:
            if indicator.lower() in v.lower():
                raise ValueError(
                    "SECRET_KEY contains a placeholder value. "
                    "Generate a secure key with: openssl rand -hex 32"
                )

        if len(v) < 32:
            raise ValueError(
                "SECRET_KEY must be at least 32 characters long. "
                "Generate a secure key with: openssl rand -hex 32"
            )

        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        valid_envs = {"development", "staging", "production"}
        if v.lower() not in valid_envs:
            raise ValueError(f"environment must be one of {valid_envs}")
        return v.lower()

    @field_validator("page_size", "recent_limit", "max_upload_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Sizes and limits must be positive."""
        if v < 1:
            raise ValueError("must be a positive integer")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    First call creates the Settings instance, loads .env and validates;
    subsequent calls return the cached instance.

    Returns:
        Cached Settings instance
    """
    return Settings()
