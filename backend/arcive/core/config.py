"""Application configuration with validation."""

from enum import Enum
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_SESSION_SECRET = "dev-insecure-key-change-me"


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


class Settings(BaseSettings):
    """
    Application settings with validation.

    Uses Pydantic for configuration validation, preventing
    common security issues like wildcard CORS.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="http://localhost:4321,http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./arcive.db",
        description="Database connection URL"
    )
    # Connection pool tuning (PostgreSQL only; ignored for SQLite).
    db_pool_size: int = Field(
        default=5,
        description="Number of persistent database connections"
    )
    db_max_overflow: int = Field(
        default=10,
        description="Extra connections allowed during traffic bursts"
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Seconds to wait for a connection from the pool before raising"
    )
    db_pool_recycle: int = Field(
        default=1800,
        description="Seconds before a connection is recycled (prevents stale connections)"
    )

    # Sessions
    # SESSION_SECRET_KEY signs session tokens and blob URLs. Default is insecure.
    session_secret_key: str = Field(
        default=_DEFAULT_SESSION_SECRET,
        description="HMAC secret for session tokens and signed download URLs"
    )
    session_cookie_name: str = Field(default="arcive_session")
    session_ttl_hours: int = Field(
        default=24 * 7,
        description="Hours a session cookie stays valid"
    )
    session_cookie_secure: bool = Field(
        default=False,
        description="Send the session cookie over HTTPS only"
    )

    # Rate Limiting
    # RATE_LIMIT_PER_MINUTE: max requests per client per minute. 0 disables.
    rate_limit_per_minute: int = Field(
        default=120,
        description="Maximum requests per client per minute"
    )

    # Object storage
    storage_root: str = Field(
        default="./storage",
        description="Directory holding uploaded file bytes"
    )
    signed_url_ttl_seconds: int = Field(
        default=3600,
        description="Lifetime of signed download URLs"
    )
    public_app_url: str = Field(
        default="",
        description="Public base URL used in share links and emails (empty = request origin)"
    )

    # Quota defaults for lazily created permission rows
    default_storage_limit: int = Field(
        default=524_288_000,
        description="Default per-user storage quota in bytes (500 MB)"
    )
    default_max_file_size: int = Field(
        default=104_857_600,
        description="Default maximum size of a single upload in bytes (100 MB)"
    )

    # Sharing
    share_token_length: int = Field(
        default=21,
        ge=16,
        description="Random alphanumeric characters in a public share token"
    )

    # Activity Log Retention
    activity_retention_days: int = Field(
        default=0,
        description="Days to keep activity entries (0 = keep forever)"
    )

    # Email (SMTP). Empty host = emails are logged instead of sent.
    smtp_host: str = Field(default="")
    smtp_port: int = Field(default=587)
    smtp_user: str = Field(default="")
    smtp_password: str = Field(default="")
    smtp_sender: str = Field(default="Sedia Arcive <no-reply@sedia.local>")
    smtp_use_tls: bool = Field(default=True)

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_cors_origins(self) -> List[str]:
        """
        Get CORS origins as a list.

        Parses comma-separated string and validates no wildcards.
        """
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(',') if origin.strip()]

        # SECURITY: Prevent wildcard CORS (credentials are sent as cookies)
        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )

        return origins

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host)

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    def validate_production_config(self) -> None:
        """Validate configuration for production environment.

        In production, fails startup if security-critical settings use insecure defaults.
        In development, returns silently and main.py logs warnings.

        Raises:
            ConfigurationError: If production config is insecure.
        """
        errors: list[str] = []

        if self.session_secret_key == _DEFAULT_SESSION_SECRET:
            errors.append(
                "SESSION_SECRET_KEY is using the default insecure value. "
                "Generate a secure key: openssl rand -hex 32"
            )

        if not self.session_cookie_secure:
            errors.append(
                "SESSION_COOKIE_SECURE is false. "
                "Session cookies must be HTTPS-only in production."
            )

        origins = self.get_cors_origins()
        localhost_origins = [o for o in origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            errors.append(
                f"CORS allows localhost origins: {localhost_origins}. "
                "Remove localhost origins for production."
            )

        if errors and self.environment == Environment.PRODUCTION:
            raise ConfigurationError(
                "Production configuration is insecure:\n  - " + "\n  - ".join(errors)
            )

    def uses_default_secret(self) -> bool:
        return self.session_secret_key == _DEFAULT_SESSION_SECRET


# Global settings instance
settings = Settings()
