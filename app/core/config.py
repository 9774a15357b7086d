"""
Configuration and Settings Management

This module handles all application configuration using Pydantic Settings
with support for environment variables and 12-Factor App principles.
"""

import logging
import secrets
from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

# =============================================================================
# Core Application Settings
# =============================================================================

class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables or a .env file.
    """

    # =========================================================================
    # Application Core
    # =========================================================================

    APP_NAME: str = "Emergency Assistance Service"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Reporting and tracking of emergency assistance requests"

    ENVIRONMENT: Literal["development", "testing", "staging", "production"] = "development"
    DEBUG: bool = Field(default=False, description="Debug mode")

    SECRET_KEY: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Secret key used to sign access tokens"
    )

    # API Configuration
    API_PREFIX: str = "/api"
    CORS_ORIGINS: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    # =========================================================================
    # Storage Configuration
    # =========================================================================

    STORAGE_BACKEND: Literal["memory", "database"] = Field(
        default="database",
        description="Entity store implementation selected at startup"
    )

    POSTGRES_HOST: str = Field(default="localhost", description="PostgreSQL host")
    POSTGRES_PORT: int = Field(default=5432, description="PostgreSQL port")
    POSTGRES_DB: str = Field(default="emergency", description="Database name")
    POSTGRES_USER: str = Field(default="postgres", description="Database user")
    POSTGRES_PASSWORD: str = Field(default="postgres", description="Database password")

    DATABASE_POOL_SIZE: int = Field(default=10, description="Database connection pool size")
    DATABASE_MAX_OVERFLOW: int = Field(default=20, description="Max overflow connections")
    DATABASE_POOL_TIMEOUT: int = Field(default=30, description="Pool timeout in seconds")
    DATABASE_ECHO: bool = Field(default=False, description="Echo SQL queries")

    # Computed database URL (will be set by model_validator)
    DATABASE_URL: Optional[str] = None

    @model_validator(mode='after')
    def assemble_database_url(self) -> 'Settings':
        # Respect explicit DATABASE_URL from environment if provided
        url = self.DATABASE_URL
        if not url:
            url = (
                f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )
        # Normalize common URL schemes to SQLAlchemy async drivers
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("sqlite://"):
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        object.__setattr__(self, "DATABASE_URL", url)
        return self

    # =========================================================================
    # Caller Identity
    # =========================================================================

    IDENTITY_HEADER: str = Field(
        default="user-id",
        description="Request header carrying the caller's user id"
    )
    ALLOW_HEADER_IDENTITY: bool = Field(
        default=True,
        description="Accept the identity header in addition to bearer tokens"
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24, description="Access token lifetime")

    # =========================================================================
    # Logging and Monitoring
    # =========================================================================

    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: Literal["json", "pretty"] = Field(default="json")

    METRICS_ENABLED: bool = Field(default=True)

    # =========================================================================
    # Development and Testing
    # =========================================================================

    TESTING: bool = Field(default=False)
    SHOW_DOCS: bool = Field(default=True, description="Show API documentation")
    SEED_DEMO_DATA: bool = Field(default=False, description="Load demo records into an empty store")
    AUTO_RELOAD: bool = Field(default=False)

    # =========================================================================
    # Validation and Post-Processing
    # =========================================================================

    @field_validator('CORS_ORIGINS', mode='before')
    def assemble_cors_origins(cls, v: Any) -> List[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str) and not v.startswith('['):
            return [i.strip() for i in v.split(',')]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(f"Invalid CORS_ORIGINS: {v}")

    @field_validator('LOG_LEVEL')
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    # =========================================================================
    # Environment-specific configurations
    # =========================================================================

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.ENVIRONMENT == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running tests."""
        return self.ENVIRONMENT == "testing" or self.TESTING

    @property
    def uses_sqlite(self) -> bool:
        return str(self.DATABASE_URL).startswith("sqlite")

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def DATABASE_ENGINE_OPTIONS(self) -> Dict[str, Any]:
        """Database engine configuration options."""
        options: Dict[str, Any] = {
            "echo": self.DATABASE_ECHO and not self.is_production,
        }
        # SQLite uses a static/singleton pool without size limits
        if not self.uses_sqlite:
            options.update({
                "pool_size": self.DATABASE_POOL_SIZE,
                "max_overflow": self.DATABASE_MAX_OVERFLOW,
                "pool_timeout": self.DATABASE_POOL_TIMEOUT,
                "pool_pre_ping": True,
                "pool_recycle": 3600,
            })
        return options

    # =========================================================================
    # Model Configuration
    # =========================================================================

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "validate_assignment": True,
        "extra": "ignore",
    }


# =============================================================================
# Settings Instance and Cache
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Cached to avoid re-parsing environment variables on every call; clear
    the cache after changing the environment in tests.
    """
    return Settings()


# Convenience alias for global access
settings = get_settings()


# =============================================================================
# Logging Configuration
# =============================================================================

SENSITIVE_KEYS = {"authorization", "token", "access_token", "password", "secret", "secret_key"}


def redact_secrets(_, __, event_dict):
    """Mask values of sensitive keys, including inside nested dicts."""
    for key, value in list(event_dict.items()):
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = "***REDACTED***"
        elif isinstance(value, dict):
            event_dict[key] = {
                k: "***REDACTED***" if isinstance(k, str) and k.lower() in SENSITIVE_KEYS else v
                for k, v in value.items()
            }
    return event_dict


def setup_logging(config: Optional[Settings] = None) -> None:
    """
    Configure structured logging for the application.

    Args:
        config: Settings to read the level and format from; defaults to ``settings``
    """
    import structlog

    config = config or settings
    level = getattr(logging, config.LOG_LEVEL.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            (
                structlog.dev.ConsoleRenderer()
                if config.LOG_FORMAT == "pretty"
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Tests reconfigure per app; cached loggers would keep the first setup
        cache_logger_on_first_use=not config.is_testing,
    )

    logging.basicConfig(
        level=level,
        format="%(message)s" if config.LOG_FORMAT == "json" else None,
    )

    # Suppress noisy loggers in production
    if config.is_production:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# =============================================================================
# Development Helpers
# =============================================================================

if __name__ == "__main__":
    # Print current configuration for debugging
    import json

    config_dict = settings.model_dump()
    for field in ("SECRET_KEY", "POSTGRES_PASSWORD", "DATABASE_URL"):
        if field in config_dict:
            config_dict[field] = "***REDACTED***"

    print(json.dumps(config_dict, indent=2, default=str))
