"""
Tests for settings parsing.
"""

import logging

import pytest
import structlog
from pydantic import ValidationError

from app.core.config import Settings, redact_secrets, setup_logging
from app.storage.factory import build_store
from app.storage.memory import MemoryStore
from app.storage.sql import SQLStore


@pytest.mark.parametrize("raw,expected", [
    ("postgres://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
    ("postgresql://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
    ("sqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
    ("sqlite+aiosqlite://", "sqlite+aiosqlite://"),
])
def test_database_url_is_normalized(raw, expected):
    assert Settings(DATABASE_URL=raw).DATABASE_URL == expected


def test_database_url_assembled_from_parts():
    config = Settings(POSTGRES_HOST="db", POSTGRES_DB="emergency_test", POSTGRES_USER="svc")

    assert config.DATABASE_URL.startswith("postgresql+asyncpg://svc:")
    assert config.DATABASE_URL.endswith("@db:5432/emergency_test")


def test_sqlite_engine_options_skip_pool_settings():
    sqlite = Settings(DATABASE_URL="sqlite+aiosqlite://")
    postgres = Settings(DATABASE_URL="postgresql+asyncpg://u:p@db/app")

    assert sqlite.uses_sqlite
    assert "pool_size" not in sqlite.DATABASE_ENGINE_OPTIONS
    assert postgres.DATABASE_ENGINE_OPTIONS["pool_pre_ping"] is True


def test_cors_origins_from_comma_separated_string():
    config = Settings(CORS_ORIGINS="https://a.example, https://b.example")

    assert config.CORS_ORIGINS == ["https://a.example", "https://b.example"]


def test_log_level_is_validated():
    assert Settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    with pytest.raises(ValidationError):
        Settings(LOG_LEVEL="chatty")


def test_unknown_storage_backend_is_rejected():
    with pytest.raises(ValidationError):
        Settings(STORAGE_BACKEND="redis")


def test_build_store_follows_backend_setting():
    assert isinstance(build_store(Settings(STORAGE_BACKEND="memory")), MemoryStore)

    store = build_store(Settings(STORAGE_BACKEND="database", DATABASE_URL="sqlite://"))
    assert isinstance(store, SQLStore)


def test_redact_secrets():
    event = redact_secrets(None, None, {
        "event": "login",
        "password": "hunter2",
        "headers": {"Authorization": "Bearer abc", "accept": "json"},
    })

    assert event["password"] == "***REDACTED***"
    assert event["headers"]["Authorization"] == "***REDACTED***"
    assert event["headers"]["accept"] == "json"
    assert event["event"] == "login"


def test_setup_logging_uses_given_settings(monkeypatch):
    captured = {}
    levels = []

    def fake_configure(**kwargs):
        captured.update(kwargs)

    def fake_filtering_logger(level):
        levels.append(level)
        return structlog.stdlib.BoundLogger

    monkeypatch.setattr(structlog, "configure", fake_configure)
    monkeypatch.setattr(structlog, "make_filtering_bound_logger", fake_filtering_logger)

    setup_logging(Settings(LOG_FORMAT="pretty", LOG_LEVEL="WARNING", TESTING=True))

    assert levels == [logging.WARNING]
    assert isinstance(captured["processors"][-1], structlog.dev.ConsoleRenderer)
    assert captured["cache_logger_on_first_use"] is False
