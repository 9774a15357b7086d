"""
Database Models and ORM Setup

This module contains the relational schema of the entity store using
SQLAlchemy 2.0 with async support. Rows are converted to the pydantic
records of ``app.models.schemas`` before leaving the storage layer.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

logger = structlog.get_logger(__name__).bind(component="database")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Base Model with Common Fields
# =============================================================================

class Base(AsyncAttrs, DeclarativeBase):
    """
    Base class for all database models.

    Integer primary keys are assigned by the database on insert.
    """

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


# Without AUTOINCREMENT, SQLite reuses the id of a deleted newest row
TABLE_OPTIONS: Dict[str, Any] = {"sqlite_autoincrement": True}


class IntegerIDMixin:
    """Mixin for autoincrement integer primary keys."""

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        doc="Primary key"
    )


class CreatedAtMixin:
    """Mixin for the creation timestamp."""

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=True,
        doc="Record creation timestamp"
    )


class UpdatedAtMixin:
    """Mixin for the last-mutation timestamp, stamped by the store."""

    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Last update timestamp"
    )


# =============================================================================
# User Management Models
# =============================================================================

class User(Base, IntegerIDMixin, CreatedAtMixin):
    """Account of a reporter, administrator or response team member."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        doc="Unique login name"
    )

    password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Password hash"
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)

    user_type: Mapped[str] = mapped_column(
        String(20),
        default="user",
        nullable=False,
        doc="user, admin or response_team"
    )

    profile_photo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_users_user_type", "user_type"),
        TABLE_OPTIONS,
    )


class Setting(Base, IntegerIDMixin, UpdatedAtMixin):
    """Per-user preferences, at most one row per user."""

    __tablename__ = "settings"

    # Plain column: deleting a user leaves its rows in place
    user_id: Mapped[int] = mapped_column(
        Integer,
        unique=True,
        nullable=False,
    )

    emergency_alerts: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_notifications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sms_notifications: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    location_sharing: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    anonymous_data_collection: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = TABLE_OPTIONS


class Notification(Base, IntegerIDMixin, CreatedAtMixin):
    """Message addressed to a single user."""

    __tablename__ = "notifications"

    user_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("ix_notifications_user_id", "user_id"),
        TABLE_OPTIONS,
    )


# =============================================================================
# Emergency Handling Models
# =============================================================================

class ResponseTeam(Base, IntegerIDMixin, CreatedAtMixin):
    """Field team that can be dispatched to emergency requests."""

    __tablename__ = "response_teams"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default="available",
        nullable=False,
        doc="available, busy or offline"
    )

    latitude: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    longitude: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    __table_args__ = (
        Index("ix_response_teams_status", "status"),
        TABLE_OPTIONS,
    )


class EmergencyRequest(Base, IntegerIDMixin, CreatedAtMixin, UpdatedAtMixin):
    """A request for assistance submitted by a user."""

    __tablename__ = "emergency_requests"

    # Plain column: deleting a user leaves its rows in place
    user_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Owner of the request"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default="pending",
        nullable=False,
        doc="pending, in_progress, resolved, cancelled or critical"
    )

    # Decimal strings, kept verbatim as submitted
    latitude: Mapped[str] = mapped_column(String(32), nullable=False)
    longitude: Mapped[str] = mapped_column(String(32), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    response_team_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("response_teams.id"),
        nullable=True,
        doc="Assigned team (lookup only)"
    )

    __table_args__ = (
        Index("ix_emergency_requests_user_id", "user_id"),
        Index("ix_emergency_requests_status", "status"),
        TABLE_OPTIONS,
    )


class MedicalService(Base, IntegerIDMixin, CreatedAtMixin):
    """Hospital, clinic, pharmacy or similar point of care."""

    __tablename__ = "medical_services"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[str] = mapped_column(String(32), nullable=False)
    longitude: Mapped[str] = mapped_column(String(32), nullable=False)
    rating: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    review_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    opening_hours: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # Static placeholder, no proximity computation
    distance: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    __table_args__ = (
        Index("ix_medical_services_type", "type"),
        TABLE_OPTIONS,
    )


# =============================================================================
# Dashboard Models
# =============================================================================

class SystemStatus(Base, IntegerIDMixin, CreatedAtMixin, UpdatedAtMixin):
    """Health indicator of one subsystem shown on the dashboard."""

    __tablename__ = "system_status"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    icon: Mapped[str] = mapped_column(String(64), nullable=False)

    __table_args__ = TABLE_OPTIONS


class Activity(Base, IntegerIDMixin):
    """Append-only activity feed entry."""

    __tablename__ = "activities"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    icon_bg: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    timestamp: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=True,
    )

    __table_args__ = (
        Index("ix_activities_timestamp", "timestamp"),
        TABLE_OPTIONS,
    )


class Stats(Base, IntegerIDMixin, UpdatedAtMixin):
    """Singleton row of derived counters. Never written by clients."""

    __tablename__ = "stats"

    response_teams: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    resolved_cases: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pending_cases: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    critical_cases: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = TABLE_OPTIONS


# =============================================================================
# Database Engine and Session Management
# =============================================================================

def build_engine(url: str, **options: Any) -> AsyncEngine:
    """Create an async engine; options come from ``settings.DATABASE_ENGINE_OPTIONS``."""
    return create_async_engine(url, **options)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=True,
    )


# =============================================================================
# Database Initialization
# =============================================================================

async def create_tables(engine: AsyncEngine) -> None:
    """Create all database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def wait_for_database(
    session_maker: async_sessionmaker,
    max_attempts: int = 10,
    initial_delay_seconds: float = 0.5,
    max_delay_seconds: float = 5.0,
) -> None:
    """Wait for database to become available with exponential backoff.

    Raises last exception if database is not reachable after all attempts.
    """
    attempt = 0
    delay = float(initial_delay_seconds)
    last_error: Optional[Exception] = None

    while attempt < max_attempts:
        try:
            async with session_maker() as session:
                await session.execute(text("SELECT 1"))
            if attempt > 0:
                logger.info("Database became available", attempts=attempt + 1)
            return
        except Exception as exc:  # noqa: BLE001 - we want original error
            last_error = exc
            logger.warning(
                "Database not reachable yet",
                attempt=attempt + 1,
                delay_seconds=delay,
                error=str(exc),
            )
            await asyncio.sleep(delay)
            delay = min(max_delay_seconds, delay * 2)
            attempt += 1

    logger.error(
        "Database not reachable after retries",
        attempts=max_attempts,
        error=str(last_error) if last_error else None,
    )
    if last_error:
        raise last_error


# =============================================================================
# Health Check Queries
# =============================================================================

async def check_database_health(session_maker: async_sessionmaker) -> Dict[str, Any]:
    """Check database connectivity."""
    try:
        async with session_maker() as session:
            result = await session.execute(text("SELECT 1"))
            test_value = result.scalar()

            users_total = (await session.execute(text("SELECT COUNT(*) FROM users"))).scalar()
            requests_total = (
                await session.execute(text("SELECT COUNT(*) FROM emergency_requests"))
            ).scalar()

            return {
                "status": "healthy",
                "test_query": test_value == 1,
                "users_total": users_total,
                "emergency_requests_total": requests_total,
            }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }


__all__ = [
    "Base",
    "User",
    "Setting",
    "Notification",
    "ResponseTeam",
    "EmergencyRequest",
    "MedicalService",
    "SystemStatus",
    "Activity",
    "Stats",
    "build_engine",
    "build_session_maker",
    "create_tables",
    "wait_for_database",
    "check_database_health",
]
