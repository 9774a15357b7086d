"""
Record and Request Schemas

Pydantic models for every entity kind. ``*Record`` models are what the entity
store hands out and what the API serializes; ``*Create`` models validate new
records (and carry their defaults); ``*Update`` models validate partial
updates. JSON uses camelCase names, Python code uses snake_case.
"""

import enum
import math
from datetime import datetime
from typing import Annotated, Any, ClassVar, FrozenSet, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# Enums
# =============================================================================

class UserRole(str, enum.Enum):
    """Role stored as a user's ``userType``."""
    USER = "user"
    ADMIN = "admin"
    RESPONSE_TEAM = "response_team"


class RequestStatus(str, enum.Enum):
    """Emergency request status. Any status may follow any other."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
    CRITICAL = "critical"


class TeamStatus(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class ServiceHealth(str, enum.Enum):
    """Status of a system-status indicator."""
    OPERATIONAL = "operational"
    PARTIAL = "partial"
    OFFLINE = "offline"


# =============================================================================
# Base Models
# =============================================================================

class CamelModel(BaseModel):
    """Base model reading snake_case attributes and speaking camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )


class PartialUpdate(CamelModel):
    """
    Base for partial updates.

    Only fields present in the payload are applied. Fields listed in
    ``NOT_NULL`` may be omitted but not set to null.
    """

    NOT_NULL: ClassVar[FrozenSet[str]] = frozenset()

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def reject_nulls(self):
        for name in self.model_fields_set & self.NOT_NULL:
            if getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def changes(self) -> dict:
        """Fields explicitly provided by the caller, snake_case keyed."""
        return self.model_dump(exclude_unset=True)


def coerce_coordinate(value: Any) -> str:
    """Accept numbers or numeric strings; store as a decimal string."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError("must be a decimal number")
    text = str(value).strip()
    try:
        number = float(text)
    except ValueError:
        raise ValueError("must be a decimal number")
    if not math.isfinite(number):
        raise ValueError("must be a finite decimal number")
    return text


# Latitude/longitude travel as decimal strings
Coordinate = Annotated[str, BeforeValidator(coerce_coordinate)]


# =============================================================================
# Users
# =============================================================================

class UserCreate(CamelModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=255)
    user_type: UserRole = UserRole.USER
    phone: Optional[str] = Field(None, max_length=32)
    profile_photo: Optional[str] = None


class UserUpdate(PartialUpdate):
    """Self-service profile changes. ``userType`` is deliberately absent."""

    NOT_NULL: ClassVar[FrozenSet[str]] = frozenset({"username", "password", "email", "full_name"})

    username: Optional[str] = Field(None, min_length=1, max_length=50)
    password: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)
    profile_photo: Optional[str] = None


class UserRecord(CamelModel):
    id: int
    username: str
    password: str
    email: str
    full_name: str
    user_type: UserRole
    phone: Optional[str] = None
    profile_photo: Optional[str] = None
    created_at: Optional[datetime] = None


class UserSummary(CamelModel):
    """Register/login response."""
    id: int
    username: str
    email: str
    full_name: str
    user_type: UserRole


class UserProfile(UserSummary):
    """Current-user response; everything but the password."""
    profile_photo: Optional[str] = None
    phone: Optional[str] = None


class LoginRequest(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


# =============================================================================
# Emergency Requests
# =============================================================================

class EmergencyRequestCreate(CamelModel):
    user_id: int
    status: RequestStatus = RequestStatus.PENDING
    latitude: Coordinate
    longitude: Coordinate
    description: Optional[str] = Field(None, max_length=2000)
    response_team_id: Optional[int] = None


class EmergencyRequestSubmit(CamelModel):
    """Request body for a new emergency request; the owner comes from the caller."""
    status: RequestStatus = RequestStatus.PENDING
    latitude: Coordinate
    longitude: Coordinate
    description: Optional[str] = Field(None, max_length=2000)
    response_team_id: Optional[int] = None


class EmergencyRequestUpdate(PartialUpdate):
    NOT_NULL: ClassVar[FrozenSet[str]] = frozenset({"status", "latitude", "longitude"})

    status: Optional[RequestStatus] = None
    latitude: Optional[Coordinate] = None
    longitude: Optional[Coordinate] = None
    description: Optional[str] = Field(None, max_length=2000)
    response_team_id: Optional[int] = None


class EmergencyRequestRecord(CamelModel):
    id: int
    user_id: int
    status: RequestStatus
    latitude: str
    longitude: str
    description: Optional[str] = None
    response_team_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# Response Teams
# =============================================================================

class ResponseTeamCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    status: TeamStatus = TeamStatus.AVAILABLE
    latitude: Optional[Coordinate] = None
    longitude: Optional[Coordinate] = None


class ResponseTeamUpdate(PartialUpdate):
    NOT_NULL: ClassVar[FrozenSet[str]] = frozenset({"name", "status"})

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[TeamStatus] = None
    latitude: Optional[Coordinate] = None
    longitude: Optional[Coordinate] = None


class ResponseTeamRecord(CamelModel):
    id: int
    name: str
    status: TeamStatus
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    created_at: Optional[datetime] = None


# =============================================================================
# Medical Services
# =============================================================================

class MedicalServiceCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=64)
    address: str = Field(..., min_length=1)
    latitude: Coordinate
    longitude: Coordinate
    rating: Optional[str] = None
    review_count: Optional[int] = Field(None, ge=0)
    phone: Optional[str] = None
    opening_hours: Optional[str] = None
    distance: Optional[str] = None


class MedicalServiceRecord(CamelModel):
    id: int
    name: str
    type: str
    address: str
    latitude: str
    longitude: str
    rating: Optional[str] = None
    review_count: Optional[int] = None
    phone: Optional[str] = None
    opening_hours: Optional[str] = None
    distance: Optional[str] = None
    created_at: Optional[datetime] = None


# =============================================================================
# System Status
# =============================================================================

class SystemStatusCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    status: ServiceHealth
    icon: str = Field(..., min_length=1)


class SystemStatusUpdate(PartialUpdate):
    NOT_NULL: ClassVar[FrozenSet[str]] = frozenset({"name", "status", "icon"})

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[ServiceHealth] = None
    icon: Optional[str] = Field(None, min_length=1)


class SystemStatusRecord(CamelModel):
    id: int
    name: str
    status: ServiceHealth
    icon: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# Activities
# =============================================================================

class ActivityCreate(CamelModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None
    icon_bg: Optional[str] = None


class ActivityRecord(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    icon: Optional[str] = None
    icon_bg: Optional[str] = None
    timestamp: Optional[datetime] = None


# =============================================================================
# Notifications
# =============================================================================

class NotificationCreate(CamelModel):
    user_id: int
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    read: bool = False


class NotificationRecord(CamelModel):
    id: int
    user_id: int
    title: str
    message: str
    read: bool = False
    created_at: Optional[datetime] = None


# =============================================================================
# Settings
# =============================================================================

class SettingCreate(CamelModel):
    user_id: int
    emergency_alerts: bool = True
    email_notifications: bool = True
    sms_notifications: bool = False
    location_sharing: bool = True
    anonymous_data_collection: bool = False


class SettingUpdate(PartialUpdate):
    NOT_NULL: ClassVar[FrozenSet[str]] = frozenset({
        "emergency_alerts",
        "email_notifications",
        "sms_notifications",
        "location_sharing",
        "anonymous_data_collection",
    })

    emergency_alerts: Optional[bool] = None
    email_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None
    location_sharing: Optional[bool] = None
    anonymous_data_collection: Optional[bool] = None


class SettingRecord(CamelModel):
    id: int
    user_id: int
    emergency_alerts: bool
    email_notifications: bool
    sms_notifications: bool
    location_sharing: bool
    anonymous_data_collection: bool
    updated_at: Optional[datetime] = None


# =============================================================================
# Stats
# =============================================================================

class StatsCounts(CamelModel):
    """The four derived counters of the stats singleton."""
    response_teams: int = 0
    resolved_cases: int = 0
    pending_cases: int = 0
    critical_cases: int = 0


class StatsRecord(StatsCounts):
    id: int
    updated_at: Optional[datetime] = None
