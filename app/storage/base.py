"""
Entity Store Contract

``EntityStore`` owns every per-kind operation of the service: schema
validation of new and partial records, reference checks, unique-key checks
and timestamp stamping. Backends only provide five generic primitives over
plain dicts (fetch, query, insert, patch, remove) plus their lifecycle.
"""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Type, Union

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ConflictError, EmergencyServiceException, ValidationError
from app.models.schemas import (
    ActivityCreate,
    ActivityRecord,
    EmergencyRequestCreate,
    EmergencyRequestRecord,
    EmergencyRequestUpdate,
    MedicalServiceCreate,
    MedicalServiceRecord,
    NotificationCreate,
    NotificationRecord,
    ResponseTeamCreate,
    ResponseTeamRecord,
    ResponseTeamUpdate,
    SettingCreate,
    SettingRecord,
    SettingUpdate,
    StatsCounts,
    StatsRecord,
    SystemStatusCreate,
    SystemStatusRecord,
    SystemStatusUpdate,
    UserCreate,
    UserRecord,
    UserUpdate,
)

logger = structlog.get_logger(__name__)

Payload = Union[Dict[str, Any], BaseModel]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Entity Kinds
# =============================================================================

class EntityKind(str, enum.Enum):
    USER = "users"
    EMERGENCY_REQUEST = "emergency_requests"
    RESPONSE_TEAM = "response_teams"
    MEDICAL_SERVICE = "medical_services"
    SYSTEM_STATUS = "system_status"
    ACTIVITY = "activities"
    NOTIFICATION = "notifications"
    SETTING = "settings"
    STATS = "stats"


@dataclass(frozen=True)
class EntitySpec:
    """Static description of one entity kind."""
    label: str
    record: Type[BaseModel]
    created_field: Optional[str] = "created_at"
    updated_field: Optional[str] = None
    unique_fields: Tuple[str, ...] = ()


ENTITY_SPECS: Dict[EntityKind, EntitySpec] = {
    EntityKind.USER: EntitySpec("User", UserRecord, unique_fields=("username",)),
    EntityKind.EMERGENCY_REQUEST: EntitySpec(
        "Emergency request", EmergencyRequestRecord, updated_field="updated_at"
    ),
    EntityKind.RESPONSE_TEAM: EntitySpec("Response team", ResponseTeamRecord),
    EntityKind.MEDICAL_SERVICE: EntitySpec("Medical service", MedicalServiceRecord),
    EntityKind.SYSTEM_STATUS: EntitySpec(
        "System status", SystemStatusRecord, updated_field="updated_at"
    ),
    EntityKind.ACTIVITY: EntitySpec("Activity", ActivityRecord, created_field="timestamp"),
    EntityKind.NOTIFICATION: EntitySpec("Notification", NotificationRecord),
    EntityKind.SETTING: EntitySpec(
        "Setting",
        SettingRecord,
        created_field=None,
        updated_field="updated_at",
        unique_fields=("user_id",),
    ),
    EntityKind.STATS: EntitySpec(
        "Stats", StatsRecord, created_field=None, updated_field="updated_at"
    ),
}


def validate_payload(schema: Type[BaseModel], fields: Payload, message: str) -> BaseModel:
    """
    Validate ``fields`` against ``schema``.

    Accepts camelCase or snake_case dicts and other pydantic models.

    Raises:
        ValidationError: with the itemized pydantic errors
    """
    if isinstance(fields, schema):
        return fields
    if isinstance(fields, BaseModel):
        fields = fields.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(fields)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, message=message)


# =============================================================================
# Store Contract
# =============================================================================

class EntityStore(ABC):
    """
    Abstract entity store.

    Unknown ids yield ``None`` from getters and updaters; they are never an
    error at this level. No transactions span more than one record and the
    last write wins.
    """

    backend: str = "abstract"

    # -------------------------------------------------------------------------
    # Backend primitives
    # -------------------------------------------------------------------------

    @abstractmethod
    async def _fetch(self, kind: EntityKind, record_id: int) -> Optional[Dict[str, Any]]:
        """Return one row as a dict, or None."""

    @abstractmethod
    async def _query(
        self,
        kind: EntityKind,
        filters: Optional[Dict[str, Any]] = None,
        newest_first_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Return rows matching all equality filters.

        Ordered by id ascending, or by ``newest_first_by`` then id descending.
        """

    @abstractmethod
    async def _insert(self, kind: EntityKind, values: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row, assigning the next id; returns the stored row."""

    @abstractmethod
    async def _patch(
        self, kind: EntityKind, record_id: int, values: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Merge ``values`` into a row; None if the id is unknown."""

    @abstractmethod
    async def _remove(self, kind: EntityKind, record_id: int) -> bool:
        """Delete a row; False if the id is unknown."""

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """Prepare the backend and make sure the stats singleton exists."""
        await self.get_stats()

    async def close(self) -> None:
        return None

    async def health(self) -> Dict[str, Any]:
        """Report backend health and per-kind record counts."""
        try:
            counts = {}
            for kind in EntityKind:
                counts[kind.value] = len(await self._query(kind))
        except EmergencyServiceException as e:
            logger.error("Store health check failed", backend=self.backend, error=e.message)
            return {"status": "unhealthy", "backend": self.backend}

        return {"status": "healthy", "backend": self.backend, "counts": counts}

    # -------------------------------------------------------------------------
    # Generic helpers
    # -------------------------------------------------------------------------

    def _to_record(self, kind: EntityKind, row: Optional[Dict[str, Any]]):
        if row is None:
            return None
        return ENTITY_SPECS[kind].record.model_validate(row)

    async def _get(self, kind: EntityKind, record_id: int):
        return self._to_record(kind, await self._fetch(kind, record_id))

    async def _list(self, kind: EntityKind, newest_first: bool = False, **filters: Any) -> list:
        spec = ENTITY_SPECS[kind]
        order = spec.created_field if newest_first else None
        rows = await self._query(
            kind,
            {k: v for k, v in filters.items() if v is not None},
            newest_first_by=order,
        )
        return [spec.record.model_validate(row) for row in rows]

    async def _create(self, kind: EntityKind, values: Dict[str, Any]):
        spec = ENTITY_SPECS[kind]
        now = utcnow()
        if spec.created_field:
            values[spec.created_field] = now
        if spec.updated_field:
            values[spec.updated_field] = now

        row = await self._insert(kind, values)
        logger.debug("Record created", kind=kind.value, record_id=row["id"])
        return spec.record.model_validate(row)

    async def _update(self, kind: EntityKind, record_id: int, changes: Dict[str, Any]):
        spec = ENTITY_SPECS[kind]
        if spec.updated_field:
            changes[spec.updated_field] = utcnow()

        row = await self._patch(kind, record_id, changes)
        if row is None:
            return None
        logger.debug("Record updated", kind=kind.value, record_id=record_id, fields=sorted(changes))
        return spec.record.model_validate(row)

    async def _require_user(self, user_id: int) -> None:
        if await self._fetch(EntityKind.USER, user_id) is None:
            raise ValidationError(
                message=f"User {user_id} does not exist",
                field="userId",
            )

    async def _require_team(self, team_id: Optional[int]) -> None:
        if team_id is not None and await self._fetch(EntityKind.RESPONSE_TEAM, team_id) is None:
            raise ValidationError(
                message=f"Response team {team_id} does not exist",
                field="responseTeamId",
            )

    # =========================================================================
    # Users
    # =========================================================================

    async def get_user(self, user_id: int) -> Optional[UserRecord]:
        return await self._get(EntityKind.USER, user_id)

    async def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        users = await self._list(EntityKind.USER, username=username)
        return users[0] if users else None

    async def list_users(self) -> List[UserRecord]:
        return await self._list(EntityKind.USER)

    async def create_user(self, fields: Payload) -> UserRecord:
        """
        Create a user.

        ``password`` is stored as given; callers hash it first.

        Raises:
            ValidationError: invalid fields
            ConflictError: username already taken
        """
        user = validate_payload(UserCreate, fields, "Invalid user data")
        if await self.get_user_by_username(user.username) is not None:
            raise ConflictError("Username already exists", field="username", value=user.username)
        return await self._create(EntityKind.USER, user.model_dump())

    async def update_user(self, user_id: int, changes: Payload) -> Optional[UserRecord]:
        update = validate_payload(UserUpdate, changes, "Invalid user data")
        values = update.changes()

        username = values.get("username")
        if username is not None:
            existing = await self.get_user_by_username(username)
            if existing is not None and existing.id != user_id:
                raise ConflictError("Username already exists", field="username", value=username)

        return await self._update(EntityKind.USER, user_id, values)

    async def delete_user(self, user_id: int) -> bool:
        """Delete a user. Requests, notifications and settings are kept."""
        return await self._remove(EntityKind.USER, user_id)

    # =========================================================================
    # Emergency Requests
    # =========================================================================

    async def get_emergency_request(self, request_id: int) -> Optional[EmergencyRequestRecord]:
        return await self._get(EntityKind.EMERGENCY_REQUEST, request_id)

    async def list_emergency_requests(
        self, user_id: Optional[int] = None
    ) -> List[EmergencyRequestRecord]:
        return await self._list(EntityKind.EMERGENCY_REQUEST, user_id=user_id)

    async def create_emergency_request(self, fields: Payload) -> EmergencyRequestRecord:
        request = validate_payload(EmergencyRequestCreate, fields, "Invalid emergency request data")
        await self._require_user(request.user_id)
        await self._require_team(request.response_team_id)
        return await self._create(EntityKind.EMERGENCY_REQUEST, request.model_dump())

    async def update_emergency_request(
        self, request_id: int, changes: Payload
    ) -> Optional[EmergencyRequestRecord]:
        update = validate_payload(EmergencyRequestUpdate, changes, "Invalid emergency request data")
        values = update.changes()
        await self._require_team(values.get("response_team_id"))
        return await self._update(EntityKind.EMERGENCY_REQUEST, request_id, values)

    # =========================================================================
    # Response Teams
    # =========================================================================

    async def get_response_team(self, team_id: int) -> Optional[ResponseTeamRecord]:
        return await self._get(EntityKind.RESPONSE_TEAM, team_id)

    async def list_response_teams(self, status: Optional[str] = None) -> List[ResponseTeamRecord]:
        return await self._list(EntityKind.RESPONSE_TEAM, status=status)

    async def create_response_team(self, fields: Payload) -> ResponseTeamRecord:
        team = validate_payload(ResponseTeamCreate, fields, "Invalid response team data")
        return await self._create(EntityKind.RESPONSE_TEAM, team.model_dump())

    async def update_response_team(
        self, team_id: int, changes: Payload
    ) -> Optional[ResponseTeamRecord]:
        update = validate_payload(ResponseTeamUpdate, changes, "Invalid response team data")
        return await self._update(EntityKind.RESPONSE_TEAM, team_id, update.changes())

    # =========================================================================
    # Medical Services
    # =========================================================================

    async def get_medical_service(self, service_id: int) -> Optional[MedicalServiceRecord]:
        return await self._get(EntityKind.MEDICAL_SERVICE, service_id)

    async def list_medical_services(
        self, service_type: Optional[str] = None
    ) -> List[MedicalServiceRecord]:
        return await self._list(EntityKind.MEDICAL_SERVICE, type=service_type)

    async def create_medical_service(self, fields: Payload) -> MedicalServiceRecord:
        service = validate_payload(MedicalServiceCreate, fields, "Invalid medical service data")
        return await self._create(EntityKind.MEDICAL_SERVICE, service.model_dump())

    # =========================================================================
    # System Status
    # =========================================================================

    async def get_system_status(self, status_id: int) -> Optional[SystemStatusRecord]:
        return await self._get(EntityKind.SYSTEM_STATUS, status_id)

    async def list_system_statuses(self) -> List[SystemStatusRecord]:
        return await self._list(EntityKind.SYSTEM_STATUS)

    async def create_system_status(self, fields: Payload) -> SystemStatusRecord:
        indicator = validate_payload(SystemStatusCreate, fields, "Invalid system status data")
        return await self._create(EntityKind.SYSTEM_STATUS, indicator.model_dump())

    async def update_system_status(
        self, status_id: int, changes: Payload
    ) -> Optional[SystemStatusRecord]:
        update = validate_payload(SystemStatusUpdate, changes, "Invalid system status data")
        return await self._update(EntityKind.SYSTEM_STATUS, status_id, update.changes())

    # =========================================================================
    # Activities
    # =========================================================================

    async def get_activity(self, activity_id: int) -> Optional[ActivityRecord]:
        return await self._get(EntityKind.ACTIVITY, activity_id)

    async def list_activities(self) -> List[ActivityRecord]:
        """All activities, newest first."""
        return await self._list(EntityKind.ACTIVITY, newest_first=True)

    async def create_activity(self, fields: Payload) -> ActivityRecord:
        activity = validate_payload(ActivityCreate, fields, "Invalid activity data")
        return await self._create(EntityKind.ACTIVITY, activity.model_dump())

    # =========================================================================
    # Notifications
    # =========================================================================

    async def get_notification(self, notification_id: int) -> Optional[NotificationRecord]:
        return await self._get(EntityKind.NOTIFICATION, notification_id)

    async def list_notifications(self, user_id: int) -> List[NotificationRecord]:
        """A user's notifications, newest first."""
        return await self._list(EntityKind.NOTIFICATION, newest_first=True, user_id=user_id)

    async def create_notification(self, fields: Payload) -> NotificationRecord:
        notification = validate_payload(NotificationCreate, fields, "Invalid notification data")
        await self._require_user(notification.user_id)
        return await self._create(EntityKind.NOTIFICATION, notification.model_dump())

    async def mark_notification_read(self, notification_id: int) -> Optional[NotificationRecord]:
        return await self._update(EntityKind.NOTIFICATION, notification_id, {"read": True})

    # =========================================================================
    # Settings
    # =========================================================================

    async def get_user_settings(self, user_id: int) -> Optional[SettingRecord]:
        settings = await self._list(EntityKind.SETTING, user_id=user_id)
        return settings[0] if settings else None

    async def create_user_settings(self, fields: Payload) -> SettingRecord:
        """
        Create a user's settings record.

        Raises:
            ValidationError: invalid fields or unknown user
            ConflictError: the user already has settings
        """
        setting = validate_payload(SettingCreate, fields, "Invalid settings data")
        await self._require_user(setting.user_id)
        if await self.get_user_settings(setting.user_id) is not None:
            raise ConflictError("Settings already exist", field="userId", value=setting.user_id)
        return await self._create(EntityKind.SETTING, setting.model_dump())

    async def update_user_settings(self, user_id: int, changes: Payload) -> Optional[SettingRecord]:
        update = validate_payload(SettingUpdate, changes, "Invalid settings data")
        current = await self.get_user_settings(user_id)
        if current is None:
            return None
        return await self._update(EntityKind.SETTING, current.id, update.changes())

    # =========================================================================
    # Stats
    # =========================================================================

    async def get_stats(self) -> StatsRecord:
        """Return the stats singleton, creating a zeroed one if absent."""
        rows = await self._query(EntityKind.STATS)
        if rows:
            return StatsRecord.model_validate(rows[0])
        return await self._create(EntityKind.STATS, StatsCounts().model_dump())

    async def replace_stats(self, counts: StatsCounts) -> StatsRecord:
        """Overwrite all counters of the singleton and refresh ``updatedAt``."""
        current = await self.get_stats()
        values = StatsCounts.model_validate(counts).model_dump()
        return await self._update(EntityKind.STATS, current.id, values)
