"""
Access Policy

One table maps every protected action to the roles allowed to perform it;
``check_access`` is the single place that consults it.
"""

import enum
from typing import Dict, FrozenSet

import structlog

from app.core.exceptions import PermissionDeniedError
from app.models.schemas import UserRole

logger = structlog.get_logger(__name__)


class Action(str, enum.Enum):
    CREATE_EMERGENCY_REQUEST = "create_emergency_request"
    LIST_ALL_EMERGENCY_REQUESTS = "list_all_emergency_requests"
    LIST_OWN_EMERGENCY_REQUESTS = "list_own_emergency_requests"
    READ_EMERGENCY_REQUEST = "read_emergency_request"
    UPDATE_EMERGENCY_REQUEST = "update_emergency_request"
    CREATE_RESPONSE_TEAM = "create_response_team"
    UPDATE_RESPONSE_TEAM = "update_response_team"
    CREATE_MEDICAL_SERVICE = "create_medical_service"
    CREATE_SYSTEM_STATUS = "create_system_status"
    UPDATE_SYSTEM_STATUS = "update_system_status"
    DELETE_USER = "delete_user"
    SEND_NOTIFICATION = "send_notification"
    MANAGE_OWN_ACCOUNT = "manage_own_account"


ANY_ROLE: FrozenSet[UserRole] = frozenset(UserRole)
STAFF: FrozenSet[UserRole] = frozenset({UserRole.ADMIN, UserRole.RESPONSE_TEAM})
ADMIN_ONLY: FrozenSet[UserRole] = frozenset({UserRole.ADMIN})

# Public reads (teams, services, statuses, activities, stats) are not listed
POLICY: Dict[Action, FrozenSet[UserRole]] = {
    Action.CREATE_EMERGENCY_REQUEST: ANY_ROLE,
    Action.LIST_ALL_EMERGENCY_REQUESTS: STAFF,
    Action.LIST_OWN_EMERGENCY_REQUESTS: ANY_ROLE,
    Action.READ_EMERGENCY_REQUEST: ANY_ROLE,
    Action.UPDATE_EMERGENCY_REQUEST: STAFF,
    Action.CREATE_RESPONSE_TEAM: ADMIN_ONLY,
    Action.UPDATE_RESPONSE_TEAM: STAFF,
    Action.CREATE_MEDICAL_SERVICE: ADMIN_ONLY,
    Action.CREATE_SYSTEM_STATUS: ADMIN_ONLY,
    Action.UPDATE_SYSTEM_STATUS: ADMIN_ONLY,
    Action.DELETE_USER: ADMIN_ONLY,
    Action.SEND_NOTIFICATION: STAFF,
    Action.MANAGE_OWN_ACCOUNT: ANY_ROLE,
}


def is_staff(user) -> bool:
    """True for roles that see every emergency request."""
    return UserRole(user.user_type) in STAFF


def is_allowed(action: Action, role) -> bool:
    """
    Check a role against the policy table.

    Unknown roles are never allowed.
    """
    try:
        role = UserRole(role)
    except ValueError:
        return False
    return role in POLICY[action]


def check_access(action: Action, user) -> None:
    """
    Raise unless ``user`` may perform ``action``.

    Raises:
        PermissionDeniedError: the user's role is not allowed
    """
    if is_allowed(action, user.user_type):
        return

    required = sorted(role.value for role in POLICY[action])
    logger.warning(
        "Access denied - insufficient role",
        user_id=user.id,
        user_role=str(user.user_type),
        action=action.value,
        required_roles=required,
    )
    raise PermissionDeniedError(
        message="Unauthorized access",
        required_roles=required,
        action=action.value,
    )
