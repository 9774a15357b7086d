"""
Tests for the role-based access policy table.
"""

from types import SimpleNamespace

import pytest

from app.core.access_policy import POLICY, Action, check_access, is_allowed, is_staff
from app.core.exceptions import PermissionDeniedError


def make_user(role, user_id=1):
    return SimpleNamespace(id=user_id, user_type=role)


def test_every_action_has_a_policy_entry():
    assert set(POLICY) == set(Action)


@pytest.mark.parametrize("action", [
    Action.CREATE_EMERGENCY_REQUEST,
    Action.LIST_OWN_EMERGENCY_REQUESTS,
    Action.READ_EMERGENCY_REQUEST,
    Action.MANAGE_OWN_ACCOUNT,
])
def test_any_role_actions(action):
    for role in ("user", "admin", "response_team"):
        assert is_allowed(action, role)


@pytest.mark.parametrize("action", [
    Action.LIST_ALL_EMERGENCY_REQUESTS,
    Action.UPDATE_EMERGENCY_REQUEST,
    Action.UPDATE_RESPONSE_TEAM,
    Action.SEND_NOTIFICATION,
])
def test_staff_actions(action):
    assert is_allowed(action, "admin")
    assert is_allowed(action, "response_team")
    assert not is_allowed(action, "user")


@pytest.mark.parametrize("action", [
    Action.CREATE_RESPONSE_TEAM,
    Action.CREATE_MEDICAL_SERVICE,
    Action.CREATE_SYSTEM_STATUS,
    Action.UPDATE_SYSTEM_STATUS,
    Action.DELETE_USER,
])
def test_admin_only_actions(action):
    assert is_allowed(action, "admin")
    assert not is_allowed(action, "response_team")
    assert not is_allowed(action, "user")


def test_unknown_role_is_never_allowed():
    assert not is_allowed(Action.CREATE_EMERGENCY_REQUEST, "superuser")
    assert not is_allowed(Action.CREATE_EMERGENCY_REQUEST, None)


def test_is_staff():
    assert is_staff(make_user("admin"))
    assert is_staff(make_user("response_team"))
    assert not is_staff(make_user("user"))


def test_check_access_passes_silently():
    assert check_access(Action.DELETE_USER, make_user("admin")) is None


def test_check_access_denial_carries_required_roles():
    with pytest.raises(PermissionDeniedError) as exc_info:
        check_access(Action.UPDATE_EMERGENCY_REQUEST, make_user("user"))

    error = exc_info.value
    assert error.status_code == 403
    assert error.message == "Unauthorized access"
    assert error.details["required_roles"] == ["admin", "response_team"]
    assert error.details["action"] == "update_emergency_request"
