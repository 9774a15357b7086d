"""
Tests for notifications and user settings.
"""

import asyncio

from conftest import headers_for


def send(client, sender, recipient, title="Heads up", message="Team en route"):
    return client.post(
        "/api/notifications",
        json={"userId": recipient["id"], "title": title, "message": message},
        headers=headers_for(sender),
    )


# =============================================================================
# Notifications
# =============================================================================

def test_staff_can_send_notifications(client, responder, reporter):
    response = send(client, responder, reporter)

    assert response.status_code == 201
    assert response.json()["userId"] == reporter["id"]
    assert response.json()["read"] is False


def test_plain_users_cannot_send_notifications(client, reporter, register_user):
    other = register_user("other")

    assert send(client, reporter, other).status_code == 403


def test_notification_to_unknown_user_is_rejected(client, admin):
    response = send(client, admin, {"id": 999})

    assert response.status_code == 400
    assert response.json()["errors"][0]["loc"] == ["userId"]


def test_notifications_are_listed_newest_first_and_private(client, admin, reporter, register_user):
    other = register_user("other")
    send(client, admin, reporter, title="first")
    send(client, admin, other, title="for someone else")
    send(client, admin, reporter, title="second")

    notifications = client.get("/api/notifications", headers=headers_for(reporter)).json()

    assert [n["title"] for n in notifications] == ["second", "first"]


def test_mark_own_notification_read(client, admin, reporter):
    notification = send(client, admin, reporter).json()

    response = client.patch(
        f"/api/notifications/{notification['id']}/read",
        headers=headers_for(reporter),
    )

    assert response.status_code == 200
    assert response.json()["read"] is True


def test_cannot_mark_someone_elses_notification(client, admin, reporter, register_user):
    other = register_user("other")
    notification = send(client, admin, reporter).json()

    response = client.patch(
        f"/api/notifications/{notification['id']}/read",
        headers=headers_for(other),
    )

    assert response.status_code == 404
    unread = client.get("/api/notifications", headers=headers_for(reporter)).json()
    assert unread[0]["read"] is False


def test_notifications_require_identity(client):
    assert client.get("/api/notifications").status_code == 401
    assert client.patch("/api/notifications/1/read").status_code == 401


# =============================================================================
# Settings
# =============================================================================

def test_patch_settings_merges(client, reporter):
    response = client.patch(
        "/api/settings",
        json={"smsNotifications": True},
        headers=headers_for(reporter),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["smsNotifications"] is True
    assert body["emergencyAlerts"] is True
    assert body["anonymousDataCollection"] is False


def test_patch_settings_creates_missing_record(client, store):
    user = asyncio.run(store.create_user({
        "username": "legacy",
        "password": "hash",
        "email": "legacy@example.com",
        "full_name": "Legacy User",
    }))
    headers = {"user-id": str(user.id)}

    assert client.get("/api/settings", headers=headers).status_code == 404

    response = client.patch("/api/settings", json={"locationSharing": False}, headers=headers)
    assert response.status_code == 200
    assert response.json()["locationSharing"] is False
    assert response.json()["emergencyAlerts"] is True

    assert client.get("/api/settings", headers=headers).json()["locationSharing"] is False


def test_settings_reject_null_and_non_boolean(client, reporter):
    headers = headers_for(reporter)

    assert client.patch("/api/settings", json={"emergencyAlerts": None}, headers=headers).status_code == 400
    assert client.patch("/api/settings", json={"emergencyAlerts": "perhaps"}, headers=headers).status_code == 400
