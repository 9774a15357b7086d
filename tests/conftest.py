"""
Shared fixtures: a fresh in-memory application per test and helpers to
register users of each role.
"""

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.storage.memory import MemoryStore


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def app(store):
    return create_app(store=store)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def headers_for(user):
    """Identity header for a registered user (dict with an ``id``)."""
    return {"user-id": str(user["id"])}


@pytest.fixture
def register_user(client):
    def _register(username, user_type="user", password="secret123", **extra):
        payload = {
            "username": username,
            "password": password,
            "email": f"{username}@example.com",
            "fullName": username.replace("_", " ").title(),
            "userType": user_type,
            **extra,
        }
        response = client.post("/api/users/register", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture
def reporter(register_user):
    return register_user("reporter")


@pytest.fixture
def admin(register_user):
    return register_user("admin_user", user_type="admin")


@pytest.fixture
def responder(register_user):
    return register_user("responder", user_type="response_team")


@pytest.fixture
def submit_request(client):
    def _submit(user, **fields):
        payload = {"latitude": "40.7128", "longitude": "-74.0060", **fields}
        response = client.post("/api/emergency-requests", json=payload, headers=headers_for(user))
        assert response.status_code == 201, response.text
        return response.json()

    return _submit
