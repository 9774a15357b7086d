"""
Entity store contract, run against the in-memory store and the SQL store on
in-memory SQLite.
"""

import pytest
import pytest_asyncio

from app.core.exceptions import ConflictError, ValidationError
from app.models.schemas import StatsCounts
from app.storage.memory import MemoryStore
from app.storage.sql import SQLStore


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def entity_store(request):
    if request.param == "memory":
        store = MemoryStore()
    else:
        store = SQLStore("sqlite+aiosqlite://")
    await store.initialize()
    yield store
    await store.close()


async def make_user(store, username="jane", **fields):
    return await store.create_user({
        "username": username,
        "password": "hash",
        "email": f"{username}@example.com",
        "full_name": username.title(),
        **fields,
    })


@pytest.mark.asyncio
async def test_ids_are_assigned_in_increasing_order(entity_store):
    first = await make_user(entity_store, "a")
    second = await make_user(entity_store, "b")

    assert second.id > first.id
    assert first.created_at is not None
    assert first.user_type == "user"


@pytest.mark.asyncio
async def test_unknown_ids_yield_none(entity_store):
    assert await entity_store.get_user(999) is None
    assert await entity_store.get_emergency_request(999) is None
    assert await entity_store.update_response_team(999, {"name": "X"}) is None
    assert await entity_store.update_system_status(999, {"status": "offline"}) is None
    assert await entity_store.mark_notification_read(999) is None
    assert await entity_store.delete_user(999) is False


@pytest.mark.asyncio
async def test_create_validates_fields(entity_store):
    with pytest.raises(ValidationError) as exc_info:
        await entity_store.create_medical_service({"name": "No address"})

    locations = {tuple(error["loc"]) for error in exc_info.value.errors}
    assert ("address",) in locations
    assert ("latitude",) in locations


@pytest.mark.asyncio
async def test_username_is_unique(entity_store):
    await make_user(entity_store, "jane")

    with pytest.raises(ConflictError):
        await make_user(entity_store, "jane")


@pytest.mark.asyncio
async def test_requests_must_reference_existing_user(entity_store):
    with pytest.raises(ValidationError) as exc_info:
        await entity_store.create_emergency_request({
            "user_id": 42,
            "latitude": "1.0",
            "longitude": "2.0",
        })

    assert exc_info.value.errors[0]["loc"] == ["userId"]


@pytest.mark.asyncio
async def test_request_update_merges_and_refreshes_updated_at(entity_store):
    user = await make_user(entity_store)
    request = await entity_store.create_emergency_request({
        "user_id": user.id,
        "latitude": "40.7128",
        "longitude": "-74.0060",
        "description": "flooded basement",
    })

    updated = await entity_store.update_emergency_request(request.id, {"status": "critical"})

    assert updated.status == "critical"
    assert updated.description == "flooded basement"
    assert updated.latitude == "40.7128"
    assert updated.updated_at >= request.updated_at


@pytest.mark.asyncio
async def test_requests_filtered_by_owner(entity_store):
    alice = await make_user(entity_store, "alice")
    bob = await make_user(entity_store, "bob")
    for owner in (alice, alice, bob):
        await entity_store.create_emergency_request({
            "user_id": owner.id,
            "latitude": "1",
            "longitude": "2",
        })

    assert len(await entity_store.list_emergency_requests(user_id=alice.id)) == 2
    assert len(await entity_store.list_emergency_requests(user_id=bob.id)) == 1
    assert len(await entity_store.list_emergency_requests()) == 3


@pytest.mark.asyncio
async def test_activities_newest_first(entity_store):
    for title in ("one", "two", "three"):
        await entity_store.create_activity({"title": title})

    titles = [activity.title for activity in await entity_store.list_activities()]

    assert titles == ["three", "two", "one"]


@pytest.mark.asyncio
async def test_services_by_type_in_id_order(entity_store):
    for name, kind in [("a", "clinic"), ("b", "pharmacy"), ("c", "clinic")]:
        await entity_store.create_medical_service({
            "name": name,
            "type": kind,
            "address": "somewhere",
            "latitude": "1",
            "longitude": "2",
        })

    clinics = await entity_store.list_medical_services(service_type="clinic")

    assert [service.name for service in clinics] == ["a", "c"]


@pytest.mark.asyncio
async def test_one_settings_record_per_user(entity_store):
    user = await make_user(entity_store)
    await entity_store.create_user_settings({"user_id": user.id})

    with pytest.raises(ConflictError):
        await entity_store.create_user_settings({"user_id": user.id})

    updated = await entity_store.update_user_settings(user.id, {"sms_notifications": True})
    assert updated.sms_notifications is True
    assert updated.email_notifications is True


@pytest.mark.asyncio
async def test_settings_update_without_record_returns_none(entity_store):
    user = await make_user(entity_store)

    assert await entity_store.update_user_settings(user.id, {"sms_notifications": True}) is None


@pytest.mark.asyncio
async def test_stats_singleton_is_replaced(entity_store):
    initial = await entity_store.get_stats()
    assert initial.pending_cases == 0

    replaced = await entity_store.replace_stats(
        StatsCounts(response_teams=3, resolved_cases=1, pending_cases=2, critical_cases=0)
    )

    assert replaced.id == initial.id
    assert replaced.response_teams == 3
    assert (await entity_store.get_stats()).pending_cases == 2


@pytest.mark.asyncio
async def test_delete_user_keeps_dependent_records(entity_store):
    user = await make_user(entity_store)
    await entity_store.create_emergency_request({"user_id": user.id, "latitude": "1", "longitude": "2"})
    await entity_store.create_notification({"user_id": user.id, "title": "t", "message": "m"})

    assert await entity_store.delete_user(user.id) is True

    assert await entity_store.get_user(user.id) is None
    assert len(await entity_store.list_emergency_requests(user_id=user.id)) == 1
    assert len(await entity_store.list_notifications(user.id)) == 1


@pytest.mark.asyncio
async def test_update_user_rejects_taken_username(entity_store):
    await make_user(entity_store, "taken")
    user = await make_user(entity_store, "jane")

    with pytest.raises(ConflictError):
        await entity_store.update_user(user.id, {"username": "taken"})

    renamed = await entity_store.update_user(user.id, {"username": "jane"})
    assert renamed.username == "jane"


@pytest.mark.asyncio
async def test_health_reports_counts(entity_store):
    await make_user(entity_store)

    health = await entity_store.health()

    assert health["status"] == "healthy"
    assert health["counts"]["users"] == 1
    assert health["counts"]["stats"] == 1


@pytest.mark.asyncio
async def test_ids_of_deleted_users_are_not_reused(entity_store):
    await make_user(entity_store, "a")
    newest = await make_user(entity_store, "b")
    await entity_store.create_user_settings({"user_id": newest.id})
    await entity_store.create_emergency_request({"user_id": newest.id, "latitude": "1", "longitude": "2"})

    await entity_store.delete_user(newest.id)
    replacement = await make_user(entity_store, "c")

    assert replacement.id > newest.id
    assert await entity_store.get_user_settings(replacement.id) is None
    assert await entity_store.list_emergency_requests(user_id=replacement.id) == []


@pytest.mark.asyncio
async def test_activity_lookup_by_id(entity_store):
    created = await entity_store.create_activity({"title": "Drill", "icon": "fa-bell"})

    fetched = await entity_store.get_activity(created.id)

    assert fetched.title == "Drill"
    assert fetched.icon == "fa-bell"
    assert fetched.timestamp is not None
    assert await entity_store.get_activity(created.id + 1) is None
