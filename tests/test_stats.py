"""
Tests for stats derivation and refresh.
"""

import pytest

from app.models.schemas import EmergencyRequestRecord, ResponseTeamRecord
from app.services.stats import compute_stats, refresh_stats
from app.storage.memory import MemoryStore


def make_request(request_id, status):
    return EmergencyRequestRecord(
        id=request_id,
        user_id=1,
        status=status,
        latitude="0",
        longitude="0",
    )


def make_team(team_id, status="available"):
    return ResponseTeamRecord(id=team_id, name=f"Team {team_id}", status=status)


def test_compute_stats_counts_each_status():
    requests = [
        make_request(1, "pending"),
        make_request(2, "pending"),
        make_request(3, "resolved"),
        make_request(4, "critical"),
        make_request(5, "in_progress"),
        make_request(6, "cancelled"),
    ]
    teams = [make_team(1), make_team(2, "busy"), make_team(3, "offline")]

    counts = compute_stats(requests, teams)

    assert counts.pending_cases == 2
    assert counts.resolved_cases == 1
    assert counts.critical_cases == 1
    assert counts.response_teams == 3


def test_compute_stats_empty():
    counts = compute_stats([], [])

    assert counts.model_dump() == {
        "response_teams": 0,
        "resolved_cases": 0,
        "pending_cases": 0,
        "critical_cases": 0,
    }


@pytest.mark.asyncio
async def test_refresh_stats_persists_counts():
    store = MemoryStore()
    await store.initialize()
    user = await store.create_user({
        "username": "jane",
        "password": "hash",
        "email": "jane@example.com",
        "full_name": "Jane",
    })
    await store.create_response_team({"name": "Alpha"})
    await store.create_emergency_request({
        "user_id": user.id,
        "latitude": "1",
        "longitude": "2",
        "status": "critical",
    })

    stats = await refresh_stats(store)

    assert stats.critical_cases == 1
    assert stats.response_teams == 1
    assert (await store.get_stats()).critical_cases == 1


class BrokenStore(MemoryStore):
    async def replace_stats(self, counts):
        raise RuntimeError("disk full")


@pytest.mark.asyncio
async def test_refresh_stats_failure_is_not_raised():
    store = BrokenStore()

    assert await refresh_stats(store) is None
