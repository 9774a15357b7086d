"""
Stats maintenance.

The stats singleton is fully derived from emergency requests and response
teams. ``compute_stats`` is pure; ``refresh_stats`` loads both collections,
recomputes and overwrites the singleton.
"""

from typing import Iterable, Optional

import structlog

from app.core.metrics import STATS_REFRESH_FAILURES
from app.models.schemas import (
    EmergencyRequestRecord,
    RequestStatus,
    ResponseTeamRecord,
    StatsCounts,
    StatsRecord,
)

logger = structlog.get_logger(__name__)


def compute_stats(
    requests: Iterable[EmergencyRequestRecord],
    teams: Iterable[ResponseTeamRecord],
) -> StatsCounts:
    """
    Count request statuses and teams.

    ``in_progress`` and ``cancelled`` requests are not tallied.

    Args:
        requests: every emergency request
        teams: every response team

    Returns:
        Fresh counters
    """
    pending = resolved = critical = 0
    for request in requests:
        if request.status == RequestStatus.PENDING:
            pending += 1
        elif request.status == RequestStatus.RESOLVED:
            resolved += 1
        elif request.status == RequestStatus.CRITICAL:
            critical += 1

    return StatsCounts(
        response_teams=sum(1 for _ in teams),
        resolved_cases=resolved,
        pending_cases=pending,
        critical_cases=critical,
    )


async def refresh_stats(store) -> Optional[StatsRecord]:
    """
    Recompute and persist the stats singleton.

    Runs after a mutation that has already been committed, so failures are
    logged and counted, never raised.

    Returns:
        The new stats record, or None if the refresh failed
    """
    try:
        requests = await store.list_emergency_requests()
        teams = await store.list_response_teams()
        counts = compute_stats(requests, teams)
        stats = await store.replace_stats(counts)
    except Exception as e:
        STATS_REFRESH_FAILURES.inc()
        logger.error("Stats refresh failed", error=str(e), error_type=type(e).__name__)
        return None

    logger.debug("Stats refreshed", **counts.model_dump())
    return stats
