"""
In-memory entity store used for tests and local development.
"""

import itertools
from typing import Any, Dict, Iterator, List, Optional

import structlog

from app.core.exceptions import ConflictError
from app.storage.base import ENTITY_SPECS, EntityKind, EntityStore

logger = structlog.get_logger(__name__)


class MemoryStore(EntityStore):
    """
    Dict-backed store.

    Rows are copied on the way in and out so callers never share state with
    the store. Unique keys are enforced the same way the database does.
    """

    backend = "memory"

    def __init__(self):
        self._tables: Dict[EntityKind, Dict[int, Dict[str, Any]]] = {kind: {} for kind in EntityKind}
        self._ids: Dict[EntityKind, Iterator[int]] = {kind: itertools.count(1) for kind in EntityKind}

    async def initialize(self) -> None:
        await super().initialize()
        logger.info("Memory store initialized")

    def _check_unique(self, kind: EntityKind, row: Dict[str, Any]) -> None:
        for field in ENTITY_SPECS[kind].unique_fields:
            for other in self._tables[kind].values():
                if other["id"] != row["id"] and other.get(field) == row.get(field):
                    raise ConflictError(
                        f"{ENTITY_SPECS[kind].label} with this {field} already exists",
                        field=field,
                        value=row.get(field),
                    )

    async def _fetch(self, kind: EntityKind, record_id: int) -> Optional[Dict[str, Any]]:
        row = self._tables[kind].get(record_id)
        return dict(row) if row is not None else None

    async def _query(
        self,
        kind: EntityKind,
        filters: Optional[Dict[str, Any]] = None,
        newest_first_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        filters = filters or {}
        rows = [
            dict(row)
            for row in self._tables[kind].values()
            if all(row.get(key) == value for key, value in filters.items())
        ]
        if newest_first_by:
            rows.sort(key=lambda row: (row[newest_first_by], row["id"]), reverse=True)
        else:
            rows.sort(key=lambda row: row["id"])
        return rows

    async def _insert(self, kind: EntityKind, values: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(values)
        row["id"] = next(self._ids[kind])
        self._check_unique(kind, row)
        self._tables[kind][row["id"]] = row
        return dict(row)

    async def _patch(
        self, kind: EntityKind, record_id: int, values: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        current = self._tables[kind].get(record_id)
        if current is None:
            return None
        row = {**current, **values, "id": record_id}
        self._check_unique(kind, row)
        self._tables[kind][record_id] = row
        return dict(row)

    async def _remove(self, kind: EntityKind, record_id: int) -> bool:
        return self._tables[kind].pop(record_id, None) is not None
