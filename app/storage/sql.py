"""
SQL entity store on async SQLAlchemy.

One short-lived session per operation; every write commits immediately.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Type

import structlog
from sqlalchemy import delete, desc, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.exceptions import ConflictError, StoreError
from app.models.database import (
    Activity,
    Base,
    EmergencyRequest,
    MedicalService,
    Notification,
    ResponseTeam,
    Setting,
    Stats,
    SystemStatus,
    User,
    build_engine,
    build_session_maker,
    check_database_health,
    create_tables,
    wait_for_database,
)
from app.storage.base import ENTITY_SPECS, EntityKind, EntityStore

logger = structlog.get_logger(__name__)

MODELS: Dict[EntityKind, Type[Base]] = {
    EntityKind.USER: User,
    EntityKind.EMERGENCY_REQUEST: EmergencyRequest,
    EntityKind.RESPONSE_TEAM: ResponseTeam,
    EntityKind.MEDICAL_SERVICE: MedicalService,
    EntityKind.SYSTEM_STATUS: SystemStatus,
    EntityKind.ACTIVITY: Activity,
    EntityKind.NOTIFICATION: Notification,
    EntityKind.SETTING: Setting,
    EntityKind.STATS: Stats,
}


def is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/").endswith(":"))


def row_to_dict(obj: Base) -> Dict[str, Any]:
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}


class SQLStore(EntityStore):
    """
    Relational store for PostgreSQL (asyncpg) or SQLite (aiosqlite).

    Args:
        url: async SQLAlchemy URL
        engine_options: extra keyword arguments for ``create_async_engine``
        wait_for_connection: retry the first connection with backoff
    """

    backend = "database"

    def __init__(
        self,
        url: str,
        engine_options: Optional[Dict[str, Any]] = None,
        wait_for_connection: bool = False,
    ):
        self.url = url
        self.engine_options = dict(engine_options or {})
        self.wait_for_connection = wait_for_connection
        self._engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker] = None

        # A private in-memory database must live on a single connection
        if is_memory_sqlite(url):
            self.engine_options.setdefault("poolclass", StaticPool)
            self.engine_options.setdefault("connect_args", {"check_same_thread": False})

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = build_engine(self.url, **self.engine_options)
        return self._engine

    @property
    def session_maker(self) -> async_sessionmaker:
        if self._session_maker is None:
            self._session_maker = build_session_maker(self.engine)
        return self._session_maker

    @asynccontextmanager
    async def _session(self, operation: str, kind: EntityKind) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_maker() as session:
                yield session
        except IntegrityError as e:
            logger.warning("Integrity violation", operation=operation, kind=kind.value, error=str(e.orig))
            raise ConflictError(f"{ENTITY_SPECS[kind].label} conflicts with an existing record") from e
        except SQLAlchemyError as e:
            logger.error("Database operation failed", operation=operation, kind=kind.value, error=str(e))
            raise StoreError(operation) from e

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        if self.wait_for_connection:
            await wait_for_database(self.session_maker)
        try:
            await create_tables(self.engine)
        except SQLAlchemyError as e:
            logger.error("Failed to create database tables", error=str(e))
            raise StoreError("initialize") from e

        await super().initialize()
        logger.info("Database store initialized", dialect=self.engine.dialect.name)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database connections closed")
        self._engine = None
        self._session_maker = None

    async def health(self) -> Dict[str, Any]:
        db_health = await check_database_health(self.session_maker)
        if db_health.get("status") != "healthy":
            logger.error("Database health check failed", error=db_health.get("error"))
            return {"status": "unhealthy", "backend": self.backend}
        return await super().health()

    # -------------------------------------------------------------------------
    # Primitives
    # -------------------------------------------------------------------------

    async def _fetch(self, kind: EntityKind, record_id: int) -> Optional[Dict[str, Any]]:
        async with self._session("fetch", kind) as session:
            obj = await session.get(MODELS[kind], record_id)
            return row_to_dict(obj) if obj is not None else None

    async def _query(
        self,
        kind: EntityKind,
        filters: Optional[Dict[str, Any]] = None,
        newest_first_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        model = MODELS[kind]
        stmt = select(model).filter_by(**(filters or {}))
        if newest_first_by:
            stmt = stmt.order_by(desc(getattr(model, newest_first_by)), desc(model.id))
        else:
            stmt = stmt.order_by(model.id)

        async with self._session("query", kind) as session:
            result = await session.execute(stmt)
            return [row_to_dict(obj) for obj in result.scalars().all()]

    async def _insert(self, kind: EntityKind, values: Dict[str, Any]) -> Dict[str, Any]:
        async with self._session("insert", kind) as session:
            obj = MODELS[kind](**values)
            session.add(obj)
            await session.commit()
            return row_to_dict(obj)

    async def _patch(
        self, kind: EntityKind, record_id: int, values: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        async with self._session("patch", kind) as session:
            obj = await session.get(MODELS[kind], record_id)
            if obj is None:
                return None
            for key, value in values.items():
                setattr(obj, key, value)
            await session.commit()
            return row_to_dict(obj)

    async def _remove(self, kind: EntityKind, record_id: int) -> bool:
        model = MODELS[kind]
        async with self._session("remove", kind) as session:
            result = await session.execute(delete(model).where(model.id == record_id))
            await session.commit()
            return result.rowcount > 0
