"""
Entity store selection.
"""

from typing import Optional

from app.core.config import Settings, settings as default_settings
from app.storage.base import EntityStore
from app.storage.memory import MemoryStore
from app.storage.sql import SQLStore


def build_store(config: Optional[Settings] = None) -> EntityStore:
    """Create the entity store selected by ``STORAGE_BACKEND``."""
    config = config or default_settings
    if config.STORAGE_BACKEND == "memory":
        return MemoryStore()
    return SQLStore(
        str(config.DATABASE_URL),
        engine_options=config.DATABASE_ENGINE_OPTIONS,
        wait_for_connection=not config.uses_sqlite,
    )
