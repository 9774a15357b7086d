"""
One-off script: load the demo users, teams, requests, services, statuses and
activities into the configured entity store.

Refuses to run against a store that already holds users.

Usage:
  python scripts/seed_demo_data.py
  STORAGE_BACKEND=database DATABASE_URL=postgresql://... python scripts/seed_demo_data.py
"""

from __future__ import annotations

import argparse
import asyncio

import structlog

from app.core.config import setup_logging
from app.services.demo_data import seed_demo_data
from app.storage.factory import build_store

logger = structlog.get_logger(__name__).bind(component="seed_demo_data")


async def _seed(force: bool) -> dict:
    store = build_store()
    await store.initialize()
    try:
        if await store.list_users() and not force:
            logger.warning("store_not_empty", backend=store.backend)
            return {"seeded": False}
        created = await seed_demo_data(store)
        return {"seeded": True, **created}
    finally:
        await store.close()


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--force",
        action="store_true",
        help="seed even if users exist (fails on duplicate demo usernames)",
    )
    args = parser.parse_args()
    setup_logging()
    results = asyncio.run(_seed(args.force))
    print(results)


if __name__ == "__main__":
    main()
