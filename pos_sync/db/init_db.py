"""Schema provisioning and first-watermark seeding.

    python -m pos_sync.db.init_db --seed-watermark 2025-08-01T00:00:00Z
"""
import argparse
import asyncio
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from pos_sync.core.config import settings
from pos_sync.core.logging_setup import configure_logging
from pos_sync.db.base import AsyncSessionLocal, Base, engine
# register every table on Base.metadata
from pos_sync.db.models import customers, line_items, receipts, sync_log  # noqa: F401
from pos_sync.db.repositories.sync_log import advance_watermark

logger = logging.getLogger(__name__)


async def create_schema(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_watermark(session_factory, instant: datetime) -> None:
    async with session_factory() as session:
        async with session.begin():
            await advance_watermark(session, instant)
    logger.info("Seeded watermark %s", instant.isoformat())


async def main(seed_at: Optional[datetime]) -> None:
    await create_schema(engine)
    logger.info("Schema ready")
    if seed_at is not None:
        await seed_watermark(AsyncSessionLocal, seed_at)
    await engine.dispose()


def _parse_instant(raw: str) -> datetime:
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the sync tables and optionally seed the first watermark.")
    parser.add_argument("--seed-watermark", type=_parse_instant, default=None,
                        help="ISO-8601 instant to start the first sync window from")
    args = parser.parse_args()
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(main(args.seed_watermark))
