from datetime import datetime
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from pos_sync.core.exceptions import NotFoundError, PersistenceError
from pos_sync.db.models.sync_log import SyncLogEntry
from pos_sync.domain.sync.schemas import as_utc


async def get_last_sync(db: AsyncSession) -> datetime:
    """Return the most recent watermark, raising NotFoundError before the first sync."""
    result = await db.execute(
        select(SyncLogEntry.last_sync_timestamp).order_by(SyncLogEntry.id.desc()).limit(1)
    )
    last_sync = result.scalar_one_or_none()
    if last_sync is None:
        raise NotFoundError("No sync has been performed yet")
    return as_utc(last_sync)


async def advance_watermark(db: AsyncSession, instant: datetime) -> SyncLogEntry:
    """Append a new watermark; takes effect when the caller's transaction commits."""
    entry = SyncLogEntry(last_sync_timestamp=as_utc(instant))
    db.add(entry)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to append watermark {instant.isoformat()}") from exc
    return entry


async def list_sync_history(db: AsyncSession, limit: int = 20) -> List[datetime]:
    result = await db.execute(
        select(SyncLogEntry.last_sync_timestamp).order_by(SyncLogEntry.id.desc()).limit(limit)
    )
    return [as_utc(ts) for ts in result.scalars().all()]
