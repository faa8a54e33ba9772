# pos_sync/api/v1/routes_sync.py
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from pos_sync.api.deps import get_sync_orchestrator
from pos_sync.core.exceptions import NotFoundError, SyncInProgressError
from pos_sync.db.base import get_db
from pos_sync.db.repositories.sync_log import get_last_sync
from pos_sync.domain.sync.schemas import SyncResult, SyncStatusOut
from pos_sync.domain.sync.service import SyncOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["sync"])


def format_sync_date(instant: datetime) -> str:
    """e.g. 'Friday of August 01, 2025'."""
    return f"{instant:%A} of {instant:%B} {instant:%d}, {instant:%Y}"


@router.get("/sync-status", response_model=SyncStatusOut)
async def sync_status_endpoint(
    db: AsyncSession = Depends(get_db),
):
    try:
        last_sync = await get_last_sync(db)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="No sync has been performed yet.")
    except Exception:
        logger.exception("Error fetching sync status")
        raise HTTPException(status_code=500, detail="Failed to retrieve sync status.")
    return SyncStatusOut(lastSync=format_sync_date(last_sync), lastSyncAt=last_sync)


@router.post("/sync", response_model=SyncResult)
async def sync_endpoint(
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
):
    # TODO: require an operator API key before this is exposed beyond the private network
    try:
        return await orchestrator.run()
    except SyncInProgressError:
        raise HTTPException(status_code=409, detail="A synchronization is already in progress.")
    except Exception:
        logger.exception("Sync failed")
        raise HTTPException(status_code=500, detail="An error occurred during synchronization.")
