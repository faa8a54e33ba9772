from typing import AsyncIterator

from pos_sync.db.base import AsyncSessionLocal
from pos_sync.domain.sync.service import SyncOrchestrator
from pos_sync.integrations.ai_client import AiServiceClient
from pos_sync.integrations.pos_client import PosClient


async def get_ai_client() -> AsyncIterator[AiServiceClient]:
    async with AiServiceClient.from_settings() as client:
        yield client


async def get_sync_orchestrator() -> AsyncIterator[SyncOrchestrator]:
    async with PosClient.from_settings() as fetcher, AiServiceClient.from_settings() as indexer:
        yield SyncOrchestrator.from_settings(AsyncSessionLocal, fetcher, indexer)
