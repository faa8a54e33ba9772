"""Client for the AI service: document indexing and question answering."""

import logging
from typing import Any, List, Optional

import httpx

from pos_sync.core.config import Settings, settings as default_settings
from pos_sync.core.exceptions import AnalysisUnavailableError, IndexingUnavailableError

logger = logging.getLogger(__name__)

INDEX_PATH = "/embed-and-store"
QUERY_MODES = ("chat", "analyze")


class AiServiceClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "AiServiceClient":
        settings = settings or default_settings
        return cls(settings.AI_SERVICE_URL, timeout=settings.AI_SERVICE_TIMEOUT_SECONDS)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "AiServiceClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def index_documents(self, documents: List[str]) -> None:
        """Send one batch of receipt summaries to be embedded and stored.

        Timeouts count as failures: the caller must not advance its watermark
        past documents the index never confirmed.
        """
        try:
            response = await self._client.post(INDEX_PATH, json={"documents": documents})
        except httpx.TimeoutException as exc:
            raise IndexingUnavailableError(
                f"Indexing service timed out after receiving {len(documents)} documents"
            ) from exc
        except httpx.HTTPError as exc:
            raise IndexingUnavailableError(f"Indexing service unreachable: {exc}") from exc

        if not response.is_success:
            logger.warning("Indexing service answered %s: %s",
                           response.status_code, response.text[:500])
            raise IndexingUnavailableError(
                f"Indexing service returned HTTP {response.status_code}"
            )

    async def ask(self, mode: str, question: str) -> Any:
        """Forward a question to ``/query/<mode>`` and return the JSON answer as-is."""
        if mode not in QUERY_MODES:
            raise ValueError(f"Unknown query mode: {mode}")

        try:
            response = await self._client.post(f"/query/{mode}", json={"question": question})
        except httpx.HTTPError as exc:
            raise AnalysisUnavailableError(f"AI service {mode} request failed: {exc}") from exc

        if not response.is_success:
            raise AnalysisUnavailableError(
                f"AI service {mode} request returned HTTP {response.status_code}: {response.text[:500]}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise AnalysisUnavailableError(f"AI service {mode} returned a non-JSON body") from exc
