"""Async client for the remote POS API (customers and receipts feeds)."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from pos_sync.core.config import Settings, settings as default_settings
from pos_sync.core.exceptions import RemoteFetchError
from pos_sync.domain.sync.schemas import CustomerRecord, ReceiptRecord, as_utc

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def to_iso(instant: datetime) -> str:
    """Format an instant the way the POS API expects: UTC, milliseconds, ``Z`` suffix."""
    return as_utc(instant).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def in_window(instant: datetime, window_start: datetime, window_end: datetime) -> bool:
    return window_start <= instant < window_end


def _parse_records(model: Type[RecordT], raw: List[Any], resource: str) -> List[RecordT]:
    try:
        return [model.model_validate(item) for item in raw]
    except ValidationError as exc:
        raise RemoteFetchError(
            f"Malformed {resource} payload from POS API ({exc.error_count()} invalid field(s))"
        ) from exc


class PosClient:
    """Fetches customers and receipts created within ``[window_start, window_end)``.

    Pages are followed through the response ``cursor`` until the API stops
    returning one. More than ``max_pages`` pages is treated as a failure
    rather than a truncated batch, since the watermark would otherwise move
    past records that were never fetched.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        page_size: int = 250,
        max_pages: int = 40,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._headers = {"Authorization": f"Bearer {token}"}
        self._page_size = page_size
        self._max_pages = max_pages
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PosClient":
        settings = settings or default_settings
        return cls(
            settings.POS_API_BASE_URL,
            settings.POS_API_TOKEN,
            page_size=settings.POS_PAGE_SIZE,
            max_pages=settings.POS_MAX_PAGES,
            timeout=settings.POS_API_TIMEOUT_SECONDS,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "PosClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def fetch_customers(
        self,
        window_start: datetime,
        window_end: datetime,
    ) -> List[CustomerRecord]:
        raw = await self._fetch_collection("customers", window_start, window_end)
        records = _parse_records(CustomerRecord, raw, "customers")
        return [
            record for record in records
            if record.created_at is None or in_window(record.created_at, window_start, window_end)
        ]

    async def fetch_receipts(
        self,
        window_start: datetime,
        window_end: datetime,
    ) -> List[ReceiptRecord]:
        raw = await self._fetch_collection("receipts", window_start, window_end)
        records = _parse_records(ReceiptRecord, raw, "receipts")
        kept = [r for r in records if in_window(r.created_at, window_start, window_end)]
        if len(kept) != len(records):
            logger.debug("Dropped %d receipts outside [%s, %s)",
                         len(records) - len(kept), to_iso(window_start), to_iso(window_end))
        return kept

    async def _fetch_collection(
        self,
        resource: str,
        window_start: datetime,
        window_end: datetime,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "created_at_min": to_iso(window_start),
            "created_at_max": to_iso(window_end),
            "limit": self._page_size,
        }
        items: List[Dict[str, Any]] = []
        cursor = None
        for page in range(1, self._max_pages + 1):
            page_params = dict(params, cursor=cursor) if cursor else params
            payload = await self._get_page(resource, page_params)

            batch = payload.get(resource) or []
            if not isinstance(batch, list):
                raise RemoteFetchError(f"POS API returned a non-list '{resource}' field")
            items.extend(batch)

            cursor = payload.get("cursor")
            if not cursor:
                logger.debug("Fetched %d %s in %d page(s)", len(items), resource, page)
                return items

        raise RemoteFetchError(
            f"POS API returned more than {self._max_pages} pages of {resource} "
            f"for window {params['created_at_min']} - {params['created_at_max']}"
        )

    async def _get_page(self, resource: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._client.get(f"/{resource}", params=params, headers=self._headers)
        except httpx.HTTPError as exc:
            logger.warning("POS request for %s failed: %s", resource, exc)
            raise RemoteFetchError(f"POS request for {resource} failed: {exc}") from exc

        if not response.is_success:
            logger.warning("POS API answered %s for %s: %s",
                           response.status_code, resource, response.text[:500])
            raise RemoteFetchError(
                f"POS API returned HTTP {response.status_code} for {resource}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteFetchError(f"POS API returned a non-JSON body for {resource}") from exc
        if not isinstance(payload, dict):
            raise RemoteFetchError(f"POS API returned an unexpected body for {resource}")
        return payload
