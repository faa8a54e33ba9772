# pos_sync/domain/sync/service.py
import asyncio
import enum
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from pos_sync.core.config import Settings, settings as default_settings
from pos_sync.core.exceptions import (
    InvalidWindowError,
    NotFoundError,
    SyncInProgressError,
    SyncTimeoutError,
)
from pos_sync.db.repositories.customers import ensure_customer_stub, upsert_customers
from pos_sync.db.repositories.receipts import insert_line_items, insert_receipt
from pos_sync.db.repositories.sync_log import advance_watermark, get_last_sync
from pos_sync.domain.sync.documents import build_documents
from pos_sync.domain.sync.schemas import SyncResult, as_utc

logger = logging.getLogger(__name__)

UNKNOWN_CUSTOMER_NAME = "Unknown Customer"
NO_NEW_DATA_MESSAGE = "No new data to sync."

# one sync per process; the advisory lock covers other processes on PostgreSQL
_sync_gate = asyncio.Lock()


class SyncState(str, enum.Enum):
    IDLE = "IDLE"
    WATERMARK_READ = "WATERMARK_READ"
    FETCHING = "FETCHING"
    WRITING = "WRITING"
    DOCUMENT_BUILDING = "DOCUMENT_BUILDING"
    WATERMARK_ADVANCE = "WATERMARK_ADVANCE"
    COMMITTED = "COMMITTED"
    FAILED = "FAILED"


TERMINAL_STATES = frozenset({SyncState.COMMITTED, SyncState.FAILED})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncOrchestrator:
    """Runs one incremental sync of POS customers and receipts.

    The whole batch is applied inside a single transaction: customers are
    upserted, every receipt gets a placeholder customer (if needed), the
    receipt row and its line items, the receipt summaries are pushed to the
    indexing service, and finally a new watermark equal to the ``now``
    captured at the start is appended. Any failure rolls everything back and
    leaves the previous watermark in place, so the same window is fetched
    again on the next invocation.

    ``fetcher`` must provide ``fetch_customers`` and ``fetch_receipts``
    coroutines taking ``(window_start, window_end)``; ``indexer`` must
    provide an ``index_documents(documents)`` coroutine.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        fetcher,
        indexer,
        *,
        epoch: Optional[datetime] = None,
        timeout_seconds: Optional[float] = None,
        lock_key: int = default_settings.SYNC_LOCK_KEY,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._fetcher = fetcher
        self._indexer = indexer
        self._epoch = epoch
        self._timeout_seconds = timeout_seconds
        self._lock_key = lock_key
        self._clock = clock
        self.state = SyncState.IDLE

    @classmethod
    def from_settings(
        cls,
        session_factory: Callable[[], AsyncSession],
        fetcher,
        indexer,
        settings: Optional[Settings] = None,
    ) -> "SyncOrchestrator":
        settings = settings or default_settings
        return cls(
            session_factory,
            fetcher,
            indexer,
            epoch=settings.SYNC_EPOCH,
            timeout_seconds=settings.SYNC_TIMEOUT_SECONDS,
            lock_key=settings.SYNC_LOCK_KEY,
        )

    async def run(self) -> SyncResult:
        if self.state is not SyncState.IDLE:
            raise RuntimeError("A SyncOrchestrator can only run once")

        try:
            if _sync_gate.locked():
                raise SyncInProgressError("A sync is already running")
            async with _sync_gate:
                return await self._run_with_deadline()
        except Exception as exc:
            self._fail(exc)
            raise

    async def _run_with_deadline(self) -> SyncResult:
        """Run the batch, raising SyncTimeoutError only when the deadline expires.

        A ``TimeoutError`` raised by the fetcher or indexer is passed through
        as-is and is not mistaken for the wall-clock limit.
        """
        if not self._timeout_seconds:
            return await self._run_in_transaction()

        task = asyncio.ensure_future(self._run_in_transaction())
        try:
            done, _ = await asyncio.wait({task}, timeout=self._timeout_seconds)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task in done:
            return task.result()

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        raise SyncTimeoutError(
            f"Sync did not finish within {self._timeout_seconds} seconds"
        )

    async def _run_in_transaction(self) -> SyncResult:
        async with self._session_factory() as session:
            async with session.begin():
                result = await self._apply_batch(session)
        self._transition(SyncState.COMMITTED)
        logger.info(result.message)
        return result

    async def _apply_batch(self, session: AsyncSession) -> SyncResult:
        await self._acquire_advisory_lock(session)

        self._transition(SyncState.WATERMARK_READ)
        window_start = await self._read_watermark(session)
        window_end = as_utc(self._clock())
        if window_end <= window_start:
            raise InvalidWindowError(
                f"Window end {window_end.isoformat()} is not after watermark {window_start.isoformat()}"
            )

        self._transition(SyncState.FETCHING)
        logger.info("Syncing customers and receipts from %s to %s",
                    window_start.isoformat(), window_end.isoformat())
        customers = await self._fetcher.fetch_customers(window_start, window_end)
        receipts = await self._fetcher.fetch_receipts(window_start, window_end)

        if not customers and not receipts:
            return SyncResult(
                message=NO_NEW_DATA_MESSAGE,
                window_start=window_start,
                window_end=window_end,
                no_new_data=True,
            )

        self._transition(SyncState.WRITING)
        await upsert_customers(session, customers)
        logger.info("Synced %d customers.", len(customers))

        # stub -> receipt -> line items, or the foreign keys dangle
        for receipt in receipts:
            if receipt.customer_id:
                await ensure_customer_stub(
                    session, receipt.customer_id, UNKNOWN_CUSTOMER_NAME, receipt.created_at
                )
            await insert_receipt(session, receipt)
            await insert_line_items(session, receipt.receipt_number, receipt.line_items)

        self._transition(SyncState.DOCUMENT_BUILDING)
        documents = build_documents(receipts)
        if documents:
            logger.info("Sending %d documents to the indexing service...", len(documents))
            await self._indexer.index_documents(documents)

        self._transition(SyncState.WATERMARK_ADVANCE)
        await advance_watermark(session, window_end)

        return SyncResult(
            message=f"Successfully synced {len(receipts)} receipts and {len(customers)} customers.",
            customers_synced=len(customers),
            receipts_synced=len(receipts),
            documents_indexed=len(documents),
            window_start=window_start,
            window_end=window_end,
        )

    async def _acquire_advisory_lock(self, session: AsyncSession) -> None:
        if session.get_bind().dialect.name != "postgresql":
            return
        result = await session.execute(
            text("SELECT pg_try_advisory_xact_lock(:key)"), {"key": self._lock_key}
        )
        if not result.scalar():
            raise SyncInProgressError("Another process holds the sync lock")

    async def _read_watermark(self, session: AsyncSession) -> datetime:
        try:
            return await get_last_sync(session)
        except NotFoundError:
            if self._epoch is None:
                raise
            logger.warning("No watermark recorded yet; starting from configured epoch %s",
                           self._epoch.isoformat())
            return as_utc(self._epoch)

    def _transition(self, state: SyncState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Sync already finished in state {self.state.value}")
        logger.debug("Sync state %s -> %s", self.state.value, state.value)
        self.state = state

    def _fail(self, exc: BaseException) -> None:
        if self.state in TERMINAL_STATES:
            return
        logger.error("Sync failed during %s: %s", self.state.value, exc)
        self.state = SyncState.FAILED
