"""Error taxonomy for the sync engine.

Every failure raised inside an orchestration derives from ``SyncError`` so the
orchestrator and the HTTP layer can treat the whole family uniformly: the
transaction is rolled back and callers only ever see a generic message.
"""
from typing import Optional


class SyncError(Exception):
    """Base class for failures of a sync invocation."""


class NotFoundError(SyncError):
    """No watermark has been recorded yet (first run)."""


class RemoteFetchError(SyncError):
    """The POS API could not be reached or answered with an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DuplicateReceiptError(SyncError):
    """A fetched receipt number is already stored."""

    def __init__(self, receipt_number: str):
        super().__init__(f"Receipt {receipt_number} already exists")
        self.receipt_number = receipt_number


class IndexingUnavailableError(SyncError):
    """The indexing collaborator rejected the batch or did not answer in time."""


class PersistenceError(SyncError):
    """A store write failed for a reason other than a duplicate receipt."""


class SyncInProgressError(SyncError):
    """Another sync holds the single-flight gate or the advisory lock."""


class SyncTimeoutError(SyncError):
    """The orchestration exceeded its wall-clock budget."""


class InvalidWindowError(SyncError):
    """The captured window end does not lie after the watermark."""


class AnalysisUnavailableError(Exception):
    """The chat/analysis collaborator failed; not part of a sync."""
