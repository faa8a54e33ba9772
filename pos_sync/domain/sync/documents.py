"""Plain-text receipt summaries handed to the indexing service."""

from decimal import Decimal
from typing import Iterable, List, Sequence

from pos_sync.domain.sync.schemas import LineItemRecord, ReceiptRecord, as_utc

TIMESTAMP_FORMAT = "%B %d, %Y at %H:%M:%S UTC"


def format_timestamp(receipt: ReceiptRecord) -> str:
    return as_utc(receipt.created_at).strftime(TIMESTAMP_FORMAT)


def format_amount(amount: Decimal) -> str:
    """Render a Decimal exactly as received, without exponent notation."""
    return format(amount, "f")


def format_item(item: LineItemRecord) -> str:
    return f"{item.quantity} of {item.item_name}"


def build_summary(receipt: ReceiptRecord, line_items: Sequence[LineItemRecord]) -> str:
    """Describe one receipt as a sentence, e.g.

    On August 01, 2025 at 09:30:00 UTC, receipt R-100 was created totaling 12.50. Items sold: 2 of Latte, 1 of Bagel.
    """
    items_clause = ", ".join(format_item(item) for item in line_items) or "none"
    return (
        f"On {format_timestamp(receipt)}, receipt {receipt.receipt_number} "
        f"was created totaling {format_amount(receipt.total_money)}. "
        f"Items sold: {items_clause}."
    )


def build_documents(receipts: Iterable[ReceiptRecord]) -> List[str]:
    return [build_summary(receipt, receipt.line_items) for receipt in receipts]
