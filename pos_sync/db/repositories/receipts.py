
from typing import List, Optional, Sequence
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from pos_sync.core.exceptions import DuplicateReceiptError, PersistenceError
from pos_sync.db.models.receipts import Receipt
from pos_sync.db.models.line_items import LineItem
from pos_sync.domain.sync.schemas import LineItemRecord, ReceiptRecord

# unique_violation on PostgreSQL
UNIQUE_VIOLATION = "23505"


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)

async def get_receipt_by_number(
    db: AsyncSession,
    receipt_number: str
) -> Optional[Receipt]:
    result = await db.execute(
        select(Receipt).where(Receipt.receipt_number == receipt_number)
    )
    receipt = result.scalar_one_or_none()
    return receipt

async def get_line_items_for_receipt(
    db: AsyncSession,
    receipt_number: str
) -> List[LineItem]:
    result = await db.execute(
        select(LineItem).where(LineItem.receipt_number == receipt_number).order_by(LineItem.id)
    )
    line_items = result.scalars().all()
    return list(line_items)

async def receipt_exists(
    db: AsyncSession,
    receipt_number: str
) -> bool:
    result = await db.execute(
        select(Receipt.receipt_number).where(Receipt.receipt_number == receipt_number)
    )
    return result.scalar_one_or_none() is not None

async def insert_receipt(
    db: AsyncSession,
    record: ReceiptRecord
) -> None:
    # receipts are never updated; a second insert means overlapping windows
    if await receipt_exists(db, record.receipt_number):
        raise DuplicateReceiptError(record.receipt_number)

    try:
        await db.execute(
            insert(Receipt).values(
                receipt_number=record.receipt_number,
                created_at=record.created_at,
                total_money=record.total_money,
                total_tax=record.total_tax,
                source=record.source,
                customer_id=record.customer_id,
            )
        )
    except IntegrityError as exc:
        # another writer inserted the same receipt after the existence check
        if _is_unique_violation(exc):
            raise DuplicateReceiptError(record.receipt_number) from exc
        raise PersistenceError(f"Failed to insert receipt {record.receipt_number}") from exc
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to insert receipt {record.receipt_number}") from exc

async def insert_line_items(
    db: AsyncSession,
    receipt_number: str,
    items: Sequence[LineItemRecord]
) -> int:
    for position, item in enumerate(items, start=1):
        try:
            await db.execute(
                insert(LineItem).values(
                    receipt_number=receipt_number,
                    item_name=item.item_name,
                    quantity=item.quantity,
                    price=item.price,
                )
            )
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to insert line item {position} of receipt {receipt_number}"
            ) from exc
    return len(items)
