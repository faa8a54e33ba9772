from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from pos_sync.core.exceptions import PersistenceError
from pos_sync.db.models.customers import Customer
from pos_sync.domain.sync.schemas import CustomerRecord, as_utc

# columns refreshed from the POS feed on every upsert
MERGED_COLUMNS = ("name", "email", "phone", "total_visits", "total_spent", "updated_at")

_DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    insert = _DIALECT_INSERTS.get(dialect)
    if insert is None:
        raise PersistenceError(f"Conflict-aware inserts are not supported on {dialect}")
    return insert


async def upsert_customers(
    db: AsyncSession,
    records: Iterable[CustomerRecord],
) -> int:
    """Insert each customer or overwrite the merged columns of the existing row.

    Last write wins: no timestamp comparison is made, so applying the same
    record twice leaves exactly the second application's values.
    """
    insert = _insert_for(db)
    count = 0
    for record in records:
        stmt = insert(Customer).values(
            id=record.id,
            name=record.name,
            email=record.email,
            phone=record.phone,
            total_visits=record.total_visits,
            total_spent=record.total_spent,
            updated_at=record.updated_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Customer.id],
            set_={column: stmt.excluded[column] for column in MERGED_COLUMNS},
        )
        try:
            await db.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to upsert customer {record.id}") from exc
        count += 1
    return count


async def ensure_customer_stub(
    db: AsyncSession,
    customer_id: str,
    fallback_name: str,
    instant: datetime,
) -> None:
    """Insert a placeholder customer unless a row with this id already exists."""
    insert = _insert_for(db)
    stmt = (
        insert(Customer)
        .values(id=customer_id, name=fallback_name, updated_at=as_utc(instant))
        .on_conflict_do_nothing(index_elements=[Customer.id])
    )
    try:
        await db.execute(stmt)
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to insert placeholder customer {customer_id}") from exc


async def get_customer_by_id(
    db: AsyncSession,
    customer_id: str,
) -> Optional[Customer]:
    result = await db.execute(
        select(Customer).where(Customer.id == customer_id)
    )
    return result.scalar_one_or_none()
