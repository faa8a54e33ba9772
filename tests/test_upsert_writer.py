from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from pos_sync.core.exceptions import DuplicateReceiptError, PersistenceError
from pos_sync.db.models.customers import Customer
from pos_sync.db.models.line_items import LineItem
from pos_sync.db.models.receipts import Receipt
from pos_sync.db.repositories.customers import ensure_customer_stub, get_customer_by_id, upsert_customers
from pos_sync.db.repositories import receipts as receipts_repo
from pos_sync.db.repositories.receipts import (
    get_line_items_for_receipt,
    get_receipt_by_number,
    insert_line_items,
    insert_receipt,
)
from pos_sync.domain.sync.schemas import LineItemRecord, as_utc

from factories import make_customer, make_receipt


async def _count(db, model):
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


async def test_upserting_the_same_customer_twice_keeps_the_second_values(session_factory):
    first = make_customer("C1", name="Ada", total_visits=1)
    second = make_customer(
        "C1",
        name="Ada L.",
        email="ada@lovelace.dev",
        phone_number="+15550199",
        total_visits=4,
        total_spent=Decimal("99.90"),
        updated_at=datetime(2025, 8, 2, 10, 0, tzinfo=timezone.utc),
    )

    async with session_factory() as db:
        async with db.begin():
            await upsert_customers(db, [first])
            await upsert_customers(db, [second])

    async with session_factory() as db:
        assert await _count(db, Customer) == 1
        row = await get_customer_by_id(db, "C1")

    assert row.name == "Ada L."
    assert row.email == "ada@lovelace.dev"
    assert row.phone == "+15550199"
    assert row.total_visits == 4
    assert row.total_spent == Decimal("99.90")
    assert as_utc(row.updated_at) == second.updated_at


async def test_upsert_is_last_write_wins_even_for_older_timestamps(session_factory):
    newer = make_customer("C1", name="Newer", updated_at=datetime(2025, 8, 5, tzinfo=timezone.utc))
    older = make_customer("C1", name="Older", updated_at=datetime(2025, 8, 1, tzinfo=timezone.utc))

    async with session_factory() as db:
        async with db.begin():
            assert await upsert_customers(db, [newer, older]) == 2

    async with session_factory() as db:
        row = await get_customer_by_id(db, "C1")
    assert row.name == "Older"


async def test_stub_does_not_clobber_an_authoritative_customer(session_factory):
    authoritative = make_customer("C1")

    async with session_factory() as db:
        async with db.begin():
            await upsert_customers(db, [authoritative])
            await ensure_customer_stub(db, "C1", "Unknown Customer", datetime(2025, 8, 3, tzinfo=timezone.utc))

    async with session_factory() as db:
        row = await get_customer_by_id(db, "C1")

    assert row.name == "Ada Lovelace"
    assert row.email == "ada@example.com"
    assert row.total_visits == 3
    assert as_utc(row.updated_at) == authoritative.updated_at


async def test_stub_is_inserted_with_defaults_and_later_replaced_by_the_feed(session_factory):
    stub_time = datetime(2025, 8, 1, 9, 30, tzinfo=timezone.utc)

    async with session_factory() as db:
        async with db.begin():
            await ensure_customer_stub(db, "C9", "Unknown Customer", stub_time)
            await ensure_customer_stub(db, "C9", "Someone Else", stub_time)

    async with session_factory() as db:
        stub = await get_customer_by_id(db, "C9")
    assert stub.name == "Unknown Customer"
    assert stub.email is None
    assert stub.total_visits == 0
    assert stub.total_spent == 0

    async with session_factory() as db:
        async with db.begin():
            await upsert_customers(db, [make_customer("C9", name="Grace Hopper")])

    async with session_factory() as db:
        assert (await get_customer_by_id(db, "C9")).name == "Grace Hopper"


async def test_receipt_and_line_items_are_inserted(session_factory):
    receipt = make_receipt("R-1", customer_id=None)

    async with session_factory() as db:
        async with db.begin():
            await insert_receipt(db, receipt)
            assert await insert_line_items(db, receipt.receipt_number, receipt.line_items) == 2

    async with session_factory() as db:
        row = await get_receipt_by_number(db, "R-1")
        items = await get_line_items_for_receipt(db, "R-1")

    assert row.total_money == Decimal("12.50")
    assert row.customer_id is None
    assert [(i.item_name, i.quantity) for i in items] == [("Latte", 2), ("Bagel", 1)]


async def test_duplicate_receipt_number_is_a_hard_failure(session_factory):
    receipt = make_receipt("R-1", customer_id=None)

    async with session_factory() as db:
        async with db.begin():
            await insert_receipt(db, receipt)

    async with session_factory() as db:
        async with db.begin():
            with pytest.raises(DuplicateReceiptError) as exc_info:
                await insert_receipt(db, receipt.model_copy(update={"total_money": Decimal("1.00")}))

    assert exc_info.value.receipt_number == "R-1"
    async with session_factory() as db:
        assert (await get_receipt_by_number(db, "R-1")).total_money == Decimal("12.50")


async def test_receipt_inserted_after_the_existence_check_is_still_a_duplicate(session_factory, monkeypatch):
    receipt = make_receipt("R-4", customer_id=None)

    async with session_factory() as db:
        async with db.begin():
            await insert_receipt(db, receipt)

    async def _not_seen_yet(db, receipt_number):
        return False

    monkeypatch.setattr(receipts_repo, "receipt_exists", _not_seen_yet)

    with pytest.raises(DuplicateReceiptError) as exc_info:
        async with session_factory() as db:
            async with db.begin():
                await insert_receipt(db, receipt)

    assert exc_info.value.receipt_number == "R-4"
    async with session_factory() as db:
        assert await _count(db, Receipt) == 1


async def test_receipt_for_unknown_customer_violates_foreign_key(session_factory):
    with pytest.raises(PersistenceError):
        async with session_factory() as db:
            async with db.begin():
                await insert_receipt(db, make_receipt("R-2", customer_id="missing"))

    async with session_factory() as db:
        assert await get_receipt_by_number(db, "R-2") is None


async def test_invalid_line_item_raises_persistence_error(session_factory):
    receipt = make_receipt("R-3", customer_id=None)
    broken = LineItemRecord.model_construct(item_name="Ghost", quantity=0, price=Decimal("1.00"))

    with pytest.raises(PersistenceError, match="line item 2 of receipt R-3"):
        async with session_factory() as db:
            async with db.begin():
                await insert_receipt(db, receipt)
                await insert_line_items(db, "R-3", [receipt.line_items[0], broken])

    async with session_factory() as db:
        assert await _count(db, LineItem) == 0
        assert await get_receipt_by_number(db, "R-3") is None
