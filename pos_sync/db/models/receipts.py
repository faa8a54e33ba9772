from sqlalchemy import Column, ForeignKey, Index, String, DateTime, Numeric
from sqlalchemy.sql import func

from pos_sync.db.base import Base


class Receipt(Base):
    __tablename__ = "receipts"

    """Represents a single POS receipt pulled from the remote POS API.

    Receipts are immutable once stored: the sync engine only ever inserts
    them, keyed by the POS receipt number, and a second insert of the same
    number is treated as a windowing error rather than merged.
    """

    receipt_number = Column(String, primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    total_money = Column(Numeric(18, 2), nullable=False)
    total_tax = Column(Numeric(18, 2), nullable=False, default=0)
    source = Column(String, nullable=True)

    customer_id = Column(String, ForeignKey("customers.id"), nullable=True)

    synced_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_receipts_customer_created", "customer_id", "created_at"),
    )
