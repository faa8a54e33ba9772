from sqlalchemy import BigInteger, CheckConstraint, Column, ForeignKey, Index, Integer, Numeric, String

from pos_sync.db.base import Base


class LineItem(Base):
    __tablename__ = "line_items"

    """Represents a single product line within a receipt.

    A line item has no identity of its own in the POS; it captures the item
    name, quantity and unit price as sold so that reporting does not depend
    on the mutable catalog state.
    """

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    receipt_number = Column(String, ForeignKey("receipts.receipt_number"), nullable=False)

    item_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(18, 2), nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_line_items_quantity_positive"),
        CheckConstraint("price >= 0", name="ck_line_items_price_non_negative"),
        Index("ix_line_items_receipt_number", "receipt_number"),
    )
