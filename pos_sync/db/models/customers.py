from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String

from pos_sync.db.base import Base


class Customer(Base):
    __tablename__ = "customers"

    """Represents a POS customer keyed by its external POS id.

    Rows are either authoritative (written from the POS customer feed and
    merged on every sync) or placeholders inserted ahead of the feed so that
    receipts never reference a missing customer.
    """

    id = Column(String, primary_key=True)
    name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)

    total_visits = Column(Integer, nullable=False, default=0)
    total_spent = Column(Numeric(18, 2), nullable=False, default=0)

    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("total_visits >= 0", name="ck_customers_total_visits_non_negative"),
        CheckConstraint("total_spent >= 0", name="ck_customers_total_spent_non_negative"),
    )
