
from sqlalchemy import BigInteger, Column, DateTime, Integer
from sqlalchemy.sql import func

from pos_sync.db.base import Base


class SyncLogEntry(Base):
    __tablename__ = "sync_log"

    """Append-only log of sync watermarks.

    Each successful sync appends one row holding the window end it covered.
    The most recent row (highest id) is the current watermark; older rows
    are kept as the history of sync points and are never updated.
    """

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    last_sync_timestamp = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
