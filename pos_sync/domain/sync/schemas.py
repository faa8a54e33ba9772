# pos_sync/domain/sync/schemas.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def as_utc(value: datetime) -> datetime:
    """Normalise an instant to an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class LineItemRecord(BaseModel):
    item_name: str
    quantity: int = Field(gt=0)
    price: Decimal = Field(ge=0)


class CustomerRecord(BaseModel):
    """A customer as delivered by the POS customer feed."""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = Field(default=None, alias="phone_number")
    total_visits: int = Field(default=0, ge=0)
    total_spent: Decimal = Field(default=Decimal("0"), ge=0)
    created_at: Optional[datetime] = None
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    class Config:
        populate_by_name = True


class ReceiptRecord(BaseModel):
    """A receipt with its nested line items as delivered by the POS receipt feed."""

    receipt_number: str
    created_at: datetime
    total_money: Decimal
    total_tax: Decimal = Decimal("0")
    source: Optional[str] = None
    customer_id: Optional[str] = None
    line_items: List[LineItemRecord] = Field(default_factory=list)

    @field_validator("created_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("customer_id")
    @classmethod
    def _blank_customer_is_none(cls, value: Optional[str]) -> Optional[str]:
        # the POS sends "" for walk-in sales
        return value or None


class SyncResult(BaseModel):
    message: str
    customers_synced: int = 0
    receipts_synced: int = 0
    documents_indexed: int = 0
    window_start: datetime
    window_end: datetime
    no_new_data: bool = False


class SyncStatusOut(BaseModel):
    lastSync: str
    lastSyncAt: datetime


class QuestionIn(BaseModel):
    question: Optional[str] = None
