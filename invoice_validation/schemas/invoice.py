"""
Read-only invoice snapshots consumed by the validation rules.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)


class InvoiceLineItem(_Snapshot):
    """Invoiced item line."""

    item_id: int
    quantity: int
    price: Decimal


class PurchaseOrderItemSnapshot(_Snapshot):
    item_id: int
    quantity: int
    price: Decimal


class PurchaseOrderSnapshot(_Snapshot):
    """Purchase order linked to an invoice, with its ordered lines."""

    id: int
    items: Tuple[PurchaseOrderItemSnapshot, ...] = ()

    @property
    def total(self) -> Decimal:
        return sum((item.price * item.quantity for item in self.items), Decimal("0"))


class DeliveryNoteItemSnapshot(_Snapshot):
    item_id: int
    quantity_ordered: int
    quantity_delivered: int
    condition: str = "GOOD"


class DeliveryNoteSnapshot(_Snapshot):
    """Delivery note linked to an invoice."""

    id: int
    items: Tuple[DeliveryNoteItemSnapshot, ...] = ()


class PriceHistoryEntry(_Snapshot):
    item_id: int
    price: Decimal
    date: datetime


class InvoiceSnapshot(_Snapshot):
    """
    Invoice as loaded for one validation pass.

    Related aggregates are only populated when the repository was asked to
    include them.
    """

    id: int
    invoice_number: Optional[str] = None
    vendor_id: Optional[int] = None
    total_amount: Decimal
    date: datetime
    status: str
    items: Tuple[InvoiceLineItem, ...] = ()
    purchase_order: Optional[PurchaseOrderSnapshot] = None
    delivery_notes: Tuple[DeliveryNoteSnapshot, ...] = ()


class ValidationContext(_Snapshot):
    """Related data shared by every rule in one validation pass."""

    purchase_order: Optional[PurchaseOrderSnapshot] = None
    delivery_notes: Tuple[DeliveryNoteSnapshot, ...] = ()
    price_history: Tuple[PriceHistoryEntry, ...] = ()
