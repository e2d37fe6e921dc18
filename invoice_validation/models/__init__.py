"""
Database models for the invoice validation engine.
"""

from .invoice import (
    Invoice,
    InvoiceItem,
    InvoiceDeliveryLink,
    InvoiceStatus,
)
from .reference import (
    Vendor,
    Item,
    ItemPriceHistory,
    PurchaseOrder,
    PurchaseOrderItem,
    DeliveryNote,
    DeliveryNoteItem,
    POStatus,
    DeliveryNoteStatus,
    DeliveryCondition,
)
from .validation import ValidationRule, InvoiceValidation, DEFAULT_VALIDATION_RULES

__all__ = [
    "Invoice",
    "InvoiceItem",
    "InvoiceDeliveryLink",
    "InvoiceStatus",
    "Vendor",
    "Item",
    "ItemPriceHistory",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "DeliveryNote",
    "DeliveryNoteItem",
    "POStatus",
    "DeliveryNoteStatus",
    "DeliveryCondition",
    # Validation models
    "ValidationRule",
    "InvoiceValidation",
    "DEFAULT_VALIDATION_RULES",
]
