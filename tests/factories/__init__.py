"""
Test data factories for the invoice validation engine.

Snapshot factories build the read-only pydantic models the rules consume;
model factories build ORM rows for database-backed tests.
"""

from .invoice_factory import (
    DeliveryNoteItemSnapshotFactory,
    DeliveryNoteSnapshotFactory,
    InvoiceLineItemFactory,
    InvoiceSnapshotFactory,
    PriceHistoryEntryFactory,
    PurchaseOrderItemSnapshotFactory,
    PurchaseOrderSnapshotFactory,
    ValidationContextFactory,
)
from .model_factory import (
    DeliveryNoteFactory,
    InvoiceFactory,
    ItemFactory,
    PurchaseOrderFactory,
    VendorFactory,
)
from .rule_factory import RuleDefinitionFactory

__all__ = [
    "DeliveryNoteItemSnapshotFactory",
    "DeliveryNoteSnapshotFactory",
    "InvoiceLineItemFactory",
    "InvoiceSnapshotFactory",
    "PriceHistoryEntryFactory",
    "PurchaseOrderItemSnapshotFactory",
    "PurchaseOrderSnapshotFactory",
    "ValidationContextFactory",
    "DeliveryNoteFactory",
    "InvoiceFactory",
    "ItemFactory",
    "PurchaseOrderFactory",
    "VendorFactory",
    "RuleDefinitionFactory",
]
