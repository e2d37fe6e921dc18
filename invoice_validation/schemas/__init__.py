"""
Pydantic schemas for the invoice validation engine.
"""

from .invoice import (
    DeliveryNoteItemSnapshot,
    DeliveryNoteSnapshot,
    InvoiceLineItem,
    InvoiceSnapshot,
    PriceHistoryEntry,
    PurchaseOrderItemSnapshot,
    PurchaseOrderSnapshot,
    ValidationContext,
)
from .validation import (
    CreateInvoiceValidation,
    InvoiceValidationRecord,
    InvoiceValidationSummary,
    RuleConfig,
    StoredValidationSummary,
    ValidationResult,
    ValidationRuleDefinition,
    ValidationEvent,
    ValidationEventType,
    ValidationRuleType,
    ValidationSeverity,
    ValidationStatus,
    get_highest_severity,
)

__all__ = [
    "DeliveryNoteItemSnapshot",
    "DeliveryNoteSnapshot",
    "InvoiceLineItem",
    "InvoiceSnapshot",
    "PriceHistoryEntry",
    "PurchaseOrderItemSnapshot",
    "PurchaseOrderSnapshot",
    "ValidationContext",
    "CreateInvoiceValidation",
    "InvoiceValidationRecord",
    "InvoiceValidationSummary",
    "RuleConfig",
    "StoredValidationSummary",
    "ValidationResult",
    "ValidationRuleDefinition",
    "ValidationEvent",
    "ValidationEventType",
    "ValidationRuleType",
    "ValidationSeverity",
    "ValidationStatus",
    "get_highest_severity",
]
