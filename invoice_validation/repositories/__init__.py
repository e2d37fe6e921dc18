"""
Async SQLAlchemy repositories for the validation engine.
"""

from .invoice_repository import InvoiceRepository
from .invoice_validation_repository import InvoiceValidationRepository
from .validation_rule_repository import ValidationRuleRepository

__all__ = [
    "InvoiceRepository",
    "InvoiceValidationRepository",
    "ValidationRuleRepository",
]
