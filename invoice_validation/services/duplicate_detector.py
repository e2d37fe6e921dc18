"""
Blocking duplicate invoice check.
"""

import logging

from invoice_validation.core.exceptions import ConfigNotFoundException
from invoice_validation.repositories.invoice_repository import InvoiceRepository
from invoice_validation.schemas.invoice import InvoiceSnapshot
from invoice_validation.schemas.validation import (
    ValidationResult,
    ValidationRuleType,
    ValidationSeverity,
)
from invoice_validation.services.rule_config_resolver import ValidationRuleConfigResolver

logger = logging.getLogger(__name__)

RULE_TYPE = ValidationRuleType.DUPLICATE_INVOICE_NUMBER
SEVERITY = ValidationSeverity.CRITICAL


class DuplicateDetector:
    """Finds another live invoice with the same number from the same vendor."""

    def __init__(
        self,
        invoice_repository: InvoiceRepository,
        config_resolver: ValidationRuleConfigResolver,
    ):
        self.invoice_repository = invoice_repository
        self.config_resolver = config_resolver

    async def is_enabled(self) -> bool:
        """The check runs unless configuration explicitly disables it."""
        try:
            config = await self.config_resolver.get_rule_config(RULE_TYPE)
        except ConfigNotFoundException:
            return True
        return config.enabled

    async def check_duplicate(self, invoice: InvoiceSnapshot) -> ValidationResult:
        if not await self.is_enabled():
            return ValidationResult.passed(
                RULE_TYPE, SEVERITY, {"reason": "Duplicate invoice check is disabled"}
            )

        # Vendor id 0 is treated as "no vendor"
        if not invoice.invoice_number or not invoice.invoice_number.strip() or not invoice.vendor_id:
            return ValidationResult.passed(
                RULE_TYPE, SEVERITY, {"reason": "No invoice number or vendor to check"}
            )

        duplicate = await self.invoice_repository.find_duplicate_by_number_and_vendor(
            invoice.invoice_number,
            invoice.vendor_id,
            exclude_id=invoice.id,
        )

        if duplicate is not None:
            logger.warning(
                f"Invoice {invoice.id} duplicates invoice {duplicate.id} "
                f"(number '{invoice.invoice_number}', vendor {invoice.vendor_id})"
            )
            return ValidationResult.failed(
                RULE_TYPE,
                SEVERITY,
                {
                    "message": f"Duplicate invoice number '{invoice.invoice_number}' found for this vendor",
                    "duplicate_invoice_id": duplicate.id,
                    "duplicate_date": duplicate.date.isoformat(),
                    "duplicate_amount": float(duplicate.total_amount),
                    "duplicate_status": duplicate.status,
                },
            )

        return ValidationResult.passed(RULE_TYPE, SEVERITY, {"reason": "No duplicate found"})
