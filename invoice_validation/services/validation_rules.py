"""
Anomaly rules evaluated against a loaded invoice.

Every rule is side-effect free: it reads the invoice snapshot and the shared
validation context and returns exactly one ValidationResult. Amount and price
arithmetic is done in Decimal; details carry floats so they serialize as JSON.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from invoice_validation.schemas.invoice import InvoiceSnapshot, ValidationContext
from invoice_validation.schemas.validation import (
    RuleConfig,
    ValidationResult,
    ValidationRuleType,
    ValidationSeverity,
)

logger = logging.getLogger(__name__)


def to_decimal(value: Any) -> Decimal:
    """Convert a config number to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class BaseValidationRule(ABC):
    """
    Base class for anomaly rules.

    Subclasses declare ``rule_type``, ``default_severity`` and
    ``default_params``. A parameter falls back to its default only when it is
    missing or None, so an explicit 0 is honored.
    """

    rule_type: ValidationRuleType
    default_severity: ValidationSeverity = ValidationSeverity.WARNING
    default_params: Dict[str, Any] = {}

    def __init__(
        self,
        enabled: bool = True,
        severity: Optional[ValidationSeverity] = None,
        **params: Any,
    ):
        self.enabled = enabled
        self.severity = severity or self.default_severity
        self.params = {
            name: params[name] if params.get(name) is not None else default
            for name, default in self.default_params.items()
        }

    @classmethod
    def from_config(cls, config: RuleConfig) -> "BaseValidationRule":
        params = {name: value for name, value in config.params.items() if name in cls.default_params}
        return cls(enabled=config.enabled, severity=config.severity, **params)

    @abstractmethod
    async def validate(self, invoice: InvoiceSnapshot, context: ValidationContext) -> ValidationResult:
        """Evaluate the rule against one invoice."""
        pass

    def _passed(self, **details: Any) -> ValidationResult:
        return ValidationResult.passed(self.rule_type, self.severity, details)

    def _failed(self, **details: Any) -> ValidationResult:
        return ValidationResult.failed(self.rule_type, self.severity, details)

    def __repr__(self):
        return f"<{self.__class__.__name__}(enabled={self.enabled}, severity={self.severity.value}, params={self.params})>"


class MissingInvoiceNumberRule(BaseValidationRule):
    """Flags invoices without a usable invoice number."""

    rule_type = ValidationRuleType.MISSING_INVOICE_NUMBER
    default_severity = ValidationSeverity.WARNING

    async def validate(self, invoice: InvoiceSnapshot, context: ValidationContext) -> ValidationResult:
        if not invoice.invoice_number or not invoice.invoice_number.strip():
            return self._failed(
                message="Invoice number is missing",
                recommendation="Add invoice number for proper tracking and duplicate prevention",
            )
        return self._passed(reason="Invoice number provided")


class AmountThresholdExceededRule(BaseValidationRule):
    """Flags invoices whose total is strictly above the configured threshold."""

    rule_type = ValidationRuleType.AMOUNT_THRESHOLD_EXCEEDED
    default_severity = ValidationSeverity.WARNING
    default_params = {"threshold": 10000}

    @property
    def threshold(self) -> Decimal:
        return to_decimal(self.params["threshold"])

    async def validate(self, invoice: InvoiceSnapshot, context: ValidationContext) -> ValidationResult:
        amount = invoice.total_amount
        threshold = self.threshold

        if amount > threshold:
            return self._failed(
                message=f"Invoice amount {amount:.2f} exceeds threshold {threshold:.2f}",
                amount=float(amount),
                threshold=float(threshold),
                excess=float(amount - threshold),
            )

        return self._passed(
            reason="Amount within threshold",
            amount=float(amount),
            threshold=float(threshold),
        )


class RoundAmountPatternRule(BaseValidationRule):
    """Flags suspiciously round totals (multiples of 100) above a minimum amount."""

    rule_type = ValidationRuleType.ROUND_AMOUNT_PATTERN
    default_severity = ValidationSeverity.INFO
    default_params = {"minimum_amount": 1000}

    @property
    def minimum_amount(self) -> Decimal:
        return to_decimal(self.params["minimum_amount"])

    async def validate(self, invoice: InvoiceSnapshot, context: ValidationContext) -> ValidationResult:
        amount = invoice.total_amount
        is_round = amount % 100 == 0

        if is_round and amount >= self.minimum_amount:
            return self._failed(
                message=f"Invoice has suspiciously round amount: {amount:.2f}",
                amount=float(amount),
                pattern="Round number (divisible by 100)",
                recommendation="Verify this is a legitimate invoice and not fraudulent",
            )

        return self._passed(reason="Amount is not suspiciously round", amount=float(amount))


class POAmountVarianceRule(BaseValidationRule):
    """Compares the invoice total with the linked purchase order total."""

    rule_type = ValidationRuleType.PO_AMOUNT_VARIANCE
    default_severity = ValidationSeverity.WARNING
    default_params = {"variance_percent": 10}

    @property
    def variance_percent(self) -> Decimal:
        return to_decimal(self.params["variance_percent"])

    async def validate(self, invoice: InvoiceSnapshot, context: ValidationContext) -> ValidationResult:
        po = context.purchase_order
        if po is None:
            return self._passed(reason="No purchase order linked to invoice")

        po_total = po.total
        variance = abs(invoice.total_amount - po_total)
        variance_percent = variance / po_total * 100 if po_total > 0 else Decimal("0")

        if variance_percent > self.variance_percent:
            return self._failed(
                message=f"Invoice amount varies {variance_percent:.2f}% from purchase order",
                invoice_amount=float(invoice.total_amount),
                po_amount=float(po_total),
                variance=float(variance),
                variance_percent=float(variance_percent),
                threshold=float(self.variance_percent),
                purchase_order_id=po.id,
            )

        return self._passed(
            reason="Amount variance within acceptable range",
            invoice_amount=float(invoice.total_amount),
            po_amount=float(po_total),
            variance_percent=float(variance_percent),
        )


class POItemMismatchRule(BaseValidationRule):
    """Flags invoiced items that do not appear on the linked purchase order."""

    rule_type = ValidationRuleType.PO_ITEM_MISMATCH
    default_severity = ValidationSeverity.WARNING

    async def validate(self, invoice: InvoiceSnapshot, context: ValidationContext) -> ValidationResult:
        po = context.purchase_order
        if po is None:
            return self._passed(reason="No purchase order linked to invoice")

        po_item_ids = {item.item_id for item in po.items}
        mismatched_item_ids = [item.item_id for item in invoice.items if item.item_id not in po_item_ids]

        if mismatched_item_ids:
            return self._failed(
                message=f"{len(mismatched_item_ids)} invoice item(s) not found in purchase order",
                mismatched_item_ids=mismatched_item_ids,
                mismatched_item_count=len(mismatched_item_ids),
                purchase_order_id=po.id,
                recommendation="Verify these items should be on this invoice or update the purchase order",
            )

        return self._passed(reason="All invoice items match purchase order items")


class DeliveryNoteMismatchRule(BaseValidationRule):
    """Flags invoiced quantities above what linked delivery notes delivered."""

    rule_type = ValidationRuleType.DELIVERY_NOTE_MISMATCH
    default_severity = ValidationSeverity.WARNING

    async def validate(self, invoice: InvoiceSnapshot, context: ValidationContext) -> ValidationResult:
        if not context.delivery_notes:
            return self._passed(reason="No delivery notes linked to invoice")

        delivered_quantities = defaultdict(int)
        for note in context.delivery_notes:
            for note_item in note.items:
                delivered_quantities[note_item.item_id] += note_item.quantity_delivered

        mismatches = []
        for item in invoice.items:
            delivered = delivered_quantities.get(item.item_id, 0)
            if item.quantity > delivered:
                mismatches.append(
                    {
                        "item_id": item.item_id,
                        "invoiced_quantity": item.quantity,
                        "delivered_quantity": delivered,
                        "excess": item.quantity - delivered,
                    }
                )

        if mismatches:
            return self._failed(
                message=f"{len(mismatches)} item(s) have invoice quantity exceeding delivered quantity",
                mismatches=mismatches,
                mismatch_count=len(mismatches),
                recommendation="Verify delivered quantities match invoice or wait for additional deliveries",
            )

        return self._passed(reason="All invoice quantities match or are less than delivered quantities")


class PriceVarianceRule(BaseValidationRule):
    """Compares invoiced unit prices with the recent average price of each item."""

    rule_type = ValidationRuleType.PRICE_VARIANCE
    default_severity = ValidationSeverity.INFO
    default_params = {"variance_percent": 15, "historical_count": 5}

    @property
    def variance_percent(self) -> Decimal:
        return to_decimal(self.params["variance_percent"])

    @property
    def historical_count(self) -> int:
        return max(int(self.params["historical_count"]), 0)

    async def validate(self, invoice: InvoiceSnapshot, context: ValidationContext) -> ValidationResult:
        if not context.price_history:
            return self._passed(reason="No historical price data available for comparison")

        variances: List[Dict[str, Any]] = []
        for item in invoice.items:
            item_history = sorted(
                (entry for entry in context.price_history if entry.item_id == item.item_id),
                key=lambda entry: entry.date,
                reverse=True,
            )
            window = [entry.price for entry in item_history[: self.historical_count]]
            if not window:
                continue

            average_price = sum(window, Decimal("0")) / len(window)
            variance = abs(item.price - average_price)
            variance_percent = variance / average_price * 100 if average_price > 0 else Decimal("0")

            if variance_percent > self.variance_percent:
                variances.append(
                    {
                        "item_id": item.item_id,
                        "current_price": float(item.price),
                        "average_price": float(average_price),
                        "variance": float(variance),
                        "variance_percent": float(variance_percent),
                        "historical_sample_size": len(window),
                    }
                )

        if variances:
            return self._failed(
                message=f"{len(variances)} item(s) have prices significantly different from historical average",
                variances=variances,
                variance_count=len(variances),
                threshold_percent=float(self.variance_percent),
                recommendation="Review pricing with vendor to ensure accuracy",
            )

        return self._passed(reason="All item prices are within acceptable variance from historical averages")
