"""
Validation rule definitions and flagged validation records.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from invoice_validation.db.base import IntegerIDMixin, TimestampMixin
from invoice_validation.db.session import Base
from invoice_validation.schemas.validation import (
    ValidationRuleType,
    ValidationSeverity,
    ValidationStatus,
)


class ValidationRule(Base, IntegerIDMixin, TimestampMixin):
    """Persisted configuration of one validation rule type."""

    __tablename__ = "validation_rules"

    rule_type = Column(Enum(ValidationRuleType), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    enabled = Column(Boolean, nullable=False, default=True)
    severity = Column(Enum(ValidationSeverity), nullable=False)

    # Rule-specific parameters (threshold, variance_percent, ...)
    config = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<ValidationRule(rule_type={self.rule_type}, enabled={self.enabled}, severity={self.severity})>"


class InvoiceValidation(Base, IntegerIDMixin, TimestampMixin):
    """Flagged (failed) validation result for an invoice."""

    __tablename__ = "invoice_validations"

    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    rule_type = Column(Enum(ValidationRuleType), nullable=False, index=True)
    severity = Column(Enum(ValidationSeverity), nullable=False, index=True)
    status = Column(Enum(ValidationStatus), nullable=False, default=ValidationStatus.FLAGGED, index=True)

    details = Column(JSON, nullable=False)
    # "metadata" is reserved on declarative classes
    metadata_json = Column("metadata", JSON, nullable=True)

    # Review tracking (written by external review/override flows)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(Integer, nullable=True)

    __table_args__ = (
        Index('idx_invoice_validation_status_severity', 'status', 'severity'),
    )

    # Relationships
    invoice = relationship("Invoice", back_populates="validations")

    def __repr__(self):
        return f"<InvoiceValidation(id={self.id}, invoice_id={self.invoice_id}, rule_type={self.rule_type})>"


# Default rule definitions seeded by ValidationRuleRepository.upsert_defaults
DEFAULT_VALIDATION_RULES = [
    {
        "rule_type": ValidationRuleType.DUPLICATE_INVOICE_NUMBER,
        "name": "Duplicate Invoice Number",
        "description": "Prevents same invoice number from same vendor",
        "enabled": True,
        "severity": ValidationSeverity.CRITICAL,
        "config": {},
    },
    {
        "rule_type": ValidationRuleType.MISSING_INVOICE_NUMBER,
        "name": "Missing Invoice Number",
        "description": "Warns when invoice number is not provided",
        "enabled": True,
        "severity": ValidationSeverity.WARNING,
        "config": {},
    },
    {
        "rule_type": ValidationRuleType.AMOUNT_THRESHOLD_EXCEEDED,
        "name": "Amount Threshold Exceeded",
        "description": "Flags invoices above configured amount",
        "enabled": True,
        "severity": ValidationSeverity.WARNING,
        "config": {"threshold": 10000},
    },
    {
        "rule_type": ValidationRuleType.ROUND_AMOUNT_PATTERN,
        "name": "Round Amount Pattern",
        "description": "Detects suspiciously round invoice amounts",
        "enabled": True,
        "severity": ValidationSeverity.INFO,
        "config": {"minimum_amount": 1000},
    },
    {
        "rule_type": ValidationRuleType.PO_AMOUNT_VARIANCE,
        "name": "Purchase Order Amount Variance",
        "description": "Flags invoices with significant variance from PO amount",
        "enabled": True,
        "severity": ValidationSeverity.WARNING,
        "config": {"variance_percent": 10},
    },
    {
        "rule_type": ValidationRuleType.PO_ITEM_MISMATCH,
        "name": "Purchase Order Item Mismatch",
        "description": "Detects invoice items not present in purchase order",
        "enabled": True,
        "severity": ValidationSeverity.WARNING,
        "config": {},
    },
    {
        "rule_type": ValidationRuleType.DELIVERY_NOTE_MISMATCH,
        "name": "Delivery Note Mismatch",
        "description": "Detects invoice quantity exceeding delivered quantity",
        "enabled": True,
        "severity": ValidationSeverity.WARNING,
        "config": {},
    },
    {
        "rule_type": ValidationRuleType.PRICE_VARIANCE,
        "name": "Price Variance",
        "description": "Detects items priced significantly different from historical average",
        "enabled": True,
        "severity": ValidationSeverity.INFO,
        "config": {"variance_percent": 15, "historical_count": 5},
    },
]
