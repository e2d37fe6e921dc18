"""
Validation schemas and value objects.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ValidationRuleType(str, Enum):
    """Enumerated categories of validation checks."""

    DUPLICATE_INVOICE_NUMBER = "DUPLICATE_INVOICE_NUMBER"
    MISSING_INVOICE_NUMBER = "MISSING_INVOICE_NUMBER"
    AMOUNT_THRESHOLD_EXCEEDED = "AMOUNT_THRESHOLD_EXCEEDED"
    ROUND_AMOUNT_PATTERN = "ROUND_AMOUNT_PATTERN"
    PO_AMOUNT_VARIANCE = "PO_AMOUNT_VARIANCE"
    PO_ITEM_MISMATCH = "PO_ITEM_MISMATCH"
    DELIVERY_NOTE_MISMATCH = "DELIVERY_NOTE_MISMATCH"
    PRICE_VARIANCE = "PRICE_VARIANCE"


class ValidationSeverity(str, Enum):
    """Validation issue severity levels."""

    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


SEVERITY_RANK = {
    ValidationSeverity.CRITICAL: 3,
    ValidationSeverity.WARNING: 2,
    ValidationSeverity.INFO: 1,
}


class ValidationStatus(str, Enum):
    """Review status of a flagged validation record."""

    FLAGGED = "FLAGGED"
    REVIEWED = "REVIEWED"
    OVERRIDDEN = "OVERRIDDEN"
    DISMISSED = "DISMISSED"


class RuleConfig(BaseModel):
    """Merged configuration for one rule type."""

    model_config = ConfigDict(frozen=True)

    enabled: bool
    severity: ValidationSeverity
    params: Dict[str, Any] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    """
    Immutable outcome of one validation check.

    Build instances with ``ValidationResult.passed`` or ``ValidationResult.failed``.
    """

    model_config = ConfigDict(frozen=True)

    rule_type: ValidationRuleType
    severity: ValidationSeverity
    outcome: Literal["passed", "failed"]
    details: Dict[str, Any] = Field(default_factory=dict)
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def passed(
        cls,
        rule_type: ValidationRuleType,
        severity: ValidationSeverity,
        details: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ValidationResult":
        return cls(
            rule_type=rule_type,
            severity=severity,
            outcome="passed",
            details=dict(details or {}),
            metadata=dict(metadata) if metadata is not None else None,
        )

    @classmethod
    def failed(
        cls,
        rule_type: ValidationRuleType,
        severity: ValidationSeverity,
        details: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ValidationResult":
        return cls(
            rule_type=rule_type,
            severity=severity,
            outcome="failed",
            details=dict(details),
            metadata=dict(metadata) if metadata is not None else None,
        )

    @property
    def is_passed(self) -> bool:
        return self.outcome == "passed"

    @property
    def is_failed(self) -> bool:
        return self.outcome == "failed"

    def is_blocking(self) -> bool:
        """A failed critical result blocks approval."""
        return self.is_failed and self.severity == ValidationSeverity.CRITICAL

    def requires_review(self) -> bool:
        return self.is_failed and self.severity != ValidationSeverity.INFO


def get_highest_severity(results: Iterable[ValidationResult]) -> Optional[ValidationSeverity]:
    """Highest severity across the given results, None when empty."""
    highest = None
    for result in results:
        if highest is None or result.severity.rank > highest.rank:
            highest = result.severity
    return highest


class InvoiceValidationSummary(BaseModel):
    """Outcome of one orchestration run."""

    model_config = ConfigDict(frozen=True)

    invoice_id: int
    is_valid: bool
    has_blocking_issues: bool
    flag_count: int
    highest_severity: Optional[ValidationSeverity] = None
    validations: List[ValidationResult]


class CreateInvoiceValidation(BaseModel):
    """Data for one flagged validation record."""

    invoice_id: int
    rule_type: ValidationRuleType
    severity: ValidationSeverity
    status: ValidationStatus = ValidationStatus.FLAGGED
    details: Dict[str, Any]
    metadata: Optional[Dict[str, Any]] = None


class InvoiceValidationRecord(BaseModel):
    """Persisted flagged validation record."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    invoice_id: int
    rule_type: ValidationRuleType
    severity: ValidationSeverity
    status: ValidationStatus
    details: Dict[str, Any]
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_json")
    created_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None


class StoredValidationSummary(BaseModel):
    """Summary built from the persisted records of an invoice."""

    invoice_id: int
    flag_count: int
    has_blocking_issues: bool
    validations: List[InvoiceValidationRecord]


class ValidationRuleDefinition(BaseModel):
    """Persisted rule definition."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    rule_type: ValidationRuleType
    name: str
    description: Optional[str] = None
    enabled: bool = True
    severity: ValidationSeverity
    config: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ValidationEventType(str, Enum):
    """Notifications published after a validation run."""

    INVOICE_VALIDATED = "INVOICE_VALIDATED"
    DUPLICATE_DETECTED = "DUPLICATE_DETECTED"
    SUSPICIOUS_DETECTED = "SUSPICIOUS_DETECTED"


class ValidationEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_type: ValidationEventType
    invoice_id: int
    payload: Dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
