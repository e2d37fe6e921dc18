"""
Custom exceptions for the invoice validation engine.
"""

import enum
from typing import Any, Dict, Optional


class ErrorKind(str, enum.Enum):
    """Closed set of error categories callers can branch on."""

    NOT_FOUND = "NOT_FOUND"
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    CONFIG_PARSE = "CONFIG_PARSE"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    RULE_EVALUATION_FAILURE = "RULE_EVALUATION_FAILURE"


class InvoiceValidationException(Exception):
    """Base exception for the validation engine."""

    def __init__(
        self,
        message: str,
        error_kind: ErrorKind,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_kind = error_kind
        self.details = details or {}
        super().__init__(self.message)

    @property
    def error_code(self) -> str:
        return self.error_kind.value


class NotFoundException(InvoiceValidationException):
    """Raised when an invoice or rule id does not resolve to a record."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_kind=ErrorKind.NOT_FOUND,
            details=details,
        )


class ConfigNotFoundException(InvoiceValidationException):
    """Raised when a rule type has neither an env nor a persisted definition."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_kind=ErrorKind.CONFIG_NOT_FOUND,
            details=details,
        )


class ConfigurationException(InvoiceValidationException):
    """Describes a malformed environment override."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_kind=ErrorKind.CONFIG_PARSE,
            details=details,
        )


class RuleEvaluationException(InvoiceValidationException):
    """Raised when a single validation rule fails to evaluate."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_kind=ErrorKind.RULE_EVALUATION_FAILURE,
            details=details,
        )


class PersistenceException(InvoiceValidationException):
    """Raised when flagged validation records cannot be written."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_kind=ErrorKind.PERSISTENCE_FAILURE,
            details=details,
        )
