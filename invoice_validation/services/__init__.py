"""
Validation services: config resolution, detectors, rules and orchestration.
"""

from .duplicate_detector import DuplicateDetector
from .rule_config_resolver import ValidationRuleConfigResolver
from .suspicious_detector import RULE_REGISTRY, SuspiciousDetector, build_active_rules
from .validation_orchestrator import (
    LoggingEventSink,
    ValidationEventSink,
    ValidationOrchestrator,
    build_validation_orchestrator,
    get_highest_severity,
)

__all__ = [
    "DuplicateDetector",
    "ValidationRuleConfigResolver",
    "RULE_REGISTRY",
    "SuspiciousDetector",
    "build_active_rules",
    "LoggingEventSink",
    "ValidationEventSink",
    "ValidationOrchestrator",
    "build_validation_orchestrator",
    "get_highest_severity",
]
