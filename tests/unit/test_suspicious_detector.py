"""
Unit tests for SuspiciousDetector and the rule registry.
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from invoice_validation.schemas.validation import (
    RuleConfig,
    ValidationRuleType,
    ValidationSeverity,
)
from invoice_validation.services.suspicious_detector import (
    RULE_REGISTRY,
    SuspiciousDetector,
    build_active_rules,
)
from invoice_validation.services.validation_rules import BaseValidationRule

from tests.factories import InvoiceSnapshotFactory, ValidationContextFactory


def enabled_config(severity=ValidationSeverity.WARNING, **params):
    return RuleConfig(enabled=True, severity=severity, params=params)


class ExplodingRule(BaseValidationRule):
    rule_type = ValidationRuleType.PO_ITEM_MISMATCH
    default_severity = ValidationSeverity.WARNING

    async def validate(self, invoice, context):
        raise RuntimeError("lookup table missing")


class SlowRule(BaseValidationRule):
    rule_type = ValidationRuleType.DELIVERY_NOTE_MISMATCH
    default_severity = ValidationSeverity.WARNING

    async def validate(self, invoice, context):
        await asyncio.sleep(5)
        return self._passed(reason="too late")


@pytest.fixture
def config_resolver():
    resolver = AsyncMock()
    resolver.get_all_rule_configs.return_value = {}
    return resolver


class TestRuleRegistry:
    def test_registry_covers_every_anomaly_rule(self):
        expected = set(ValidationRuleType) - {ValidationRuleType.DUPLICATE_INVOICE_NUMBER}
        assert set(RULE_REGISTRY) == expected

    def test_registry_classes_match_their_keys(self):
        for rule_type, rule_class in RULE_REGISTRY.items():
            assert rule_class.rule_type == rule_type

    def test_build_active_rules_skips_disabled_and_unregistered(self):
        configs = {
            ValidationRuleType.DUPLICATE_INVOICE_NUMBER: enabled_config(ValidationSeverity.CRITICAL),
            ValidationRuleType.AMOUNT_THRESHOLD_EXCEEDED: enabled_config(threshold=500),
            ValidationRuleType.ROUND_AMOUNT_PATTERN: RuleConfig(
                enabled=False, severity=ValidationSeverity.INFO
            ),
        }

        rules = build_active_rules(configs)

        assert [rule.rule_type for rule in rules] == [ValidationRuleType.AMOUNT_THRESHOLD_EXCEEDED]
        assert rules[0].params == {"threshold": 500}


class TestSuspiciousDetector:
    """Test suite for concurrent rule evaluation."""

    @pytest.mark.asyncio
    async def test_no_active_rules(self, config_resolver):
        detector = SuspiciousDetector(config_resolver)

        results = await detector.detect_anomalies(InvoiceSnapshotFactory(), ValidationContextFactory())

        assert results == []

    @pytest.mark.asyncio
    async def test_runs_each_enabled_rule_once(self, config_resolver):
        config_resolver.get_all_rule_configs.return_value = {
            rule_type: enabled_config() for rule_type in RULE_REGISTRY
        }
        detector = SuspiciousDetector(config_resolver)

        results = await detector.detect_anomalies(InvoiceSnapshotFactory(), ValidationContextFactory())

        assert sorted(result.rule_type.value for result in results) == sorted(
            rule_type.value for rule_type in RULE_REGISTRY
        )
        assert all(result.is_passed for result in results)

    @pytest.mark.asyncio
    async def test_configured_severity_is_reported(self, config_resolver):
        config_resolver.get_all_rule_configs.return_value = {
            ValidationRuleType.AMOUNT_THRESHOLD_EXCEEDED: enabled_config(
                ValidationSeverity.CRITICAL, threshold=100
            ),
        }
        detector = SuspiciousDetector(config_resolver)

        results = await detector.detect_anomalies(
            InvoiceSnapshotFactory(total_amount=Decimal("250.50")), ValidationContextFactory()
        )

        assert len(results) == 1
        assert results[0].is_failed
        assert results[0].severity == ValidationSeverity.CRITICAL

    @pytest.mark.asyncio
    async def test_rule_exception_is_isolated(self, config_resolver, monkeypatch):
        monkeypatch.setitem(RULE_REGISTRY, ValidationRuleType.PO_ITEM_MISMATCH, ExplodingRule)
        config_resolver.get_all_rule_configs.return_value = {
            ValidationRuleType.PO_ITEM_MISMATCH: enabled_config(),
            ValidationRuleType.MISSING_INVOICE_NUMBER: enabled_config(),
        }
        detector = SuspiciousDetector(config_resolver)

        results = await detector.detect_anomalies(InvoiceSnapshotFactory(), ValidationContextFactory())
        by_type = {result.rule_type: result for result in results}

        assert by_type[ValidationRuleType.MISSING_INVOICE_NUMBER].is_passed

        failure = by_type[ValidationRuleType.PO_ITEM_MISMATCH]
        assert failure.is_failed
        assert failure.severity == ValidationSeverity.WARNING
        assert failure.details["error"] == {"type": "RuntimeError", "message": "lookup table missing"}
        assert "execution failed" in failure.details["message"]
        assert failure.metadata == {"error_code": "RULE_EVALUATION_FAILURE"}

    @pytest.mark.asyncio
    async def test_rule_timeout_is_isolated(self, config_resolver, monkeypatch):
        monkeypatch.setitem(RULE_REGISTRY, ValidationRuleType.DELIVERY_NOTE_MISMATCH, SlowRule)
        config_resolver.get_all_rule_configs.return_value = {
            ValidationRuleType.DELIVERY_NOTE_MISMATCH: enabled_config(),
            ValidationRuleType.AMOUNT_THRESHOLD_EXCEEDED: enabled_config(),
        }
        detector = SuspiciousDetector(config_resolver, rule_timeout=0.05)

        results = await detector.detect_anomalies(InvoiceSnapshotFactory(), ValidationContextFactory())
        by_type = {result.rule_type: result for result in results}

        assert by_type[ValidationRuleType.AMOUNT_THRESHOLD_EXCEEDED].is_passed

        timed_out = by_type[ValidationRuleType.DELIVERY_NOTE_MISMATCH]
        assert timed_out.is_failed
        assert timed_out.details["error"]["type"] == "TimeoutError"
        assert timed_out.metadata == {"error_code": "RULE_EVALUATION_FAILURE"}
