"""
Unit tests for DuplicateDetector.
"""

from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from invoice_validation.core.exceptions import ConfigNotFoundException
from invoice_validation.schemas.validation import (
    RuleConfig,
    ValidationRuleType,
    ValidationSeverity,
)
from invoice_validation.services.duplicate_detector import DuplicateDetector
from invoice_validation.services.rule_config_resolver import ValidationRuleConfigResolver

from tests.factories import InvoiceSnapshotFactory


@pytest.fixture
def invoice_repository():
    repository = AsyncMock()
    repository.find_duplicate_by_number_and_vendor.return_value = None
    return repository


@pytest.fixture
def config_resolver():
    resolver = AsyncMock()
    resolver.get_rule_config.return_value = RuleConfig(
        enabled=True, severity=ValidationSeverity.CRITICAL
    )
    return resolver


@pytest.fixture
def detector(invoice_repository, config_resolver):
    return DuplicateDetector(invoice_repository, config_resolver)


class TestDuplicateDetector:
    """Test suite for duplicate invoice detection."""

    @pytest.mark.asyncio
    async def test_no_duplicate(self, detector, invoice_repository):
        invoice = InvoiceSnapshotFactory(id=3, invoice_number="INV-1001", vendor_id=5)

        result = await detector.check_duplicate(invoice)

        assert result.is_passed
        assert result.rule_type == ValidationRuleType.DUPLICATE_INVOICE_NUMBER
        assert result.severity == ValidationSeverity.CRITICAL
        assert result.details == {"reason": "No duplicate found"}
        invoice_repository.find_duplicate_by_number_and_vendor.assert_awaited_once_with(
            "INV-1001", 5, exclude_id=3
        )

    @pytest.mark.asyncio
    async def test_duplicate_found(self, detector, invoice_repository):
        invoice_repository.find_duplicate_by_number_and_vendor.return_value = InvoiceSnapshotFactory(
            id=1,
            invoice_number="INV-1001",
            vendor_id=5,
            total_amount=Decimal("1250.00"),
            date=datetime(2024, 1, 15, 9, 30),
            status="APPROVED",
        )
        invoice = InvoiceSnapshotFactory(id=7, invoice_number="INV-1001", vendor_id=5)

        result = await detector.check_duplicate(invoice)

        assert result.is_failed
        assert result.is_blocking()
        assert result.details == {
            "message": "Duplicate invoice number 'INV-1001' found for this vendor",
            "duplicate_invoice_id": 1,
            "duplicate_date": "2024-01-15T09:30:00",
            "duplicate_amount": 1250.0,
            "duplicate_status": "APPROVED",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "invoice_number,vendor_id",
        [(None, 5), ("", 5), ("  ", 5), ("INV-1001", None), ("INV-1001", 0)],
    )
    async def test_nothing_to_compare(self, detector, invoice_repository, invoice_number, vendor_id):
        invoice = InvoiceSnapshotFactory(invoice_number=invoice_number, vendor_id=vendor_id)

        result = await detector.check_duplicate(invoice)

        assert result.is_passed
        assert result.details == {"reason": "No invoice number or vendor to check"}
        invoice_repository.find_duplicate_by_number_and_vendor.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled_check(self, detector, config_resolver, invoice_repository):
        config_resolver.get_rule_config.return_value = RuleConfig(
            enabled=False, severity=ValidationSeverity.CRITICAL
        )

        result = await detector.check_duplicate(InvoiceSnapshotFactory())

        assert result.is_passed
        assert result.details == {"reason": "Duplicate invoice check is disabled"}
        invoice_repository.find_duplicate_by_number_and_vendor.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unconfigured_check_still_runs(self, detector, config_resolver, invoice_repository):
        config_resolver.get_rule_config.side_effect = ConfigNotFoundException("missing")

        assert await detector.is_enabled() is True

        await detector.check_duplicate(InvoiceSnapshotFactory(vendor_id=5))
        invoice_repository.find_duplicate_by_number_and_vendor.assert_awaited_once()


class TestDuplicateDetectorEnvironmentOnly:
    """Duplicate check configured only through the environment."""

    @pytest.fixture
    def twin_repository(self):
        repository = AsyncMock()
        repository.find_duplicate_by_number_and_vendor.return_value = InvoiceSnapshotFactory(
            id=7, invoice_number="INV-100", vendor_id=5
        )
        return repository

    def _resolver(self, environ):
        rule_repository = AsyncMock()
        rule_repository.find_all.return_value = []
        return ValidationRuleConfigResolver(rule_repository, environ=environ)

    @pytest.mark.asyncio
    async def test_severity_override_keeps_check_enabled(self, twin_repository):
        resolver = self._resolver({"VALIDATION_RULE_DUPLICATE_INVOICE_NUMBER_SEVERITY": "CRITICAL"})
        detector = DuplicateDetector(twin_repository, resolver)

        result = await detector.check_duplicate(
            InvoiceSnapshotFactory(id=1, invoice_number="INV-100", vendor_id=5)
        )

        assert result.is_failed
        assert result.is_blocking()
        assert result.details["duplicate_invoice_id"] == 7

    @pytest.mark.asyncio
    async def test_explicit_disable_is_honored(self, twin_repository):
        resolver = self._resolver({"VALIDATION_RULE_DUPLICATE_INVOICE_NUMBER_ENABLED": "false"})
        detector = DuplicateDetector(twin_repository, resolver)

        result = await detector.check_duplicate(
            InvoiceSnapshotFactory(id=1, invoice_number="INV-100", vendor_id=5)
        )

        assert result.is_passed
        assert result.details == {"reason": "Duplicate invoice check is disabled"}
