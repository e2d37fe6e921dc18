"""
Rule registry and concurrent evaluation of the anomaly rule bank.
"""

import asyncio
import logging
from typing import Dict, List, Mapping, Optional, Type

from invoice_validation.core.config import settings
from invoice_validation.core.exceptions import RuleEvaluationException
from invoice_validation.schemas.invoice import InvoiceSnapshot, ValidationContext
from invoice_validation.schemas.validation import RuleConfig, ValidationResult, ValidationRuleType
from invoice_validation.services.rule_config_resolver import ValidationRuleConfigResolver
from invoice_validation.services.validation_rules import (
    AmountThresholdExceededRule,
    BaseValidationRule,
    DeliveryNoteMismatchRule,
    MissingInvoiceNumberRule,
    POAmountVarianceRule,
    POItemMismatchRule,
    PriceVarianceRule,
    RoundAmountPatternRule,
)

logger = logging.getLogger(__name__)

# Every rule type except the duplicate check, which DuplicateDetector owns
RULE_REGISTRY: Dict[ValidationRuleType, Type[BaseValidationRule]] = {
    ValidationRuleType.MISSING_INVOICE_NUMBER: MissingInvoiceNumberRule,
    ValidationRuleType.AMOUNT_THRESHOLD_EXCEEDED: AmountThresholdExceededRule,
    ValidationRuleType.ROUND_AMOUNT_PATTERN: RoundAmountPatternRule,
    ValidationRuleType.PO_AMOUNT_VARIANCE: POAmountVarianceRule,
    ValidationRuleType.PO_ITEM_MISMATCH: POItemMismatchRule,
    ValidationRuleType.DELIVERY_NOTE_MISMATCH: DeliveryNoteMismatchRule,
    ValidationRuleType.PRICE_VARIANCE: PriceVarianceRule,
}


def build_active_rules(configs: Mapping[ValidationRuleType, RuleConfig]) -> List[BaseValidationRule]:
    """Instantiate the enabled anomaly rules from merged configuration."""
    rules = []
    for rule_type in ValidationRuleType:
        config = configs.get(rule_type)
        if config is None or not config.enabled:
            continue
        rule_class = RULE_REGISTRY.get(rule_type)
        if rule_class is None:
            continue
        rules.append(rule_class.from_config(config))
    return rules


class SuspiciousDetector:
    """
    Evaluates every enabled anomaly rule concurrently.

    Each rule runs under its own timeout. A rule that raises or times out
    yields a failed result carrying an ``error`` payload instead of aborting
    the other rules.
    """

    def __init__(
        self,
        config_resolver: ValidationRuleConfigResolver,
        rule_timeout: Optional[float] = None,
    ):
        self.config_resolver = config_resolver
        self.rule_timeout = (
            settings.VALIDATION_RULE_TIMEOUT_SECONDS if rule_timeout is None else rule_timeout
        )

    async def detect_anomalies(
        self,
        invoice: InvoiceSnapshot,
        context: ValidationContext,
    ) -> List[ValidationResult]:
        """Run the active rules; results come back in no guaranteed order."""
        configs = await self.config_resolver.get_all_rule_configs()
        rules = build_active_rules(configs)
        logger.debug(f"Evaluating {len(rules)} anomaly rule(s) for invoice {invoice.id}")

        if not rules:
            return []

        results = await asyncio.gather(
            *(self._evaluate_rule(rule, invoice, context) for rule in rules)
        )
        return list(results)

    async def _evaluate_rule(
        self,
        rule: BaseValidationRule,
        invoice: InvoiceSnapshot,
        context: ValidationContext,
    ) -> ValidationResult:
        try:
            return await asyncio.wait_for(rule.validate(invoice, context), timeout=self.rule_timeout)

        except asyncio.TimeoutError:
            error = RuleEvaluationException(
                f"Rule {rule.rule_type.value} timed out after {self.rule_timeout}s",
                details={"type": "TimeoutError", "message": f"timed out after {self.rule_timeout}s"},
            )

        except Exception as e:
            error = RuleEvaluationException(
                f"Rule {rule.rule_type.value} execution failed: {e}",
                details={"type": type(e).__name__, "message": str(e)},
            )

        logger.error(f"{error.message} (invoice {invoice.id})")
        return ValidationResult.failed(
            rule.rule_type,
            rule.severity,
            {
                "message": error.message,
                "error": error.details,
            },
            metadata={"error_code": error.error_code},
        )
