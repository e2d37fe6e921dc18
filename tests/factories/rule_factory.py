"""
Factory for persisted rule definitions handed to the config resolver.
"""

import factory

from invoice_validation.schemas.validation import (
    ValidationRuleDefinition,
    ValidationRuleType,
    ValidationSeverity,
)


class RuleDefinitionFactory(factory.Factory):
    class Meta:
        model = ValidationRuleDefinition

    id = factory.Sequence(lambda n: n + 1)
    rule_type = ValidationRuleType.AMOUNT_THRESHOLD_EXCEEDED
    name = factory.LazyAttribute(lambda obj: obj.rule_type.value.replace("_", " ").title())
    enabled = True
    severity = ValidationSeverity.WARNING
    config = factory.LazyFunction(dict)
