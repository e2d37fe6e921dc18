"""
Persisted validation rule definitions.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_validation.core.exceptions import NotFoundException
from invoice_validation.models.validation import DEFAULT_VALIDATION_RULES, ValidationRule
from invoice_validation.schemas.validation import (
    ValidationRuleDefinition,
    ValidationRuleType,
    ValidationSeverity,
)

logger = logging.getLogger(__name__)


class ValidationRuleRepository:
    """CRUD over validation rule rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_all(self) -> List[ValidationRuleDefinition]:
        result = await self.db.execute(select(ValidationRule).order_by(ValidationRule.rule_type))
        return [ValidationRuleDefinition.model_validate(rule) for rule in result.scalars().all()]

    async def find_enabled(self) -> List[ValidationRuleDefinition]:
        stmt = (
            select(ValidationRule)
            .where(ValidationRule.enabled.is_(True))
            .order_by(ValidationRule.rule_type)
        )
        result = await self.db.execute(stmt)
        return [ValidationRuleDefinition.model_validate(rule) for rule in result.scalars().all()]

    async def find_by_id(self, rule_id: int) -> Optional[ValidationRuleDefinition]:
        result = await self.db.execute(select(ValidationRule).where(ValidationRule.id == rule_id))
        rule = result.scalar_one_or_none()
        return ValidationRuleDefinition.model_validate(rule) if rule is not None else None

    async def find_by_type(self, rule_type: ValidationRuleType) -> Optional[ValidationRuleDefinition]:
        result = await self.db.execute(
            select(ValidationRule).where(ValidationRule.rule_type == rule_type)
        )
        rule = result.scalar_one_or_none()
        return ValidationRuleDefinition.model_validate(rule) if rule is not None else None

    async def update(
        self,
        rule_id: int,
        enabled: Optional[bool] = None,
        severity: Optional[ValidationSeverity] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> ValidationRuleDefinition:
        """
        Update a rule definition in place.

        Only the given fields change. Callers must invalidate the config
        resolver cache after committing.

        Raises:
            NotFoundException: If no rule has the given id
        """
        rule = await self.db.get(ValidationRule, rule_id)
        if rule is None:
            raise NotFoundException(
                f"Validation rule {rule_id} not found",
                details={"rule_id": rule_id},
            )

        if enabled is not None:
            rule.enabled = enabled
        if severity is not None:
            rule.severity = severity
        if config is not None:
            rule.config = config

        await self.db.flush()
        # updated_at is generated server side
        await self.db.refresh(rule)
        logger.info(f"Updated validation rule {rule.rule_type.value}")
        return ValidationRuleDefinition.model_validate(rule)

    async def upsert_defaults(self) -> Dict[str, int]:
        """Insert or reset the default rule rows. Returns created/updated counts."""
        created = updated = 0
        for rule_data in DEFAULT_VALIDATION_RULES:
            result = await self.db.execute(
                select(ValidationRule).where(ValidationRule.rule_type == rule_data["rule_type"])
            )
            existing_rule = result.scalar_one_or_none()

            if existing_rule:
                for key, value in rule_data.items():
                    if key != "rule_type":
                        setattr(existing_rule, key, dict(value) if key == "config" else value)
                updated += 1
            else:
                data = dict(rule_data, config=dict(rule_data["config"]))
                self.db.add(ValidationRule(**data))
                created += 1

        await self.db.flush()
        logger.info(f"Seeded validation rules: {created} created, {updated} updated")
        return {"created": created, "updated": updated}
