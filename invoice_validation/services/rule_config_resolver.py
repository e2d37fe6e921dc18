"""
Merged validation rule configuration.

Configuration for each rule type comes from three layers, highest precedence
first: ``VALIDATION_RULE_<TYPE>_*`` environment variables, persisted rule
definitions, and the defaults built into the rule classes. Only the parameter
maps are merged key by key; ``enabled`` and ``severity`` are taken whole from
the highest layer that sets them.

Environment variables:
    VALIDATION_RULE_<TYPE>_ENABLED         true / false (case-insensitive)
    VALIDATION_RULE_<TYPE>_SEVERITY        CRITICAL / WARNING / INFO
    VALIDATION_RULE_<TYPE>_<PARAM>         numeric parameter, see RULE_ENV_PARAMS

Examples:
    VALIDATION_RULE_AMOUNT_THRESHOLD_EXCEEDED_THRESHOLD=10000
    VALIDATION_RULE_PRICE_VARIANCE_HISTORICAL_COUNT=5
"""

import asyncio
import logging
import math
import os
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from invoice_validation.core.config import settings
from invoice_validation.core.exceptions import ConfigNotFoundException, ConfigurationException
from invoice_validation.repositories.validation_rule_repository import ValidationRuleRepository
from invoice_validation.schemas.validation import (
    RuleConfig,
    ValidationRuleDefinition,
    ValidationRuleType,
    ValidationSeverity,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "VALIDATION_RULE_"


def parse_float(raw: str) -> float:
    value = float(raw.strip())
    if not math.isfinite(value):
        raise ValueError(f"non-finite value {raw!r}")
    return value


def parse_int(raw: str) -> int:
    return int(raw.strip(), 10)


def parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    raise ValueError(f"expected 'true' or 'false', got {raw!r}")


def parse_severity(raw: str) -> ValidationSeverity:
    try:
        return ValidationSeverity(raw.strip().upper())
    except ValueError:
        allowed = ", ".join(severity.value for severity in ValidationSeverity)
        raise ValueError(f"expected one of {allowed}, got {raw!r}") from None


# (env suffix, param key, parser) per rule type
RULE_ENV_PARAMS: Dict[ValidationRuleType, Tuple[Tuple[str, str, Callable[[str], Any]], ...]] = {
    ValidationRuleType.AMOUNT_THRESHOLD_EXCEEDED: (("THRESHOLD", "threshold", parse_float),),
    ValidationRuleType.ROUND_AMOUNT_PATTERN: (("MINIMUM_AMOUNT", "minimum_amount", parse_float),),
    ValidationRuleType.PO_AMOUNT_VARIANCE: (("VARIANCE_PERCENT", "variance_percent", parse_float),),
    ValidationRuleType.PRICE_VARIANCE: (
        ("VARIANCE_PERCENT", "variance_percent", parse_float),
        ("HISTORICAL_COUNT", "historical_count", parse_int),
    ),
}


# The duplicate check stays on unless ENABLED=false is set explicitly
ENABLED_UNLESS_DISABLED = frozenset({ValidationRuleType.DUPLICATE_INVOICE_NUMBER})


def env_key(rule_type: ValidationRuleType, suffix: str) -> str:
    return f"{ENV_PREFIX}{rule_type.value}_{suffix}"


class EnvOverride:
    """Values one rule type takes from the environment."""

    def __init__(self):
        self.enabled: Optional[bool] = None
        self.severity: Optional[ValidationSeverity] = None
        self.params: Dict[str, Any] = {}

    def is_empty(self) -> bool:
        return self.enabled is None and self.severity is None and not self.params


class ValidationRuleConfigResolver:
    """
    Resolves and caches the merged configuration of every rule type.

    The merged map is cached for ``ttl_seconds``. Concurrent callers that find
    the cache stale share one refresh. Any collaborator that changes persisted
    rule rows must call ``invalidate_cache()`` afterwards.
    """

    def __init__(
        self,
        rule_repository: ValidationRuleRepository,
        ttl_seconds: Optional[float] = None,
        environ: Optional[Mapping[str, str]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.rule_repository = rule_repository
        self.ttl_seconds = (
            settings.VALIDATION_CONFIG_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        )
        self._environ = os.environ if environ is None else environ
        self._clock = clock

        self._cache: Optional[Dict[ValidationRuleType, RuleConfig]] = None
        self._cache_timestamp = 0.0
        self._generation = 0
        self._lock = asyncio.Lock()

        self.validate_env_config()

    async def get_rule_config(self, rule_type: ValidationRuleType) -> RuleConfig:
        """
        Merged configuration for one rule type.

        Raises:
            ConfigNotFoundException: If neither the environment nor storage defines the type
        """
        configs = await self.get_all_rule_configs()
        config = configs.get(rule_type)
        if config is None:
            raise ConfigNotFoundException(
                f"No configuration found for rule type: {rule_type.value}",
                details={"rule_type": rule_type.value},
            )
        return config

    async def get_all_rule_configs(self) -> Dict[ValidationRuleType, RuleConfig]:
        """Merged configuration of every configured rule type."""
        if self._is_fresh():
            return dict(self._cache)

        async with self._lock:
            # Another caller may have refreshed while we waited
            if self._is_fresh():
                return dict(self._cache)

            generation = self._generation
            definitions = await self.rule_repository.find_all()
            merged = self._merge(definitions, self._parse_env_overrides())

            # Do not repopulate a cache invalidated during the read
            if generation == self._generation:
                self._cache = merged
                self._cache_timestamp = self._clock()

            logger.info(f"Refreshed validation rule configuration: {len(merged)} rule type(s)")
            return dict(merged)

    def invalidate_cache(self):
        """Drop the cached merge so the next lookup reads storage again."""
        self._cache = None
        self._cache_timestamp = 0.0
        self._generation += 1
        logger.debug("Validation rule configuration cache invalidated")

    def get_stats(self) -> Dict[str, Any]:
        """Cache statistics in seconds."""
        is_cached = self._cache is not None
        return {
            "is_cached": is_cached,
            "age": self._clock() - self._cache_timestamp if is_cached else 0.0,
            "ttl": self.ttl_seconds,
        }

    def validate_env_config(self) -> List[str]:
        """
        Check every VALIDATION_RULE_* variable once and log the problems found.

        Malformed values fall back to storage at lookup time. Negative numbers
        are reported here but still applied.
        """
        issues = [f"{error.details['key']}: {error.message}" for error in self._collect_env_errors()]

        for rule_type, specs in RULE_ENV_PARAMS.items():
            for suffix, _, parser in specs:
                key = env_key(rule_type, suffix)
                raw = self._environ.get(key)
                if raw is None:
                    continue
                try:
                    value = parser(raw)
                except ValueError:
                    continue
                if value < 0:
                    issues.append(f"{key}: negative value {raw!r}")

        known_prefixes = [f"{ENV_PREFIX}{rule_type.value}_" for rule_type in ValidationRuleType]
        known_keys = set(self._known_env_keys())
        for key in sorted(self._environ):
            if key in known_keys:
                continue
            if any(key.startswith(prefix) for prefix in known_prefixes):
                issues.append(f"{key}: unrecognized setting")

        if issues:
            lines = [
                "=" * 73,
                "Validation rule environment configuration issues detected:",
                "=" * 73,
            ]
            lines.extend(f"  - {issue}" for issue in issues)
            lines.append("Falling back to database configuration for invalid values.")
            lines.append("=" * 73)
            logger.warning("\n".join(lines))

        return issues

    def _is_fresh(self) -> bool:
        if self._cache is None:
            return False
        return self._clock() - self._cache_timestamp < self.ttl_seconds

    def _known_env_keys(self):
        for rule_type in ValidationRuleType:
            yield env_key(rule_type, "ENABLED")
            yield env_key(rule_type, "SEVERITY")
            for suffix, _, _ in RULE_ENV_PARAMS.get(rule_type, ()):
                yield env_key(rule_type, suffix)

    def _collect_env_errors(self) -> List[ConfigurationException]:
        _, errors = self._read_env()
        return errors

    def _parse_env_overrides(self) -> Dict[ValidationRuleType, EnvOverride]:
        overrides, errors = self._read_env()
        for error in errors:
            logger.warning(f"{error.message} for {error.details['key']}. Using database value.")
        return overrides

    def _read_env(self) -> Tuple[Dict[ValidationRuleType, EnvOverride], List[ConfigurationException]]:
        overrides: Dict[ValidationRuleType, EnvOverride] = {}
        errors: List[ConfigurationException] = []

        def read(key: str, parser: Callable[[str], Any]):
            raw = self._environ.get(key)
            if raw is None:
                return None
            try:
                return parser(raw)
            except ValueError as e:
                errors.append(
                    ConfigurationException(
                        f"Invalid value {raw!r} ({e})",
                        details={"key": key, "value": raw},
                    )
                )
                return None

        for rule_type in ValidationRuleType:
            override = EnvOverride()
            override.enabled = read(env_key(rule_type, "ENABLED"), parse_bool)
            override.severity = read(env_key(rule_type, "SEVERITY"), parse_severity)

            for suffix, param, parser in RULE_ENV_PARAMS.get(rule_type, ()):
                value = read(env_key(rule_type, suffix), parser)
                if value is not None:
                    override.params[param] = value

            if not override.is_empty():
                overrides[rule_type] = override

        return overrides, errors

    @staticmethod
    def _merge(
        definitions: List[ValidationRuleDefinition],
        overrides: Dict[ValidationRuleType, EnvOverride],
    ) -> Dict[ValidationRuleType, RuleConfig]:
        merged: Dict[ValidationRuleType, RuleConfig] = {}

        for definition in definitions:
            override = overrides.get(definition.rule_type) or EnvOverride()
            merged[definition.rule_type] = RuleConfig(
                enabled=override.enabled if override.enabled is not None else definition.enabled,
                severity=override.severity or definition.severity,
                params={**(definition.config or {}), **override.params},
            )

        # Environment-only rule types
        for rule_type, override in overrides.items():
            if rule_type in merged:
                continue
            merged[rule_type] = RuleConfig(
                enabled=(
                    override.enabled
                    if override.enabled is not None
                    else rule_type in ENABLED_UNLESS_DISABLED
                ),
                severity=override.severity or ValidationSeverity.WARNING,
                params=dict(override.params),
            )

        return merged
