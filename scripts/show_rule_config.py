"""
Print the merged validation rule configuration (environment over database over defaults).
"""

import argparse
import asyncio
import json
import sys

from invoice_validation.core.logging import get_logger, setup_logging
from invoice_validation.db.session import AsyncSessionLocal, async_engine
from invoice_validation.repositories.validation_rule_repository import ValidationRuleRepository
from invoice_validation.services.rule_config_resolver import ValidationRuleConfigResolver
from invoice_validation.services.suspicious_detector import RULE_REGISTRY

logger = get_logger(__name__)


async def load_rule_config() -> dict:
    async with AsyncSessionLocal() as session:
        resolver = ValidationRuleConfigResolver(ValidationRuleRepository(session))
        configs = await resolver.get_all_rule_configs()

    output = {}
    for rule_type, config in sorted(configs.items(), key=lambda entry: entry[0].value):
        rule_class = RULE_REGISTRY.get(rule_type)
        defaults = rule_class.default_params if rule_class else {}
        output[rule_type.value] = {
            "enabled": config.enabled,
            "severity": config.severity.value,
            "params": {**defaults, **config.params},
        }
    return output


async def _main(args) -> int:
    try:
        output = await load_rule_config()
    except Exception as e:
        logger.error(f"Could not load rule configuration: {e}")
        return 1
    finally:
        await async_engine.dispose()

    print(json.dumps(output, indent=2))
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Show merged validation rule configuration")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    args = parser.parse_args()

    setup_logging(level=args.log_level)
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
