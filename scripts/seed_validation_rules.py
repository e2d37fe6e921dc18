"""
Create the schema and seed the default validation rules.
"""

import argparse
import asyncio
import sys

from invoice_validation.core.logging import get_logger, setup_logging
from invoice_validation.db.session import AsyncSessionLocal, async_engine, create_all_tables
from invoice_validation.repositories.validation_rule_repository import ValidationRuleRepository

logger = get_logger(__name__)


async def seed_validation_rules(create_tables: bool = True) -> dict:
    """Upsert the default rule rows and commit."""
    if create_tables:
        await create_all_tables()

    async with AsyncSessionLocal() as session:
        counts = await ValidationRuleRepository(session).upsert_defaults()
        await session.commit()

    logger.info(f"Validation rules seeded: {counts['created']} created, {counts['updated']} updated")
    return counts


async def _main(args) -> int:
    try:
        await seed_validation_rules(create_tables=not args.skip_create_tables)
    except Exception as e:
        logger.error(f"Error seeding validation rules: {e}")
        return 1
    finally:
        await async_engine.dispose()
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed default validation rules")
    parser.add_argument(
        "--skip-create-tables",
        action="store_true",
        help="Do not create missing tables before seeding",
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    args = parser.parse_args()

    setup_logging(level=args.log_level)
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
