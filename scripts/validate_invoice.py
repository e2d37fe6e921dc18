"""
Run a validation pass for one invoice and print the summary as JSON.
"""

import argparse
import asyncio
import json
import sys

from invoice_validation.core.exceptions import ErrorKind, InvoiceValidationException
from invoice_validation.core.logging import get_logger, setup_logging
from invoice_validation.db.session import AsyncSessionLocal, async_engine
from invoice_validation.services.validation_orchestrator import (
    LoggingEventSink,
    build_validation_orchestrator,
)

logger = get_logger(__name__)


async def validate(invoice_id: int, revalidate: bool = False) -> dict:
    async with AsyncSessionLocal() as session:
        orchestrator = build_validation_orchestrator(session, event_sink=LoggingEventSink())
        if revalidate:
            summary = await orchestrator.revalidate_invoice(invoice_id)
        else:
            summary = await orchestrator.validate_invoice(invoice_id)
    return summary.model_dump(mode="json")


async def _main(args) -> int:
    try:
        summary = await validate(args.invoice_id, revalidate=args.revalidate)
    except InvoiceValidationException as e:
        logger.error(f"[{e.error_code}] {e.message}")
        return 2 if e.error_kind == ErrorKind.NOT_FOUND else 1
    finally:
        await async_engine.dispose()

    print(json.dumps(summary, indent=2 if args.pretty else None))
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate an invoice")
    parser.add_argument("invoice_id", type=int, help="Invoice id")
    parser.add_argument(
        "--revalidate",
        action="store_true",
        help="Replace existing flagged records with a fresh pass",
    )
    parser.add_argument("--pretty", action="store_true", help="Indent JSON output")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    args = parser.parse_args()

    setup_logging(level=args.log_level)
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
