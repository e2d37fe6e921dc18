"""
Top-level invoice validation workflow.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_validation.core.config import settings
from invoice_validation.core.exceptions import NotFoundException, PersistenceException
from invoice_validation.repositories.invoice_repository import InvoiceRepository
from invoice_validation.repositories.invoice_validation_repository import InvoiceValidationRepository
from invoice_validation.repositories.validation_rule_repository import ValidationRuleRepository
from invoice_validation.schemas.invoice import InvoiceSnapshot, ValidationContext
from invoice_validation.schemas.validation import (
    CreateInvoiceValidation,
    InvoiceValidationSummary,
    StoredValidationSummary,
    ValidationEvent,
    ValidationEventType,
    ValidationResult,
    ValidationSeverity,
    ValidationStatus,
    get_highest_severity,
)
from invoice_validation.services.duplicate_detector import DuplicateDetector
from invoice_validation.services.rule_config_resolver import ValidationRuleConfigResolver
from invoice_validation.services.suspicious_detector import SuspiciousDetector

logger = logging.getLogger(__name__)

__all__ = [
    "ValidationEventSink",
    "LoggingEventSink",
    "ValidationOrchestrator",
    "build_validation_orchestrator",
    "get_highest_severity",
]


class ValidationEventSink(ABC):
    """Receives notifications about finished validation runs."""

    @abstractmethod
    async def publish(self, event: ValidationEvent):
        """Deliver one event."""
        pass


class LoggingEventSink(ValidationEventSink):
    """Writes validation events to the application log."""

    async def publish(self, event: ValidationEvent):
        logger.info(
            f"Validation event {event.event_type.value} for invoice {event.invoice_id}: {event.payload}"
        )


class ValidationOrchestrator:
    """
    Runs the duplicate check and the anomaly rules for one invoice.

    Failed results are persisted as FLAGGED records in a single unit of work;
    passed results are only returned in the summary.
    """

    def __init__(
        self,
        duplicate_detector: DuplicateDetector,
        suspicious_detector: SuspiciousDetector,
        invoice_repository: InvoiceRepository,
        validation_repository: InvoiceValidationRepository,
        event_sink: Optional[ValidationEventSink] = None,
        price_history_limit: Optional[int] = None,
    ):
        self.duplicate_detector = duplicate_detector
        self.suspicious_detector = suspicious_detector
        self.invoice_repository = invoice_repository
        self.validation_repository = validation_repository
        self.event_sink = event_sink
        self.price_history_limit = (
            settings.VALIDATION_PRICE_HISTORY_LIMIT if price_history_limit is None else price_history_limit
        )

    async def validate_invoice(self, invoice_id: int) -> InvoiceValidationSummary:
        """
        Validate an invoice and persist its flags.

        Args:
            invoice_id: Invoice primary key

        Returns:
            Summary holding both passed and failed results

        Raises:
            NotFoundException: If the invoice does not exist or is soft-deleted
            PersistenceException: If the flagged records cannot be written
        """
        return await self._run(invoice_id, replace_existing=False)

    async def revalidate_invoice(self, invoice_id: int) -> InvoiceValidationSummary:
        """Replace an invoice's flagged records with the outcome of a fresh pass."""
        return await self._run(invoice_id, replace_existing=True)

    async def get_validation_summary(self, invoice_id: int) -> StoredValidationSummary:
        """Summary of the flagged records currently stored for an invoice."""
        await self._load_invoice(invoice_id, with_relations=False)
        records = await self.validation_repository.find_by_invoice_id(invoice_id)
        return StoredValidationSummary(
            invoice_id=invoice_id,
            flag_count=len(records),
            has_blocking_issues=any(
                record.severity == ValidationSeverity.CRITICAL
                and record.status == ValidationStatus.FLAGGED
                for record in records
            ),
            validations=records,
        )

    async def _run(self, invoice_id: int, replace_existing: bool) -> InvoiceValidationSummary:
        logger.info(f"Starting validation for invoice {invoice_id}")

        invoice = await self._load_invoice(invoice_id, with_relations=True)
        context = await self._build_context(invoice)

        # The duplicate check is authoritative and runs before the rule batch
        duplicate_result = await self.duplicate_detector.check_duplicate(invoice)
        suspicious_results = await self.suspicious_detector.detect_anomalies(invoice, context)

        results = [duplicate_result, *suspicious_results]
        failed_results = [result for result in results if result.is_failed]

        await self._persist(invoice_id, failed_results, replace_existing)

        summary = InvoiceValidationSummary(
            invoice_id=invoice_id,
            is_valid=not failed_results,
            has_blocking_issues=any(result.is_blocking() for result in failed_results),
            flag_count=len(failed_results),
            highest_severity=get_highest_severity(failed_results),
            validations=results,
        )

        logger.info(
            f"Validation finished for invoice {invoice_id}: {summary.flag_count} flag(s), "
            f"highest severity {summary.highest_severity.value if summary.highest_severity else 'none'}"
        )

        await self._publish_events(summary)
        return summary

    async def _load_invoice(self, invoice_id: int, with_relations: bool) -> InvoiceSnapshot:
        invoice = await self.invoice_repository.find_by_id(
            invoice_id,
            include_items=with_relations,
            include_purchase_order=with_relations,
            include_delivery_notes=with_relations,
        )
        if invoice is None:
            raise NotFoundException(
                f"Invoice with ID {invoice_id} not found",
                details={"invoice_id": invoice_id},
            )
        return invoice

    async def _build_context(self, invoice: InvoiceSnapshot) -> ValidationContext:
        price_history = []
        if invoice.items:
            item_ids = list(dict.fromkeys(item.item_id for item in invoice.items))
            price_history = await self.invoice_repository.find_price_history_for_items(
                item_ids, limit=self.price_history_limit
            )

        return ValidationContext(
            purchase_order=invoice.purchase_order,
            delivery_notes=invoice.delivery_notes,
            price_history=price_history,
        )

    async def _persist(
        self,
        invoice_id: int,
        failed_results: List[ValidationResult],
        replace_existing: bool,
    ):
        records = [
            CreateInvoiceValidation(
                invoice_id=invoice_id,
                rule_type=result.rule_type,
                severity=result.severity,
                status=ValidationStatus.FLAGGED,
                details=result.details,
                metadata=result.metadata,
            )
            for result in failed_results
        ]

        try:
            if replace_existing:
                removed = await self.validation_repository.delete_by_invoice_id(invoice_id)
                logger.debug(f"Removed {removed} previous validation record(s) for invoice {invoice_id}")
            await self.validation_repository.create_many(records)
            await self.validation_repository.commit()

        except SQLAlchemyError as e:
            logger.error(f"Failed to persist validation results for invoice {invoice_id}: {e}")
            await self.validation_repository.rollback()
            raise PersistenceException(
                f"Failed to persist validation results for invoice {invoice_id}",
                details={"invoice_id": invoice_id, "flag_count": len(records), "error": str(e)},
            ) from e

    async def _publish_events(self, summary: InvoiceValidationSummary):
        if self.event_sink is None:
            return

        events = [
            ValidationEvent(
                event_type=ValidationEventType.INVOICE_VALIDATED,
                invoice_id=summary.invoice_id,
                payload={"summary": summary.model_dump(mode="json")},
            )
        ]
        if summary.has_blocking_issues:
            events.append(
                ValidationEvent(
                    event_type=ValidationEventType.DUPLICATE_DETECTED,
                    invoice_id=summary.invoice_id,
                )
            )
        elif summary.flag_count > 0:
            events.append(
                ValidationEvent(
                    event_type=ValidationEventType.SUSPICIOUS_DETECTED,
                    invoice_id=summary.invoice_id,
                    payload={"flag_count": summary.flag_count},
                )
            )

        for event in events:
            try:
                await self.event_sink.publish(event)
            except Exception as e:
                logger.error(
                    f"Failed to publish {event.event_type.value} for invoice {summary.invoice_id}: {e}"
                )


def build_validation_orchestrator(
    session: AsyncSession,
    event_sink: Optional[ValidationEventSink] = None,
    config_resolver: Optional[ValidationRuleConfigResolver] = None,
) -> ValidationOrchestrator:
    """
    Wire repositories, config resolver and detectors around one session.

    Without ``config_resolver`` a new resolver is built on the given session.
    Its cache then lives only as long as this orchestrator, and the
    environment check logs its warnings again on every call. Long-running
    callers should build one resolver and pass it to every orchestrator::

        config_session = AsyncSessionLocal()
        resolver = ValidationRuleConfigResolver(ValidationRuleRepository(config_session))

        async with AsyncSessionLocal() as session:
            orchestrator = build_validation_orchestrator(session, config_resolver=resolver)

    The shared resolver reads rule rows through its own session, which must
    stay open while the resolver is in use. Call
    ``resolver.invalidate_cache()`` after changing rule rows.
    """
    invoice_repository = InvoiceRepository(session)
    if config_resolver is None:
        config_resolver = ValidationRuleConfigResolver(ValidationRuleRepository(session))

    return ValidationOrchestrator(
        duplicate_detector=DuplicateDetector(invoice_repository, config_resolver),
        suspicious_detector=SuspiciousDetector(config_resolver),
        invoice_repository=invoice_repository,
        validation_repository=InvoiceValidationRepository(session),
        event_sink=event_sink,
    )
