"""
Flagged validation records.
"""

import logging
from typing import List, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_validation.models.validation import InvoiceValidation
from invoice_validation.schemas.validation import CreateInvoiceValidation, InvoiceValidationRecord

logger = logging.getLogger(__name__)


class InvoiceValidationRepository:
    """
    Writes and reads flagged validation rows.

    Writes are flushed, not committed; the caller owns the unit of work and
    finishes it with ``commit()`` or ``rollback()``.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_many(self, records: Sequence[CreateInvoiceValidation]) -> int:
        if not records:
            return 0

        self.db.add_all(
            [
                InvoiceValidation(
                    invoice_id=record.invoice_id,
                    rule_type=record.rule_type,
                    severity=record.severity,
                    status=record.status,
                    details=record.details,
                    metadata_json=record.metadata,
                )
                for record in records
            ]
        )
        await self.db.flush()
        return len(records)

    async def find_by_invoice_id(self, invoice_id: int) -> List[InvoiceValidationRecord]:
        """Records for an invoice, most severe first, then newest first."""
        stmt = (
            select(InvoiceValidation)
            .where(InvoiceValidation.invoice_id == invoice_id)
            .order_by(InvoiceValidation.created_at.desc(), InvoiceValidation.id.desc())
        )
        result = await self.db.execute(stmt)
        records = [InvoiceValidationRecord.model_validate(row) for row in result.scalars().all()]
        # Stable sort keeps the newest-first order within a severity
        records.sort(key=lambda record: record.severity.rank, reverse=True)
        return records

    async def delete_by_invoice_id(self, invoice_id: int) -> int:
        result = await self.db.execute(
            delete(InvoiceValidation).where(InvoiceValidation.invoice_id == invoice_id)
        )
        return result.rowcount

    async def commit(self):
        await self.db.commit()

    async def rollback(self):
        await self.db.rollback()
