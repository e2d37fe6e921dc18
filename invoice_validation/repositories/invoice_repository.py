"""
Invoice lookups used by the validation engine.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from invoice_validation.models.invoice import Invoice, InvoiceDeliveryLink
from invoice_validation.models.reference import DeliveryNote, ItemPriceHistory, PurchaseOrder
from invoice_validation.schemas.invoice import (
    DeliveryNoteItemSnapshot,
    DeliveryNoteSnapshot,
    InvoiceLineItem,
    InvoiceSnapshot,
    PriceHistoryEntry,
    PurchaseOrderItemSnapshot,
    PurchaseOrderSnapshot,
)

logger = logging.getLogger(__name__)


def _enum_value(value):
    return getattr(value, "value", value)


def _purchase_order_snapshot(po: PurchaseOrder) -> PurchaseOrderSnapshot:
    return PurchaseOrderSnapshot(
        id=po.id,
        items=[
            PurchaseOrderItemSnapshot(item_id=item.item_id, quantity=item.quantity, price=item.price)
            for item in po.items
        ],
    )


def _delivery_note_snapshot(note: DeliveryNote) -> DeliveryNoteSnapshot:
    return DeliveryNoteSnapshot(
        id=note.id,
        items=[
            DeliveryNoteItemSnapshot(
                item_id=item.item_id,
                quantity_ordered=item.quantity_ordered,
                quantity_delivered=item.quantity_delivered,
                condition=_enum_value(item.condition),
            )
            for item in note.items
        ],
    )


def _invoice_snapshot(
    invoice: Invoice,
    include_items: bool = False,
    include_purchase_order: bool = False,
    include_delivery_notes: bool = False,
) -> InvoiceSnapshot:
    """Map an ORM invoice to a snapshot, touching only eagerly loaded relationships."""
    data = {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "vendor_id": invoice.vendor_id,
        "total_amount": invoice.total_amount,
        "date": invoice.date,
        "status": _enum_value(invoice.status),
    }

    if include_items:
        data["items"] = [
            InvoiceLineItem(item_id=item.item_id, quantity=item.quantity, price=item.price)
            for item in invoice.items
        ]

    if include_purchase_order and invoice.purchase_order is not None:
        data["purchase_order"] = _purchase_order_snapshot(invoice.purchase_order)

    if include_delivery_notes:
        data["delivery_notes"] = [
            _delivery_note_snapshot(link.delivery_note) for link in invoice.delivery_links
        ]

    return InvoiceSnapshot(**data)


class InvoiceRepository:
    """Read access to invoices and their related aggregates."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(
        self,
        invoice_id: int,
        include_items: bool = False,
        include_purchase_order: bool = False,
        include_delivery_notes: bool = False,
    ) -> Optional[InvoiceSnapshot]:
        """
        Load a non-deleted invoice.

        Args:
            invoice_id: Invoice primary key
            include_items: Load invoiced line items
            include_purchase_order: Load the linked purchase order and its items
            include_delivery_notes: Load linked delivery notes and their items

        Returns:
            Invoice snapshot or None when missing or soft-deleted
        """
        stmt = select(Invoice).where(Invoice.id == invoice_id, Invoice.deleted_at.is_(None))

        if include_items:
            stmt = stmt.options(selectinload(Invoice.items))
        if include_purchase_order:
            stmt = stmt.options(selectinload(Invoice.purchase_order).selectinload(PurchaseOrder.items))
        if include_delivery_notes:
            stmt = stmt.options(
                selectinload(Invoice.delivery_links)
                .selectinload(InvoiceDeliveryLink.delivery_note)
                .selectinload(DeliveryNote.items)
            )

        result = await self.db.execute(stmt)
        invoice = result.scalar_one_or_none()
        if invoice is None:
            return None

        return _invoice_snapshot(
            invoice,
            include_items=include_items,
            include_purchase_order=include_purchase_order,
            include_delivery_notes=include_delivery_notes,
        )

    async def find_duplicate_by_number_and_vendor(
        self,
        invoice_number: str,
        vendor_id: int,
        exclude_id: Optional[int] = None,
    ) -> Optional[InvoiceSnapshot]:
        """Find another non-deleted invoice with the same number from the same vendor."""
        stmt = select(Invoice).where(
            Invoice.invoice_number == invoice_number,
            Invoice.vendor_id == vendor_id,
            Invoice.deleted_at.is_(None),
        )
        if exclude_id is not None:
            stmt = stmt.where(Invoice.id != exclude_id)

        result = await self.db.execute(stmt.order_by(Invoice.id).limit(1))
        duplicate = result.scalar_one_or_none()
        return _invoice_snapshot(duplicate) if duplicate is not None else None

    async def find_price_history_for_items(
        self,
        item_ids: Sequence[int],
        limit: int = 50,
    ) -> List[PriceHistoryEntry]:
        """
        Most recent price history rows for the given items, newest first.

        ``limit`` applies per item id, so one item with a long history does
        not crowd out the others.
        """
        if not item_ids:
            return []

        ranked = (
            select(
                ItemPriceHistory.id,
                func.row_number()
                .over(
                    partition_by=ItemPriceHistory.item_id,
                    order_by=[ItemPriceHistory.date.desc(), ItemPriceHistory.id.desc()],
                )
                .label("recency"),
            )
            .where(ItemPriceHistory.item_id.in_(list(item_ids)))
            .subquery()
        )

        stmt = (
            select(ItemPriceHistory)
            .join(ranked, ranked.c.id == ItemPriceHistory.id)
            .where(ranked.c.recency <= limit)
            .order_by(ItemPriceHistory.date.desc(), ItemPriceHistory.id.desc())
        )
        result = await self.db.execute(stmt)
        return [
            PriceHistoryEntry(item_id=row.item_id, price=row.price, date=row.date)
            for row in result.scalars().all()
        ]
