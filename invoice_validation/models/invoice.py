"""
Invoice-related database models.
"""

import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from invoice_validation.db.base import IntegerIDMixin, SoftDeleteMixin, TimestampMixin
from invoice_validation.db.session import Base


class InvoiceStatus(str, enum.Enum):
    """Invoice approval status."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"


class Invoice(Base, IntegerIDMixin, TimestampMixin, SoftDeleteMixin):
    """Main invoice record."""

    __tablename__ = "invoices"

    invoice_number = Column(String(100), nullable=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=True, index=True)
    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(Enum(InvoiceStatus), default=InvoiceStatus.PENDING, nullable=False, index=True)

    __table_args__ = (
        Index('idx_invoice_number_vendor', 'invoice_number', 'vendor_id'),
    )

    # Relationships
    vendor = relationship("Vendor", back_populates="invoices")
    purchase_order = relationship("PurchaseOrder")
    items = relationship("InvoiceItem", back_populates="invoice", cascade="all, delete-orphan")
    delivery_links = relationship("InvoiceDeliveryLink", back_populates="invoice", cascade="all, delete-orphan")
    validations = relationship("InvoiceValidation", back_populates="invoice", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Invoice(id={self.id}, invoice_number={self.invoice_number}, status={self.status})>"


class InvoiceItem(Base, IntegerIDMixin):
    """Invoiced line item."""

    __tablename__ = "invoice_items"

    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    # Relationships
    invoice = relationship("Invoice", back_populates="items")
    item = relationship("Item")


class InvoiceDeliveryLink(Base, IntegerIDMixin):
    """Join between an invoice and the delivery notes it bills for."""

    __tablename__ = "invoice_delivery_links"

    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    delivery_note_id = Column(Integer, ForeignKey("delivery_notes.id"), nullable=False)
    linked_at = Column(DateTime(timezone=True), nullable=True)
    linked_by = Column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint('invoice_id', 'delivery_note_id', name='uq_invoice_delivery_note'),
    )

    # Relationships
    invoice = relationship("Invoice", back_populates="delivery_links")
    delivery_note = relationship("DeliveryNote")
