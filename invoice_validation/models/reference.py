"""
Reference data models (vendors, items, POs, delivery notes).
"""

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from invoice_validation.db.base import IntegerIDMixin, SoftDeleteMixin, TimestampMixin
from invoice_validation.db.session import Base


class POStatus(str, enum.Enum):
    """Purchase order status options."""

    DRAFT = "DRAFT"
    SENT = "SENT"
    FULFILLED = "FULFILLED"
    CANCELLED = "CANCELLED"


class DeliveryNoteStatus(str, enum.Enum):
    """Delivery note status options."""

    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"


class DeliveryCondition(str, enum.Enum):
    """Condition of delivered goods."""

    GOOD = "GOOD"
    DAMAGED = "DAMAGED"
    PARTIAL = "PARTIAL"


class Vendor(Base, IntegerIDMixin, TimestampMixin, SoftDeleteMixin):
    """Vendor master data."""

    __tablename__ = "vendors"

    name = Column(String(255), nullable=False, index=True)
    contact = Column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint("name <> ''", name='check_vendor_name_not_empty'),
    )

    # Relationships
    items = relationship("Item", back_populates="vendor")
    invoices = relationship("Invoice", back_populates="vendor")

    def __repr__(self):
        return f"<Vendor(id={self.id}, name={self.name})>"


class Item(Base, IntegerIDMixin, TimestampMixin, SoftDeleteMixin):
    """Catalogue item sold by a vendor."""

    __tablename__ = "items"

    name = Column(String(255), nullable=False)
    item_code = Column(String(100), nullable=True, index=True)
    price = Column(Numeric(12, 2), nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False, index=True)

    # Relationships
    vendor = relationship("Vendor", back_populates="items")
    price_history = relationship("ItemPriceHistory", back_populates="item", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Item(id={self.id}, name={self.name}, price={self.price})>"


class ItemPriceHistory(Base, IntegerIDMixin):
    """Observed price of an item at a point in time."""

    __tablename__ = "item_price_history"

    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_price_history_item_date', 'item_id', 'date'),
    )

    # Relationships
    item = relationship("Item", back_populates="price_history")

    def __repr__(self):
        return f"<ItemPriceHistory(item_id={self.item_id}, price={self.price}, date={self.date})>"


class PurchaseOrder(Base, IntegerIDMixin, TimestampMixin, SoftDeleteMixin):
    """Purchase order header."""

    __tablename__ = "purchase_orders"

    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False, index=True)
    date = Column(DateTime(timezone=True), nullable=False)
    status = Column(Enum(POStatus), default=POStatus.DRAFT, nullable=False, index=True)

    # Relationships
    items = relationship("PurchaseOrderItem", back_populates="purchase_order", cascade="all, delete-orphan")
    delivery_notes = relationship("DeliveryNote", back_populates="purchase_order")

    def __repr__(self):
        return f"<PurchaseOrder(id={self.id}, status={self.status})>"


class PurchaseOrderItem(Base, IntegerIDMixin):
    """Ordered line on a purchase order."""

    __tablename__ = "purchase_order_items"

    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    # Relationships
    purchase_order = relationship("PurchaseOrder", back_populates="items")


class DeliveryNote(Base, IntegerIDMixin, TimestampMixin):
    """Goods delivery against a purchase order."""

    __tablename__ = "delivery_notes"

    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    delivery_date = Column(DateTime(timezone=True), nullable=False)
    received_by = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(Enum(DeliveryNoteStatus), default=DeliveryNoteStatus.DRAFT, nullable=False)

    # Relationships
    purchase_order = relationship("PurchaseOrder", back_populates="delivery_notes")
    items = relationship("DeliveryNoteItem", back_populates="delivery_note", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<DeliveryNote(id={self.id}, status={self.status})>"


class DeliveryNoteItem(Base, IntegerIDMixin, TimestampMixin):
    """Ordered and delivered quantity of one item on a delivery note."""

    __tablename__ = "delivery_note_items"

    delivery_note_id = Column(Integer, ForeignKey("delivery_notes.id"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    quantity_ordered = Column(Integer, nullable=False)
    quantity_delivered = Column(Integer, nullable=False)
    condition = Column(Enum(DeliveryCondition), default=DeliveryCondition.GOOD, nullable=False)
    discrepancy_reason = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("quantity_delivered >= 0", name='check_quantity_delivered_non_negative'),
    )

    # Relationships
    delivery_note = relationship("DeliveryNote", back_populates="items")
