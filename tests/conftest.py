"""
Pytest configuration and fixtures for the invoice validation engine.
"""

import os
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import invoice_validation.models  # noqa: F401
from invoice_validation.db.session import Base
from invoice_validation.models.invoice import InvoiceDeliveryLink, InvoiceItem, InvoiceStatus
from invoice_validation.models.reference import DeliveryNoteItem, ItemPriceHistory, PurchaseOrderItem
from invoice_validation.repositories.validation_rule_repository import ValidationRuleRepository
from invoice_validation.services.rule_config_resolver import ENV_PREFIX
from invoice_validation.schemas.validation import ValidationRuleType

from tests.factories import (
    DeliveryNoteFactory,
    InvoiceFactory,
    ItemFactory,
    PurchaseOrderFactory,
    VendorFactory,
)


@pytest.fixture(autouse=True)
def clean_rule_env(monkeypatch):
    """Keep rule overrides from the developer's shell out of the tests."""
    rule_prefixes = tuple(f"{ENV_PREFIX}{rule_type.value}_" for rule_type in ValidationRuleType)
    for key in list(os.environ):
        if key.startswith(rule_prefixes):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Clean up
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def async_session(async_engine):
    """Create async session for testing."""
    session_factory = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
async def seeded_rules(async_session):
    """Default validation rules stored in the database."""
    await ValidationRuleRepository(async_session).upsert_defaults()
    await async_session.commit()


@pytest.fixture
async def vendor(async_session):
    vendor = VendorFactory(id=5)
    async_session.add(vendor)
    await async_session.flush()
    return vendor


@pytest.fixture
async def catalogue_items(async_session, vendor):
    """Two catalogue items sold by the test vendor."""
    items = [
        ItemFactory(id=1, vendor_id=vendor.id, price=Decimal("100.00")),
        ItemFactory(id=2, vendor_id=vendor.id, price=Decimal("40.00")),
    ]
    async_session.add_all(items)
    await async_session.flush()
    return items


@pytest.fixture
def base_date():
    return datetime(2024, 3, 1, 12, 0, 0)


@pytest.fixture
def days_ago(base_date):
    def _days_ago(days: int) -> datetime:
        return base_date - timedelta(days=days)

    return _days_ago


class InvoiceGraphBuilder:
    """Inserts invoices and their related rows for database-backed tests."""

    def __init__(self, session, vendor_id: int, now: datetime):
        self.session = session
        self.vendor_id = vendor_id
        self.now = now

    async def invoice(
        self,
        id=None,
        invoice_number="INV-100",
        vendor_id=None,
        total_amount=Decimal("200.00"),
        items=(),
        purchase_order_id=None,
        deleted_at=None,
        status=InvoiceStatus.PENDING,
    ):
        invoice = InvoiceFactory(
            id=id,
            invoice_number=invoice_number,
            vendor_id=self.vendor_id if vendor_id is None else vendor_id,
            total_amount=Decimal(str(total_amount)),
            date=self.now,
            purchase_order_id=purchase_order_id,
            deleted_at=deleted_at,
            status=status,
        )
        invoice.items = [
            InvoiceItem(item_id=item_id, quantity=quantity, price=Decimal(str(price)))
            for item_id, quantity, price in items
        ]
        self.session.add(invoice)
        await self.session.flush()
        return invoice.id

    async def purchase_order(self, items=()):
        po = PurchaseOrderFactory(vendor_id=self.vendor_id, date=self.now)
        po.items = [
            PurchaseOrderItem(item_id=item_id, quantity=quantity, price=Decimal(str(price)))
            for item_id, quantity, price in items
        ]
        self.session.add(po)
        await self.session.flush()
        return po.id

    async def delivery_note(self, purchase_order_id, invoice_id, items=()):
        note = DeliveryNoteFactory(
            purchase_order_id=purchase_order_id,
            vendor_id=self.vendor_id,
            delivery_date=self.now,
        )
        note.items = [
            DeliveryNoteItem(item_id=item_id, quantity_ordered=ordered, quantity_delivered=delivered)
            for item_id, ordered, delivered in items
        ]
        self.session.add(note)
        await self.session.flush()
        self.session.add(InvoiceDeliveryLink(invoice_id=invoice_id, delivery_note_id=note.id))
        await self.session.flush()
        return note.id

    async def persist(self):
        """Commit and detach everything so repositories load fresh rows."""
        await self.session.commit()
        self.session.expunge_all()

    async def price_history(self, item_id, prices_by_days_ago):
        self.session.add_all(
            [
                ItemPriceHistory(
                    item_id=item_id,
                    price=Decimal(str(price)),
                    date=self.now - timedelta(days=days),
                )
                for days, price in prices_by_days_ago
            ]
        )
        await self.session.flush()


@pytest.fixture
async def graph(async_session, vendor, catalogue_items, base_date):
    return InvoiceGraphBuilder(async_session, vendor.id, base_date)
