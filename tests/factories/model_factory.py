"""
Factories for ORM rows used by database-backed tests.
"""

import factory
from datetime import datetime, timezone
from decimal import Decimal
from faker import Faker

from invoice_validation.models.invoice import Invoice, InvoiceStatus
from invoice_validation.models.reference import (
    DeliveryNote,
    DeliveryNoteStatus,
    Item,
    POStatus,
    PurchaseOrder,
    Vendor,
)

fake = Faker()


class VendorFactory(factory.Factory):
    """Factory for generating Vendor model instances."""

    class Meta:
        model = Vendor

    name = factory.Faker('company')
    contact = factory.Faker('company_email')


class ItemFactory(factory.Factory):
    class Meta:
        model = Item

    name = factory.Faker('catch_phrase')
    item_code = factory.LazyFunction(lambda: f"SKU-{fake.random_int(10000, 99999)}")
    price = Decimal("10.00")


class InvoiceFactory(factory.Factory):
    """Factory for generating Invoice model instances."""

    class Meta:
        model = Invoice

    invoice_number = factory.Sequence(lambda n: f"INV-{n:05d}")
    date = factory.LazyFunction(lambda: datetime.now(timezone.utc))
    total_amount = Decimal("250.50")
    status = InvoiceStatus.PENDING


class PurchaseOrderFactory(factory.Factory):
    class Meta:
        model = PurchaseOrder

    date = factory.LazyFunction(lambda: datetime.now(timezone.utc))
    status = POStatus.SENT


class DeliveryNoteFactory(factory.Factory):
    class Meta:
        model = DeliveryNote

    delivery_date = factory.LazyFunction(lambda: datetime.now(timezone.utc))
    received_by = factory.Faker('name')
    status = DeliveryNoteStatus.CONFIRMED
