"""
Base database utilities and common imports.
"""

from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.sql import func


class TimestampMixin:
    """Mixin for timestamp fields."""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class IntegerIDMixin:
    """Mixin for autoincrement integer primary key."""

    id = Column(Integer, primary_key=True, autoincrement=True)


class SoftDeleteMixin:
    """Mixin for soft-deleted rows."""

    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)
