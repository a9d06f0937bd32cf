"""
Declarative base for the ledger ORM models.

Every table gets a uuid4 primary key stored as a 36 character string, so
the same schema runs on PostgreSQL and SQLite.  Money columns are declared
as ``Mapped[Decimal]`` and land as Numeric(38, 9); float is never used for
an amount.

TrackedBase adds who/when columns.  created_by_id is mandatory: the
services always know the acting user and pass it down.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID in Python, CHAR-like string in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Adds creation and last-update stamps, each with the acting user."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    created_by_id: Mapped[UUID] = mapped_column(nullable=False)

    # updated_* may change on rows that are otherwise frozen
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
    )
    updated_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
