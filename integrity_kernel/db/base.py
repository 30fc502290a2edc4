"""
Declarative base for the append-only audit tables.

Every audit row shares two columns:

* ``id`` -- a uuid4 primary key, stored as ``String(36)`` so SQLite and
  PostgreSQL agree on the representation.
* ``occurred_at`` -- the injected-clock timestamp of the event, timezone
  aware.

Money and percentages map to ``Numeric(38, 9)``; nothing in the audit log is
ever stored as a float.  This module is the bottom of the kernel's import
graph and imports nothing else from ``integrity_kernel``.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """``uuid.UUID`` in Python, ``VARCHAR(36)`` in the database."""

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
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
