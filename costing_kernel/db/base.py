"""
Module: costing_kernel.db.base
Responsibility: Declarative base for the stock-history tables.
Architecture position: Kernel > DB.  MUST NOT import from models/,
    selectors/ or outer layers.

Invariants enforced:
    - Every row has a uuid4 primary key stored portably as String(36); the
      selector exposes it as the record_id of a StockChangeRecord.
    - Money columns are Numeric, never Float.  The default mapping keeps six
      decimal places so that unit costs survive a round trip; models narrow
      it where the upstream audit trail stores fewer.
    - Timestamps are timezone-aware columns.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID <-> String(36), so SQLite and PostgreSQL share one schema."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Declarative base; subclasses inherit the UUID ``id`` column."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(18, 6),
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)
