"""
Module: costing_kernel.models.stock_history
Responsibility: ORM mapping of the append-only stock-history audit trail.
    Each row records one quantity change of one inventory item: who, when,
    why (raw reason code) and at what unit price.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants:
    - Append-only: the costing core never updates or deletes rows.
    - (item_id, created_at) and (supplier_id, created_at) indexes support
      the item timeline and supplier-scoped replays.
    - sequence breaks ties between rows sharing a created_at timestamp.

The reason column stores the raw code as text so that codes added later
by the writing application remain readable; classification happens in
costing_engines.classifier, where unknown codes fail loudly.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from costing_kernel.db.base import Base


class StockHistoryModel(Base):
    """
    Persistent stock-change row.

    Guarantees:
        - quantity_change is a signed integer (positive = stock in).
        - price_at_change is Numeric(12, 2) and may be NULL for outbound rows.
        - supplier_id is denormalised from the item at write time.
    """

    __tablename__ = "stock_history"

    __table_args__ = (
        Index("ix_sh_item_ts", "item_id", "created_at"),
        Index("ix_sh_ts", "created_at"),
        Index("ix_sh_supplier_ts", "supplier_id", "created_at"),
    )

    item_id: Mapped[str] = mapped_column(String(100), nullable=False)

    supplier_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    quantity_change: Mapped[int] = mapped_column(Integer, nullable=False)

    reason: Mapped[str] = mapped_column(String(50), nullable=False)

    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    price_at_change: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<StockHistory {self.id}: item={self.item_id} "
            f"{self.reason} {self.quantity_change:+d} @ {self.price_at_change}>"
        )
