"""
Stock history query selector.

Read-only access to the stock-history audit trail, returning frozen
StockChangeRecord DTOs in replay order.

Key design decisions:
- One query per replay: every row up to the end of the reporting window is
  fetched at once; the engines then run without further I/O.
- Ordering is (created_at, sequence, id) so that ties resolve identically
  on every run.
- Supplier filtering is case-insensitive on a trimmed identifier.
"""

from datetime import date, datetime, time, timedelta

from sqlalchemy import func, select

from costing_kernel.domain.stock import ReportScope, StockChangeRecord
from costing_kernel.logging_config import get_logger
from costing_kernel.models.stock_history import StockHistoryModel
from costing_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.stock_history")


class StockHistorySelector(BaseSelector[StockHistoryModel]):
    """Selector for stock-history rows."""

    def fetch_events(
        self,
        scope: ReportScope,
        until: date,
    ) -> tuple[StockChangeRecord, ...]:
        """
        Fetch all rows in scope with created_at on or before ``until``.

        Args:
            scope: Item / supplier filter.
            until: Inclusive end date of the reporting window.

        Returns:
            Records ordered by (created_at, sequence).
        """
        end_exclusive = datetime.combine(until + timedelta(days=1), time.min)

        stmt = self._scoped(
            select(StockHistoryModel).where(StockHistoryModel.created_at < end_exclusive),
            scope,
        ).order_by(
            StockHistoryModel.created_at,
            StockHistoryModel.sequence,
            StockHistoryModel.id,
        )

        rows = self.session.execute(stmt).scalars().all()
        records = tuple(self._to_record(row) for row in rows)

        logger.debug(
            "stock_history_fetched",
            extra={
                "item_id": scope.item_id,
                "supplier_id": scope.supplier_id,
                "until": until.isoformat(),
                "row_count": len(records),
            },
        )
        return records

    def count(self, scope: ReportScope | None = None) -> int:
        """Count rows in scope (all rows when scope is None)."""
        stmt = self._scoped(select(func.count()).select_from(StockHistoryModel), scope)
        return self.session.execute(stmt).scalar_one()

    def _to_record(self, row: StockHistoryModel) -> StockChangeRecord:
        return StockChangeRecord(
            record_id=str(row.id),
            item_id=row.item_id,
            timestamp=row.created_at,
            reason=row.reason,
            quantity_change=row.quantity_change,
            price_at_change=row.price_at_change,
            supplier_id=row.supplier_id,
            sequence=row.sequence,
        )

    def _scoped(self, stmt, scope: ReportScope | None):
        return self._apply_scope(
            stmt, scope, StockHistoryModel.item_id, StockHistoryModel.supplier_id
        )
