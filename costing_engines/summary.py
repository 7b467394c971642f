"""
costing_engines.summary -- Financial summary assembly and derived metrics.

Responsibility:
    Turn a ReplayResult (bucket totals plus opening/closing snapshots) into
    the immutable FinancialSummary handed to callers, computing cost of
    goods sold, average unit cost, inventory turnover and holding cost.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Method-agnostic: the same
    assembler serves WAC and FIFO results.

Invariants enforced:
    - Ledger balance: opening_value + purchases_cost + returns_in_value
      - sales_value - adjustment_value == closing_value within
      ledger_epsilon; quantities must balance exactly.  LedgerImbalanceError
      otherwise, so no inconsistent summary ever leaves the assembler.
    - Zero guards: average unit cost and turnover are 0 when their
      denominator is 0.
    - Rounding happens only in ``FinancialSummary.as_dict(places=...)``.

Failure modes:
    - LedgerImbalanceError if the replay output does not reconcile.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from costing_config.schema import CostingConfig
from costing_engines.tracer import traced_engine
from costing_engines.valuation.replay import ZERO, ReplayResult
from costing_kernel.domain.stock import CostingMethod
from costing_kernel.domain.window import ReportingWindow
from costing_kernel.exceptions import LedgerImbalanceError
from costing_kernel.logging_config import get_logger

logger = get_logger("engines.summary")

DAYS_PER_YEAR = Decimal("365")


@dataclass(frozen=True, slots=True)
class FinancialSummary:
    """
    One period summary for one (method, window, scope) request.

    Contract:
        Frozen; constructed once by SummaryAssembler and never mutated.
        All monetary fields are unrounded Decimals.

    Guarantees:
        - ``ledger_difference`` is within the assembler's epsilon.
        - ``purchases_*`` is net of ``returns_out_*``; ``adjustment_*`` is
          net and includes ``write_off_*``.
    """

    method: CostingMethod
    from_date: date
    to_date: date
    item_id: str | None
    supplier_id: str | None
    opening_qty: int
    opening_value: Decimal
    purchases_qty: int
    purchases_cost: Decimal
    returns_in_qty: int
    returns_in_value: Decimal
    sales_qty: int
    sales_value: Decimal
    returns_out_qty: int
    returns_out_value: Decimal
    write_off_qty: int
    write_off_value: Decimal
    adjustment_qty: int
    adjustment_value: Decimal
    closing_qty: int
    closing_value: Decimal
    cost_of_goods_sold: Decimal
    average_unit_cost: Decimal
    inventory_turnover: Decimal
    inventory_holding_cost: Decimal
    over_issue_qty: int = 0
    event_count: int = 0

    @property
    def expected_closing_value(self) -> Decimal:
        return (
            self.opening_value
            + self.purchases_cost
            + self.returns_in_value
            - self.sales_value
            - self.adjustment_value
        )

    @property
    def expected_closing_qty(self) -> int:
        return (
            self.opening_qty
            + self.purchases_qty
            + self.returns_in_qty
            - self.sales_qty
            - self.adjustment_qty
        )

    @property
    def ledger_difference(self) -> Decimal:
        return self.closing_value - self.expected_closing_value

    def is_balanced(self, epsilon: Decimal = Decimal("0.000001")) -> bool:
        return (
            abs(self.ledger_difference) <= epsilon
            and self.expected_closing_qty == self.closing_qty
        )

    def as_dict(self, places: int | None = None) -> dict[str, Any]:
        """
        Plain-dict rendering for presentation layers.

        Decimals become strings, rounded ROUND_HALF_UP to ``places`` decimal
        places when given; dates become ISO strings; the method becomes its
        value.
        """
        quantum = Decimal(1).scaleb(-places) if places is not None else None
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Decimal):
                if quantum is not None:
                    value = value.quantize(quantum, rounding=ROUND_HALF_UP)
                value = str(value)
            elif isinstance(value, Enum):
                value = value.value
            elif isinstance(value, date):
                value = value.isoformat()
            out[f.name] = value
        return out


class SummaryAssembler:
    """
    Builds FinancialSummaries from replay results.

    Contract:
        Stateless apart from its configuration; safe to share across
        threads.
    """

    def __init__(self, config: CostingConfig | None = None):
        self.config = config or CostingConfig.with_defaults()

    def cost_of_goods_sold(self, result: ReplayResult) -> Decimal:
        cogs = result.buckets.sales_value
        if self.config.include_write_offs_in_cogs:
            cogs += result.buckets.write_off_value
        return cogs

    def holding_cost(self, average_inventory_value: Decimal, window_days: int) -> Decimal:
        return (
            self.config.holding_rate
            * average_inventory_value
            * Decimal(window_days)
            / DAYS_PER_YEAR
        )

    def assemble(
        self,
        method: CostingMethod,
        window: ReportingWindow,
        result: ReplayResult,
    ) -> FinancialSummary:
        """
        Compute derived metrics and check the ledger.

        Raises:
            LedgerImbalanceError: If opening + inbound - outbound does not
                reconcile to the closing snapshot.
        """
        buckets = result.buckets
        opening = result.opening
        closing = result.closing

        cogs = self.cost_of_goods_sold(result)
        average_unit_cost = closing.value / closing.quantity if closing.quantity else ZERO
        average_inventory_value = (opening.value + closing.value) / 2
        turnover = cogs / average_inventory_value if average_inventory_value else ZERO

        summary = FinancialSummary(
            method=method,
            from_date=window.from_date,
            to_date=window.to_date,
            item_id=window.scope.item_id,
            supplier_id=window.scope.supplier_id,
            opening_qty=opening.quantity,
            opening_value=opening.value,
            purchases_qty=buckets.purchases_qty,
            purchases_cost=buckets.purchases_cost,
            returns_in_qty=buckets.returns_in_qty,
            returns_in_value=buckets.returns_in_value,
            sales_qty=buckets.sales_qty,
            sales_value=buckets.sales_value,
            returns_out_qty=buckets.returns_out_qty,
            returns_out_value=buckets.returns_out_value,
            write_off_qty=buckets.write_off_qty,
            write_off_value=buckets.write_off_value,
            adjustment_qty=buckets.adjustment_qty,
            adjustment_value=buckets.adjustment_value,
            closing_qty=closing.quantity,
            closing_value=closing.value,
            cost_of_goods_sold=cogs,
            average_unit_cost=average_unit_cost,
            inventory_turnover=turnover,
            inventory_holding_cost=self.holding_cost(average_inventory_value, window.days),
            over_issue_qty=buckets.over_issue_qty,
            event_count=buckets.event_count,
        )

        epsilon = self.config.ledger_epsilon
        if not summary.is_balanced(epsilon):
            logger.error(
                "ledger_imbalance",
                extra={
                    "method": method.value,
                    "expected_closing_value": str(summary.expected_closing_value),
                    "closing_value": str(summary.closing_value),
                    "expected_closing_qty": summary.expected_closing_qty,
                    "closing_qty": summary.closing_qty,
                },
            )
            raise LedgerImbalanceError(
                method.value, summary.expected_closing_value, summary.closing_value, epsilon
            )

        logger.debug(
            "summary_assembled",
            extra={
                "method": method.value,
                "closing_qty": summary.closing_qty,
                "closing_value": str(summary.closing_value),
                "cost_of_goods_sold": str(cogs),
            },
        )
        return summary


@traced_engine(
    "summary_assembler", "1.0",
    fingerprint_fields=("method", "window", "result", "config"),
)
def assemble_summary(
    *,
    method: CostingMethod,
    window: ReportingWindow,
    result: ReplayResult,
    config: CostingConfig | None = None,
) -> FinancialSummary:
    """Functional entry point for summary assembly."""
    return SummaryAssembler(config).assemble(method, window, result)
