"""
costing_services.financial_summary_service -- Period financial summaries.

Responsibility:
    Public entry point for callers: resolve the window and scope, replay
    the events with the requested costing method(s) and assemble one
    FinancialSummary per method.

Architecture position:
    Services -- orchestration.  Owns no costing logic; wires the resolver,
    the replay engines and the summary assembler together.

Failure modes:
    - Every CostingError raised below this layer is logged as
      ``financial_summary_failed`` (with its code) and re-raised unchanged.
      Callers get a complete summary or a typed failure, never a partial
      result.

Audit relevance:
    Each request runs under a fresh correlation_id bound into LogContext,
    so the engine traces and the request logs of one summary can be
    joined.  A caller-supplied request_id is bound alongside it.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from uuid import uuid4

from costing_config import get_active_config
from costing_config.schema import CostingConfig
from costing_engines.cancellation import CancellationToken, ReplayGuard
from costing_engines.summary import FinancialSummary, assemble_summary
from costing_engines.valuation.fifo import replay_fifo
from costing_engines.valuation.replay import ReplayResult
from costing_engines.valuation.wac import replay_wac
from costing_kernel.domain.clock import Clock
from costing_kernel.domain.stock import CostingMethod, StockEvent
from costing_kernel.domain.window import ReportingWindow
from costing_kernel.exceptions import CostingError
from costing_kernel.logging_config import LogContext, get_logger
from costing_services.event_source import StockEventSource
from costing_services.window_resolver import WindowScopeResolver

logger = get_logger("services.financial_summary")

_REPLAYS = {
    CostingMethod.WAC: replay_wac,
    CostingMethod.FIFO: replay_fifo,
}


class FinancialSummaryService:
    """
    Computes financial summaries over a read-only stock event source.

    Contract:
        Holds no per-request state; one instance may serve concurrent
        requests from several threads.

    Non-goals:
        Caching, serialization, pagination.  Summaries are pure functions of
        (method, window, scope, source contents); a cache keyed on those may
        sit in front of this service unchanged.
    """

    def __init__(
        self,
        event_source: StockEventSource,
        config: CostingConfig | None = None,
        clock: Clock | None = None,
    ):
        self.config = config if config is not None else get_active_config()
        self.resolver = WindowScopeResolver(event_source, self.config, clock)

    def get_summary(
        self,
        method: CostingMethod,
        from_date: date | None = None,
        to_date: date | None = None,
        item_id: str | None = None,
        supplier_id: str | None = None,
        cancel_token: CancellationToken | None = None,
        timeout_seconds: float | None = None,
        request_id: str | None = None,
    ) -> FinancialSummary:
        """
        Compute one summary for ``method``.

        Raises:
            InvalidWindowError: from_date > to_date (source not read).
            ClassificationError: A record could not be classified.
            ReplayError: Over-issue (REJECT policy), drift, ledger imbalance,
                cancellation or timeout.
        """
        return self.get_summaries(
            (method,),
            from_date=from_date,
            to_date=to_date,
            item_id=item_id,
            supplier_id=supplier_id,
            cancel_token=cancel_token,
            timeout_seconds=timeout_seconds,
            request_id=request_id,
        )[CostingMethod(method)]

    def get_summaries(
        self,
        methods: Iterable[CostingMethod] = (CostingMethod.WAC, CostingMethod.FIFO),
        from_date: date | None = None,
        to_date: date | None = None,
        item_id: str | None = None,
        supplier_id: str | None = None,
        cancel_token: CancellationToken | None = None,
        timeout_seconds: float | None = None,
        request_id: str | None = None,
    ) -> dict[CostingMethod, FinancialSummary]:
        """
        Compute one summary per method from a single fetch of the source.

        ``request_id`` is the caller's own identifier; it is logged next to
        the correlation_id generated for this call.

        Returns:
            Summaries keyed by method, in the order requested.
        """
        wanted = tuple(dict.fromkeys(CostingMethod(m) for m in methods))
        correlation_id = str(uuid4())

        with LogContext.bind(
            correlation_id=correlation_id,
            request_id=request_id,
            item_id=item_id,
            supplier_id=supplier_id,
        ):
            logger.info(
                "financial_summary_started",
                extra={
                    "methods": [m.value for m in wanted],
                    "from_date": from_date,
                    "to_date": to_date,
                },
            )
            try:
                resolved = self.resolver.resolve(from_date, to_date, item_id, supplier_id)
                summaries: dict[CostingMethod, FinancialSummary] = {}
                for method in wanted:
                    guard = self._guard(cancel_token, timeout_seconds)
                    with LogContext.bind(method=method.value):
                        summaries[method] = self._summarize(
                            method, resolved.window, resolved.events, guard
                        )
            except CostingError as exc:
                logger.error(
                    "financial_summary_failed",
                    extra={"error_code": exc.code, "error": str(exc)},
                )
                raise

            logger.info(
                "financial_summary_completed",
                extra={
                    "methods": [m.value for m in wanted],
                    "from_date": resolved.window.from_date,
                    "to_date": resolved.window.to_date,
                    "event_count": len(resolved.events),
                },
            )
            return summaries

    def _guard(
        self,
        cancel_token: CancellationToken | None,
        timeout_seconds: float | None,
    ) -> ReplayGuard | None:
        if cancel_token is None and timeout_seconds is None:
            return None
        return ReplayGuard(
            token=cancel_token,
            timeout_seconds=timeout_seconds,
            check_every=self.config.cancellation_check_interval,
        )

    def _summarize(
        self,
        method: CostingMethod,
        window: ReportingWindow,
        events: tuple[StockEvent, ...],
        guard: ReplayGuard | None,
    ) -> FinancialSummary:
        replay = _REPLAYS[method]
        result: ReplayResult = replay(
            events=events,
            window=window,
            over_issue_policy=self.config.over_issue_policy,
            guard=guard,
        )
        return assemble_summary(
            method=method, window=window, result=result, config=self.config
        )
