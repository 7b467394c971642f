"""Tests for the COSTING_ENGINE_TRACE decorator."""

from datetime import date
from decimal import Decimal

import pytest

from costing_engines.summary import assemble_summary
from costing_engines.tracer import _canonicalize, compute_input_fingerprint, traced_engine
from costing_engines.valuation.fifo import replay_fifo
from costing_engines.valuation.wac import replay_wac
from costing_kernel.domain.stock import CostingMethod, OverIssuePolicy
from costing_kernel.domain.window import ReportingWindow
from costing_kernel.exceptions import UnorderedEventsError
from tests.helpers import purchase, sale, ts

JANUARY = ReportingWindow(date(2025, 1, 1), date(2025, 1, 31))


class TestFingerprint:

    def test_deterministic(self):
        kwargs = {"window": JANUARY, "over_issue_policy": OverIssuePolicy.CLAMP}
        fields = ("window", "over_issue_policy")

        assert compute_input_fingerprint(fields, kwargs) == compute_input_fingerprint(
            fields, dict(kwargs)
        )
        assert len(compute_input_fingerprint(fields, kwargs)) == 16

    def test_sensitive_to_inputs(self):
        fields = ("window",)
        february = ReportingWindow(date(2025, 2, 1), date(2025, 2, 28))

        assert compute_input_fingerprint(fields, {"window": JANUARY}) != (
            compute_input_fingerprint(fields, {"window": february})
        )

    def test_canonical_forms(self):
        assert _canonicalize(None) == "null"
        assert _canonicalize(True) == "true"
        assert _canonicalize(Decimal("1.50")) == "1.50"
        assert _canonicalize(date(2025, 1, 2)) == "2025-01-02"
        assert _canonicalize(OverIssuePolicy.REJECT) == "reject"
        assert _canonicalize({"b": 1, "a": [1, 2]}) == "{a:[1,2],b:1}"

    def test_dataclasses_render_field_by_field(self):
        rendered = _canonicalize(purchase(3, "2.50", ts(4), record_id="r-1"))

        assert rendered.startswith("StockEvent{record_id:r-1,")
        assert "timestamp:2025-01-04T12:00:00+00:00" in rendered
        assert "unit_price:2.50" in rendered

    def test_event_stream_changes_fingerprint(self):
        fields = ("events", "window", "over_issue_policy")
        cheap = {"events": [purchase(1, "1", ts(1), record_id="r-1")], "window": JANUARY}
        dear = {"events": [purchase(9, "99", ts(1), record_id="r-1")], "window": JANUARY}

        assert compute_input_fingerprint(fields, cheap) != (
            compute_input_fingerprint(fields, dear)
        )


class TestTraceRecords:

    def test_replay_emits_trace(self, captured_logs):
        events = [purchase(10, "1", ts(1)), sale(4, ts(2))]

        replay_wac(events=events, window=JANUARY)
        replay_fifo(events=events, window=JANUARY)

        traces = [r for r in captured_logs() if r["message"] == "COSTING_ENGINE_TRACE"]
        assert [t["engine_name"] for t in traces] == ["wac_replay", "fifo_replay"]
        assert all(t["event_count"] == 2 for t in traces)
        assert all(t["trace_type"] == "COSTING_ENGINE_TRACE" for t in traces)
        assert all(t["duration_ms"] >= 0 for t in traces)

    def test_same_inputs_same_fingerprint(self, captured_logs):
        replay_wac(events=[], window=JANUARY)
        replay_wac(events=[], window=JANUARY)

        traces = [r for r in captured_logs() if r["message"] == "COSTING_ENGINE_TRACE"]
        assert traces[0]["input_fingerprint"] == traces[1]["input_fingerprint"]

    def test_different_streams_different_replay_fingerprints(self, captured_logs):
        replay_wac(events=[purchase(1, "1", ts(1), record_id="r-1")], window=JANUARY)
        replay_wac(events=[purchase(9, "99", ts(1), record_id="r-1")], window=JANUARY)

        traces = [r for r in captured_logs() if r["message"] == "COSTING_ENGINE_TRACE"]
        assert traces[0]["input_fingerprint"] != traces[1]["input_fingerprint"]

    def test_summary_fingerprint_covers_the_replay_result(self, captured_logs):
        small = replay_wac(events=[purchase(1, "1", ts(1))], window=JANUARY)
        large = replay_wac(events=[purchase(9, "99", ts(1))], window=JANUARY)

        assemble_summary(method=CostingMethod.WAC, window=JANUARY, result=small)
        assemble_summary(method=CostingMethod.WAC, window=JANUARY, result=large)

        traces = [
            r for r in captured_logs()
            if r["message"] == "COSTING_ENGINE_TRACE" and r["engine_name"] == "summary_assembler"
        ]
        assert len(traces) == 2
        assert traces[0]["input_fingerprint"] != traces[1]["input_fingerprint"]

    def test_decorator_returns_result(self, captured_logs):
        @traced_engine("double", "0.1", fingerprint_fields=("x",))
        def double(*, x):
            return x * 2

        assert double(x=21) == 42
        trace = next(r for r in captured_logs() if r["message"] == "COSTING_ENGINE_TRACE")
        assert trace["engine_name"] == "double"
        assert trace["event_count"] is None

    def test_failed_engine_traced_and_reraised(self, captured_logs):
        events = [sale(4, ts(2)), purchase(10, "1", ts(1))]

        with pytest.raises(UnorderedEventsError):
            replay_wac(events=events, window=JANUARY)

        trace = next(r for r in captured_logs() if r["message"] == "COSTING_ENGINE_TRACE")
        assert trace["status"] == "failed"
        assert trace["error_code"] == "EVENTS_OUT_OF_ORDER"
        assert trace["event_count"] == 2

    def test_successful_trace_status(self, captured_logs):
        replay_fifo(events=[], window=JANUARY)

        trace = next(r for r in captured_logs() if r["message"] == "COSTING_ENGINE_TRACE")
        assert trace["status"] == "ok"
        assert "error_code" not in trace
