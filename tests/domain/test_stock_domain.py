"""Tests for the stock domain value objects, reporting window and clock."""

from dataclasses import FrozenInstanceError
from datetime import date, datetime, timedelta, timezone

import pytest

from costing_kernel.domain.clock import DeterministicClock, SystemClock
from costing_kernel.domain.stock import ReportScope, StockCategory
from costing_kernel.domain.window import ReportingWindow
from costing_kernel.exceptions import CostingError, InvalidWindowError, WindowError
from tests.helpers import make_event, sale, ts


class TestStockCategory:

    def test_closed_set_of_six(self):
        assert len(StockCategory) == 6

    @pytest.mark.parametrize(
        "category,inbound,outbound",
        [
            (StockCategory.PURCHASE, True, False),
            (StockCategory.RETURN_IN, True, False),
            (StockCategory.SALE, False, True),
            (StockCategory.RETURN_OUT, False, True),
            (StockCategory.WRITE_OFF, False, True),
            (StockCategory.ADJUSTMENT, True, True),
        ],
    )
    def test_directions(self, category, inbound, outbound):
        assert category.allows_inbound is inbound
        assert category.allows_outbound is outbound


class TestStockEvent:

    def test_direction_and_quantity(self):
        event = sale(7, ts(1))

        assert event.is_outbound
        assert not event.is_inbound
        assert event.quantity == 7

    def test_sort_key(self):
        event = make_event(StockCategory.PURCHASE, 1, ts(3), "1", sequence=9)

        assert event.sort_key == (ts(3), 9)

    def test_sort_key_mixes_naive_and_aware(self):
        naive = make_event(StockCategory.PURCHASE, 1, datetime(2025, 1, 3, 12), "1")
        eastern = make_event(
            StockCategory.PURCHASE, 1,
            datetime(2025, 1, 3, 8, tzinfo=timezone(timedelta(hours=-5))), "1",
        )

        assert naive.sort_key == (ts(3), 0)
        assert naive.sort_key < eastern.sort_key

    def test_is_frozen(self):
        event = sale(1, ts(1))

        with pytest.raises(FrozenInstanceError):
            event.quantity_delta = 5  # type: ignore[misc]


class TestReportScope:

    def test_blank_values_normalise_to_none(self):
        scope = ReportScope.of("  ", "")

        assert scope.item_id is None
        assert scope.supplier_id is None
        assert scope.is_unfiltered

    def test_item_match_is_exact(self):
        scope = ReportScope.of(item_id="A")

        assert scope.matches("A", None)
        assert not scope.matches("a", None)

    def test_supplier_match_ignores_case_and_padding(self):
        scope = ReportScope.of(supplier_id="acme")

        assert scope.matches("X", " ACME ")
        assert not scope.matches("X", "acme-2")
        assert not scope.matches("X", None)


class TestReportingWindow:

    def test_from_after_to_raises(self):
        with pytest.raises(InvalidWindowError) as exc_info:
            ReportingWindow(date(2025, 2, 1), date(2025, 1, 1))

        assert isinstance(exc_info.value, WindowError)
        assert isinstance(exc_info.value, CostingError)

    def test_single_day(self):
        window = ReportingWindow(date(2025, 1, 1), date(2025, 1, 1))

        assert window.days == 1
        assert window.contains(datetime(2025, 1, 1, 0, 0))
        assert window.contains(datetime(2025, 1, 1, 23, 59, 59))
        assert window.is_before(datetime(2024, 12, 31, 23, 59))
        assert window.is_after(datetime(2025, 1, 2, 0, 0))

    def test_placement_uses_utc_date(self):
        window = ReportingWindow(date(2025, 1, 2), date(2025, 1, 3))
        eastern = timezone(timedelta(hours=-5))

        # 23:00 on Jan 1 in New York is 04:00 on Jan 2 UTC.
        assert window.contains(datetime(2025, 1, 1, 23, tzinfo=eastern))
        assert window.is_after(datetime(2025, 1, 3, 20, tzinfo=eastern))
        assert window.is_before(
            datetime(2025, 1, 2, 8, tzinfo=timezone(timedelta(hours=9)))
        )

    def test_default_scope_is_unfiltered(self):
        assert ReportingWindow(date(2025, 1, 1), date(2025, 1, 2)).scope.is_unfiltered


class TestClock:

    def test_deterministic_clock(self):
        clock = DeterministicClock(datetime(2025, 3, 1, 8, tzinfo=timezone.utc))

        assert clock.today() == date(2025, 3, 1)
        clock.advance_days(2)
        assert clock.today() == date(2025, 3, 3)
        clock.set_time(datetime(2026, 1, 1, tzinfo=timezone.utc))
        assert clock.now() == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_system_clock_is_utc(self):
        now = SystemClock().now()

        assert now.tzinfo is not None
        assert abs(now - datetime.now(timezone.utc)) < timedelta(seconds=5)

    def test_clock_on_day(self):
        clock = DeterministicClock.on(date(2025, 6, 30))

        assert clock.today() == date(2025, 6, 30)
        assert clock.now().tzinfo is timezone.utc

    def test_system_clock_business_timezone(self):
        tokyo = timezone(timedelta(hours=9))

        now = SystemClock(tokyo).now()

        assert now.utcoffset() == timedelta(hours=9)
