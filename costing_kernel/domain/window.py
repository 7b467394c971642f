"""
Window -- Inclusive reporting window value object.

Invariants enforced:
    - from_date <= to_date, checked at construction (InvalidWindowError).

Events are positioned against the window by their UTC calendar date, the
same clock the replay orders them by.  Naive timestamps count as UTC.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from costing_kernel.domain.stock import ReportScope, as_utc
from costing_kernel.exceptions import InvalidWindowError


@dataclass(frozen=True, slots=True)
class ReportingWindow:
    """
    Inclusive date range plus scope for one summary request.

    Guarantees:
        - ``from_date <= to_date`` for every constructed instance.
        - ``days`` counts both bounds (a single-day window has 1 day).
    """

    from_date: date
    to_date: date
    scope: ReportScope = field(default_factory=ReportScope)

    def __post_init__(self) -> None:
        if self.from_date > self.to_date:
            raise InvalidWindowError(self.from_date, self.to_date)

    @property
    def days(self) -> int:
        return (self.to_date - self.from_date).days + 1

    def is_before(self, timestamp: datetime) -> bool:
        return as_utc(timestamp).date() < self.from_date

    def contains(self, timestamp: datetime) -> bool:
        return self.from_date <= as_utc(timestamp).date() <= self.to_date

    def is_after(self, timestamp: datetime) -> bool:
        return as_utc(timestamp).date() > self.to_date
