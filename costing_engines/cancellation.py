"""
costing_engines.cancellation -- Cooperative cancellation and time budgets.

The replay engines make one uninterrupted pass over their events.  For very
long streams a caller can hand them a ReplayGuard; the engines call
``guard.checkpoint(n)`` once per event and the guard only does real work
every ``check_every`` events.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from costing_kernel.exceptions import ReplayCancelledError, ReplayTimeoutError
from costing_kernel.logging_config import get_logger

logger = get_logger("engines.cancellation")


class CancellationToken:
    """Thread-safe flag a caller sets to stop a running replay."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


class ReplayGuard:
    """
    Checks a cancellation token and a deadline every ``check_every`` events.

    Args:
        token: Optional cancellation token.
        timeout_seconds: Optional time budget, measured from construction.
        check_every: Number of events between checks (>= 1).
        monotonic: Time source; injectable for tests.
    """

    def __init__(
        self,
        token: CancellationToken | None = None,
        timeout_seconds: float | None = None,
        check_every: int = 1000,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        if check_every < 1:
            raise ValueError("check_every must be at least 1")
        self.token = token
        self.timeout_seconds = timeout_seconds
        self.check_every = check_every
        self._monotonic = monotonic
        self._deadline = (
            monotonic() + timeout_seconds if timeout_seconds is not None else None
        )

    def checkpoint(self, processed: int) -> None:
        """
        Called by the engines after each event.

        Raises:
            ReplayCancelledError: If the token has been cancelled.
            ReplayTimeoutError: If the deadline has passed.
        """
        if processed % self.check_every != 0:
            return
        if self.token is not None and self.token.is_cancelled:
            logger.warning("replay_cancelled", extra={"processed": processed})
            raise ReplayCancelledError(processed)
        if self._deadline is not None and self._monotonic() >= self._deadline:
            logger.warning(
                "replay_timed_out",
                extra={"processed": processed, "timeout_seconds": self.timeout_seconds},
            )
            raise ReplayTimeoutError(processed, self.timeout_seconds)
