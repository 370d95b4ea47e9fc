"""Sliding-window rate limiter keyed by sender.

State lives in the limiter instance for the lifetime of the process; it is
not persisted and not shared between processes.  Each instance keeps an
independent table, so a multi-instance deployment limits per instance.

Mutation happens without awaiting, so under a single asyncio event loop a
check-and-append is never interleaved with another one.
"""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog

logger = structlog.get_logger()

DEFAULT_WINDOW_MS = 60_000
DEFAULT_MAX_PER_WINDOW = 10


def _now_ms() -> float:
    return time.time() * 1000


class SlidingWindowRateLimiter:
    """Admit at most ``max_per_window`` events per identifier per window.

    Usage::

        limiter = SlidingWindowRateLimiter(window_ms=60_000, max_per_window=10)
        if not limiter.admit("alice@example.com"):
            ...  # reject
    """

    def __init__(
        self,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_per_window: int = DEFAULT_MAX_PER_WINDOW,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        """Initialize the limiter.

        Args:
            window_ms: Length of the trailing window in milliseconds.
            max_per_window: Admissions allowed per identifier inside the window.
            clock: Returns the current time in milliseconds.

        Raises:
            ValueError: If either limit is not positive.
        """
        if window_ms <= 0 or max_per_window <= 0:
            raise ValueError("window_ms and max_per_window must be positive")
        self._window_ms = window_ms
        self._max_per_window = max_per_window
        self._clock = clock
        self._windows: dict[str, list[float]] = {}

    @property
    def window_ms(self) -> int:
        """Return the window length in milliseconds."""
        return self._window_ms

    @property
    def max_per_window(self) -> int:
        """Return the per-identifier admission cap."""
        return self._max_per_window

    @property
    def tracked_identifiers(self) -> list[str]:
        """Return the identifiers that currently hold timestamps."""
        return list(self._windows)

    def count(self, identifier: str) -> int:
        """Return the number of timestamps held for *identifier* (no purge)."""
        return len(self._windows.get(identifier, []))

    def clear(self) -> None:
        """Forget every identifier."""
        self._windows.clear()

    def _purge(self, window_start: float) -> None:
        for key in list(self._windows):
            kept = [ts for ts in self._windows[key] if ts > window_start]
            if kept:
                self._windows[key] = kept
            else:
                del self._windows[key]

    def admit(self, identifier: str, now_ms: float | None = None) -> bool:
        """Record an event for *identifier* if it is under quota.

        Every call first purges expired timestamps for all identifiers.  A
        timestamp expires once it is ``window_ms`` or more in the past.

        Args:
            identifier: The key to limit on, typically the sender address.
            now_ms: Current time in milliseconds.  Defaults to the clock.

        Returns:
            True if the event was admitted (and recorded), False if the
            identifier is over quota (nothing is recorded).
        """
        now = self._clock() if now_ms is None else now_ms
        window_start = now - self._window_ms

        self._purge(window_start)

        recent = [ts for ts in self._windows.get(identifier, []) if ts > window_start]
        if len(recent) >= self._max_per_window:
            logger.warning(
                "Rate limit exceeded",
                identifier=identifier,
                recent=len(recent),
                max_per_window=self._max_per_window,
            )
            return False

        recent.append(now)
        self._windows[identifier] = recent
        return True
