"""Millisecond timers: a plain stopwatch and a smoothing timestamp generator."""

from __future__ import annotations

import logging
import time
import weakref
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def _monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


def _report(clock: Clock, created: int, min_ms: int, print_log: bool) -> None:
    taken = clock() - created
    if print_log and taken > min_ms:
        logger.warning("take time:%dms, thread may be overloaded", taken)


class Ticker:
    """Stopwatch in milliseconds.

    When ``print_log`` is true, closing the ticker logs a warning if more than
    ``min_ms`` milliseconds passed since it was created.
    """

    def __init__(
        self, min_ms: int = 0, print_log: bool = False, clock: Optional[Clock] = None
    ) -> None:
        self._clock: Clock = clock if clock is not None else _monotonic_ms
        self._min_ms = min_ms
        self._created = self._begin = self._clock()
        self._finalizer = weakref.finalize(
            self, _report, self._clock, self._created, min_ms, print_log
        )
        self._finalizer.atexit = False

    def elapsed_time(self) -> int:
        """Milliseconds since the last reset (or creation)."""
        return self._clock() - self._begin

    def created_time(self) -> int:
        """Milliseconds since the ticker was created."""
        return self._clock() - self._created

    def reset_time(self) -> None:
        """Restart the elapsed-time measurement."""
        self._begin = self._clock()

    def close(self) -> None:
        """Finish timing, logging a warning if configured and too slow."""
        self._finalizer()

    def __enter__(self) -> "Ticker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SmoothTicker:
    """Generate smooth timestamps that resync with the clock every ``reset_ms``."""

    def __init__(self, reset_ms: int = 10000, clock: Optional[Clock] = None) -> None:
        self._reset_ms = reset_ms
        self._time_inc = 0.0
        self._first_time = 0
        self._last_time = 0
        self._pkt_count = 0
        self._ticker = Ticker(clock=clock)
        self._ticker.reset_time()

    def elapsed_time(self) -> int:
        """Return a smoothed timestamp in milliseconds."""
        now_time = self._ticker.elapsed_time()
        if self._first_time == 0:
            if now_time < self._last_time:
                last_time = self._last_time - self._time_inc
                elapse = now_time - last_time
                self._pkt_count += 1
                self._time_inc += (elapse / self._pkt_count) / 3
                ret_time = int(last_time + self._time_inc)
                self._last_time = ret_time
                return ret_time
            self._first_time = now_time
            self._last_time = now_time
            self._pkt_count = 0
            self._time_inc = 0.0
            return now_time

        elapse_time = now_time - self._first_time
        self._pkt_count += 1
        self._time_inc += elapse_time // self._pkt_count
        ret_time = int(self._first_time + self._time_inc)
        if elapse_time > self._reset_ms:
            self._first_time = 0
        self._last_time = ret_time
        return ret_time

    def reset_time(self) -> None:
        """Restart the timestamps from zero."""
        self._first_time = 0
        self._pkt_count = 0
        self._ticker.reset_time()