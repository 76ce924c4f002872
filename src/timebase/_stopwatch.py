"""Local elapsed-time tracker backed by a monotonic real-time reference.

:class:`StopwatchClock` is the free-running fallback every wrapper uses
when it cannot (or may not) take its time from a Source.  It satisfies
:class:`~timebase.AdjustableClock` and has no failure modes: a seek is
always accepted.

Time is kept as a *base*: the clock time at the last rebase plus the
real time elapsed since then, scaled by ``rate``.  Every mutation
rebases first so that time already elapsed is never rescaled.
"""

from __future__ import annotations

import math

from timebase._realtime import RealtimePort, SystemRealtime


def _validate_rate(rate: float) -> float:
    # bool is a subclass of int; reject it as a caller mistake.
    if isinstance(rate, bool):
        msg = f"rate must be a number, got bool: {rate!r}"
        raise TypeError(msg)
    if not math.isfinite(rate):
        msg = f"rate must be finite, got {rate!r}"
        raise ValueError(msg)
    return float(rate)


class StopwatchClock:
    """Free-running clock measuring real elapsed time.

    Args:
        realtime: Monotonic reference in seconds.  Defaults to
            :class:`~timebase.SystemRealtime`.
        start: Start running immediately.

    Example::

        watch = StopwatchClock()
        watch.start()
        # ... some work ...
        watch.current_time  # milliseconds since start()
    """

    __slots__ = ("_base_real", "_base_time", "_is_running", "_rate", "_realtime")

    def __init__(self, realtime: RealtimePort | None = None, *, start: bool = False) -> None:
        self._realtime = realtime if realtime is not None else SystemRealtime()
        self._rate = 1.0
        self._is_running = False
        self._base_time = 0.0
        self._base_real = self._realtime.now()
        if start:
            self.start()

    # -- Clock contract -------------------------------------------------------

    @property
    def current_time(self) -> float:
        """Milliseconds on this stopwatch."""
        if not self._is_running:
            return self._base_time
        elapsed_ms = (self._realtime.now() - self._base_real) * 1000.0
        return self._base_time + elapsed_ms * self._rate

    @property
    def rate(self) -> float:
        return self._rate

    @rate.setter
    def rate(self, value: float) -> None:
        value = _validate_rate(value)
        if value == self._rate:
            return
        self._rebase()
        self._rate = value

    @property
    def is_running(self) -> bool:
        return self._is_running

    # -- AdjustableClock contract ---------------------------------------------

    def start(self) -> None:
        if self._is_running:
            return
        self._base_real = self._realtime.now()
        self._is_running = True

    def stop(self) -> None:
        if not self._is_running:
            return
        self._rebase()
        self._is_running = False

    def reset(self) -> None:
        self.stop()
        self.seek(0.0)

    def seek(self, position: float) -> bool:
        """Jump to *position*, keeping the running state.  Always succeeds."""
        self._base_time = float(position)
        self._base_real = self._realtime.now()
        return True

    def reset_speed_adjustments(self) -> None:
        self.rate = 1.0

    # -- Internals --------------------------------------------------------------

    def _rebase(self) -> None:
        self._base_time = self.current_time
        self._base_real = self._realtime.now()

    def __repr__(self) -> str:
        return (
            f"StopwatchClock(current_time={self.current_time!r}, "
            f"rate={self._rate!r}, is_running={self._is_running!r})"
        )
