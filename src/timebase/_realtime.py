"""Monotonic real-time port and system adapter.

Provides RealtimePort (Protocol) and SystemRealtime, the reference that
every free-running piece of timebase measures elapsed time against.

**Why monotonic?** time.monotonic() is immune to NTP adjustments and
manual system-clock changes, so a free-running clock never jumps when
the wall clock is corrected. The epoch is arbitrary — only
*differences* between now() calls are meaningful (PEP 418).

Values are in **seconds**; consumers convert to milliseconds.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class RealtimePort(Protocol):
    """Monotonic real-time reference.

    Used by :class:`~timebase.StopwatchClock` and the frame statistics
    to measure elapsed real time without help from any Source.

    The default implementation wraps ``time.monotonic()``. Tests
    inject :class:`~timebase.testing.FakeClock` for reproducible timing.
    """

    def now(self) -> float:
        """Return monotonic time in seconds.

        Returns:
            A float representing seconds from an arbitrary epoch.
            Only the *difference* between two calls is meaningful.
        """
        ...


class SystemRealtime:
    """Production real-time reference wrapping ``time.monotonic()``.

    Satisfies :class:`RealtimePort` via structural subtyping (PEP 544).
    """

    def now(self) -> float:
        """Return monotonic time in seconds."""
        return time.monotonic()
