"""Public test-support utilities for timebase.

Re-exports test doubles and factories so that consumer test suites
can import everything from a single ``timebase.testing`` namespace.

Provided symbols:

- :class:`FakeClock` — deterministic real-time reference.
- :class:`ManualClock` — hand-driven adjustable Source, optionally
  restricted to a valid domain.
- :class:`ReadOnlyClock` — Source without mutators.
- :func:`make_settings` — factory for ``Settings`` without ``.env`` files.
"""

from timebase.testing._clock import FakeClock
from timebase.testing._settings import make_settings
from timebase.testing._sources import ManualClock, ReadOnlyClock

__all__ = [
    "FakeClock",
    "ManualClock",
    "ReadOnlyClock",
    "make_settings",
]
