"""Clock contracts shared by every Source and wrapper.

All times are signed milliseconds.  ``rate`` is a signed multiplier:
positive plays forward, negative plays backward, and its magnitude
scales how fast time elapses.

The contracts are structural (PEP 544).  Any object with the right
attributes is a valid Source: an audio track position, a hardware
timer, or another timebase wrapper.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Read-only time capability."""

    @property
    def current_time(self) -> float:
        """Current time in milliseconds."""
        ...

    @property
    def rate(self) -> float:
        """Signed playback rate."""
        ...

    @property
    def is_running(self) -> bool:
        """Whether time is currently believed to be advancing."""
        ...


@runtime_checkable
class AdjustableClock(Clock, Protocol):
    """Clock that can also be started, stopped and seeked."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def reset(self) -> None:
        """Stop and seek to zero."""
        ...

    def seek(self, position: float) -> bool:
        """Seek to *position*.

        Returns:
            ``True`` when the clock accepted the position.  A rejected
            seek leaves ``current_time`` unchanged.
        """
        ...

    def reset_speed_adjustments(self) -> None:
        """Restore the default rate."""
        ...


@runtime_checkable
class FrameBasedClock(Clock, Protocol):
    """Clock whose state only advances inside :meth:`process_frame`."""

    @property
    def elapsed_frame_time(self) -> float:
        """Time elapsed between the two most recent frames."""
        ...

    def process_frame(self) -> None: ...


_ADJUSTABLE_METHODS = ("start", "stop", "reset", "seek", "reset_speed_adjustments")


def is_adjustable(clock: Clock) -> bool:
    """Return whether *clock* offers the full :class:`AdjustableClock` contract.

    Looks the methods up on the type rather than using ``isinstance``:
    on Python 3.11 a runtime protocol check evaluates every property,
    and reading a wrapper's ``current_time`` has observable effects.
    """
    return all(
        callable(getattr(type(clock), name, None)) for name in _ADJUSTABLE_METHODS
    )
