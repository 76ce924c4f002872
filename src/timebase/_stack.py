"""Standard two-layer clock stack.

Consumers usually want both behaviours: an interpolating clock for
smooth per-frame time, reading from a decoupling clock that keeps
running across the edges of the Source's domain::

    consumer → InterpolatingClock → FramedDecouplingClock → Source

:func:`build_clock_stack` wires the two layers from
:class:`~timebase.ClockSettings`.  The returned :class:`ClockStack`
exposes the usual clock contract by delegating to the top layer, and
swaps the raw Source under the coupling layer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from timebase._contracts import Clock
from timebase._decoupling import CouplingState, FramedDecouplingClock
from timebase._framed import FrameTimeInfo
from timebase._interpolating import InterpolatingClock
from timebase._realtime import RealtimePort, SystemRealtime
from timebase._settings import ClockSettings

logger = logging.getLogger(__name__)


@dataclass
class ClockStack:
    """An :class:`InterpolatingClock` reading from a :class:`FramedDecouplingClock`.

    Attributes:
        decoupling: The coupling layer; owns the raw Source.
        interpolating: The smoothing layer consumers read from.
    """

    decoupling: FramedDecouplingClock
    interpolating: InterpolatingClock

    @property
    def source(self) -> Clock:
        """The raw Source under the coupling layer."""
        return self.decoupling.source

    def change_source(self, source: Clock) -> None:
        """Swap the raw Source and re-baseline both layers from it."""
        self.decoupling.change_source(source)
        self.interpolating.change_source(self.decoupling)

    def process_frame(self) -> None:
        """Advance both layers by one frame, coupling layer first."""
        if not self.interpolating.process_source_clock_frames:
            self.decoupling.process_frame()
        self.interpolating.process_frame()

    # -- Clock contract ------------------------------------------------------

    @property
    def current_time(self) -> float:
        return self.interpolating.current_time

    @property
    def rate(self) -> float:
        return self.interpolating.rate

    @property
    def is_running(self) -> bool:
        return self.interpolating.is_running

    @property
    def elapsed_frame_time(self) -> float:
        return self.interpolating.elapsed_frame_time

    @property
    def time_info(self) -> FrameTimeInfo:
        return self.interpolating.time_info

    @property
    def is_interpolating(self) -> bool:
        return self.interpolating.is_interpolating

    @property
    def coupling_state(self) -> CouplingState:
        return self.decoupling.coupling_state

    # -- AdjustableClock contract --------------------------------------------

    def start(self) -> None:
        self.interpolating.start()

    def stop(self) -> None:
        self.interpolating.stop()

    def reset(self) -> None:
        self.interpolating.reset()

    def seek(self, position: float) -> bool:
        return self.interpolating.seek(position)

    def reset_speed_adjustments(self) -> None:
        self.interpolating.reset_speed_adjustments()


def build_clock_stack(
    source: Clock | None = None,
    settings: ClockSettings | None = None,
    *,
    realtime: RealtimePort | None = None,
) -> ClockStack:
    """Build the standard decoupling + interpolating stack over *source*.

    Args:
        source: Raw Source.  Defaults to a stopped stopwatch.
        settings: Clock behaviour.  Defaults to :class:`ClockSettings`
            defaults.
        realtime: Monotonic reference shared by both layers.

    Returns:
        A :class:`ClockStack`; drive it with :meth:`ClockStack.process_frame`.
    """
    settings = settings if settings is not None else ClockSettings()
    realtime = realtime if realtime is not None else SystemRealtime()

    decoupling = FramedDecouplingClock(
        source,
        allow_decoupling=settings.allow_decoupling,
        handoff_retry_interval=settings.handoff_retry_interval_milliseconds,
        realtime=realtime,
    )
    interpolating = InterpolatingClock(
        decoupling,
        allowable_error_milliseconds=settings.allowable_error_milliseconds,
        process_source_clock_frames=settings.process_source_clock_frames,
        realtime=realtime,
    )
    logger.debug(
        "Built clock stack (allow_decoupling=%s, allowance=%.3f ms)",
        settings.allow_decoupling,
        settings.allowable_error_milliseconds,
    )
    return ClockStack(decoupling=decoupling, interpolating=interpolating)
