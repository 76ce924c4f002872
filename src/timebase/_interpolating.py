"""Interpolation smoother for coarse or jittery Sources.

Audio devices typically report their position in buffer-sized steps,
so reading them every frame produces a staircase.  The
:class:`InterpolatingClock` instead advances its own time by the real
time elapsed since the previous frame (scaled by the Source's rate) and
only falls back to the Source's reported time when the prediction
drifts outside the allowance.

Per frame:

1. Read the Source's time, rate and running state.
2. Source stopped, or first frame after a source swap: snap to the
   Source and stop interpolating.
3. Predict ``previous + real_elapsed * rate``.
4. Prediction within ``allowable_error_milliseconds * max(1, |rate|)``
   of the Source and not moving against the rate: accept it.
5. Otherwise snap to the Source.  The snap never moves time against
   the rate unless the Source itself jumped back by more than the
   allowance (an external seek) or has fallen behind by more than the
   allowance; a Source that merely stalls or jitters backwards within
   the allowance holds the previous time instead.
"""

from __future__ import annotations

import logging
import math

from timebase._contracts import Clock
from timebase._framed import FramedClock
from timebase._realtime import RealtimePort, SystemRealtime
from timebase._stopwatch import StopwatchClock

logger = logging.getLogger(__name__)

DEFAULT_ALLOWABLE_ERROR_MILLISECONDS = 1000.0 / 60 * 2
"""Two frames at 60 Hz."""


def _validate_allowance(value: float) -> float:
    if isinstance(value, bool):
        msg = f"allowable_error_milliseconds must be a number, got bool: {value!r}"
        raise TypeError(msg)
    if not math.isfinite(value) or value < 0:
        msg = f"allowable_error_milliseconds must be a non-negative number, got {value!r}"
        raise ValueError(msg)
    return float(value)


class InterpolatingClock(FramedClock):
    """Framed clock producing a continuously advancing estimate of its Source.

    Works over read-only Sources as a pure predictor; mutators are then
    reported as unsupported (``seek`` returns ``False``, the others raise
    :class:`~timebase.NotAdjustableError`).

    Args:
        source: Clock to smooth.
        allowable_error_milliseconds: Largest tolerated divergence from
            the Source (at rate 1) before falling back to exact tracking.
        process_source_clock_frames: Process the Source's frame first
            when the Source is frame-based.
        realtime: Monotonic reference for elapsed real time.

    Raises:
        ValueError: If *allowable_error_milliseconds* is negative or not
            finite.
        TypeError: If *allowable_error_milliseconds* is a ``bool``.
    """

    def __init__(
        self,
        source: Clock | None = None,
        *,
        allowable_error_milliseconds: float = DEFAULT_ALLOWABLE_ERROR_MILLISECONDS,
        process_source_clock_frames: bool = True,
        realtime: RealtimePort | None = None,
    ) -> None:
        realtime = realtime if realtime is not None else SystemRealtime()
        self._allowable_error_milliseconds = _validate_allowance(allowable_error_milliseconds)
        self._tracker = StopwatchClock(realtime, start=True)
        self._last_tracker_time = 0.0
        self._last_source_time = 0.0
        self._is_interpolating = False
        self._resync_pending = True
        super().__init__(
            source,
            process_source_clock_frames=process_source_clock_frames,
            realtime=realtime,
        )

    # -- Configuration -------------------------------------------------------

    @property
    def allowable_error_milliseconds(self) -> float:
        return self._allowable_error_milliseconds

    @allowable_error_milliseconds.setter
    def allowable_error_milliseconds(self, value: float) -> None:
        self._allowable_error_milliseconds = _validate_allowance(value)

    @property
    def is_interpolating(self) -> bool:
        """Whether the last frame used the prediction rather than the Source."""
        return self._is_interpolating

    # -- Source management ---------------------------------------------------

    def change_source(self, source: Clock) -> None:
        super().change_source(source)
        self._resync_pending = True

    # -- Frame processing ----------------------------------------------------

    def _snap(self) -> None:
        super()._snap()
        self._last_source_time = self._current_time
        self._last_tracker_time = self._tracker.current_time
        self._is_interpolating = False

    def _process_source_frame(self) -> None:
        source_time = self._source.current_time
        rate = self._source.rate
        running = self._source.is_running

        tracker_time = self._tracker.current_time
        real_elapsed = tracker_time - self._last_tracker_time
        self._last_tracker_time = tracker_time

        if self._resync_pending or not running:
            self._resync_pending = False
            self._current_time = source_time
            self._rate = rate
            self._is_running = running
            self._last_source_time = source_time
            self._is_interpolating = False
            return

        self._rate = rate
        self._is_running = True

        previous = self._current_time
        direction = -1.0 if rate < 0 else 1.0
        allowance = self._allowable_error_milliseconds * max(1.0, abs(rate))
        source_jumped_back = (source_time - self._last_source_time) * direction < -allowance
        self._last_source_time = source_time

        candidate = previous + real_elapsed * rate
        if abs(candidate - source_time) <= allowance and (candidate - previous) * direction >= 0:
            self._current_time = candidate
            self._is_interpolating = True
            return

        if self._is_interpolating:
            logger.debug(
                "Interpolation lost: predicted %.3f ms, source at %.3f ms (allowance %.3f ms)",
                candidate,
                source_time,
                allowance,
                extra={
                    "clock": type(self).__name__,
                    "clock_time": previous,
                    "source_time": source_time,
                },
            )
        self._is_interpolating = False

        # Hold only while the Source trails by no more than the allowance.
        trailing = (previous - source_time) * direction
        if source_jumped_back or trailing <= 0 or trailing > allowance:
            self._current_time = source_time
