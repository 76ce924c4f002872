"""Frame-based composition shell.

A framed clock reads its Source exactly once per :meth:`process_frame`
call.  Between frames every property returns the same snapshot, so all
consumers updated within one frame agree on the time regardless of
when they ask.  Source mutations made elsewhere (an audio callback, the
embedding application) are polled at that cadence, never pushed.

Framed wrappers stack: when the Source is itself frame-based, its frame
is processed first (unless ``process_source_clock_frames`` is off), so
the consumer drives a whole stack with one call at the top.

Provided:
    - ``FrameStatistics`` — elapsed frame time, frames per second, jitter
    - ``FrameTimeInfo`` — immutable ``(elapsed, current)`` pair
    - ``FramedClock`` — snapshotting wrapper over any Source
    - ``FramedOffsetClock`` — framed wrapper adding a constant offset
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass

from timebase._contracts import AdjustableClock, Clock, is_adjustable
from timebase._errors import NotAdjustableError
from timebase._realtime import RealtimePort, SystemRealtime
from timebase._stopwatch import StopwatchClock

logger = logging.getLogger(__name__)

_STATISTICS_WINDOW_SECONDS = 1.0

# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FrameTimeInfo:
    """Time of a frame and how far it moved since the previous one."""

    elapsed: float
    current: float


# ---------------------------------------------------------------------------
# Frame statistics
# ---------------------------------------------------------------------------


class FrameStatistics:
    """Per-frame bookkeeping shared by every framed clock.

    ``frames_per_second`` and ``jitter`` are recalculated once per
    one-second window of real time; between recalculations they hold
    the previous window's values.
    """

    __slots__ = (
        "_realtime",
        "_window",
        "_window_start",
        "elapsed_frame_time",
        "frames_per_second",
        "jitter",
    )

    def __init__(self, realtime: RealtimePort) -> None:
        self._realtime = realtime
        self._window: list[float] = []
        self._window_start = realtime.now()
        self.elapsed_frame_time = 0.0
        self.frames_per_second = 0.0
        self.jitter = 0.0

    def record(self, elapsed: float) -> None:
        """Record the clock time elapsed over one frame."""
        self.elapsed_frame_time = elapsed
        self._window.append(elapsed)

        now = self._realtime.now()
        span = now - self._window_start
        if span < _STATISTICS_WINDOW_SECONDS:
            return

        self.frames_per_second = len(self._window) / span
        self.jitter = statistics.pstdev(self._window) if len(self._window) > 1 else 0.0
        self._window.clear()
        self._window_start = now

    def rebaseline(self) -> None:
        """Forget the last frame's elapsed time (e.g. after a source swap)."""
        self.elapsed_frame_time = 0.0


# ---------------------------------------------------------------------------
# FramedClock
# ---------------------------------------------------------------------------


class FramedClock:
    """Snapshot a Source once per frame.

    Mutators (``start``, ``stop``, ``seek``, ``reset``,
    ``reset_speed_adjustments``) are forwarded to the Source at once and
    the snapshot is refreshed immediately: explicit control is never
    deferred to the next frame.

    Args:
        source: Clock to read.  Defaults to a running
            :class:`~timebase.StopwatchClock`.
        process_source_clock_frames: Process the Source's frame first
            when the Source is frame-based.
        realtime: Monotonic reference used for frame statistics (and
            the default Source).

    Raises:
        NotAdjustableError: When a mutator other than ``seek`` is called
            over a read-only Source.
    """

    def __init__(
        self,
        source: Clock | None = None,
        *,
        process_source_clock_frames: bool = True,
        realtime: RealtimePort | None = None,
    ) -> None:
        self._realtime = realtime if realtime is not None else SystemRealtime()
        self.process_source_clock_frames = process_source_clock_frames
        self._statistics = FrameStatistics(self._realtime)
        self._current_time = 0.0
        self._last_frame_time = 0.0
        self._rate = 1.0
        self._is_running = False
        self._source: Clock = StopwatchClock(self._realtime, start=True)
        self._adjustable = True
        self.change_source(source if source is not None else self._source)

    # -- Source management ---------------------------------------------------

    @property
    def source(self) -> Clock:
        return self._source

    def change_source(self, source: Clock) -> None:
        """Replace the Source and re-baseline from its current values.

        Nothing is pushed into the new Source; the previous Source is
        left untouched.
        """
        self._source = source
        self._adjustable = is_adjustable(source)
        self._snap()
        self._last_frame_time = self._current_time
        self._statistics.rebaseline()
        logger.debug(
            "%s: source changed to %s at %.3f ms",
            type(self).__name__,
            type(source).__name__,
            self._current_time,
            extra={"clock": type(self).__name__, "clock_time": self._current_time},
        )

    # -- Frame processing ----------------------------------------------------

    def process_frame(self) -> None:
        """Advance one frame and refresh the snapshot."""
        if self.process_source_clock_frames:
            process = getattr(self._source, "process_frame", None)
            if callable(process):
                process()

        self._last_frame_time = self._current_time
        self._process_source_frame()
        self._statistics.record(self._current_time - self._last_frame_time)

    def _process_source_frame(self) -> None:
        """Update the snapshot for a new frame.  Subclasses refine this."""
        self._snap()

    def _snap(self) -> None:
        """Copy the Source's values into the snapshot verbatim."""
        self._current_time = self._source.current_time
        self._rate = self._source.rate
        self._is_running = self._source.is_running

    # -- Clock contract ------------------------------------------------------

    @property
    def current_time(self) -> float:
        return self._current_time

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def elapsed_frame_time(self) -> float:
        return self._statistics.elapsed_frame_time

    @property
    def frames_per_second(self) -> float:
        return self._statistics.frames_per_second

    @property
    def jitter(self) -> float:
        return self._statistics.jitter

    @property
    def time_info(self) -> FrameTimeInfo:
        return FrameTimeInfo(elapsed=self.elapsed_frame_time, current=self.current_time)

    # -- AdjustableClock contract (forwarded) --------------------------------

    def start(self) -> None:
        self._require_adjustable("start").start()
        self._snap()

    def stop(self) -> None:
        self._require_adjustable("stop").stop()
        self._snap()

    def reset(self) -> None:
        self._require_adjustable("reset").reset()
        self._snap()

    def seek(self, position: float) -> bool:
        """Seek the Source.  Returns ``False`` for read-only Sources."""
        if not self._adjustable:
            return False
        if not self._source.seek(position):  # type: ignore[attr-defined]
            return False
        self._snap()
        return True

    def reset_speed_adjustments(self) -> None:
        self._require_adjustable("reset_speed_adjustments").reset_speed_adjustments()
        self._snap()

    def _require_adjustable(self, operation: str) -> AdjustableClock:
        if not self._adjustable:
            raise NotAdjustableError(operation, self._source)
        return self._source  # type: ignore[return-value]

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(current_time={self._current_time!r}, "
            f"rate={self._rate!r}, is_running={self._is_running!r})"
        )


# ---------------------------------------------------------------------------
# FramedOffsetClock
# ---------------------------------------------------------------------------


class FramedOffsetClock(FramedClock):
    """Framed clock reporting its Source's time plus a constant offset.

    Typically used to compensate output latency: an audio Source that
    reports what it *decoded* is shifted to what the listener *hears*.

    Seeking to ``x`` seeks the Source to ``x - offset`` so that the
    wrapper lands on ``x``.
    """

    def __init__(
        self,
        source: Clock | None = None,
        offset: float = 0.0,
        *,
        process_source_clock_frames: bool = True,
        realtime: RealtimePort | None = None,
    ) -> None:
        self._offset = float(offset)
        super().__init__(
            source,
            process_source_clock_frames=process_source_clock_frames,
            realtime=realtime,
        )

    @property
    def offset(self) -> float:
        """Milliseconds added to the Source's time."""
        return self._offset

    @offset.setter
    def offset(self, value: float) -> None:
        self._offset = float(value)

    @property
    def current_time(self) -> float:
        return self._current_time + self._offset

    def seek(self, position: float) -> bool:
        return super().seek(position - self._offset)
