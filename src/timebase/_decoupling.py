"""Coupling state machine.

A :class:`DecouplingClock` normally mirrors its Source ("coupled").
When decoupling is allowed it may diverge and free-run on a local
:class:`~timebase.StopwatchClock` instead:

- a seek the Source rejects (e.g. a negative lead-in before an audio
  track) is accepted locally and the clock runs from there;
- a Source that stops underneath a running clock (e.g. a track that
  reached its end) does not stop the clock.

While free-running the clock keeps offering its own time to the Source.
The first time the Source accepts it, authority is handed back *at that
exact time*, so the displayed time never jumps at the handoff.

Source-side changes are polled, never pushed.  The reactive
:class:`DecouplingClock` polls on every read; :class:`FramedDecouplingClock`
polls once per :meth:`~FramedDecouplingClock.process_frame`.

States::

    COUPLED            time and running state come from the Source
    DECOUPLED_RUNNING  free-running locally, Source changes ignored
    DECOUPLED_STOPPED  holding a time locally, Source changes ignored

With ``allow_decoupling=False`` the clock is a pure passthrough: every
mutator is forwarded verbatim and its result returned unchanged.
"""

from __future__ import annotations

import enum
import logging
import math

from timebase._contracts import AdjustableClock, Clock, is_adjustable
from timebase._errors import NotAdjustableError
from timebase._framed import FrameStatistics, FrameTimeInfo
from timebase._realtime import RealtimePort, SystemRealtime
from timebase._stopwatch import StopwatchClock

logger = logging.getLogger(__name__)


class CouplingState(enum.Enum):
    """Whether a :class:`DecouplingClock` follows its Source."""

    COUPLED = "coupled"
    DECOUPLED_RUNNING = "decoupled_running"
    DECOUPLED_STOPPED = "decoupled_stopped"


def _validate_interval(value: float) -> float:
    if isinstance(value, bool):
        msg = f"handoff_retry_interval must be a number, got bool: {value!r}"
        raise TypeError(msg)
    if not math.isfinite(value) or value < 0:
        msg = f"handoff_retry_interval must be a non-negative number, got {value!r}"
        raise ValueError(msg)
    return float(value)


class DecouplingClock:
    """Reactive clock that follows a Source but may free-run without it.

    Every property read polls the Source, so values are always current.

    Args:
        source: Clock to follow.  Defaults to a stopped
            :class:`~timebase.StopwatchClock`.
        allow_decoupling: ``False`` makes the clock a pure passthrough.
        handoff_retry_interval: Minimum real milliseconds between two
            attempts to hand authority back to the Source.  ``0`` retries
            on every poll.
        realtime: Monotonic reference for free-running.
    """

    def __init__(
        self,
        source: Clock | None = None,
        *,
        allow_decoupling: bool = True,
        handoff_retry_interval: float = 0.0,
        realtime: RealtimePort | None = None,
    ) -> None:
        self._realtime = realtime if realtime is not None else SystemRealtime()
        self._stopwatch = StopwatchClock(self._realtime)
        self._allow_decoupling = bool(allow_decoupling)
        self._handoff_retry_interval = _validate_interval(handoff_retry_interval)
        self._last_handoff_attempt = 0.0
        self._handoff_armed = False
        self._state = CouplingState.COUPLED
        self._current_time = 0.0
        self._rate = 1.0
        self._is_running = False
        self._source: Clock = source if source is not None else StopwatchClock(self._realtime)
        self._adjustable = False
        self.change_source(self._source)

    # -- Configuration -------------------------------------------------------

    @property
    def allow_decoupling(self) -> bool:
        return self._allow_decoupling

    @allow_decoupling.setter
    def allow_decoupling(self, value: bool) -> None:
        value = bool(value)
        if value == self._allow_decoupling:
            return
        self._allow_decoupling = value
        self._couple()

    @property
    def handoff_retry_interval(self) -> float:
        return self._handoff_retry_interval

    @handoff_retry_interval.setter
    def handoff_retry_interval(self, value: float) -> None:
        self._handoff_retry_interval = _validate_interval(value)

    # -- Source management ---------------------------------------------------

    @property
    def source(self) -> Clock:
        return self._source

    def change_source(self, source: Clock) -> None:
        """Replace the Source, discarding all coupling state.

        The clock re-baselines from the new Source's current values and
        becomes coupled.  Nothing is pushed into the new Source.
        """
        self._source = source
        self._adjustable = is_adjustable(source)
        self._couple()
        logger.debug(
            "Source changed to %s at %.3f ms (running=%s)",
            type(source).__name__,
            self._current_time,
            self._is_running,
            extra=self._log_context(),
        )

    # -- Clock contract ------------------------------------------------------

    @property
    def current_time(self) -> float:
        self._refresh()
        return self._current_time

    @property
    def rate(self) -> float:
        self._refresh()
        return self._rate

    @property
    def is_running(self) -> bool:
        self._refresh()
        return self._is_running

    @property
    def coupling_state(self) -> CouplingState:
        self._refresh()
        return self._state

    # -- AdjustableClock contract --------------------------------------------

    def start(self) -> None:
        """Start the Source and this clock.

        When the Source cannot represent the current time the clock
        starts free-running regardless.
        """
        self._refresh()
        if not self._allow_decoupling:
            self._require_adjustable("start").start()
            self._couple()
            return

        if self._state is CouplingState.COUPLED and self._is_running:
            # The snapshot may lag a framed Source; seeking to it would rewind.
            if self._adjustable:
                self._source.start()  # type: ignore[attr-defined]
            return

        if self._adjustable:
            source: AdjustableClock = self._source  # type: ignore[assignment]
            accepted = source.current_time == self._current_time or source.seek(
                self._current_time
            )
            # Started even after a rejected seek, unlike seek() which stops
            # it. The handoff re-seeks it to the free-run time.
            source.start()
            if accepted and source.is_running:
                self._enter_coupled(running=True)
                return

        if self._state is not CouplingState.DECOUPLED_RUNNING:
            self._decouple(running=True)

    def stop(self) -> None:
        """Stop the Source (best effort) and hold the current time."""
        self._refresh()
        if not self._allow_decoupling:
            self._require_adjustable("stop").stop()
            self._couple()
            return

        held = self._current_time
        if self._adjustable:
            self._source.stop()  # type: ignore[attr-defined]
            if not self._source.is_running and self._source.current_time == held:
                self._enter_coupled(running=False)
                return
        self._decouple(running=False)

    def seek(self, position: float) -> bool:
        """Seek to *position*.

        Without decoupling the Source's answer is returned unchanged.
        With decoupling a position the Source rejects is still accepted
        locally, so any finite *position* succeeds.
        """
        self._refresh()
        if not self._allow_decoupling:
            if not self._adjustable:
                return False
            accepted = self._source.seek(position)  # type: ignore[attr-defined]
            self._couple()
            return bool(accepted)

        if not math.isfinite(position):
            return False

        running = self._is_running
        source = self._source
        if self._adjustable and source.seek(position):  # type: ignore[attr-defined]
            self._current_time = float(position)
            if running and not source.is_running:
                source.start()  # type: ignore[attr-defined]
            elif not running and source.is_running:
                source.stop()  # type: ignore[attr-defined]
            if source.is_running == running:
                self._enter_coupled(running=running)
                return True
        elif self._adjustable and source.is_running:
            # Keep the Source from playing a position no longer displayed.
            source.stop()  # type: ignore[attr-defined]

        self._current_time = float(position)
        self._decouple(running=running)
        return True

    def reset(self) -> None:
        """Stop and seek both this clock and the Source to zero."""
        self._refresh()
        if not self._allow_decoupling:
            self._require_adjustable("reset").reset()
            self._couple()
            return

        self._stopwatch.reset()
        self._current_time = 0.0
        if self._adjustable:
            self._source.reset()  # type: ignore[attr-defined]
            if not self._source.is_running and self._source.current_time == 0.0:
                self._enter_coupled(running=False)
                return
        self._decouple(running=False)

    def reset_speed_adjustments(self) -> None:
        self._require_adjustable("reset_speed_adjustments").reset_speed_adjustments()
        self._stopwatch.reset_speed_adjustments()
        self._rate = self._source.rate

    # -- Polling ---------------------------------------------------------------

    def _refresh(self) -> None:
        """Bring the state up to date before it is read or mutated."""
        self._observe()

    def _observe(self) -> None:
        source = self._source
        self._rate = source.rate

        if not self._allow_decoupling:
            self._current_time = source.current_time
            self._is_running = source.is_running
            return

        if self._state is CouplingState.COUPLED:
            source_time = source.current_time
            if source.is_running:
                self._current_time = source_time
                self._is_running = True
            elif self._is_running:
                # Stopped underneath us: keep going, but never backwards.
                if (source_time - self._current_time) * self._direction() >= 0:
                    self._current_time = source_time
                self._decouple(running=True)
            else:
                self._current_time = source_time
        elif self._state is CouplingState.DECOUPLED_RUNNING:
            self._stopwatch.rate = self._rate
            self._current_time = self._stopwatch.current_time
            self._attempt_handoff()

    def _attempt_handoff(self) -> None:
        if not self._adjustable:
            return
        # The first observation after decoupling sees the time the Source
        # just rejected or stopped at.
        if not self._handoff_armed:
            self._handoff_armed = True
            return

        now = self._realtime.now()
        if (now - self._last_handoff_attempt) * 1000.0 < self._handoff_retry_interval:
            return
        self._last_handoff_attempt = now

        source: AdjustableClock = self._source  # type: ignore[assignment]
        if not source.seek(self._current_time):
            return
        if not source.is_running:
            source.start()
        if not source.is_running:
            return

        self._enter_coupled(running=True)
        logger.debug(
            "Handed authority back to source at %.3f ms",
            self._current_time,
            extra=self._log_context(),
        )

    # -- Transitions -----------------------------------------------------------

    def _couple(self) -> None:
        """Re-baseline from the Source and follow it."""
        source = self._source
        self._current_time = source.current_time
        self._rate = source.rate
        self._is_running = source.is_running
        self._state = CouplingState.COUPLED
        self._stopwatch.stop()

    def _enter_coupled(self, *, running: bool) -> None:
        was_decoupled = self._state is not CouplingState.COUPLED
        self._state = CouplingState.COUPLED
        self._is_running = running
        if was_decoupled:
            logger.debug(
                "Coupled to source at %.3f ms", self._current_time, extra=self._log_context()
            )
        self._stopwatch.stop()

    def _decouple(self, *, running: bool) -> None:
        self._state = (
            CouplingState.DECOUPLED_RUNNING if running else CouplingState.DECOUPLED_STOPPED
        )
        self._is_running = running
        self._handoff_armed = False
        self._last_handoff_attempt = self._realtime.now()

        self._stopwatch.stop()
        self._stopwatch.rate = self._rate
        self._stopwatch.seek(self._current_time)
        if running:
            self._stopwatch.start()

        logger.debug(
            "Decoupled from source at %.3f ms (running=%s)",
            self._current_time,
            running,
            extra=self._log_context(),
        )

    def _direction(self) -> float:
        return -1.0 if self._rate < 0 else 1.0

    def _log_context(self) -> dict[str, object]:
        return {
            "clock": type(self).__name__,
            "clock_time": self._current_time,
            "coupling_state": self._state.name,
        }

    def _require_adjustable(self, operation: str) -> AdjustableClock:
        if not self._adjustable:
            raise NotAdjustableError(operation, self._source)
        return self._source  # type: ignore[return-value]

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(current_time={self._current_time!r}, "
            f"state={self._state.name}, allow_decoupling={self._allow_decoupling!r})"
        )


class FramedDecouplingClock(DecouplingClock):
    """Decoupling clock whose state only advances inside :meth:`process_frame`.

    Reads return the snapshot taken by the last frame.  Mutators act at
    once and against that snapshot: starting pushes the snapshot time
    into the Source even if the Source was moved since the last frame.
    """

    def __init__(
        self,
        source: Clock | None = None,
        *,
        allow_decoupling: bool = True,
        handoff_retry_interval: float = 0.0,
        process_source_clock_frames: bool = True,
        realtime: RealtimePort | None = None,
    ) -> None:
        realtime = realtime if realtime is not None else SystemRealtime()
        self.process_source_clock_frames = process_source_clock_frames
        self._statistics = FrameStatistics(realtime)
        self._last_frame_time = 0.0
        super().__init__(
            source,
            allow_decoupling=allow_decoupling,
            handoff_retry_interval=handoff_retry_interval,
            realtime=realtime,
        )

    def change_source(self, source: Clock) -> None:
        super().change_source(source)
        self._last_frame_time = self._current_time
        self._statistics.rebaseline()

    def process_frame(self) -> None:
        """Poll the Source once and advance the snapshot."""
        if self.process_source_clock_frames:
            process = getattr(self._source, "process_frame", None)
            if callable(process):
                process()

        self._last_frame_time = self._current_time
        self._observe()
        self._statistics.record(self._current_time - self._last_frame_time)

    def _refresh(self) -> None:
        pass

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
        return FrameTimeInfo(elapsed=self.elapsed_frame_time, current=self._current_time)
