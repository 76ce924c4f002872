"""timebase.

Time-base synchronisation and smoothing for playback, animation and
audio/video sync: one well-behaved "current time" over coarse, jittery
or range-limited sources.
"""

from importlib.metadata import PackageNotFoundError, version

from timebase._contracts import AdjustableClock, Clock, FrameBasedClock, is_adjustable
from timebase._decoupling import CouplingState, DecouplingClock, FramedDecouplingClock
from timebase._errors import NotAdjustableError, TimebaseError
from timebase._framed import FramedClock, FramedOffsetClock, FrameStatistics, FrameTimeInfo
from timebase._interpolating import DEFAULT_ALLOWABLE_ERROR_MILLISECONDS, InterpolatingClock
from timebase._logging import ClockTextFormatter, JsonFormatter, configure_logging
from timebase._realtime import RealtimePort, SystemRealtime
from timebase._settings import ClockSettings, LoggingSettings, Settings
from timebase._stack import ClockStack, build_clock_stack
from timebase._stopwatch import StopwatchClock

try:
    __version__ = version("timebase")
except PackageNotFoundError:
    # Running from a source checkout without installed metadata
    __version__ = "0.0.0+unknown"

__all__ = [
    # Version
    "__version__",
    # Contracts
    "AdjustableClock",
    "Clock",
    "FrameBasedClock",
    "is_adjustable",
    # Real time
    "RealtimePort",
    "SystemRealtime",
    "StopwatchClock",
    # Framed
    "FrameStatistics",
    "FrameTimeInfo",
    "FramedClock",
    "FramedOffsetClock",
    # Coupling
    "CouplingState",
    "DecouplingClock",
    "FramedDecouplingClock",
    # Interpolation
    "DEFAULT_ALLOWABLE_ERROR_MILLISECONDS",
    "InterpolatingClock",
    # Stack
    "ClockStack",
    "build_clock_stack",
    # Errors
    "NotAdjustableError",
    "TimebaseError",
    # Logging
    "ClockTextFormatter",
    "JsonFormatter",
    "configure_logging",
    # Settings
    "ClockSettings",
    "LoggingSettings",
    "Settings",
]
