"""Log formatting and configuration for applications embedding timebase.

timebase itself only emits records through module-level loggers
(``timebase._decoupling``, ``timebase._interpolating``, ...), almost all
at DEBUG: coupling transitions, handoffs, lost interpolation and source
swaps happen many times per second during seeking and are only useful
while diagnosing sync problems.

Those records carry the clock they describe as ``extra`` attributes:

- ``clock`` — wrapper class name (``"FramedDecouplingClock"``, ...)
- ``clock_time`` — the wrapper's time in milliseconds
- ``coupling_state`` — ``CouplingState`` name, coupling layer only
- ``source_time`` — the Source's time, interpolation layer only

Both formatters installed by :func:`configure_logging` render them:
:class:`JsonFormatter` as top-level keys, :class:`ClockTextFormatter`
as a trailing ``[key=value ...]`` block.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from typing import Any

from timebase._settings import LoggingSettings

_BYTES_PER_MB = 1024 * 1024

_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_CLOCK_FIELDS = ("clock", "clock_time", "coupling_state", "source_time")

_LIBRARY_LOGGER = "timebase"


def _clock_context(record: logging.LogRecord) -> dict[str, Any]:
    """Return the clock attributes attached to *record*, in field order."""
    return {
        field: getattr(record, field) for field in _CLOCK_FIELDS if hasattr(record, field)
    }


class JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects (NDJSON).

    Each record produces a JSON object with these fields:

    - ``timestamp`` — ISO 8601, always UTC
    - ``level`` — Python log level name
    - ``logger`` — dotted logger name
    - ``message`` — the formatted log message
    - ``service`` — name of the embedding application
    - ``version`` — application version (omitted when empty)
    - the clock fields listed in the module docstring, when present
    - ``exception`` — formatted traceback (only when one is logged)

    Args:
        service: Application name included in every log line.
        version: Application version string.  Omitted when empty.
    """

    def __init__(
        self,
        *,
        service: str = "",
        version: str = "",
    ) -> None:
        super().__init__()
        self._service = service
        self._version = version

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a single-line JSON string."""
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self._service,
        }

        if self._version:
            entry["version"] = self._version

        entry.update(_clock_context(record))

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ClockTextFormatter(logging.Formatter):
    """Human-readable lines with the clock fields appended.

    Example::

        2026-01-01 12:00:00,000 [DEBUG] timebase._decoupling: Decoupled
        from source at 500.000 ms (running=True) [clock=DecouplingClock
        clock_time=500.000 coupling_state=DECOUPLED_RUNNING]
    """

    def __init__(self) -> None:
        super().__init__(_TEXT_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _clock_context(record)
        if not context:
            return line
        pairs = " ".join(
            f"{key}={value:.3f}" if isinstance(value, float) else f"{key}={value}"
            for key, value in context.items()
        )
        return f"{line} [{pairs}]"


def configure_logging(
    settings: LoggingSettings,
    *,
    service: str,
    version: str = "",
) -> None:
    """Configure the root logger and the ``timebase`` logger from settings.

    Clears any existing handlers on the root logger, then installs a
    stderr :class:`logging.StreamHandler` and, when ``settings.file``
    is set, a :class:`~logging.handlers.RotatingFileHandler` rotating
    at ``settings.max_file_size_mb``.

    ``settings.clock_level`` sets the ``timebase`` logger separately, so
    per-frame clock diagnostics can be enabled without turning the whole
    application to DEBUG.  ``None`` leaves it inheriting the root level.

    Args:
        settings: Logging configuration (levels, format, file).
        service: Application name passed to :class:`JsonFormatter`.
        version: Application version passed to :class:`JsonFormatter`.
    """
    root = logging.getLogger()

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    if settings.format == "json":
        formatter: logging.Formatter = JsonFormatter(service=service, version=version)
    else:
        formatter = ClockTextFormatter()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if settings.file is not None:
        file_handler = RotatingFileHandler(
            settings.file,
            maxBytes=settings.max_file_size_mb * _BYTES_PER_MB,
            backupCount=settings.backup_count,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(settings.level)
    logging.getLogger(_LIBRARY_LOGGER).setLevel(settings.clock_level or logging.NOTSET)
