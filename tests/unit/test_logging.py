"""Unit tests for timebase._logging — JSON formatter and config.

Test Techniques Used:
    - Specification-based Testing: JsonFormatter output schema, clock
      context fields in both formats
    - State Inspection: Root logger handler/level after configure
    - Fixture Isolation: Save/restore root logger state
    - Log Capture: caplog for DEBUG records emitted by the clocks
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from timebase._decoupling import DecouplingClock
from timebase._logging import ClockTextFormatter, JsonFormatter, configure_logging
from timebase._settings import LoggingSettings
from timebase.testing import FakeClock, ManualClock


@pytest.fixture
def _restore_root_logger() -> Iterator[None]:
    """Save and restore root logger handlers and level.

    Ensures tests that call ``configure_logging()`` don't leak
    state across subsequent tests.
    """
    root = logging.getLogger()
    library = logging.getLogger("timebase")
    original_handlers = root.handlers[:]
    original_level = root.level
    original_library_level = library.level
    yield
    for h in root.handlers:
        if h not in original_handlers:
            h.close()
    root.handlers = original_handlers
    root.setLevel(original_level)
    library.setLevel(original_library_level)


class TestJsonFormatter:
    """Tests for JsonFormatter output schema.

    Technique: Specification-based Testing — verifying the
    JSON structure emitted by the formatter.
    """

    def _make_record(
        self,
        message: str = "hello",
        level: int = logging.INFO,
    ) -> logging.LogRecord:
        """Create a minimal LogRecord for testing."""
        return logging.LogRecord(
            name="test.logger",
            level=level,
            pathname="test.py",
            lineno=1,
            msg=message,
            args=(),
            exc_info=None,
        )

    def test_output_is_valid_json(self) -> None:
        """Formatted output is parseable JSON."""
        fmt = JsonFormatter(service="svc")
        record = self._make_record()
        result = json.loads(fmt.format(record))
        assert isinstance(result, dict)

    def test_has_required_fields(self) -> None:
        """Output contains all required fields."""
        fmt = JsonFormatter(service="svc")
        record = self._make_record()
        result = json.loads(fmt.format(record))
        required = {
            "timestamp",
            "level",
            "logger",
            "message",
            "service",
        }
        assert required.issubset(result.keys())

    def test_timestamp_is_utc_iso8601(self) -> None:
        """Timestamp is UTC ISO 8601 format."""
        fmt = JsonFormatter(service="svc")
        record = self._make_record()
        result = json.loads(fmt.format(record))
        ts = result["timestamp"]
        parsed = datetime.fromisoformat(ts)
        assert parsed.tzinfo == UTC

    def test_service_included(self) -> None:
        """Service name appears in output."""
        fmt = JsonFormatter(service="myapp")
        record = self._make_record()
        result = json.loads(fmt.format(record))
        assert result["service"] == "myapp"

    def test_version_included_when_set(self) -> None:
        """Version appears when non-empty."""
        fmt = JsonFormatter(service="svc", version="1.2.3")
        record = self._make_record()
        result = json.loads(fmt.format(record))
        assert result["version"] == "1.2.3"

    def test_version_omitted_when_empty(self) -> None:
        """Version key is absent when empty string."""
        fmt = JsonFormatter(service="svc", version="")
        record = self._make_record()
        result = json.loads(fmt.format(record))
        assert "version" not in result

    def test_exception_included_when_present(
        self,
    ) -> None:
        """Exception traceback included when logged."""
        fmt = JsonFormatter(service="svc")
        try:
            raise ValueError("boom")
        except ValueError:
            record = self._make_record()
            record.exc_info = (
                ValueError,
                ValueError("boom"),
                None,
            )
        result = json.loads(fmt.format(record))
        assert "exception" in result
        assert "ValueError" in result["exception"]


class TestConfigureLogging:
    """Tests for configure_logging() root logger setup.

    Technique: State Inspection — examining root logger
    state after configuration.
    """

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_json_mode_sets_json_formatter(self) -> None:
        """JSON format installs JsonFormatter on handler."""
        settings = LoggingSettings(format="json")
        configure_logging(settings, service="test")

        root = logging.getLogger()
        assert len(root.handlers) >= 1
        handler = root.handlers[0]
        assert isinstance(handler.formatter, JsonFormatter)

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_text_mode_sets_clock_text_formatter(
        self,
    ) -> None:
        """Text format installs ClockTextFormatter."""
        settings = LoggingSettings(format="text")
        configure_logging(settings, service="test")

        root = logging.getLogger()
        assert len(root.handlers) >= 1
        handler = root.handlers[0]
        assert isinstance(handler.formatter, ClockTextFormatter)

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_sets_root_logger_level(self) -> None:
        """Root logger level matches settings.level."""
        settings = LoggingSettings(level="WARNING")
        configure_logging(settings, service="test")

        root = logging.getLogger()
        assert root.level == logging.WARNING

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_clears_existing_handlers(self) -> None:
        """Existing handlers are removed before adding."""
        root = logging.getLogger()
        dummy = logging.StreamHandler()
        root.addHandler(dummy)
        initial_count = len(root.handlers)
        assert initial_count >= 1

        settings = LoggingSettings()
        configure_logging(settings, service="test")

        # Only the fresh handler(s) should remain
        for h in root.handlers:
            assert h is not dummy

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_file_handler_added_when_file_set(self, tmp_path: Path) -> None:
        """RotatingFileHandler is added when file is set."""
        settings = LoggingSettings(file=str(tmp_path / "test.log"))
        configure_logging(settings, service="test")

        root = logging.getLogger()
        rotating = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(rotating) == 1
        assert rotating[0].maxBytes == 10 * 1024 * 1024
        assert rotating[0].backupCount == 3

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_file_rotation_follows_settings(self, tmp_path: Path) -> None:
        """max_file_size_mb and backup_count reach the file handler."""
        settings = LoggingSettings(
            file=str(tmp_path / "sync.log"), max_file_size_mb=2, backup_count=0
        )
        configure_logging(settings, service="test")

        root = logging.getLogger()
        rotating = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        assert rotating[0].maxBytes == 2 * 1024 * 1024
        assert rotating[0].backupCount == 0

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_clock_level_applies_to_library_logger(self) -> None:
        """clock_level sets the timebase logger independently of the root."""
        settings = LoggingSettings(level="WARNING", clock_level="DEBUG")
        configure_logging(settings, service="test")

        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("timebase").level == logging.DEBUG
        assert logging.getLogger("timebase._decoupling").isEnabledFor(logging.DEBUG)

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_clock_level_none_inherits_root(self) -> None:
        """Without clock_level the timebase logger follows the root level."""
        logging.getLogger("timebase").setLevel(logging.DEBUG)
        configure_logging(LoggingSettings(level="ERROR"), service="test")

        assert logging.getLogger("timebase").level == logging.NOTSET
        assert not logging.getLogger("timebase._decoupling").isEnabledFor(logging.DEBUG)


class TestClockLogRecords:
    """Coupling transitions are reported at DEBUG.

    Technique: Log Capture.
    """

    def test_decoupling_is_logged(
        self,
        caplog: pytest.LogCaptureFixture,
        ranged_source: ManualClock,
        fake_realtime: FakeClock,
    ) -> None:
        clock = DecouplingClock(ranged_source, realtime=fake_realtime)

        with caplog.at_level(logging.DEBUG, logger="timebase"):
            clock.seek(-100)

        assert any(r.name == "timebase._decoupling" for r in caplog.records)
        assert all(r.levelno == logging.DEBUG for r in caplog.records)

    def test_records_carry_clock_context(
        self,
        caplog: pytest.LogCaptureFixture,
        ranged_source: ManualClock,
        fake_realtime: FakeClock,
    ) -> None:
        clock = DecouplingClock(ranged_source, realtime=fake_realtime)

        with caplog.at_level(logging.DEBUG, logger="timebase"):
            clock.seek(-100)

        record = caplog.records[-1]
        assert record.clock == "DecouplingClock"  # type: ignore[attr-defined]
        assert record.clock_time == -100  # type: ignore[attr-defined]
        assert record.coupling_state == "DECOUPLED_STOPPED"  # type: ignore[attr-defined]


class TestClockContextFormatting:
    """Clock fields attached through ``extra`` reach both output formats.

    Technique: Specification-based Testing.
    """

    def _decoupling_record(
        self, ranged_source: ManualClock, fake_realtime: FakeClock
    ) -> logging.LogRecord:
        records: list[logging.LogRecord] = []
        handler = logging.Handler()
        handler.emit = records.append  # type: ignore[method-assign]
        library = logging.getLogger("timebase")
        original_level = library.level
        library.addHandler(handler)
        library.setLevel(logging.DEBUG)
        try:
            DecouplingClock(ranged_source, realtime=fake_realtime).seek(-250)
        finally:
            library.removeHandler(handler)
            library.setLevel(original_level)
        return records[-1]

    def test_json_includes_clock_fields(
        self, ranged_source: ManualClock, fake_realtime: FakeClock
    ) -> None:
        record = self._decoupling_record(ranged_source, fake_realtime)

        result = json.loads(JsonFormatter(service="svc").format(record))

        assert result["clock"] == "DecouplingClock"
        assert result["clock_time"] == -250
        assert result["coupling_state"] == "DECOUPLED_STOPPED"
        assert "source_time" not in result

    def test_json_omits_clock_fields_for_plain_records(self) -> None:
        record = logging.makeLogRecord({"msg": "plain", "levelno": logging.INFO})

        result = json.loads(JsonFormatter(service="svc").format(record))

        assert not {"clock", "clock_time", "coupling_state", "source_time"} & result.keys()

    def test_text_appends_clock_fields(
        self, ranged_source: ManualClock, fake_realtime: FakeClock
    ) -> None:
        record = self._decoupling_record(ranged_source, fake_realtime)

        line = ClockTextFormatter().format(record)

        assert line.endswith(
            "[clock=DecouplingClock clock_time=-250.000 coupling_state=DECOUPLED_STOPPED]"
        )
        assert "timebase._decoupling: Decoupled from source at -250.000 ms" in line

    def test_text_renders_source_time(self) -> None:
        record = logging.makeLogRecord(
            {
                "name": "timebase._interpolating",
                "msg": "Interpolation lost",
                "levelno": logging.DEBUG,
                "levelname": "DEBUG",
                "clock": "InterpolatingClock",
                "clock_time": 1000.0,
                "source_time": 1100.5,
            }
        )

        line = ClockTextFormatter().format(record)

        assert line.endswith("[clock=InterpolatingClock clock_time=1000.000 source_time=1100.500]")

    def test_text_leaves_plain_records_unchanged(self) -> None:
        record = logging.makeLogRecord({"name": "app", "msg": "plain", "levelname": "INFO"})

        line = ClockTextFormatter().format(record)

        assert line.endswith("[INFO] app: plain")
