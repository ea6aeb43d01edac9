"""Tests for the launcher's diagnostic log.

The logger records structured entries so callers can inspect what went
wrong, and echoes each one to the chosen error stream.
"""

import io
import os
import sys

from ush.logging import LogEntry, Logger, LogLevel, same_file, select_print_stream


class TestLogLevel:
    """Verify log level ordering."""

    def test_levels_are_ordered(self) -> None:
        """DEBUG < INFO < WARNING < ERROR."""
        assert LogLevel.DEBUG < LogLevel.INFO
        assert LogLevel.INFO < LogLevel.WARNING
        assert LogLevel.WARNING < LogLevel.ERROR


class TestLogEntry:
    """Verify log entry structure."""

    def test_entry_has_fields(self) -> None:
        """A log entry should store level, message, source, and pid."""
        entry = LogEntry(level=LogLevel.INFO, message="child pid=42", source="exec")
        assert entry.level is LogLevel.INFO
        assert entry.message == "child pid=42"
        assert entry.source == "exec"
        assert entry.pid == os.getpid()

    def test_entry_str(self) -> None:
        """String representation should include level, source and message."""
        entry = LogEntry(level=LogLevel.WARNING, message="dup2 surprise", source="redirect")
        assert str(entry) == "[WARNING] redirect: dup2 surprise"


class TestLogger:
    """Verify the logger."""

    def test_log_stores_entries(self) -> None:
        """Logged entries should be retrievable in order."""
        logger = Logger()
        logger.log(LogLevel.INFO, "first", source="test")
        logger.error("second", source="test")
        assert [e.message for e in logger.entries] == ["first", "second"]

    def test_entries_is_a_copy(self) -> None:
        """Mutating the returned list should not touch the log."""
        logger = Logger()
        logger.info("x", source="test")
        logger.entries.clear()
        assert len(logger.entries) == 1

    def test_filter_by_level(self) -> None:
        """Filtering should return only entries at or above the level."""
        logger = Logger()
        logger.debug("debug msg", source="test")
        logger.info("info msg", source="test")
        logger.error("error msg", source="test")
        warnings_and_above = logger.filter(min_level=LogLevel.WARNING)
        assert len(warnings_and_above) == 1
        assert warnings_and_above[0].level is LogLevel.ERROR

    def test_filter_by_source(self) -> None:
        """Filtering by source should return matching entries."""
        logger = Logger()
        logger.info("one", source="options")
        logger.info("two", source="exec")
        assert [e.message for e in logger.filter(source="exec")] == ["two"]

    def test_messages(self) -> None:
        """messages() should return just the text."""
        logger = Logger()
        logger.debug("trace", source="t")
        logger.warning("careful", source="t")
        assert logger.messages(min_level=LogLevel.WARNING) == ["careful"]

    def test_clear(self) -> None:
        """Clearing should remove all entries."""
        logger = Logger()
        logger.info("test", source="test")
        logger.clear()
        assert len(logger.entries) == 0


class TestEcho:
    """Verify that loud enough entries reach the stream."""

    def test_echo_at_or_above_level(self) -> None:
        """INFO and above are written by default, one per line."""
        out = io.StringIO()
        logger = Logger(stream=out)
        logger.debug("hidden", source="t")
        logger.info("shown", source="t")
        logger.error("also shown\n", source="t")
        assert out.getvalue() == "shown\nalso shown\n"

    def test_echo_debug_when_lowered(self) -> None:
        """Lowering echo_level lets traces through."""
        out = io.StringIO()
        logger = Logger(stream=out, echo_level=LogLevel.DEBUG)
        logger.debug("trace", source="t")
        assert out.getvalue() == "trace\n"

    def test_no_stream_records_only(self) -> None:
        """A logger without a stream still records."""
        logger = Logger()
        logger.error("quiet", source="t")
        assert logger.messages() == ["quiet"]


class TestPrintStream:
    """Verify the choice of error stream."""

    def test_same_file_for_dup(self) -> None:
        """A descriptor and its duplicate are the same file."""
        r, w = os.pipe()
        w2 = os.dup(w)
        r_other, w_other = os.pipe()
        try:
            assert same_file(w, w2) is True
            assert same_file(w, w_other) is False
        finally:
            for fd in (r, w, w2, r_other, w_other):
                os.close(fd)

    def test_same_file_bad_fd(self) -> None:
        """An unusable descriptor gives None."""
        r, w = os.pipe()
        os.close(r)
        os.close(w)
        assert same_file(r, w) is None

    def test_select_print_stream_is_std(self) -> None:
        """The chosen stream is always stdout or stderr."""
        assert select_print_stream() in (sys.stdout, sys.stderr)
