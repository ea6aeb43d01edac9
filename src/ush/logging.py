"""Diagnostic logging for the launcher.

Every diagnostic ``ush`` produces (option errors, exec failures, verbose
child status, debug traces) goes through one ``Logger``.  The logger
keeps an append-only record of structured entries, so tests and callers
can inspect what happened, and echoes each entry to a single error
stream chosen once at startup.

- **LogLevel** — severity levels ordered for filtering (DEBUG < ERROR).
- **LogEntry** — a single structured record (level, message, source, pid).
- **Logger** — an append-only log with filtering, clearing and echo.

Which stream is the "error stream" depends on how the launcher was
started: if stdout and stderr are the same file, diagnostics go to
stdout so they interleave with normal output; otherwise they go to
stderr.  See ``select_print_stream``.
"""

import os
import sys
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TextIO


class LogLevel(IntEnum):
    """Severity levels for log entries.

    Using IntEnum means levels compare with ``<`` / ``>`` naturally,
    which makes minimum-level filtering trivial.
    """

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The component that generated the event (e.g. "options").
        pid: The process that logged it (differs after a fork).

    """

    level: LogLevel
    message: str
    source: str
    pid: int = field(default_factory=os.getpid)

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message``."""
        return f"[{self.level.name}] {self.source}: {self.message}"


def same_file(fd_a: int, fd_b: int) -> bool | None:
    """Return True if two descriptors refer to the same file.

    Returns None when either descriptor cannot be examined.
    """
    try:
        st_a = os.fstat(fd_a)
        st_b = os.fstat(fd_b)
    except OSError:
        return None
    return (st_a.st_dev, st_a.st_ino) == (st_b.st_dev, st_b.st_ino)


def select_print_stream() -> TextIO | None:
    """Pick the stream diagnostics are written to.

    stdout when stdout and stderr are the same file, stderr otherwise
    (including when the comparison is impossible).

    Either may be None when the launcher was started with that
    descriptor closed.
    """
    if same_file(1, 2):
        return sys.stdout
    return sys.stderr


class Logger:
    """Append-only log buffer with filtering and echo.

    Entries at or above ``echo_level`` are also written, as plain
    message text, to ``stream``.  A logger without a stream only
    records.
    """

    def __init__(
        self,
        *,
        stream: TextIO | None = None,
        echo_level: LogLevel = LogLevel.INFO,
    ) -> None:
        """Create an empty logger.

        Args:
            stream: Where echoed messages are written (None = record only).
            echo_level: Minimum level that is echoed to ``stream``.

        """
        self._entries: list[LogEntry] = []
        self.stream = stream
        self.echo_level = echo_level

    @property
    def entries(self) -> list[LogEntry]:
        """Return all log entries in chronological order."""
        return list(self._entries)

    def log(self, level: LogLevel, message: str, *, source: str) -> None:
        """Append a new entry to the log, echoing it if loud enough.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Component that generated the event.

        """
        self._entries.append(LogEntry(level=level, message=message, source=source))
        if self.stream is not None and level >= self.echo_level:
            self.stream.write(message if message.endswith("\n") else message + "\n")
            self.stream.flush()

    def debug(self, message: str, *, source: str) -> None:
        """Log at DEBUG level."""
        self.log(LogLevel.DEBUG, message, source=source)

    def info(self, message: str, *, source: str) -> None:
        """Log at INFO level."""
        self.log(LogLevel.INFO, message, source=source)

    def warning(self, message: str, *, source: str) -> None:
        """Log at WARNING level."""
        self.log(LogLevel.WARNING, message, source=source)

    def error(self, message: str, *, source: str) -> None:
        """Log at ERROR level."""
        self.log(LogLevel.ERROR, message, source=source)

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Return entries matching the given criteria.

        Args:
            min_level: If set, only return entries at or above this level.
            source: If set, only return entries from this source.

        Returns:
            A filtered list of log entries.

        """
        result = self._entries
        if min_level is not None:
            result = [e for e in result if e.level >= min_level]
        if source is not None:
            result = [e for e in result if e.source == source]
        return result if result is not self._entries else list(result)

    def messages(self, *, min_level: LogLevel | None = None) -> list[str]:
        """Return just the message text of matching entries."""
        return [e.message for e in self.filter(min_level=min_level)]

    def clear(self) -> None:
        """Remove all log entries."""
        self._entries.clear()
