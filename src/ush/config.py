"""Run-time configuration threaded through every call.

The launcher has a handful of switches that are set by options (on the
command line or inside a script) and read by later stages: debug and
verbose output, how script lines are encoded, the replace marker, and
whether the invoking arguments are appended to the script's arguments.

Rather than keeping these in module globals, they live on one
``Context`` value constructed at the top level and passed down.  Two
environment variables seed it, so debugging can be switched on without
touching the option list that is passed through to the target program:

- ``USH_DEBUG`` — any value turns on debug output.
- ``USH_VERBOSE`` — any value turns on verbose output.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum

from ush.logging import Logger, LogLevel, select_print_stream

PROGRAM_NAME = "ush"


class Encoding(StrEnum):
    """How each line of a script is encoded.

    - TEXT — newline-terminated lines, taken literally.
    - NULL — NUL-terminated lines, taken literally.
    - QP — newline-terminated lines in MIME quoted-printable.
    - XNN — newline-terminated lines with ``\\xNN`` hex escapes.
    """

    TEXT = "text"
    NULL = "null"
    QP = "qp"
    XNN = "xnn"


_ENCODING_NAMES: dict[str, Encoding] = {
    "text": Encoding.TEXT,
    "null": Encoding.NULL,
    "qp": Encoding.QP,
    "quoted-printable": Encoding.QP,
    "xnn": Encoding.XNN,
}


def parse_encoding(name: str) -> Encoding | None:
    """Return the encoding named by an ``--encoding`` argument, or None."""
    return _ENCODING_NAMES.get(name)


@dataclass
class Context:
    """Launcher-wide settings and the shared diagnostic log.

    Attributes:
        program_name: Name used as a prefix in diagnostics.
        debug: Trace internals (implies verbose).
        verbose: Report child pid and status.
        command_mode: Run ``argv`` directly instead of interpreting a script.
        show_argv: Print the argument vector before running.
        append_argv: Append the invoking arguments after the script's.
        replace: Script line that is replaced by the invoking arguments.
        encoding: Encoding of script lines.
        protected_fds: Descriptors ``--close-from`` must leave open.
        log: Shared diagnostic log.

    """

    program_name: str = PROGRAM_NAME
    debug: bool = False
    verbose: bool = False
    command_mode: bool = False
    show_argv: bool = False
    append_argv: bool = False
    replace: str | None = None
    encoding: Encoding = Encoding.TEXT
    protected_fds: set[int] = field(default_factory=lambda: set())  # noqa: PIE807
    log: Logger = field(default_factory=Logger)

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, str],
        *,
        log: Logger | None = None,
    ) -> Context:
        """Build a context seeded from ``USH_DEBUG`` / ``USH_VERBOSE``.

        Args:
            environ: The environment to consult (normally ``os.environ``).
            log: Logger to use; by default one echoing to the error stream.

        """
        if log is None:
            log = Logger(stream=select_print_stream())
        ctx = cls(
            debug="USH_DEBUG" in environ,
            verbose="USH_VERBOSE" in environ,
            log=log,
        )
        ctx.sync_log_level()
        return ctx

    def sync_log_level(self) -> None:
        """Echo debug traces only while debug output is on."""
        self.log.echo_level = LogLevel.DEBUG if self.debug else LogLevel.INFO

    def trace(self, message: str, *, source: str) -> None:
        """Record a debug trace."""
        self.log.debug(message, source=source)
