"""Tests for the launcher context and script encodings."""

from ush.config import PROGRAM_NAME, Context, Encoding, parse_encoding
from ush.logging import Logger, LogLevel


class TestEncoding:
    """Verify encoding names."""

    def test_known_names(self) -> None:
        """Every documented name maps to its encoding."""
        assert parse_encoding("text") is Encoding.TEXT
        assert parse_encoding("null") is Encoding.NULL
        assert parse_encoding("qp") is Encoding.QP
        assert parse_encoding("quoted-printable") is Encoding.QP
        assert parse_encoding("xnn") is Encoding.XNN

    def test_unknown_name(self) -> None:
        """Anything else is rejected."""
        assert parse_encoding("base64") is None
        assert parse_encoding("TEXT") is None


class TestContext:
    """Verify context defaults and seeding."""

    def test_defaults(self) -> None:
        """A fresh context is quiet, text-encoded, with no replace marker."""
        ctx = Context()
        assert ctx.program_name == PROGRAM_NAME
        assert ctx.debug is False
        assert ctx.verbose is False
        assert ctx.command_mode is False
        assert ctx.replace is None
        assert ctx.encoding is Encoding.TEXT
        assert ctx.protected_fds == set()

    def test_from_environ_empty(self) -> None:
        """No variables, no debug."""
        ctx = Context.from_environ({}, log=Logger())
        assert ctx.debug is False
        assert ctx.verbose is False
        assert ctx.log.echo_level is LogLevel.INFO

    def test_from_environ_debug(self) -> None:
        """USH_DEBUG turns on debug and lowers the echo level."""
        ctx = Context.from_environ({"USH_DEBUG": ""}, log=Logger())
        assert ctx.debug is True
        assert ctx.log.echo_level is LogLevel.DEBUG

    def test_from_environ_verbose(self) -> None:
        """USH_VERBOSE turns on verbose only."""
        ctx = Context.from_environ({"USH_VERBOSE": "1"}, log=Logger())
        assert ctx.verbose is True
        assert ctx.debug is False

    def test_trace_is_debug(self) -> None:
        """trace() records at DEBUG level."""
        ctx = Context()
        ctx.trace("hello", source="t")
        assert ctx.log.entries[0].level is LogLevel.DEBUG

    def test_contexts_do_not_share_state(self) -> None:
        """Mutable defaults are per-instance."""
        a = Context()
        b = Context()
        a.protected_fds.add(5)
        a.log.info("x", source="t")
        assert b.protected_fds == set()
        assert b.log.entries == []
