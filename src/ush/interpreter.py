"""Script interpreter — build a command from a line-per-item script.

A script is a flat list of option lines, a ``--`` line, then one
argument per line::

    # run ls on the invoking arguments, output to a file
    --stdout=listing.txt
    --fork
    --
    ls
    -l
    %%ARGS%%

State machine::

    OPTIONS ──"--"──► ARGV ──end of stream──► EOF
       └────────────end of stream──────────────┘

OPTIONS:
    Blank lines and ``#`` comments are skipped.  A line starting with
    ``-`` is handed to the option processor exactly as if it had been
    given on the command line.  Any other line is ignored with a warning.
    End of stream here means there is nothing to run.

ARGV:
    Blank lines and comments are skipped only until the first argument;
    after that every line is an argument, even an empty one or one that
    starts with ``#``.  A line equal to the replace marker (``--replace``)
    is replaced by the invoking arguments, and with ``--append-argv`` the
    invoking arguments are added once more at the end.

A line that fails to decode stops the script: nothing is run and the
decoder's error code is returned.
"""

from __future__ import annotations

import errno
import os
from enum import StrEnum
from typing import TYPE_CHECKING, BinaryIO

from ush.fs.filetest import file_test
from ush.fs.listing import lsdlh
from ush.io.linebuf import LineBuffer
from ush.options import MAX_OPTION_ERRORS, OptionProcessor
from ush.process.executor import run_program
from ush.strv import StringVector

if TYPE_CHECKING:
    from ush.command import Command
    from ush.config import Context

ARGV_GROW = 100
OPTION_ARGV0 = ":"


class Section(StrEnum):
    """Where the interpreter is in the script."""

    OPTIONS = "options"
    ARGV = "argv"
    EOF = "eof"


class ScriptError(Exception):
    """Raised when a script has to be abandoned."""

    def __init__(self, message: str, *, code: int) -> None:
        """Create the error with an errno-style code."""
        super().__init__(message)
        self.code = code


def _is_skippable(line: bytes | bytearray) -> bool:
    return not line or line.startswith(b"#")


def _to_arg(line: bytes | bytearray) -> str:
    """Turn a decoded line into an argument string.

    An argument cannot hold a NUL, so the line ends at the first one.
    Bytes that are not valid UTF-8 survive via ``os.fsdecode``.
    """
    nul = line.find(0)
    if nul >= 0:
        line = line[:nul]
    return os.fsdecode(bytes(line))


class ScriptInterpreter:
    """Run one script against a context and a command.

    Attributes:
        section: Current state of the state machine.
        option_errors: Option lines that failed so far.
        strv: The argument vector being assembled.

    """

    def __init__(self, ctx: Context, cmd: Command) -> None:
        """Bind the interpreter to the launcher context and the command."""
        self._ctx = ctx
        self._cmd = cmd
        self._options = OptionProcessor(ctx, cmd)
        self.section = Section.OPTIONS
        self.option_errors = 0
        self.strv = StringVector(grow=ARGV_GROW, fatal=True)
        # Everything after the script name on the invoking command line.
        self._invoking_args = list(cmd.argv[1:])

    def _next_line(self, lbuf: LineBuffer) -> bytearray | None:
        line = lbuf.fetch(self._ctx.encoding)
        if line is None and lbuf.err:
            msg = f"{self._ctx.program_name}: cannot decode script line: {os.strerror(lbuf.err)}"
            self._ctx.log.error(msg, source="interpreter")
            raise ScriptError(msg, code=lbuf.err)
        if line is not None:
            self._ctx.trace(f"line: [{bytes(line)!r}]", source="interpreter")
        return line

    def _option_line(self, text: str) -> None:
        self._ctx.trace(f"option: [{text}]", source="interpreter")
        if self._options.process([OPTION_ARGV0, text], set_argv=False) != 0:
            self.option_errors += 1
            if self.option_errors > MAX_OPTION_ERRORS:
                msg = f"{self._ctx.program_name}: Too many option errors."
                self._ctx.log.error(msg, source="interpreter")
                raise ScriptError(msg, code=errno.EINVAL)

    def read_options(self, lbuf: LineBuffer) -> None:
        """Consume the OPTIONS section, up to and including ``--``."""
        while self.section is Section.OPTIONS:
            line = self._next_line(lbuf)
            if line is None:
                self.section = Section.EOF
            elif _is_skippable(line):
                continue
            elif line == b"--":
                self.section = Section.ARGV
            elif line.startswith(b"-"):
                self._option_line(_to_arg(line))
            else:
                self._ctx.log.warning(
                    f"{self._ctx.program_name}: ignoring line before '--': {_to_arg(line)!r}",
                    source="interpreter",
                )

    def read_argv(self, lbuf: LineBuffer) -> None:
        """Consume the ARGV section, assembling ``strv``."""
        in_argv = False
        replace = self._ctx.replace
        while self.section is Section.ARGV:
            line = self._next_line(lbuf)
            if line is None:
                self.section = Section.EOF
                break
            if not in_argv:
                if _is_skippable(line):
                    continue
                in_argv = True

            arg = _to_arg(line)
            if replace is not None and arg == replace:
                self.strv.extend(self._invoking_args)
            else:
                self.strv.reserve(1)
                self.strv.append(arg)

        if self._ctx.append_argv:
            self.strv.extend(self._invoking_args)

    def assemble(self, lbuf: LineBuffer) -> list[str] | None:
        """Read the whole script and return the argument vector.

        Returns:
            The arguments, or None if the script ended before ``--``.

        """
        self.read_options(lbuf)
        if self.section is Section.EOF:
            return None
        self.read_argv(lbuf)
        lbuf.clear()

        argc = self.strv.count
        self.strv.reserve(1)
        self.strv.append(None)
        return [arg for arg in self.strv.as_list()[:argc] if arg is not None]

    def run(self, lbuf: LineBuffer) -> int:
        """Interpret the script and run the command it describes.

        Returns:
            0 if there was nothing to run, otherwise the executor's
            result (the raw wait status in fork mode).

        Raises:
            ScriptError: On a decode failure, too many option errors, or
                an I/O setup error recorded by a script option.

        """
        argv = self.assemble(lbuf)
        if not argv:
            return 0

        cmd = self._cmd
        if cmd.ioerr:
            msg = f"{self._ctx.program_name}: {os.strerror(cmd.ioerr)}"
            raise ScriptError(msg, code=cmd.ioerr)

        if self._ctx.debug or self._ctx.show_argv:
            self._ctx.log.info(show_str_array(argv), source="interpreter")
        cmd.set_argv(argv)
        try:
            return run_program(self._ctx, cmd)
        finally:
            self.strv.free_strings()
            self.strv.free()


def show_str_array(argv: list[str]) -> str:
    """Format an argument vector one numbered item per line."""
    return "\n".join(f"  [{i}] {arg!r}" for i, arg in enumerate(argv))


def run_interpret_stream(ctx: Context, cmd: Command, stream: BinaryIO) -> int:
    """Interpret the script read from ``stream``.

    Returns:
        The executor's result, 0 for an empty script, or an errno value
        if the script was abandoned.

    """
    ctx.trace("run_interpret_stream", source="interpreter")
    interpreter = ScriptInterpreter(ctx, cmd)
    try:
        return interpreter.run(LineBuffer(stream))
    except ScriptError as e:
        return e.code


def run_interpret_file(ctx: Context, cmd: Command, path: str) -> int:
    """Interpret the script at ``path``.

    The script's own descriptor is protected from ``--close-from`` while
    the script is being read.

    Returns:
        As ``run_interpret_stream``, or ``EISDIR`` / the open errno if the
        script cannot be read.

    """
    if file_test("d", path) == 0:
        ctx.log.error(f"'{path}' is a directory.", source="interpreter")
        ctx.log.error(lsdlh(path), source="interpreter")
        return errno.EISDIR

    try:
        stream = open(path, "rb")  # noqa: SIM115
    except OSError as e:
        err = e.errno or errno.EIO
        ctx.log.error(f"{ctx.program_name}: cannot open '{path}': {e.strerror}", source="interpreter")
        if err != errno.ENOENT:
            ctx.log.error(lsdlh(path), source="interpreter")
        return err

    fd = stream.fileno()
    ctx.protected_fds.add(fd)
    try:
        return run_interpret_stream(ctx, cmd, stream)
    finally:
        ctx.protected_fds.discard(fd)
        stream.close()
