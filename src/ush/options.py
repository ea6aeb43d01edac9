"""Option table and option processing.

The same options are accepted in two places: on the launcher's own
command line, and one per line at the top of a script.  Both go through
``OptionProcessor.process``.  A script line is a single argument, so an
option that takes a value must be written ``--stdout=log.txt`` there;
on the command line ``--stdout log.txt`` works as well.

Decoding follows ``getopt_long`` in POSIX mode:

- Short options (``-h -V -c -d -v``) take no argument and may be
  clustered (``-dv``).  ``-?`` asks for help.
- Long options may be abbreviated to a unique prefix and take their
  argument as ``--name=value`` or ``--name value``.
- Scanning stops at the first non-option argument, or just after ``--``.

Each decoded option yields an ``Opt`` code that is dispatched through a
table of handlers.  A handler returns 0 or an errno value; nonzero
results and unknown options are counted, and after more than
``MAX_OPTION_ERRORS`` the scan gives up.
"""

from __future__ import annotations

import errno
import getopt
import sys
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, TypeAlias

from ush import actions
from ush.config import parse_encoding
from ush.fs.redirect import set_stderr, set_stdin, set_stdout

if TYPE_CHECKING:
    from ush.command import Command
    from ush.config import Context

MAX_OPTION_ERRORS = 10

_Handler: TypeAlias = Callable[[str | None], int]


class Opt(IntEnum):
    """Option codes: short options use their character, long-only ones a private range."""

    HELP = ord("h")
    VERSION = ord("V")
    COMMAND = ord("c")
    DEBUG = ord("d")
    VERBOSE = ord("v")

    BASE = 0xF000
    SHOW_ARGV = 0xF001
    APPEND_ARGV = 0xF002
    FORK = 0xF003
    CHDIR = 0xF004
    SET_STDIN = 0xF005
    SET_STDOUT = 0xF006
    SET_STDOUT_APPEND = 0xF007
    SET_STDOUT_NEW = 0xF008
    SET_STDERR = 0xF009
    SET_STDERR_APPEND = 0xF00A
    SET_STDERR_NEW = 0xF00B
    UMASK = 0xF00C
    CLOSE_FROM = 0xF00D
    REPLACE = 0xF00E
    ENCODING = 0xF00F
    ENV = 0xF010
    UNSETENV = 0xF011
    CLEARENV = 0xF012


@dataclass(frozen=True)
class OptionSpec:
    """One long option: its name, code, and whether it takes a value."""

    name: str
    code: Opt
    takes_arg: bool = False

    @property
    def getopt_name(self) -> str:
        """Return the name as ``getopt`` wants it (``name=`` if it takes a value)."""
        return f"{self.name}=" if self.takes_arg else self.name


SHORT_OPTIONS = "hVcdv"

LONG_OPTIONS: tuple[OptionSpec, ...] = (
    OptionSpec("help", Opt.HELP),
    OptionSpec("version", Opt.VERSION),
    OptionSpec("debug", Opt.DEBUG),
    OptionSpec("verbose", Opt.VERBOSE),
    OptionSpec("command", Opt.COMMAND),
    OptionSpec("append-argv", Opt.APPEND_ARGV),
    OptionSpec("show-argv", Opt.SHOW_ARGV),
    OptionSpec("fork", Opt.FORK),
    OptionSpec("stdin", Opt.SET_STDIN, takes_arg=True),
    OptionSpec("stdout", Opt.SET_STDOUT, takes_arg=True),
    OptionSpec("stdout-append", Opt.SET_STDOUT_APPEND, takes_arg=True),
    OptionSpec("stdout-new", Opt.SET_STDOUT_NEW, takes_arg=True),
    OptionSpec("stderr", Opt.SET_STDERR, takes_arg=True),
    OptionSpec("stderr-append", Opt.SET_STDERR_APPEND, takes_arg=True),
    OptionSpec("stderr-new", Opt.SET_STDERR_NEW, takes_arg=True),
    OptionSpec("chdir", Opt.CHDIR, takes_arg=True),
    OptionSpec("umask", Opt.UMASK, takes_arg=True),
    OptionSpec("close-from", Opt.CLOSE_FROM, takes_arg=True),
    OptionSpec("replace", Opt.REPLACE, takes_arg=True),
    OptionSpec("encoding", Opt.ENCODING, takes_arg=True),
    OptionSpec("env", Opt.ENV, takes_arg=True),
    OptionSpec("unsetenv", Opt.UNSETENV, takes_arg=True),
    OptionSpec("clearenv", Opt.CLEARENV),
)

_GETOPT_LONG = [spec.getopt_name for spec in LONG_OPTIONS]
_LONG_SPECS = {f"--{spec.name}": spec for spec in LONG_OPTIONS}

USAGE_TEXT = """\
Options:
  --help|-h|-?      Show this help message and exit
  --version|-V      Show ush version information and exit
  --verbose|-v      verbose
  --debug|-d        debug
  --command|-c      run the arguments as a command, not a script
  --show-argv       show the argument vector before running it
  --stdin         <filename>
  --stdout        <filename>
  --stdout-append <filename>
  --stdout-new    <filename>
  --stderr        <filename>
  --stderr-append <filename>
  --stderr-new    <filename>
  --close-from    <fd>
  --chdir         <directory>
  --umask         <mask>
  --env           <name>=<value>
  --unsetenv      <name>
  --clearenv
  --fork
  --append-argv
  --replace       <string>
  --encoding      text|null|qp|xnn
"""

VERSION = "0.1"

VERSION_TEXT = f"""\
{VERSION}

Copyright (C) 2016 Guy Shaw
Written by Guy Shaw

License GPLv3+: GNU GPL version 3 or later <http://gnu.org/licenses/gpl.html>.
This is free software: you are free to change and redistribute it.
There is NO WARRANTY, to the extent permitted by law.
"""


class UsageExit(Exception):
    """Raised when option processing ends the program (help, version, internal error)."""

    def __init__(self, code: int) -> None:
        """Create the request to exit with ``code``."""
        super().__init__(f"exit {code}")
        self.code = code


@dataclass(frozen=True)
class ParsedOption:
    """One decoded option.

    Attributes:
        code: The option code, or None if the option was not recognised.
        optarg: The option's value, if it takes one.
        raw: The argument the option came from (for messages).
        error: Why decoding failed, if it did.

    """

    code: Opt | None
    optarg: str | None = None
    raw: str = ""
    error: str | None = None


def _visible(ch: str) -> str:
    return ch if ch.isprintable() else f"\\x{ord(ch):02x}"


class OptionScanner:
    """Iterate over the options at the front of an argument vector.

    ``argv[0]`` is a program name and is skipped.  After iteration,
    ``optind`` is the index of the first non-option argument.
    """

    def __init__(self, argv: list[str]) -> None:
        """Prepare to scan ``argv``."""
        self.argv = argv
        self.optind = 1

    def _long(self, i: int) -> tuple[list[tuple[str, str]], int]:
        """Decode the long option at ``argv[i]``, borrowing ``argv[i+1]`` if it needs a value."""
        try:
            opts, _rest = getopt.getopt(self.argv[i : i + 1], "", _GETOPT_LONG)
        except getopt.GetoptError:
            if i + 1 < len(self.argv):
                try:
                    opts, rest = getopt.getopt(self.argv[i : i + 2], "", _GETOPT_LONG)
                except getopt.GetoptError:
                    pass
                else:
                    if not rest:
                        return opts, 2
            raise
        return opts, 1

    def _scan_long(self, arg: str) -> Iterator[ParsedOption]:
        try:
            opts, used = self._long(self.optind)
        except getopt.GetoptError as e:
            self.optind += 1
            if "not recognized" in e.msg:
                yield ParsedOption(None, raw=arg, error=f"unknown long option, '{arg}'")
            else:
                yield ParsedOption(None, raw=arg, error=e.msg)
            return
        self.optind += used
        for name, value in opts:
            spec = _LONG_SPECS[name]
            yield ParsedOption(spec.code, value if spec.takes_arg else None, raw=arg)

    def _scan_short(self, arg: str) -> Iterator[ParsedOption]:
        self.optind += 1
        for ch in arg[1:]:
            if ch in SHORT_OPTIONS:
                yield ParsedOption(Opt(ord(ch)), raw=arg)
            elif ch == "?":
                yield ParsedOption(Opt.HELP, raw=arg)
            else:
                yield ParsedOption(None, raw=arg, error=f"unknown short option, '{_visible(ch)}'")

    def __iter__(self) -> Iterator[ParsedOption]:
        """Yield each option in order, stopping at the first non-option."""
        while self.optind < len(self.argv):
            arg = self.argv[self.optind]
            if arg == "--":
                self.optind += 1
                return
            if not arg.startswith("-") or arg == "-":
                return
            if arg.startswith("--"):
                yield from self._scan_long(arg)
            else:
                yield from self._scan_short(arg)


class OptionProcessor:
    """Apply options to a context and a command.

    The handler table maps each option code to the method that carries
    it out; every handler takes the option's value (or None) and returns
    0 or an errno value.
    """

    def __init__(self, ctx: Context, cmd: Command) -> None:
        """Bind the processor to the launcher context and the command."""
        self._ctx = ctx
        self._cmd = cmd
        self._handlers: dict[Opt, _Handler] = {
            Opt.HELP: self._opt_help,
            Opt.VERSION: self._opt_version,
            Opt.DEBUG: self._opt_debug,
            Opt.VERBOSE: self._opt_verbose,
            Opt.COMMAND: self._opt_command,
            Opt.ENCODING: self._opt_encoding,
            Opt.APPEND_ARGV: self._opt_append_argv,
            Opt.SHOW_ARGV: self._opt_show_argv,
            Opt.FORK: self._opt_fork,
            Opt.CHDIR: lambda arg: actions.cmd_chdir(ctx, cmd, _required(arg)),
            Opt.UMASK: lambda arg: actions.cmd_umask(ctx, cmd, _required(arg)),
            Opt.SET_STDIN: lambda arg: set_stdin(cmd, _required(arg), log=ctx.log),
            Opt.SET_STDOUT: lambda arg: set_stdout(cmd, _required(arg), log=ctx.log),
            Opt.SET_STDOUT_APPEND: lambda arg: set_stdout(
                cmd, _required(arg), append=True, log=ctx.log
            ),
            Opt.SET_STDOUT_NEW: lambda arg: set_stdout(cmd, _required(arg), new=True, log=ctx.log),
            Opt.SET_STDERR: lambda arg: set_stderr(cmd, _required(arg), log=ctx.log),
            Opt.SET_STDERR_APPEND: lambda arg: set_stderr(
                cmd, _required(arg), append=True, log=ctx.log
            ),
            Opt.SET_STDERR_NEW: lambda arg: set_stderr(cmd, _required(arg), new=True, log=ctx.log),
            Opt.CLOSE_FROM: lambda arg: actions.cmd_close_from(ctx, cmd, _required(arg)),
            Opt.REPLACE: self._opt_replace,
            Opt.ENV: lambda arg: actions.cmd_env(ctx, cmd, _required(arg)),
            Opt.UNSETENV: lambda arg: actions.cmd_unsetenv(ctx, cmd, _required(arg)),
            Opt.CLEARENV: lambda _arg: actions.cmd_clearenv(ctx, cmd),
        }

    def process(self, argv: list[str], *, set_argv: bool) -> int:
        """Apply every option at the front of ``argv``.

        Args:
            argv: A program name followed by arguments.
            set_argv: Make the arguments after the options the command's
                argument vector (only for the launcher's own command line).

        Returns:
            The number of option errors (0 on success).

        Raises:
            UsageExit: For ``--help``, ``--version`` or an internal error.

        """
        ctx = self._ctx
        err_count = 0
        scanner = OptionScanner(argv)
        for opt in scanner:
            if err_count > MAX_OPTION_ERRORS:
                ctx.log.error(f"{ctx.program_name}: Too many option errors.", source="options")
                break
            if opt.code is None:
                ctx.log.error(f"{ctx.program_name}: {opt.error}", source="options")
                err_count += 1
                continue

            ctx.trace(f"optc=0x{int(opt.code):x} {opt.raw!r}", source="options")
            handler = self._handlers.get(opt.code)
            if handler is None:
                ctx.log.error(
                    f"{ctx.program_name}: INTERNAL ERROR: unknown option, {int(opt.code)}",
                    source="options",
                )
                raise UsageExit(2)
            if handler(opt.optarg) != 0:
                err_count += 1

        if err_count:
            return err_count

        ctx.verbose = ctx.verbose or ctx.debug
        ctx.show_argv = ctx.show_argv or ctx.verbose
        self._cmd.verbose = ctx.verbose
        self._cmd.debug = ctx.debug

        if set_argv:
            self._cmd.set_argv(argv[scanner.optind :])
        return 0

    # -- Handlers --------------------------------------------------------

    def _opt_help(self, _arg: str | None) -> int:
        if sys.stdout is not None:
            sys.stdout.write(USAGE_TEXT)
        raise UsageExit(0)

    def _opt_version(self, _arg: str | None) -> int:
        if sys.stdout is not None:
            sys.stdout.write(VERSION_TEXT)
        raise UsageExit(0)

    def _opt_debug(self, _arg: str | None) -> int:
        self._ctx.debug = True
        self._ctx.sync_log_level()
        return 0

    def _opt_verbose(self, _arg: str | None) -> int:
        self._ctx.verbose = True
        return 0

    def _opt_command(self, _arg: str | None) -> int:
        self._ctx.command_mode = True
        return 0

    def _opt_encoding(self, arg: str | None) -> int:
        encoding = parse_encoding(_required(arg))
        if encoding is None:
            self._ctx.log.error(
                f"{self._ctx.program_name}: invalid encoding, '{arg}'", source="options"
            )
            return errno.EINVAL
        self._ctx.encoding = encoding
        return 0

    def _opt_append_argv(self, _arg: str | None) -> int:
        self._ctx.append_argv = True
        return 0

    def _opt_show_argv(self, _arg: str | None) -> int:
        self._ctx.show_argv = True
        return 0

    def _opt_fork(self, _arg: str | None) -> int:
        self._cmd.fork = True
        return 0

    def _opt_replace(self, arg: str | None) -> int:
        self._ctx.replace = _required(arg)
        return 0


def _required(arg: str | None) -> str:
    """Return the value of an option declared to take one."""
    return "" if arg is None else arg

