"""Command-line entry point.

``ush [options] script [args...]`` interprets ``script``;
``ush [options] -c program [args...]`` runs ``program`` directly.  In
both cases the launcher's options have already redirected streams,
changed directory, and so on by the time anything runs.

Exit status:

- replace mode: nothing returns on success; a failed exec exits with
  its errno.
- fork mode: the child's exit code, or 128 + signal if it was killed.
- usage problems: 1 for bad options, 2 for a missing command or a
  failed I/O setup.
"""

from __future__ import annotations

import os
import sys

from ush.command import Command
from ush.config import Context
from ush.interpreter import run_interpret_file, show_str_array
from ush.options import USAGE_TEXT, OptionProcessor, UsageExit
from ush.process.executor import ExecError, exit_status, run_program
from ush.strv import FATAL_NOMEM_MESSAGE, StrvError

EXIT_OPTION_ERROR = 1
EXIT_USAGE = 2


def _usage(ctx: Context) -> None:
    ctx.log.error(f"usage: {ctx.program_name} [<options>] <script> [<args>...]", source="cli")
    ctx.log.error(USAGE_TEXT, source="cli")


def _run(ctx: Context, cmd: Command, argv: list[str]) -> int:
    if OptionProcessor(ctx, cmd).process(argv, set_argv=True) != 0:
        _usage(ctx)
        return EXIT_OPTION_ERROR

    if cmd.argc == 0:
        ctx.log.error("Must supply at least a command name.", source="cli")
        _usage(ctx)
        return EXIT_USAGE

    if ctx.show_argv:
        ctx.log.info(show_str_array(cmd.argv), source="cli")

    if cmd.ioerr:
        return EXIT_USAGE

    if ctx.command_mode:
        rv = run_program(ctx, cmd)
    else:
        rv = run_interpret_file(ctx, cmd, cmd.argv[0])
        if not cmd.fork or cmd.child is None:
            return rv

    if cmd.fork:
        return exit_status(cmd)
    return rv


def ush_argv(argv: list[str], *, ctx: Context | None = None) -> int:
    """Run the launcher with a full argument vector (``argv[0]`` is the program name).

    Returns:
        The exit status the launcher should end with.

    """
    if ctx is None:
        ctx = Context.from_environ(os.environ)
    cmd = Command()
    try:
        return _run(ctx, cmd, argv)
    except UsageExit as e:
        return e.code
    except ExecError as e:
        return e.code
    except StrvError:
        ctx.log.error(FATAL_NOMEM_MESSAGE, source="cli")
        return EXIT_USAGE


def ush(args: list[str]) -> int:
    """Run the launcher with arguments only, as from a shell."""
    return ush_argv(["ush", *args])


def main() -> int:
    """Entry point for the ``ush`` console script."""
    return ush_argv(sys.argv)


if __name__ == "__main__":
    sys.exit(main())
