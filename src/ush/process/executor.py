"""Process executor — exec the target program, optionally in a child.

Two modes, chosen by ``Command.fork``:

- **Replace mode** — ``execvp`` replaces the launcher itself with the
  target program.  On success nothing returns; the launcher is gone.
  On failure the error is reported and ``ExecError`` is raised so the
  top level can exit with the errno as status.
- **Fork mode** — the launcher forks.  The child execs (and, if that
  fails, ends itself with the errno as exit status).  The parent waits
  until the child has exited or been killed by a signal, ignoring
  stop/continue notifications, and records the raw status.

State machine (on ``Command.state``)::

    NOT_STARTED → RUNNING → EXITED | SIGNALED

The wait has no timeout: a child that never ends blocks the launcher.
"""

from __future__ import annotations

import errno
import os
import sys
from typing import TYPE_CHECKING

from ush.command import ProcessState

if TYPE_CHECKING:
    from ush.command import Command
    from ush.config import Context

EXEC_UNKNOWN_FAILURE = 126
SIGNAL_EXIT_BASE = 128


class ExecError(Exception):
    """Raised when the target program could not be exec'd."""

    def __init__(self, message: str, *, code: int) -> None:
        """Create the error with an errno-style code."""
        super().__init__(message)
        self.code = code


def _flush_std_streams() -> None:
    # Python sets a standard stream to None when its descriptor was closed.
    for stream in (sys.stdout, sys.stderr):
        if stream is not None:
            stream.flush()


def exec_program(ctx: Context, cmd: Command) -> None:
    """Replace the current process image with the target program.

    Raises:
        ExecError: If exec fails (it never returns otherwise).

    """
    if not cmd.argv or cmd.cmd_path is None:
        msg = "execvp(): no program to run"
        ctx.log.error(msg, source="exec")
        raise ExecError(msg, code=errno.EINVAL)

    ctx.trace(f"execvp({cmd.cmd_path!r}, {cmd.argv!r})", source="exec")
    _flush_std_streams()
    try:
        os.execvp(cmd.cmd_path, cmd.argv)
    except OSError as e:
        code = e.errno or EXEC_UNKNOWN_FAILURE
        msg = f"execvp(): {e.strerror or 'failed for reasons unknown'}"
        ctx.log.error(msg, source="exec")
        cmd.rc = code
        raise ExecError(msg, code=code) from e
    except ValueError as e:
        # An argument with an embedded NUL byte.
        msg = f"execvp(): {e}"
        ctx.log.error(msg, source="exec")
        cmd.rc = errno.EINVAL
        raise ExecError(msg, code=errno.EINVAL) from e


def wait_command(ctx: Context, cmd: Command) -> int:
    """Wait for the child to exit or be killed, and record its status.

    Returns:
        The raw wait status.

    """
    assert cmd.child is not None  # noqa: S101
    while True:
        try:
            _pid, status = os.waitpid(cmd.child, os.WUNTRACED | os.WCONTINUED)
        except InterruptedError:
            continue
        if os.WIFEXITED(status) or os.WIFSIGNALED(status):
            break
    cmd.record_status(status)
    if cmd.verbose:
        ctx.log.info(f"status=0x{status:02x}", source="exec")
    return status


def run_child_program(ctx: Context, cmd: Command) -> int:
    """Fork, exec the program in the child, and wait for it.

    Returns:
        The child's raw wait status.

    """
    _flush_std_streams()
    pid = os.fork()
    if pid == 0:
        # The child never returns into the caller's code.
        code = EXEC_UNKNOWN_FAILURE
        try:
            exec_program(ctx, cmd)
        except ExecError as e:
            code = e.code
            _flush_std_streams()
        finally:
            os._exit(code)

    cmd.child = pid
    cmd.state = ProcessState.RUNNING
    if cmd.verbose:
        ctx.log.info(f"child pid={pid}", source="exec")
    cmd.rc = wait_command(ctx, cmd)
    return cmd.rc


def run_program(ctx: Context, cmd: Command) -> int:
    """Run the target program in whichever mode the command asks for.

    Returns:
        The child's raw wait status in fork mode.  Replace mode only
        returns by raising.

    Raises:
        ExecError: If replace-mode exec fails.

    """
    if cmd.fork:
        return run_child_program(ctx, cmd)
    exec_program(ctx, cmd)
    return EXEC_UNKNOWN_FAILURE


def exit_status(cmd: Command) -> int:
    """Convert the recorded child status into a shell-style exit code.

    Normal exit gives the child's code; death by signal gives
    ``128 + signal``.
    """
    if cmd.state is ProcessState.SIGNALED:
        return SIGNAL_EXIT_BASE + (cmd.term_signal or 0)
    if cmd.state is ProcessState.EXITED:
        return cmd.exit_code or 0
    return cmd.rc
