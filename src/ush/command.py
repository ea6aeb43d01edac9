"""The command entity — one program invocation.

A ``Command`` is created once per top-level invocation.  Option
processing fills it in piece by piece (redirections, fork flag, the
argument vector), the executor reads it, and the executor records what
happened to the child on it.

State machine::

    NOT_STARTED → RUNNING → EXITED
                          ↘ SIGNALED

Only the two terminal states are ever observed by callers; stopped or
continued children are not reported.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import StrEnum


class ProcessState(StrEnum):
    """Lifecycle of the target program.

    - NOT_STARTED: nothing has been executed yet.
    - RUNNING: a child has been forked and is being waited for.
    - EXITED: the child exited normally (see ``Command.exit_code``).
    - SIGNALED: the child was killed by a signal (see ``Command.term_signal``).
    """

    NOT_STARTED = "not_started"
    RUNNING = "running"
    EXITED = "exited"
    SIGNALED = "signaled"


@dataclass
class Redirection:
    """Where one standard stream of the target program goes.

    Attributes:
        filename: The file opened for the stream.
        append: Append instead of truncating (output streams only).
        new: The file must not already exist (output streams only).

    """

    filename: str
    append: bool = False
    new: bool = False


@dataclass
class Command:
    """Everything needed to run, and report on, the target program.

    Attributes:
        argv: The argument vector; ``argv[0]`` is the program.
        cmd_path: Path (or PATH-relative name) handed to exec.
        cmd_name: Basename of ``cmd_path``, for messages.
        fork: Run in a child and wait, instead of replacing this process.
        verbose: Report child pid and status.
        debug: Trace internals.
        stdin: Input redirection, if any.
        stdout: Output redirection, if any.
        stderr: Error redirection, if any.
        ioerr: First-class errno from chdir/umask/redirection setup (0 = none).
        surprise: A redirection landed on an unexpected descriptor number.
        child: Process id of the forked child.
        child_status: Raw wait status of the child.
        rc: Return code of the last executor step.
        state: Where the target program is in its lifecycle.

    """

    argv: list[str] = field(default_factory=lambda: [])  # noqa: PIE807
    cmd_path: str | None = None
    cmd_name: str | None = None
    fork: bool = False
    verbose: bool = False
    debug: bool = False
    stdin: Redirection | None = None
    stdout: Redirection | None = None
    stderr: Redirection | None = None
    ioerr: int = 0
    surprise: bool = False
    child: int | None = None
    child_status: int = 0
    rc: int = 0
    state: ProcessState = ProcessState.NOT_STARTED

    @property
    def argc(self) -> int:
        """Return the number of arguments."""
        return len(self.argv)

    def set_argv(self, argv: list[str]) -> None:
        """Install a new argument vector; ``argv[0]`` becomes the program."""
        self.argv = argv
        if argv:
            self.cmd_path = argv[0]
            self.cmd_name = os.path.basename(argv[0])
        else:
            self.cmd_path = None
            self.cmd_name = None

    def record_status(self, status: int) -> None:
        """Record a raw wait status and move to the matching final state."""
        self.child_status = status
        if os.WIFSIGNALED(status):
            self.state = ProcessState.SIGNALED
        else:
            self.state = ProcessState.EXITED

    @property
    def exit_code(self) -> int | None:
        """Return the child's exit code, or None unless it exited normally."""
        if self.state is not ProcessState.EXITED:
            return None
        return os.WEXITSTATUS(self.child_status)

    @property
    def term_signal(self) -> int | None:
        """Return the signal that killed the child, or None."""
        if self.state is not ProcessState.SIGNALED:
            return None
        return os.WTERMSIG(self.child_status)
