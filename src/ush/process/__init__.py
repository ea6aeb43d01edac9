"""Process execution — exec, fork and wait.

Re-exports public symbols so callers can write::

    from ush.process import ExecError, run_program
"""

from ush.process.executor import (
    EXEC_UNKNOWN_FAILURE,
    SIGNAL_EXIT_BASE,
    ExecError,
    exec_program,
    exit_status,
    run_child_program,
    run_program,
    wait_command,
)

__all__ = [
    "EXEC_UNKNOWN_FAILURE",
    "SIGNAL_EXIT_BASE",
    "ExecError",
    "exec_program",
    "exit_status",
    "run_child_program",
    "run_program",
    "wait_command",
]
