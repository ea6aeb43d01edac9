"""File-system helpers — redirection, descriptor hygiene, file tests.

Re-exports public symbols so callers can write::

    from ush.fs import close_from, set_stdout
"""

from ush.fs.filetest import TEST_FAILED, file_test
from ush.fs.listing import lsdlh, si_suffix
from ush.fs.redirect import (
    close_from,
    close_from_all,
    close_from_list,
    open_fds,
    set_stderr,
    set_stdin,
    set_stdout,
)

__all__ = [
    "TEST_FAILED",
    "close_from",
    "close_from_all",
    "close_from_list",
    "file_test",
    "lsdlh",
    "open_fds",
    "set_stderr",
    "set_stdin",
    "set_stdout",
    "si_suffix",
]
