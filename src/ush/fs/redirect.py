"""Standard-stream redirection and descriptor hygiene.

Before the target program is exec'd, its standard streams can be
pointed at files and stray descriptors can be closed.  Both act on the
launcher's own descriptor table, which the program then inherits.

Redirection follows the classic open / dup2 / close sequence::

    fd = open("out.log", O_CREAT | O_WRONLY | O_TRUNC)   # e.g. fd 3
    dup2(fd, 1)                                          # 1 -> out.log
    close(fd)                                            # 3 is free again

Errors are errno values recorded on ``Command.ioerr`` and also returned
(0 means success).  They are checked once, before anything is executed.

``close_from(fd_lo)`` closes every descriptor at or above ``fd_lo``.  It
lists the descriptors that are actually open (``/proc/self/fd``) when it
can, and otherwise probes every number up to the descriptor limit.
Redirections always land on 0, 1 and 2, so a lower bound of 3 or more
never undoes one.
"""

from __future__ import annotations

import errno
import fcntl
import os
import resource
import sys
from typing import TYPE_CHECKING, TextIO

from ush.command import Redirection
from ush.fs.filetest import file_test
from ush.fs.listing import lsdlh

if TYPE_CHECKING:
    from collections.abc import Collection

    from ush.command import Command
    from ush.logging import Logger

STDIN_FILENO = 0
STDOUT_FILENO = 1
STDERR_FILENO = 2
FIRST_FREE_FD = 3
FILE_MODE = 0o600

_FD_DIRS = ("/proc/self/fd", "/dev/fd")


def _report(log: Logger | None, message: str) -> None:
    if log is not None:
        log.error(message, source="redirect")


def _install(cmd: Command, fd: int, target: int, log: Logger | None) -> int:
    """``dup2`` ``fd`` onto ``target`` and close ``fd``.

    When ``target`` was closed, ``os.open`` already handed back ``target``
    itself; it is then left open.
    """
    stream: TextIO | None = {STDOUT_FILENO: sys.stdout, STDERR_FILENO: sys.stderr}.get(target)
    if stream is not None:
        stream.flush()
    try:
        new_fd = os.dup2(fd, target)
    except OSError as e:
        os.close(fd)
        cmd.ioerr = e.errno or errno.EIO
        _report(log, f"dup2({fd}, {target}) failed: {e.strerror}")
        return cmd.ioerr
    if new_fd != target:
        cmd.surprise = True
        if log is not None:
            log.warning(f"dup2({fd}, {target}) returned {new_fd}", source="redirect")
        return 0
    if fd != target:
        os.close(fd)
    return 0


def set_stdin(cmd: Command, fname: str, *, log: Logger | None = None) -> int:
    """Point standard input at ``fname`` (read-only)."""
    cmd.stdin = Redirection(filename=fname)
    try:
        fd = os.open(fname, os.O_RDONLY)
    except OSError as e:
        cmd.ioerr = e.errno or errno.EIO
        _report(log, f"open('{fname}') for stdin failed: {e.strerror}")
        return cmd.ioerr
    return _install(cmd, fd, STDIN_FILENO, log)


def output_flags(*, append: bool, new: bool) -> int:
    """Return the ``open`` flags for an output redirection."""
    flags = os.O_CREAT | os.O_WRONLY
    flags |= os.O_APPEND if append else os.O_TRUNC
    if new:
        flags |= os.O_EXCL
    return flags


def _set_output(
    cmd: Command,
    fname: str,
    target: int,
    *,
    append: bool,
    new: bool,
    log: Logger | None,
) -> int:
    redirection = Redirection(filename=fname, append=append, new=new)
    if target == STDOUT_FILENO:
        cmd.stdout = redirection
    else:
        cmd.stderr = redirection

    if new and file_test("e", fname) == 0:
        _report(log, f"File, '{fname}' already exists.")
        _report(log, lsdlh(fname))
        cmd.ioerr = errno.EEXIST
        return cmd.ioerr

    try:
        fd = os.open(fname, output_flags(append=append, new=new), FILE_MODE)
    except OSError as e:
        cmd.ioerr = e.errno or errno.EIO
        _report(log, f"open('{fname}') for writing failed: {e.strerror}")
        return cmd.ioerr
    return _install(cmd, fd, target, log)


def set_stdout(
    cmd: Command,
    fname: str,
    *,
    append: bool = False,
    new: bool = False,
    log: Logger | None = None,
) -> int:
    """Point standard output at ``fname``.

    Args:
        cmd: The command being prepared.
        fname: File to write to (created if missing).
        append: Append instead of truncating.
        new: Fail with ``EEXIST`` if the file already exists.
        log: Where to report problems.

    Returns:
        0 on success, otherwise the errno also stored on ``cmd.ioerr``.

    """
    return _set_output(cmd, fname, STDOUT_FILENO, append=append, new=new, log=log)


def set_stderr(
    cmd: Command,
    fname: str,
    *,
    append: bool = False,
    new: bool = False,
    log: Logger | None = None,
) -> int:
    """Point standard error at ``fname`` (see ``set_stdout``)."""
    return _set_output(cmd, fname, STDERR_FILENO, append=append, new=new, log=log)


# -- close-from ----------------------------------------------------------------


def _close(fd: int) -> int:
    """Close ``fd``; an already-closed descriptor is not an error."""
    try:
        os.close(fd)
    except OSError as e:
        if e.errno != errno.EBADF:
            return e.errno or errno.EIO
    return 0


def open_fds(fd_dir: str) -> list[int]:
    """Return the open descriptors listed in ``fd_dir``.

    Raises:
        OSError: If the directory cannot be read.

    """
    # os.listdir has closed its own descriptor by the time it returns.
    return sorted(int(name) for name in os.listdir(fd_dir) if name.isdigit())


def close_from_list(fds: list[int], fd_lo: int, keep: Collection[int] = ()) -> int:
    """Close the listed descriptors that are ``>= fd_lo`` and not kept.

    Returns:
        0, or the errno of the first close that failed.

    """
    for fd in fds:
        if fd < fd_lo or fd in keep:
            continue
        rv = _close(fd)
        if rv != 0:
            return rv
    return 0


def fd_limit() -> int:
    """Return the highest descriptor number worth probing, plus one."""
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    for limit in (hard, soft):
        if limit != resource.RLIM_INFINITY:
            return limit
    return os.sysconf("SC_OPEN_MAX")


def close_from_all(fd_lo: int, keep: Collection[int] = ()) -> int:
    """Close descriptors ``>= fd_lo`` by probing every number up to the limit.

    Returns:
        0, or the errno of the first close that failed.

    """
    try:
        max_fds = fd_limit()
    except (OSError, ValueError) as e:
        return getattr(e, "errno", None) or errno.EINVAL
    for fd in range(fd_lo, max_fds):
        if fd in keep:
            continue
        try:
            fcntl.fcntl(fd, fcntl.F_GETFD)
        except OSError:
            continue
        rv = _close(fd)
        if rv != 0:
            return rv
    return 0


def close_from(fd_lo: int, keep: Collection[int] = ()) -> int:
    """Close every open descriptor numbered ``fd_lo`` or higher.

    Args:
        fd_lo: Lowest descriptor to close.
        keep: Descriptors to leave open regardless.

    Returns:
        0 on success, or the errno of the first close that failed with
        something other than ``EBADF``.

    """
    # Free one descriptor first, in case the table is full and the
    # listing directory cannot be opened.
    if fd_lo not in keep:
        rv = _close(fd_lo)
        if rv != 0:
            return rv
    fd_lo += 1

    for fd_dir in _FD_DIRS:
        try:
            fds = open_fds(fd_dir)
        except OSError:
            continue
        return close_from_list(fds, fd_lo, keep)
    return close_from_all(fd_lo, keep)
