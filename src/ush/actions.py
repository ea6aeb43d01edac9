"""Pre-exec actions — working directory, umask, descriptors, environment.

These run while options are being processed, so by the time the target
program is exec'd the launcher is already in the right directory, with
the right umask, open descriptors and environment.  None of them can be undone after
exec, which is why failures are recorded on the command (``ioerr``) and
checked before anything runs.

Each action returns 0 on success or an errno value.
"""

from __future__ import annotations

import errno
import os
from typing import TYPE_CHECKING

from ush.env import EnvError, Environment
from ush.fs.listing import lsdlh
from ush.fs.redirect import FIRST_FREE_FD, close_from

if TYPE_CHECKING:
    from ush.command import Command
    from ush.config import Context

MAX_UMASK = 0o777

_WHO_SHIFT = {"u": 6, "g": 3, "o": 0}
_PERM_BITS = {"r": 4, "w": 2, "x": 1}


def cmd_chdir(ctx: Context, cmd: Command, directory: str) -> int:
    """Change to ``directory`` before the program runs."""
    try:
        os.chdir(directory)
    except OSError as e:
        err = e.errno or errno.EIO
        ctx.log.error(f"chdir('{directory}') failed; {e.strerror}", source="chdir")
        if err != errno.ENOENT:
            ctx.log.error(lsdlh(directory), source="chdir")
        cmd.ioerr = err
        return err
    return 0


def is_octal(s: str) -> bool:
    """Return True if ``s`` is a non-empty string of octal digits."""
    return bool(s) and all(c in "01234567" for c in s)


def parse_umask(mask_str: str) -> int:
    """Parse a symbolic umask such as ``u=rwx,g=rx,o=``.

    Each of ``u``, ``g``, ``o`` may appear at most once, and each
    permission letter at most once within it.  Classes that are not
    mentioned contribute no bits.

    Raises:
        ValueError: On any syntax error.

    """
    masks = dict.fromkeys(_WHO_SHIFT, 0)
    seen: set[str] = set()
    for clause in mask_str.split(","):
        who, sep, perms = clause.partition("=")
        if who not in _WHO_SHIFT or not sep or who in seen:
            msg = f"bad umask clause, '{clause}'"
            raise ValueError(msg)
        seen.add(who)
        for p in perms:
            bit = _PERM_BITS.get(p)
            if bit is None or masks[who] & bit:
                msg = f"bad permission letter, '{p}'"
                raise ValueError(msg)
            masks[who] |= bit
    return sum(bits << _WHO_SHIFT[who] for who, bits in masks.items())


def cmd_umask(ctx: Context, cmd: Command, mask_str: str) -> int:
    """Set the umask the program inherits.

    Accepts octal (``022``) or symbolic (``u=rwx,g=rx,o=rx``) masks.
    """
    if is_octal(mask_str):
        mask = int(mask_str, 8)
        if mask > MAX_UMASK:
            ctx.log.error(f"Invalid umask, '{mask_str}'.", source="umask")
            ctx.log.error("umask must be in 0..0777 (octal).", source="umask")
            cmd.ioerr = errno.ERANGE
            return errno.ERANGE
    else:
        try:
            mask = parse_umask(mask_str)
        except ValueError as e:
            ctx.log.error(f"Invalid umask, '{mask_str}'. {e}", source="umask")
            cmd.ioerr = errno.EINVAL
            return errno.EINVAL
    old = os.umask(mask)
    ctx.trace(f"umask {old:03o} -> {mask:03o}", source="umask")
    return 0


def cmd_close_from(ctx: Context, _cmd: Command, arg: str) -> int:
    """Close every descriptor from ``arg`` upward, sparing the protected ones.

    The bound must be a plain decimal number, and at least 3 so that the
    standard streams (and any redirections installed on them) survive.
    """
    if not arg.isdigit() or not arg.isascii():
        ctx.log.error(f"--close-from: {arg} argument must be numeric.", source="close-from")
        return errno.EDOM
    start_fd = int(arg)
    if start_fd < FIRST_FREE_FD:
        ctx.log.error(
            f"--close-from: {start_fd} would close a standard stream; use {FIRST_FREE_FD} or more.",
            source="close-from",
        )
        return errno.EINVAL
    ctx.trace(f"close_from: start_fd={start_fd}", source="close-from")
    rv = close_from(start_fd, keep=ctx.protected_fds)
    if rv:
        ctx.log.error(f"close_from({start_fd}) failed; rv={rv}.", source="close-from")
    return rv


def cmd_env(ctx: Context, _cmd: Command, kv_assign: str, *, env: Environment | None = None) -> int:
    """Apply a ``NAME=VALUE`` assignment to the environment."""
    env = env if env is not None else Environment()
    try:
        env.assign(kv_assign)
    except EnvError as e:
        ctx.log.error(f"ush::env: {e}", source="env")
        return errno.EINVAL
    return 0


def cmd_unsetenv(ctx: Context, _cmd: Command, name: str, *, env: Environment | None = None) -> int:
    """Remove ``name`` from the environment."""
    env = env if env is not None else Environment()
    env.delete(name)
    ctx.trace(f"unsetenv {name}", source="env")
    return 0


def cmd_clearenv(ctx: Context, _cmd: Command, *, env: Environment | None = None) -> int:
    """Empty the environment."""
    env = env if env is not None else Environment()
    env.clear()
    ctx.trace("clearenv", source="env")
    return 0
