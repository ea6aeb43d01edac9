"""``ls -dlh`` style listings for error reports.

When something goes wrong with a file (the script is a directory, an
output file already exists, a directory cannot be entered) the most
useful thing to show next to the error is what ``ls -dlh`` would say
about it: type and permissions, owner, group, size and mtime.

A listing is a diagnostic, so it never fails: anything that cannot be
looked up is shown as ``?``.
"""

import grp
import os
import pwd
import stat
import time

_SUFFIXES = ("", "K", "M", "G", "T", "P", "E", "Z")


def si_suffix(n: int, *, base: int = 1024) -> str:
    """Format ``n`` as a short number with a size suffix.

    The number is divided down until it is below ``base``.  A remainder
    worth more than a tenth is shown as one decimal place, so 1774 is
    ``1.7K`` but 4096 is ``4K``.

    Args:
        n: A non-negative size.
        base: 1024 (binary) or 1000 (decimal).

    """
    mag = 0
    rem = 0
    while n >= base and mag < len(_SUFFIXES) - 1:
        rem = n % base
        n //= base
        mag += 1
    if mag == 0:
        return str(n)
    tenth = base // 10
    if rem > tenth:
        return f"{n}.{min(rem // tenth, 9)}{_SUFFIXES[mag]}"
    return f"{n}{_SUFFIXES[mag]}"


def _user_name(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


def _group_name(gid: int) -> str:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)


def format_listing(fname: str, st: os.stat_result) -> str:
    """Format one ``ls -dlh`` line for an already-stat'ed file."""
    mode = st.st_mode
    if stat.S_ISCHR(mode) or stat.S_ISBLK(mode):
        size = f"{os.major(st.st_rdev)}, {os.minor(st.st_rdev)}"
    else:
        size = si_suffix(st.st_size)
    mtime = time.strftime("%Y-%m-%d %H:%M", time.localtime(st.st_mtime))
    owner = _user_name(st.st_uid)
    group = _group_name(st.st_gid)
    line = f"{stat.filemode(mode)} {st.st_nlink} {owner} {group} {size:>5} {mtime} {fname}"
    if stat.S_ISLNK(mode):
        try:
            line += f" -> {os.readlink(fname)}"
        except OSError:
            line += " -> ?"
    return line


def lsdlh(fname: str) -> str:
    """Return the ``ls -dlh`` line for ``fname`` (``? fname`` if it cannot be stat'ed)."""
    try:
        st = os.lstat(fname)
    except OSError:
        return f"? {fname}"
    return format_listing(fname, st)
