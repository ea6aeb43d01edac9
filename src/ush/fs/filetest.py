"""Single-letter file tests, as in ``test -d`` or Perl's ``-d``.

``file_test("d", path)`` answers "is ``path`` a directory?".  Several
letters can be combined and all must hold: ``file_test("fr", path)``
means "a regular file that I can read".

Results are errno-style: 0 means every test passed, an errno value
means the file could not be examined (or a letter is unknown), and
``-1`` means the file exists but a test failed.

Letters:
    - Type: ``e`` exists, ``f`` regular, ``d`` directory, ``b`` block,
      ``c`` character, ``p`` FIFO, ``l`` symlink, ``S`` socket.
    - Size: ``z`` empty, ``s`` non-empty.
    - Mode bits: ``u`` setuid, ``g`` setgid, ``k`` sticky.
    - Owner: ``o`` owned by the effective uid, ``O`` by the real uid.
    - Access: ``r w x`` for the effective uid, ``R W X`` for the real uid.

A leading ``L`` applies the tests to a symlink itself (``lstat``)
instead of what it points to.  The name ``-`` means standard input.
"""

import errno
import os
import stat
from collections.abc import Callable

TEST_FAILED = -1

_ACCESS: dict[str, tuple[int, bool]] = {
    "r": (os.R_OK, True),
    "w": (os.W_OK, True),
    "x": (os.X_OK, True),
    "R": (os.R_OK, False),
    "W": (os.W_OK, False),
    "X": (os.X_OK, False),
}

_STAT_TESTS: dict[str, Callable[[os.stat_result], bool]] = {
    "e": lambda st: True,  # noqa: ARG005
    "f": lambda st: stat.S_ISREG(st.st_mode),
    "d": lambda st: stat.S_ISDIR(st.st_mode),
    "b": lambda st: stat.S_ISBLK(st.st_mode),
    "c": lambda st: stat.S_ISCHR(st.st_mode),
    "p": lambda st: stat.S_ISFIFO(st.st_mode),
    "l": lambda st: stat.S_ISLNK(st.st_mode),
    "S": lambda st: stat.S_ISSOCK(st.st_mode),
    "z": lambda st: st.st_size == 0,
    "s": lambda st: st.st_size != 0,
    "u": lambda st: bool(st.st_mode & stat.S_ISUID),
    "g": lambda st: bool(st.st_mode & stat.S_ISGID),
    "k": lambda st: bool(st.st_mode & stat.S_ISVTX),
    "o": lambda st: st.st_uid == os.geteuid(),
    "O": lambda st: st.st_uid == os.getuid(),
}


def file_test_access(fname: str, letter: str) -> int:
    """Apply one access test (``r w x R W X``)."""
    spec = _ACCESS.get(letter)
    if spec is None:
        return errno.EINVAL
    mode, effective = spec
    if os.access(fname, mode, effective_ids=effective and os.access in os.supports_effective_ids):
        return 0
    return errno.EACCES


def file_test_stat(st: os.stat_result, letter: str) -> int:
    """Apply one test that only needs the stat result."""
    predicate = _STAT_TESTS.get(letter)
    if predicate is None:
        return errno.EINVAL
    return 0 if predicate(st) else TEST_FAILED


def file_test(tests: str, fname: str) -> int:
    """Apply every test letter in ``tests`` to ``fname``.

    Returns:
        0 if all tests pass, ``TEST_FAILED`` if one does not, or an
        errno value if the file cannot be examined.

    """
    letters = tests
    try:
        if fname == "-":
            st = os.fstat(0)
        elif letters.startswith("L"):
            letters = letters[1:]
            st = os.lstat(fname)
        else:
            st = os.stat(fname)
    except OSError as e:
        return e.errno or errno.EIO

    for letter in letters:
        if letter in _ACCESS:
            rv = file_test_access(fname, letter)
        else:
            rv = file_test_stat(st, letter)
        if rv != 0:
            return rv
    return 0
