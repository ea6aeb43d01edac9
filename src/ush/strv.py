"""Growable string vector — the builder for a program's argument list.

A ``StringVector`` is an owned array of strings that tracks how many
slots are in use (``count``) separately from how many are allocated
(``capacity``).  Space is reserved up front, then filled with
``append``::

    sv = StringVector(grow=100)
    sv.reserve(2)
    sv.append("ls")
    sv.append("-l")

Capacity only ever grows, and only in whole multiples of the growth
increment: asking for 3 more slots with ``grow=100`` adds 100.  An
optional hard ``limit`` caps the capacity; exceeding it is treated as
running out of memory.

Failure policy:
    - **fatal** vectors raise ``StrvError``; the top level reports
      ``Fatal error: strv -- out of memory.`` and exits.
    - non-fatal vectors record ``ENOMEM`` on ``err``, return it, and
      stay exactly as they were.
"""

from __future__ import annotations

import errno
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

FATAL_NOMEM_MESSAGE = "Fatal error: strv -- out of memory."


class StrvError(Exception):
    """Raised when a fatal string vector runs out of room."""

    def __init__(self, message: str = FATAL_NOMEM_MESSAGE, *, code: int = errno.ENOMEM) -> None:
        """Create the error with an errno-style code."""
        super().__init__(message)
        self.code = code


class StringVector:
    """An owned, capacity-tracked array of strings.

    ``None`` is a valid item: the argument builder stores one as the
    terminating slot after the last argument.
    """

    def __init__(self, *, grow: int = 1, limit: int = 0, fatal: bool = False) -> None:
        """Create an empty vector.

        Args:
            grow: Growth increment in slots (0 is treated as 1).
            limit: Maximum capacity in slots (0 = unlimited).
            fatal: Raise ``StrvError`` instead of returning an error code.

        """
        self._items: list[str | None] = []
        self._capacity = 0
        self.grow = grow
        self.limit = limit
        self.fatal = fatal
        self.err = 0

    @property
    def count(self) -> int:
        """Return the number of slots in use."""
        return len(self._items)

    @property
    def capacity(self) -> int:
        """Return the number of slots allocated."""
        return self._capacity

    def _grow_by(self, n: int) -> int:
        new_capacity = self._capacity + n
        if self.limit != 0 and new_capacity > self.limit:
            return self._fail(errno.ENOMEM)
        self._capacity = new_capacity
        return 0

    def _fail(self, code: int) -> int:
        self.err = code
        if self.fatal:
            raise StrvError(code=code)
        return code

    def reserve(self, n: int) -> int:
        """Make room for ``n`` more items.

        Capacity grows by the smallest multiple of ``grow`` that fits
        ``count + n``.

        Args:
            n: Number of items the caller is about to append.

        Returns:
            0 on success, ``ENOMEM`` if a non-fatal vector cannot grow.

        Raises:
            StrvError: If a fatal vector cannot grow.

        """
        shortfall = self.count + n - self._capacity
        if shortfall <= 0:
            return 0
        step = self.grow or 1
        return self._grow_by(-(-shortfall // step) * step)

    def append(self, s: str | None) -> None:
        """Store ``s`` in the next reserved slot, taking ownership of it.

        Raises:
            StrvError: If no slot was reserved.

        """
        if self.count >= self._capacity:
            msg = f"strv: append without reserve (count={self.count}, capacity={self._capacity})"
            raise StrvError(msg, code=errno.ENOSPC)
        self._items.append(s)

    def extend(self, items: list[str]) -> int:
        """Reserve for and append several items.

        Returns:
            0 on success, or the ``reserve`` error (nothing appended).

        """
        rv = self.reserve(len(items))
        if rv != 0:
            return rv
        for item in items:
            self.append(item)
        return 0

    def free_strings(self) -> None:
        """Release every owned string; slots and capacity are kept."""
        if not self._items:
            return
        self._items = [None] * len(self._items)

    def free(self) -> None:
        """Release the backing array."""
        self._items = []
        self._capacity = 0

    def as_list(self) -> list[str | None]:
        """Return a copy of the items in insertion order."""
        return list(self._items)

    def __len__(self) -> int:
        """Return the number of slots in use."""
        return len(self._items)

    def __getitem__(self, index: int) -> str | None:
        """Return the item at ``index``."""
        return self._items[index]

    def __iter__(self) -> Iterator[str | None]:
        """Iterate over the items in insertion order."""
        return iter(self._items)

    def __repr__(self) -> str:
        """Show count, capacity and growth settings."""
        return (
            f"StringVector(count={self.count}, capacity={self._capacity}, "
            f"grow={self.grow}, limit={self.limit}, err={self.err}, fatal={self.fatal})"
        )
