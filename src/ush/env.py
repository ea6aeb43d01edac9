"""Environment variables — the environment the target program inherits.

A launched program gets a copy of the launcher's environment at exec
time, so editing the launcher's own environment before exec is how
``--env``, ``--unsetenv`` and ``--clearenv`` take effect.

``Environment`` wraps a mutable mapping (``os.environ`` by default) and
adds the validation the launcher needs: a ``NAME=VALUE`` assignment must
name a proper identifier (letters, digits and ``_``, not starting with a
digit) and must contain the ``=``.
"""

from __future__ import annotations

import os
import re
from collections.abc import MutableMapping

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class EnvError(ValueError):
    """Raised when an environment assignment is malformed."""


def split_assignment(kv_assign: str) -> tuple[str, str]:
    """Split ``NAME=VALUE`` into its parts.

    Raises:
        EnvError: If the name is not an identifier or there is no ``=``.

    """
    name, sep, value = kv_assign.partition("=")
    if not _IDENT.fullmatch(name):
        msg = f"Invalid identifier, '{name}'"
        raise EnvError(msg)
    if not sep:
        msg = f"No value for identifier, '{kv_assign}'"
        raise EnvError(msg)
    return name, value


class Environment:
    """A validated view of a process environment.

    By default it edits ``os.environ`` directly, so changes are
    inherited by anything exec'd afterwards.  Tests pass a plain dict.
    """

    def __init__(self, target: MutableMapping[str, str] | None = None) -> None:
        """Wrap ``target`` (``os.environ`` when None)."""
        self._vars: MutableMapping[str, str] = os.environ if target is None else target

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the value for *key*, or *default* if not set."""
        return self._vars.get(key, default)

    def set(self, key: str, value: str) -> None:
        """Set *key* to *value* (creates or overwrites)."""
        self._vars[key] = value

    def assign(self, kv_assign: str) -> str:
        """Apply a ``NAME=VALUE`` assignment and return the name.

        Raises:
            EnvError: If the assignment is malformed.

        """
        name, value = split_assignment(kv_assign)
        self._vars[name] = value
        return name

    def delete(self, key: str) -> None:
        """Remove *key*; a missing key is ignored, as with ``unsetenv``."""
        self._vars.pop(key, None)

    def clear(self) -> None:
        """Remove every variable."""
        self._vars.clear()

    def items(self) -> list[tuple[str, str]]:
        """Return all (key, value) pairs."""
        return list(self._vars.items())

    def __contains__(self, key: object) -> bool:
        """Return True if *key* is set."""
        return key in self._vars

    def __len__(self) -> int:
        """Return the number of variables."""
        return len(self._vars)
