"""Tests for the environment the target program inherits.

``Environment`` edits a mapping in place, ``os.environ`` by default;
the tests hand it a plain dict so nothing leaks into the test process.
"""

import os

import pytest

from ush.env import EnvError, Environment, split_assignment


class TestSplitAssignment:
    """Verify NAME=VALUE parsing."""

    def test_simple(self) -> None:
        """Name and value are split at the first =."""
        assert split_assignment("PATH=/bin:/usr/bin") == ("PATH", "/bin:/usr/bin")

    def test_value_may_contain_equals(self) -> None:
        """Only the first = separates."""
        assert split_assignment("A=b=c") == ("A", "b=c")

    def test_empty_value(self) -> None:
        """NAME= sets an empty value."""
        assert split_assignment("EMPTY=") == ("EMPTY", "")

    def test_bad_identifier(self) -> None:
        """A name must be an identifier."""
        with pytest.raises(EnvError, match="Invalid identifier, '1X'"):
            split_assignment("1X=y")
        with pytest.raises(EnvError, match="Invalid identifier"):
            split_assignment("=y")

    def test_missing_equals(self) -> None:
        """An assignment needs an =."""
        with pytest.raises(EnvError, match="No value for identifier, 'NAME'"):
            split_assignment("NAME")


class TestEnvironment:
    """Verify the Environment wrapper."""

    def test_get_and_set(self) -> None:
        """Setting a variable should make it retrievable."""
        env = Environment({})
        env.set("HOME", "/root")
        assert env.get("HOME") == "/root"
        assert "HOME" in env

    def test_get_missing_with_default(self) -> None:
        """Getting a missing key with a default should return the default."""
        env = Environment({})
        assert env.get("MISSING") is None
        assert env.get("MISSING", "fallback") == "fallback"

    def test_assign(self) -> None:
        """assign applies NAME=VALUE to the target mapping."""
        target: dict[str, str] = {}
        env = Environment(target)
        assert env.assign("LANG=C") == "LANG"
        assert target == {"LANG": "C"}

    def test_delete_missing_is_ignored(self) -> None:
        """Like unsetenv, removing a missing name is not an error."""
        env = Environment({"A": "1"})
        env.delete("B")
        env.delete("A")
        assert len(env) == 0

    def test_clear(self) -> None:
        """clear empties the environment."""
        env = Environment({"A": "1", "B": "2"})
        env.clear()
        assert env.items() == []

    def test_defaults_to_os_environ(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without a target the process environment is edited."""
        monkeypatch.delenv("USH_TEST_VAR", raising=False)
        env = Environment()
        env.assign("USH_TEST_VAR=yes")
        assert os.environ["USH_TEST_VAR"] == "yes"
        monkeypatch.delenv("USH_TEST_VAR")
