"""End-to-end tests for the ``ush`` command.

Replace mode turns the launcher into the target program, so those
tests run ``ush`` in a subprocess.  Fork mode and the error paths are
safe to run in-process through ``ush()``.
"""

import errno
import os
import subprocess
import sys
from pathlib import Path

import pytest

from ush.cli import EXIT_OPTION_ERROR, EXIT_USAGE, ush, ush_argv
from ush.config import Context
from ush.options import USAGE_TEXT

SRC_DIR = Path(__file__).resolve().parents[1] / "src"


def _env() -> dict[str, str]:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC_DIR), env.get("PYTHONPATH")]))
    env.pop("USH_DEBUG", None)
    env.pop("USH_VERBOSE", None)
    return env


def _ush(*args: str, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    """Run ``python -m ush.cli *args`` and capture its output."""
    return subprocess.run(  # noqa: S603
        [sys.executable, "-m", "ush.cli", *args],
        capture_output=True,
        text=True,
        cwd=cwd,
        env=_env(),
        check=False,
    )


def _ush_closed(closing: str, *args: str) -> subprocess.CompletedProcess[str]:
    """Run ``ush *args`` from ``sh`` with a descriptor closed (``closing`` is e.g. ``>&-``)."""
    script = f'exec "$0" -m ush.cli "$@" {closing}'
    return subprocess.run(  # noqa: S603
        ["sh", "-c", script, sys.executable, *args],  # noqa: S607
        capture_output=True,
        text=True,
        env=_env(),
        check=False,
    )


class TestReplaceMode:
    """The launcher becomes the program."""

    def test_exit_code_passes_through(self) -> None:
        """The program's exit code is the launcher's."""
        result = _ush("-c", "sh", "-c", "exit 7")
        assert result.returncode == 7  # noqa: PLR2004

    def test_exec_failure_exits_with_errno(self) -> None:
        """A missing program exits with ENOENT and says why."""
        result = _ush("-c", "/nonexistent/ush-test-program")
        assert result.returncode == errno.ENOENT
        assert "execvp()" in result.stderr + result.stdout

    def test_stdout_redirect(self, tmp_path: Path) -> None:
        """--stdout sends the program's output to a file."""
        out = tmp_path / "out.txt"
        result = _ush(f"--stdout={out}", "-c", "echo", "hello")
        assert result.returncode == 0
        assert out.read_text() == "hello\n"
        assert result.stdout == ""

    def test_chdir_and_umask(self, tmp_path: Path) -> None:
        """--chdir and --umask are inherited by the program."""
        result = _ush("--chdir", str(tmp_path), "--umask=077", "-c", "sh", "-c", "pwd; umask")
        lines = result.stdout.split()
        assert Path(lines[0]).resolve() == tmp_path.resolve()
        assert int(lines[1], 8) == 0o077

    def test_env(self) -> None:
        """--env sets a variable for the program."""
        result = _ush("--env=USH_GREETING=hi there", "-c", "sh", "-c", 'echo "$USH_GREETING"')
        assert result.stdout == "hi there\n"

    def test_script(self, tmp_path: Path) -> None:
        """A script supplies options and one argument per line."""
        out = tmp_path / "out.txt"
        script = tmp_path / "greet.ush"
        script.write_text(
            f"# greet everybody on the command line\n"
            f"--stdout={out}\n"
            f"--replace=@ARGS@\n"
            f"--\n"
            f"printf\n"
            f"%s!\\n\n"
            f"@ARGS@\n"
        )
        result = _ush(str(script), "alice", "bob smith")
        assert result.returncode == 0
        assert out.read_text() == "alice!\nbob smith!\n"

    def test_show_argv(self) -> None:
        """--show-argv prints the vector before running it."""
        result = _ush("--show-argv", "-c", "true", "x")
        assert "[1] 'x'" in result.stdout + result.stderr


class TestClosedStandardStreams:
    """The launcher may be started with stdout or stderr closed."""

    def test_stdout_closed(self) -> None:
        """Replace mode still runs the program."""
        result = _ush_closed(">&-", "-c", "sh", "-c", "exit 5")
        assert result.returncode == 5  # noqa: PLR2004
        assert "Traceback" not in result.stderr

    def test_stdout_closed_fork(self) -> None:
        """Fork mode still runs and waits for the program."""
        result = _ush_closed(">&-", "--fork", "-c", "sh", "-c", "exit 5")
        assert result.returncode == 5  # noqa: PLR2004
        assert "Traceback" not in result.stderr

    def test_stderr_closed_exec_failure(self) -> None:
        """A failed exec still exits with the errno when there is nowhere to report it."""
        result = _ush_closed("2>&-", "-c", "/nonexistent/ush-test-program")
        assert result.returncode == errno.ENOENT
        assert "Traceback" not in result.stdout

    def test_stdout_redirect_onto_closed_slot(self, tmp_path: Path) -> None:
        """--stdout supplies the missing standard output."""
        out = tmp_path / "out.txt"
        result = _ush_closed(">&-", f"--stdout={out}", "-c", "echo", "hello")
        assert result.returncode == 0
        assert out.read_text() == "hello\n"


class TestInProcess:
    """Paths that never replace the test process."""

    def test_fork_exit_code(self) -> None:
        """Fork mode returns the child's exit code."""
        assert ush(["--fork", "-c", "sh", "-c", "exit 5"]) == 5  # noqa: PLR2004

    def test_fork_signal(self) -> None:
        """Fork mode maps death by signal to 128 + signal."""
        assert ush(["--fork", "-c", "sh", "-c", "kill -KILL $$"]) == 128 + 9  # noqa: PLR2004

    def test_fork_script(self, tmp_path: Path) -> None:
        """A forking script returns the child's exit code."""
        script = tmp_path / "s"
        script.write_text("--fork\n--\nsh\n-c\nexit 4\n")
        assert ush([str(script)]) == 4  # noqa: PLR2004

    def test_no_command(self) -> None:
        """Options without a command are a usage error."""
        ctx = Context()
        assert ush_argv(["ush", "-v"], ctx=ctx) == EXIT_USAGE
        assert "Must supply at least a command name." in ctx.log.messages()

    def test_bad_option(self) -> None:
        """An unknown option is reported with usage."""
        ctx = Context()
        assert ush_argv(["ush", "--bogus", "x"], ctx=ctx) == EXIT_OPTION_ERROR
        assert USAGE_TEXT in ctx.log.messages()

    def test_io_error(self, tmp_path: Path) -> None:
        """A failed redirection stops before running."""
        ctx = Context()
        missing = str(tmp_path / "missing")
        assert ush_argv(["ush", f"--stdin={missing}", "-c", "true"], ctx=ctx) == EXIT_OPTION_ERROR

    def test_script_is_directory(self, tmp_path: Path) -> None:
        """A directory given as the script is EISDIR."""
        assert ush_argv(["ush", str(tmp_path)], ctx=Context()) == errno.EISDIR

    def test_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        """--help exits 0 after printing usage."""
        assert ush(["--help"]) == 0
        assert capsys.readouterr().out == USAGE_TEXT
