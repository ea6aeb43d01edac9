"""Tests for ``ls -dlh`` style listings."""

from pathlib import Path

import pytest

from ush.fs.listing import lsdlh, si_suffix


class TestSiSuffix:
    """Verify human-readable sizes."""

    @pytest.mark.parametrize(
        ("n", "expected"),
        [
            (0, "0"),
            (1023, "1023"),
            (1024, "1K"),
            (1774, "1.7K"),
            (4096, "4K"),
            (1024 * 1024, "1M"),
            (3 * 1024 * 1024 * 1024, "3G"),
        ],
    )
    def test_binary(self, n: int, expected: str) -> None:
        """Sizes shrink by 1024 per suffix."""
        assert si_suffix(n) == expected

    def test_decimal(self) -> None:
        """base=1000 gives decimal suffixes."""
        assert si_suffix(1500, base=1000) == "1.5K"


class TestLsdlh:
    """Verify listing lines."""

    def test_regular_file(self, tmp_path: Path) -> None:
        """A file shows its mode, size and name."""
        f = tmp_path / "notes.txt"
        f.write_bytes(b"x" * 10)
        f.chmod(0o640)
        line = lsdlh(str(f))
        assert line.startswith("-rw-r-----")
        assert " 10 " in line
        assert line.endswith(str(f))

    def test_directory(self, tmp_path: Path) -> None:
        """A directory listing starts with d."""
        assert lsdlh(str(tmp_path)).startswith("d")

    def test_symlink_shows_target(self, tmp_path: Path) -> None:
        """A symlink is listed itself, with its target."""
        link = tmp_path / "link"
        link.symlink_to("elsewhere")
        line = lsdlh(str(link))
        assert line.startswith("l")
        assert line.endswith(f"{link} -> elsewhere")

    def test_missing_file(self, tmp_path: Path) -> None:
        """A file that cannot be stat'ed is shown with ?."""
        missing = tmp_path / "missing"
        assert lsdlh(str(missing)) == f"? {missing}"
