"""Tests for glob expansion, path mirroring and the newer-than filter."""

import os
from pathlib import Path

from assetpipe.cache import filter_newer, is_newer
from assetpipe.utils import expand_alternatives, expand_glob, glob_base, mirror_path
from conftest import write


def test_expand_alternatives() -> None:
    assert expand_alternatives("src/images/**/*.+(WebP|jpeg|png)") == [
        "src/images/**/*.WebP",
        "src/images/**/*.jpeg",
        "src/images/**/*.png",
    ]
    assert expand_alternatives("src/**/*.html") == ["src/**/*.html"]


def test_glob_base() -> None:
    assert glob_base("src/scss/**/*.scss") == Path("src/scss")
    assert glob_base("src/images/**/*.+(WebP|png)") == Path("src/images")
    assert glob_base("*.html") == Path(".")


def test_expand_glob_recurses_and_matches_top_level(tmp_path: Path) -> None:
    write(tmp_path / "src/index.html", "")
    write(tmp_path / "src/pages/about.html", "")
    write(tmp_path / "src/pages/notes.txt", "")
    found = expand_glob("src/**/*.html", tmp_path)
    assert found == [tmp_path / "src/index.html", tmp_path / "src/pages/about.html"]


def test_expand_glob_extglob(tmp_path: Path) -> None:
    write(tmp_path / "src/images/a.png", "")
    write(tmp_path / "src/images/deep/b.jpeg", "")
    write(tmp_path / "src/images/c.gif", "")
    found = expand_glob("src/images/**/*.+(WebP|jpeg|png)", tmp_path)
    assert [p.name for p in found] == ["a.png", "b.jpeg"]


def test_expand_glob_no_matches(tmp_path: Path) -> None:
    assert expand_glob("src/images/**/*.png", tmp_path) == []


def test_mirror_path_keeps_subdirectories(tmp_path: Path) -> None:
    src = tmp_path / "src/images/icons/logo.svg"
    dest = mirror_path(src, "src/images/**/*.svg", tmp_path, tmp_path / "dist/images")
    assert dest == tmp_path / "dist/images/icons/logo.svg"


class TestNewer:
    def test_missing_destination_is_newer(self, tmp_path: Path) -> None:
        src = write(tmp_path / "a.png", "x")
        assert is_newer(src, tmp_path / "out/a.png")

    def test_up_to_date_destination_is_skipped(self, tmp_path: Path) -> None:
        src = write(tmp_path / "a.png", "x")
        dest = write(tmp_path / "out/a.png", "y")
        os.utime(src, (1_000, 1_000))
        os.utime(dest, (2_000, 2_000))
        assert not is_newer(src, dest)
        assert filter_newer([(src, dest)]) == []

    def test_modified_source_is_newer(self, tmp_path: Path) -> None:
        src = write(tmp_path / "a.png", "x")
        dest = write(tmp_path / "out/a.png", "y")
        os.utime(dest, (1_000, 1_000))
        os.utime(src, (2_000, 2_000))
        assert filter_newer([(src, dest)]) == [(src, dest)]
