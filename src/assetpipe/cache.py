"""Incremental filtering: pass through only sources newer than their output."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable


def safe_stat(path: Path) -> dict:
    try:
        st = path.stat()
        return {"size": st.st_size, "mtime": st.st_mtime}
    except FileNotFoundError:
        return {"size": None, "mtime": None}


def is_newer(src: Path, dest: Path) -> bool:
    """True when `dest` is missing or older than `src`."""
    dest_mtime = safe_stat(dest)["mtime"]
    if dest_mtime is None:
        return True
    src_mtime = safe_stat(src)["mtime"]
    return src_mtime is None or src_mtime > dest_mtime


def filter_newer(pairs: Iterable[tuple[Path, Path]]) -> list[tuple[Path, Path]]:
    """Keep `(src, dest)` pairs whose destination needs regenerating."""
    return [(s, d) for s, d in pairs if is_newer(s, d)]


def snapshot(paths: Iterable[Path]) -> dict[Path, float | None]:
    """Modification times keyed by path, used by the polling watcher."""
    return {p: safe_stat(p)["mtime"] for p in paths}
