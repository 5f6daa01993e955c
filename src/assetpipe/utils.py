"""Glob expansion and output path helpers shared by the stages."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

# extglob alternation such as `*.+(png|jpeg)`
_ALTERNATION = re.compile(r"[+@]\(([^()]*)\)")
_MAGIC = set("*?[")


def expand_alternatives(pattern: str) -> list[str]:
    """Expand `+(a|b)` / `@(a|b)` groups into plain glob patterns."""
    m = _ALTERNATION.search(pattern)
    if not m:
        return [pattern]
    out: list[str] = []
    for option in m.group(1).split("|"):
        out.extend(expand_alternatives(pattern[: m.start()] + option + pattern[m.end():]))
    return out


def glob_base(pattern: str) -> Path:
    """Leading directories of a glob that contain no wildcard."""
    parts = []
    for part in Path(pattern).parts[:-1]:
        if any(ch in part for ch in _MAGIC) or _ALTERNATION.search(part):
            break
        parts.append(part)
    return Path(*parts) if parts else Path(".")


def expand_glob(pattern: str, root: Path) -> list[Path]:
    """Files under `root` matching `pattern`, sorted and de-duplicated."""
    found: set[Path] = set()
    for pat in expand_alternatives(pattern):
        for p in root.glob(pat):
            if p.is_file():
                found.add(p)
    return sorted(found)


def expand_globs(patterns: Iterable[str], root: Path) -> list[Path]:
    found: set[Path] = set()
    for pat in patterns:
        found.update(expand_glob(pat, root))
    return sorted(found)


def mirror_path(src: Path, pattern: str, root: Path, output_dir: Path) -> Path:
    """Destination of `src` under `output_dir`, keeping its path below the glob base."""
    base = root / glob_base(pattern)
    try:
        rel = src.relative_to(base)
    except ValueError:
        rel = Path(src.name)
    return output_dir / rel


def write_text(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
