"""Delete every generated artifact: the dist tree and dev outputs in src."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

from ..config import BuildConfig, Mode
from ..core import stage
from ..errors import ConfigError
from ..logging import get_logger


log = get_logger("assetpipe.tasks.clean")


def _remove(path: Path) -> bool:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        return True
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False


@stage(name="clean")
async def clean_static_files(config: BuildConfig, mode: Mode) -> list[Path]:
    """Returns the paths that existed and were removed."""
    removed: list[Path] = []
    for target in config.clean_targets:
        if target == config.root or target in config.root.parents:
            raise ConfigError(f"Refusing to delete project root or its parents: {target}")
        if await asyncio.to_thread(_remove, target):
            removed.append(target)
            log.info("Removed %s", target)
    if not removed:
        log.info("Nothing to clean")
    return removed
