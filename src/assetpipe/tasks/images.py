"""Raster image optimisation through the Tinify API.

Only sources newer than their destination are uploaded, so repeated
production builds do not spend API calls on unchanged images.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import tinify

from ..cache import filter_newer
from ..config import TINIFY_ENV_VAR, BuildConfig, Mode
from ..core import stage
from ..errors import MissingCredential, StageFailure
from ..logging import get_logger
from ..utils import expand_glob, mirror_path


log = get_logger("assetpipe.tasks.images")


def _optimize(key: str, source: Path, dest: Path) -> None:
    tinify.key = key
    dest.parent.mkdir(parents=True, exist_ok=True)
    tinify.from_file(str(source)).to_file(str(dest))


@stage(name="images")
async def optimize_images(config: BuildConfig, mode: Mode) -> list[Path]:
    spec = config.spec("images", mode)
    out_dir = config.path(spec.output_dir)
    sources = expand_glob(spec.input_glob, config.root)
    pairs = [(s, mirror_path(s, spec.input_glob, config.root, out_dir)) for s in sources]
    pending = filter_newer(pairs)
    log.info("%d image(s) matched, %d need optimising", len(sources), len(pending))
    if not pending:
        return []
    if not config.tinify_api_key:
        raise MissingCredential(TINIFY_ENV_VAR, "images")

    written: list[Path] = []
    for source, dest in pending:
        try:
            await asyncio.to_thread(_optimize, config.tinify_api_key, source, dest)
        except tinify.Error as e:
            raise StageFailure("images", f"{source.name}: {e}") from e
        written.append(dest)
        log.debug("Optimised %s", source.name)
    return written
