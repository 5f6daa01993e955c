"""HTML minification: strip comments and collapse whitespace."""

from __future__ import annotations

import asyncio
from pathlib import Path

import minify_html

from ..config import BuildConfig, Mode
from ..core import stage
from ..logging import get_logger
from ..utils import expand_glob, mirror_path, write_text


log = get_logger("assetpipe.tasks.markup")


def minify_markup(text: str) -> str:
    return minify_html.minify(
        text,
        keep_comments=False,
        keep_closing_tags=True,
        keep_html_and_head_opening_tags=True,
    )


@stage(name="markup")
async def optimize_markup(config: BuildConfig, mode: Mode) -> list[Path]:
    spec = config.spec("markup", mode)
    out_dir = config.path(spec.output_dir)
    written: list[Path] = []
    for source in expand_glob(spec.input_glob, config.root):
        if out_dir in source.parents:
            # output tree nested under the input glob
            continue
        text = source.read_text(encoding="utf-8")
        out = await asyncio.to_thread(minify_markup, text)
        dest = mirror_path(source, spec.input_glob, config.root, out_dir)
        written.append(write_text(dest, out))
    log.info("Minified %d markup file(s)", len(written))
    return written
