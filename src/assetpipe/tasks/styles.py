"""Sass compilation stage.

Development builds write expanded CSS next to the sources (`src/css`) so the
live-reload bridge can inject it; production builds write compressed
`<name>.min.css` files under `dist/css`.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import sass

from ..config import BuildConfig, Mode
from ..core import stage
from ..errors import SourceSyntaxError
from ..logging import get_logger
from ..utils import expand_glob, mirror_path, write_text


log = get_logger("assetpipe.tasks.styles")


def stylesheet_sources(config: BuildConfig, mode: Mode) -> list[Path]:
    """Entry stylesheets; Sass partials (`_name.scss`) are only imported."""
    spec = config.spec("styles", mode)
    return [p for p in expand_glob(spec.input_glob, config.root) if not p.name.startswith("_")]


def css_name(source: Path, mode: Mode) -> str:
    return f"{source.stem}.min.css" if mode is Mode.PROD else f"{source.stem}.css"


def _compile(source: Path, mode: Mode) -> str:
    return sass.compile(
        filename=str(source),
        output_style="compressed" if mode is Mode.PROD else "expanded",
        include_paths=[str(source.parent)],
    )


@stage(name="styles", watch=lambda c: c.styles.dev.input_glob, notify="stream")
async def compile_styles(config: BuildConfig, mode: Mode) -> list[Path]:
    spec = config.spec("styles", mode)
    out_dir = config.path(spec.output_dir)
    written: list[Path] = []
    for source in stylesheet_sources(config, mode):
        try:
            css = await asyncio.to_thread(_compile, source, mode)
        except sass.CompileError as e:
            err = SourceSyntaxError(source, str(e).strip())
            if mode is Mode.DEV:
                # keep the previous output in place, carry on with other files
                log.error("Sass error, skipping: %s", err)
                continue
            raise err from e
        dest = mirror_path(source, spec.input_glob, config.root, out_dir)
        dest = dest.with_name(css_name(source, mode))
        written.append(write_text(dest, css))
        log.debug("Wrote %s", dest)
    log.info("Compiled %d stylesheet(s) into %s", len(written), spec.output_dir)
    return written
