"""SVG minification with scour."""

from __future__ import annotations

import asyncio
from pathlib import Path
from xml.parsers.expat import ExpatError

from scour import scour

from ..config import BuildConfig, Mode
from ..core import stage
from ..errors import SourceSyntaxError
from ..logging import get_logger
from ..utils import expand_glob, mirror_path, write_text


log = get_logger("assetpipe.tasks.svg")


def scour_options():
    options = scour.sanitizeOptions()
    options.remove_metadata = True
    options.strip_comments = True
    options.strip_xml_prolog = True
    options.indent_type = "none"
    options.newlines = False
    return options


def minify_svg(text: str) -> str:
    return scour.scourString(text, scour_options())


@stage(name="svg")
async def optimize_svgs(config: BuildConfig, mode: Mode) -> list[Path]:
    spec = config.spec("svg", mode)
    out_dir = config.path(spec.output_dir)
    written: list[Path] = []
    for source in expand_glob(spec.input_glob, config.root):
        text = source.read_text(encoding="utf-8")
        try:
            out = await asyncio.to_thread(minify_svg, text)
        except ExpatError as e:
            raise SourceSyntaxError(source, f"invalid SVG: {e}") from e
        dest = mirror_path(source, spec.input_glob, config.root, out_dir)
        written.append(write_text(dest, out))
    log.info("Minified %d SVG file(s)", len(written))
    return written
