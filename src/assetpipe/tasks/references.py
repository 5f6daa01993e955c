"""Point emitted markup at the production asset filenames.

Runs after styles, scripts and markup: it needs the emitted HTML under
`dist` and derives the renames from the same naming rules those stages use.
"""

from __future__ import annotations

import re
from pathlib import Path

from ..config import BuildConfig, Mode
from ..core import stage
from ..logging import get_logger
from ..utils import expand_glob
from .scripts import bundle_output
from .styles import css_name, stylesheet_sources


log = get_logger("assetpipe.tasks.references")


def reference_map(config: BuildConfig) -> dict[str, str]:
    """Development filename -> production filename."""
    renames: dict[str, str] = {}
    for source in stylesheet_sources(config, Mode.PROD):
        renames[css_name(source, Mode.DEV)] = css_name(source, Mode.PROD)
    dev_js = bundle_output(config, Mode.DEV).name
    prod_js = bundle_output(config, Mode.PROD).name
    if dev_js != prod_js:
        renames[dev_js] = prod_js
    return renames


def rewrite_references(text: str, renames: dict[str, str]) -> str:
    """Replace whole filename tokens only, so `myapp.js` is left alone."""
    if not renames:
        return text
    alternatives = "|".join(re.escape(k) for k in sorted(renames, key=len, reverse=True))
    pattern = re.compile(rf"(?<![\w.-])({alternatives})(?![\w-]|\.\w)")
    return pattern.sub(lambda m: renames[m.group(1)], text)


@stage(name="references")
async def update_markup_references(config: BuildConfig, mode: Mode) -> list[Path]:
    renames = reference_map(config)
    dist = config.path(config.dist_base)
    written: list[Path] = []
    for page in expand_glob("**/*.html", dist) if dist.exists() else []:
        text = page.read_text(encoding="utf-8")
        updated = rewrite_references(text, renames)
        if updated != text:
            page.write_text(updated, encoding="utf-8")
            written.append(page)
    log.info("Rewrote references in %d file(s): %s", len(written), renames)
    return written
