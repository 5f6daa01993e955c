"""Pipeline composer: maps task names to pipelines.

`prod` is strictly ordered. `references` needs the renamed style/script
outputs and the emitted markup on disk; `purge` needs the final markup and
scripts and works on the minified stylesheet.
"""

from __future__ import annotations

from .bridge import ReloadBridge
from .config import BuildConfig, Mode
from .core import Pipeline, spec_of
from .tasks.clean import clean_static_files
from .tasks.images import optimize_images
from .tasks.markup import optimize_markup
from .tasks.purge import purge_styles
from .tasks.references import update_markup_references
from .tasks.scripts import bundle_scripts
from .tasks.styles import compile_styles
from .tasks.svg import optimize_svgs
from .tasks.watch import watch_stage

PROD_ORDER = (
    clean_static_files,
    compile_styles,
    bundle_scripts,
    optimize_images,
    optimize_svgs,
    optimize_markup,
    update_markup_references,
    purge_styles,
)


def build_registry(
    config: BuildConfig, bridge: ReloadBridge | None = None
) -> dict[str, Pipeline]:
    """Build the `dev`, `prod` and `clean` pipelines for `config`."""
    bridge = bridge or ReloadBridge()
    bridge.init(config)
    styles = spec_of(compile_styles)
    scripts = spec_of(bundle_scripts)
    return {
        "dev": Pipeline(
            "dev",
            [styles, scripts, watch_stage(bridge, [styles, scripts])],
            composition="parallel",
            mode=Mode.DEV,
            bridge=bridge,
        ),
        "prod": Pipeline(
            "prod", [spec_of(fn) for fn in PROD_ORDER], composition="series", mode=Mode.PROD
        ),
        "clean": Pipeline("clean", [spec_of(clean_static_files)], mode=Mode.PROD),
    }
