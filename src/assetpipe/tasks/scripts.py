"""TypeScript bundling stage.

The bundle is produced by an esbuild-compatible command line (`npx esbuild`
by default, configurable as `bundler`) as a single IIFE.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from ..config import BuildConfig, Mode
from ..core import stage
from ..errors import SourceSyntaxError, StageFailure
from ..logging import get_logger


log = get_logger("assetpipe.tasks.scripts")

# exit status used by shells and npx when the executable is missing
COMMAND_NOT_FOUND = 127


def bundle_output(config: BuildConfig, mode: Mode) -> Path:
    spec = config.spec("scripts", mode)
    name = spec.output_file_name or ("app.min.js" if mode is Mode.PROD else "app.js")
    return config.path(spec.output_dir) / name


def bundler_args(config: BuildConfig, mode: Mode) -> list[str]:
    args = [
        *config.bundler,
        str(config.path(config.script_entry)),
        "--bundle",
        "--format=iife",
        f"--outfile={bundle_output(config, mode)}",
    ]
    if mode is Mode.PROD:
        args.append("--minify")
    else:
        args.append("--sourcemap")
    return args


@stage(name="scripts", watch=lambda c: c.scripts.dev.input_glob, notify="reload")
async def bundle_scripts(config: BuildConfig, mode: Mode) -> list[Path]:
    entry = config.path(config.script_entry)
    if not entry.exists():
        raise StageFailure("scripts", f"entry point not found: {entry}")
    out = bundle_output(config, mode)
    out.parent.mkdir(parents=True, exist_ok=True)

    args = bundler_args(config, mode)
    log.debug("Running bundler: %s", " ".join(args))
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(config.root),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise StageFailure("scripts", f"bundler not found: {args[0]}") from e
    stdout, stderr = await proc.communicate()

    if proc.returncode != 0:
        detail = (stderr or stdout).decode("utf-8", errors="replace").strip()
        if proc.returncode == COMMAND_NOT_FOUND or not detail:
            raise StageFailure(
                "scripts", detail or f"bundler exited with {proc.returncode} and no output"
            )
        err = SourceSyntaxError(entry, detail)
        if mode is Mode.DEV:
            log.error("Bundle failed, keeping previous output: %s", err)
            return []
        raise err

    written = [out]
    sourcemap = out.with_name(out.name + ".map")
    if mode is Mode.DEV and sourcemap.exists():
        written.append(sourcemap)
    log.info("Bundled %s -> %s", config.script_entry, out)
    return written
