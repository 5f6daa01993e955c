"""Build configuration: asset paths per category and runtime settings.

The configuration is built once by `load_config()` and passed explicitly to
the pipeline composer. Values come from built-in defaults, optionally
overridden by a YAML file; the Tinify API key comes from the environment
(a project-level `.env` is honoured).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .errors import ConfigError
from .logging import get_logger


DEFAULT_CONFIG_FILE = "assets.yaml"
TINIFY_ENV_VAR = "TINIFY_API_KEY"

CATEGORIES = ("styles", "scripts", "images", "svg", "markup")

log = get_logger("assetpipe.config")


class Mode(str, Enum):
    DEV = "dev"
    PROD = "prod"


@dataclass(frozen=True)
class PathSpec:
    """Where a category's sources live and where its artifacts go."""

    input_glob: str
    output_dir: str
    output_file_name: str | None = None

    def __post_init__(self) -> None:
        if not self.input_glob or not str(self.input_glob).strip():
            raise ConfigError("PathSpec.input_glob must be non-empty")
        if not self.output_dir or not str(self.output_dir).strip():
            raise ConfigError("PathSpec.output_dir must be non-empty")


@dataclass(frozen=True)
class AssetPaths:
    """Dev and prod path specs for one asset category.

    `dev` is None for categories that are only processed by the production
    pipeline (images, SVGs, markup).
    """

    prod: PathSpec
    dev: PathSpec | None = None


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 3000
    base_dir: str = "src"
    poll_interval: float = 0.3


@dataclass(frozen=True)
class BuildConfig:
    root: Path
    styles: AssetPaths
    scripts: AssetPaths
    images: AssetPaths
    svg: AssetPaths
    markup: AssetPaths
    script_entry: str = "src/typescript/app.ts"
    dist_base: str = "dist"
    bundler: tuple[str, ...] = ("npx", "esbuild")
    purge_content: tuple[str, ...] = ("dist/**/*.html", "dist/**/*.js")
    purge_safelist: tuple[str, ...] = ()
    server: ServerConfig = field(default_factory=ServerConfig)
    runs_dir: str = "runs"
    tinify_api_key: str | None = None

    def path(self, rel: str | Path) -> Path:
        """Resolve a project-relative path against the project root."""
        p = Path(rel)
        return p if p.is_absolute() else self.root / p

    def spec(self, category: str, mode: Mode) -> PathSpec:
        if category not in CATEGORIES:
            raise ConfigError(f"Unknown asset category: {category}")
        paths: AssetPaths = getattr(self, category)
        if mode is Mode.DEV:
            if paths.dev is None:
                raise ConfigError(f"Category '{category}' has no development output")
            return paths.dev
        return paths.prod

    @property
    def clean_targets(self) -> list[Path]:
        """Generated locations: the dist tree and the dev outputs inside src."""
        targets = [self.dist_base]
        for category in CATEGORIES:
            dev = getattr(self, category).dev
            if dev is not None:
                targets.append(dev.output_dir)
        seen: list[Path] = []
        for t in targets:
            p = self.path(t)
            if p not in seen:
                seen.append(p)
        return seen


def default_config(root: str | Path = ".") -> BuildConfig:
    return BuildConfig(
        root=Path(root).resolve(),
        styles=AssetPaths(
            dev=PathSpec("src/scss/**/*.scss", "src/css"),
            prod=PathSpec("src/scss/**/*.scss", "dist/css"),
        ),
        scripts=AssetPaths(
            dev=PathSpec("src/typescript/**/*.ts", "src/js", "app.js"),
            prod=PathSpec("src/typescript/**/*.ts", "dist/js", "app.min.js"),
        ),
        images=AssetPaths(prod=PathSpec("src/images/**/*.+(WebP|jpeg|png)", "dist/images")),
        svg=AssetPaths(prod=PathSpec("src/images/**/*.svg", "dist/images")),
        markup=AssetPaths(prod=PathSpec("src/**/*.html", "dist")),
    )


def _overlay_paths(base: AssetPaths, data: Mapping[str, Any]) -> AssetPaths:
    """Apply `input`, `dev_output`, `dev_file`, `prod_output`, `prod_file` keys."""
    input_glob = data.get("input")
    prod = base.prod
    prod = replace(
        prod,
        input_glob=input_glob or prod.input_glob,
        output_dir=data.get("prod_output") or prod.output_dir,
        output_file_name=data.get("prod_file", prod.output_file_name),
    )
    dev = base.dev
    if dev is not None or data.get("dev_output"):
        dev = PathSpec(
            input_glob=input_glob or (dev.input_glob if dev else prod.input_glob),
            output_dir=data.get("dev_output") or (dev.output_dir if dev else ""),
            output_file_name=data.get(
                "dev_file", dev.output_file_name if dev else None
            ),
        )
    return AssetPaths(prod=prod, dev=dev)


def config_from_dict(
    data: Mapping[str, Any], root: str | Path = ".", tinify_api_key: str | None = None
) -> BuildConfig:
    """Build a config from parsed YAML. Unknown keys are ignored."""
    cfg = default_config(root)
    updates: dict[str, Any] = {}
    for category in CATEGORIES:
        section = data.get(category)
        if section is None:
            continue
        if not isinstance(section, dict):
            raise ConfigError(f"'{category}' must be a mapping")
        updates[category] = _overlay_paths(getattr(cfg, category), section)

    scripts = data.get("scripts") or {}
    if scripts.get("entry"):
        updates["script_entry"] = str(scripts["entry"])
    if data.get("dist"):
        updates["dist_base"] = str(data["dist"])
    if data.get("runs_dir"):
        updates["runs_dir"] = str(data["runs_dir"])

    bundler = data.get("bundler")
    if bundler:
        if isinstance(bundler, str):
            bundler = bundler.split()
        updates["bundler"] = tuple(str(x) for x in bundler)

    purge = data.get("purge") or {}
    if purge.get("content"):
        updates["purge_content"] = tuple(purge["content"])
    if purge.get("safelist"):
        updates["purge_safelist"] = tuple(str(s) for s in purge["safelist"])

    server = data.get("server") or {}
    if server:
        base = cfg.server
        updates["server"] = ServerConfig(
            host=str(server.get("host", base.host)),
            port=int(server.get("port", base.port)),
            base_dir=str(server.get("base_dir", base.base_dir)),
            poll_interval=float(server.get("poll_interval", base.poll_interval)),
        )

    updates["tinify_api_key"] = tinify_api_key or None
    return replace(cfg, **updates)


def load_config(
    path: str | Path | None = None,
    root: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> BuildConfig:
    """Load the build configuration once at start-up.

    `path` defaults to `assets.yaml` under `root`; a missing default file means
    built-in defaults, while a missing explicit file is a `ConfigError`.
    When `environ` is None the project's `.env` is loaded into the process
    environment before `TINIFY_API_KEY` is read.
    """
    root_dir = Path(root or Path.cwd()).resolve()
    if environ is None:
        load_dotenv(root_dir / ".env")
        environ = os.environ

    data: dict = {}
    if path is None:
        p = root_dir / DEFAULT_CONFIG_FILE
        if p.exists():
            data = _read_yaml(p)
        else:
            log.debug("No %s found under %s; using defaults", DEFAULT_CONFIG_FILE, root_dir)
    else:
        p = Path(path)
        if not p.is_absolute():
            p = root_dir / p
        if not p.exists():
            raise ConfigError(f"Config file not found: {p}")
        data = _read_yaml(p)

    return config_from_dict(data, root=root_dir, tinify_api_key=environ.get(TINIFY_ENV_VAR))


def _read_yaml(p: Path) -> dict:
    with open(p, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {p}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{p} must contain a mapping at the top level")
    return data
