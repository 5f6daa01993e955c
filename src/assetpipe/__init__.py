"""Front-end asset build orchestrator.

Provides Stage and Pipeline primitives, the dev/prod/clean pipeline registry,
a live-reload bridge for development and a Typer CLI.
"""

from .config import BuildConfig, Mode, PathSpec, load_config
from .core import Pipeline, Stage, stage  # re-export for convenience
from .registry import build_registry

__version__ = "0.1.0"

__all__ = [
    "BuildConfig",
    "Mode",
    "PathSpec",
    "Pipeline",
    "Stage",
    "build_registry",
    "load_config",
    "stage",
]
