from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer

from .config import load_config
from .errors import AssetPipeError, UnknownTask
from .logging import get_logger, set_level
from .registry import build_registry


app = typer.Typer(add_completion=False, help="Front-end asset build pipelines")
log = get_logger("assetpipe.cli")

LOG_LEVEL_HELP = "Log level (DEBUG, INFO, WARNING, ERROR); defaults to $ASSETPIPE_LOG_LEVEL"


def _apply_log_level(level: Optional[str]) -> None:
    if level is None:
        return
    try:
        set_level(level)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


@app.command("list")
def list_tasks(
    config: Optional[str] = typer.Option(None, help="Path to YAML config"),
    root: Path = typer.Option(Path("."), help="Project root"),
    log_level: Optional[str] = typer.Option(None, help=LOG_LEVEL_HELP),
):
    """List the available pipelines and their stages."""
    _apply_log_level(log_level)
    try:
        cfg = load_config(config, root=root)
    except AssetPipeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    registry = build_registry(cfg)
    typer.echo("Available tasks:")
    for name in sorted(registry):
        pipe = registry[name]
        typer.echo(f"- {name} ({pipe.composition}): {pipe.describe()}")


@app.command()
def run(
    name: str = typer.Argument(..., help="Task to run: dev, prod or clean"),
    config: Optional[str] = typer.Option(None, help="Path to YAML config"),
    root: Path = typer.Option(Path("."), help="Project root"),
    log_level: Optional[str] = typer.Option(None, help=LOG_LEVEL_HELP),
):
    """Run a pipeline by name."""
    _apply_log_level(log_level)
    try:
        cfg = load_config(config, root=root)
        registry = build_registry(cfg)
        if name not in registry:
            raise UnknownTask(name, list(registry))
        pipe = registry[name]
        asyncio.run(pipe.run(cfg))
    except AssetPipeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        if name == "dev":
            typer.echo("Stopped.")
            raise typer.Exit(code=0)
        # an interrupted build leaves partial artifacts behind
        typer.echo(f"Interrupted: '{name}' did not finish.", err=True)
        raise typer.Exit(code=130)
    typer.echo(f"Finished '{name}'.")


def main():  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
