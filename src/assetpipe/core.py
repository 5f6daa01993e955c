from __future__ import annotations

import asyncio
import json
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Awaitable, Callable, Literal, Optional, Union

from .config import BuildConfig, Mode
from .errors import AssetPipeError, StageFailure
from .logging import detach_file_handlers, get_logger

if TYPE_CHECKING:
    from .bridge import ReloadBridge


ArtifactSet = list[Path]
StageFn = Callable[[BuildConfig, Mode], Awaitable[ArtifactSet]]
# Allow a static glob or a callable that reads it from the config
WatchSpec = Union[str, Callable[[BuildConfig], str], None]
Notify = Optional[Literal["stream", "reload"]]
Composition = Literal["series", "parallel"]


@dataclass
class Stage:
    name: str
    run: StageFn
    watch: WatchSpec = None
    notify: Notify = None

    def watch_glob(self, config: BuildConfig) -> str | None:
        if callable(self.watch):
            return self.watch(config)
        return self.watch


def stage(name: str, watch: WatchSpec = None, notify: Notify = None):
    """Decorator to declare a transform stage on an async function.

    The wrapped function receives the build config and the mode and returns
    the list of files it wrote. Decorating only attaches metadata; pipelines
    are assembled explicitly by `assetpipe.registry.build_registry`.
    """

    def deco(fn: StageFn):
        setattr(fn, "_stage_spec", Stage(name=name, run=fn, watch=watch, notify=notify))
        return fn

    return deco


def spec_of(fn: StageFn) -> Stage:
    spec = getattr(fn, "_stage_spec", None)
    if not isinstance(spec, Stage):
        raise TypeError(f"{fn!r} is not decorated with @stage")
    return spec


async def notify_bridge(
    bridge: "ReloadBridge | None", s: Stage, artifacts: ArtifactSet
) -> None:
    if bridge is None or not s.notify or not artifacts:
        return
    if s.notify == "stream":
        await bridge.stream(artifacts)
    else:
        await bridge.reload()


class Pipeline:
    def __init__(
        self,
        name: str,
        stages: list[Stage],
        composition: Composition = "series",
        mode: Mode = Mode.PROD,
        bridge: "ReloadBridge | None" = None,
    ):
        if composition not in ("series", "parallel"):
            raise ValueError(f"Unknown composition: {composition}")
        names = [s.name for s in stages]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate stage names in pipeline {name}: {names}")
        self.name = name
        self.stages = tuple(stages)
        self.composition = composition
        self.mode = mode
        self.bridge = bridge
        self.logger = get_logger(f"assetpipe.{self.name}")

    @property
    def stage_names(self) -> list[str]:
        return [s.name for s in self.stages]

    def describe(self) -> str:
        sep = " → " if self.composition == "series" else " | "
        return sep.join(self.stage_names)

    async def run(
        self, config: BuildConfig, bridge: "ReloadBridge | None" = None
    ) -> dict[str, ArtifactSet]:
        bridge = bridge or self.bridge
        run_dir = _new_run_dir(config.path(config.runs_dir) / self.name)
        run_id = run_dir.name
        get_logger(f"assetpipe.{self.name}", log_file=run_dir / "pipeline.log")

        state = {
            "pipeline": self.name,
            "mode": self.mode.value,
            "composition": self.composition,
            "run_id": run_id,
            "steps": [],
            "python": sys.version,
        }
        self.logger.info("Selected steps (%s): %s", self.composition, self.describe())
        try:
            if self.composition == "series":
                results: dict[str, ArtifactSet] = {}
                for s in self.stages:
                    results[s.name] = await self._run_stage(s, config, bridge, state, run_dir)
                return results
            return await self._run_parallel(config, bridge, state, run_dir)
        finally:
            detach_file_handlers(self.logger)

    async def _run_parallel(self, config, bridge, state, run_dir) -> dict[str, ArtifactSet]:
        tasks = [
            asyncio.create_task(self._run_stage(s, config, bridge, state, run_dir), name=s.name)
            for s in self.stages
        ]
        try:
            done = await asyncio.gather(*tasks)
        except BaseException:
            for t in tasks:
                if not t.done():
                    t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return {s.name: artifacts for s, artifacts in zip(self.stages, done)}

    async def _run_stage(
        self, s: Stage, config: BuildConfig, bridge, state: dict, run_dir: Path
    ) -> ArtifactSet:
        step_logger = get_logger(f"assetpipe.{self.name}.{s.name}")
        started = time.monotonic()
        try:
            step_logger.info("Run: %s", s.name)
            artifacts = list(await s.run(config, self.mode) or [])
        except AssetPipeError as e:
            step_logger.error("Step failed (%s): %s", s.name, e)
            state["steps"].append({"name": s.name, "status": "error", "error": str(e)})
            _write_state(run_dir, state)
            raise
        except Exception as e:  # noqa: BLE001
            step_logger.exception("Step failed (%s)", s.name)
            state["steps"].append({"name": s.name, "status": "error", "error": str(e)})
            _write_state(run_dir, state)
            raise StageFailure(s.name, e) from e

        await notify_bridge(bridge, s, artifacts)
        elapsed = time.monotonic() - started
        step_logger.info("Done: %s (%d artifacts, %.2fs)", s.name, len(artifacts), elapsed)
        state["steps"].append(
            {
                "name": s.name,
                "status": "ok",
                "artifacts": [_display(p, config.root) for p in artifacts],
            }
        )
        _write_state(run_dir, state)
        return artifacts


def _new_run_dir(parent: Path) -> Path:
    """Create a fresh run directory; run ids are unique even within one second."""
    parent.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
    attempt = 0
    while True:
        run_id = stamp if attempt == 0 else f"{stamp}-{attempt}"
        try:
            (parent / run_id).mkdir()
            return parent / run_id
        except FileExistsError:
            attempt += 1


def _display(p: Path, root: Path) -> str:
    try:
        return str(p.relative_to(root))
    except ValueError:
        return str(p)


def _write_state(run_dir: Path, state: dict) -> None:
    with open(run_dir / "state.json", "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2)
