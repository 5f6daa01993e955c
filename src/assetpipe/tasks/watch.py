"""Development watch loop: rebuild on change and notify connected browsers."""

from __future__ import annotations

from pathlib import Path

from ..bridge import ReloadBridge
from ..config import BuildConfig, Mode
from ..core import Stage
from ..logging import get_logger
from ..utils import expand_glob


log = get_logger("assetpipe.tasks.watch")


def _rebuild(stage: Stage, config: BuildConfig):
    async def on_change(changed: list[Path]) -> None:
        log.info(
            "%d change(s) under %s, rebuilding %s",
            len(changed),
            stage.watch_glob(config),
            stage.name,
        )
        await stage.run(config, Mode.DEV)

    return on_change


def _notify(bridge: ReloadBridge, config: BuildConfig, rebuilt_by: list[str]):
    async def on_change(changed: list[Path]) -> None:
        sources: set[Path] = set()
        for pattern in rebuilt_by:
            sources.update(expand_glob(pattern, config.root))
        # sources are picked up by their stage; its output triggers the notice
        relevant = [p for p in changed if p not in sources]
        if not relevant:
            return
        if all(p.suffix == ".css" for p in relevant):
            await bridge.stream(relevant)
        else:
            await bridge.reload()

    return on_change


def watch_stage(bridge: ReloadBridge, rebuilds: list[Stage]) -> Stage:
    """Stage that registers watchers for `rebuilds` and then serves forever."""

    async def watch_changes(config: BuildConfig, mode: Mode) -> list[Path]:
        if bridge.config is None:
            bridge.init(config)
        patterns: list[str] = []
        for s in rebuilds:
            pattern = s.watch_glob(config)
            if pattern:
                bridge.watch(pattern, _rebuild(s, config))
                patterns.append(pattern)
        tree = f"{config.server.base_dir.rstrip('/')}/**/*"
        bridge.watch(tree, _notify(bridge, config, patterns))
        log.info("Ready: %d watcher(s) registered", len(bridge.watchers))
        await bridge.serve_forever()
        return []

    return Stage(name="watch", run=watch_changes)
