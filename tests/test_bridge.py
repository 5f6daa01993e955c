"""Tests for the live-reload bridge and the dev watch loop (no sockets opened)."""

import asyncio
import os
from pathlib import Path

from assetpipe.bridge import CLIENT_PATH, ReloadBridge, inject_client
from assetpipe.config import Mode
from assetpipe.registry import build_registry
from assetpipe.tasks.watch import watch_stage
from conftest import write


class RecordingSocket:
    def __init__(self):
        self.sent = []

    async def send_json(self, message):
        self.sent.append(message)

    async def close(self):
        pass


class FakeBridge:
    """Records calls instead of serving; `serve_forever` returns at once."""

    def __init__(self):
        self.config = None
        self.calls = []
        self.watched = []

    def init(self, config):
        self.config = config
        self.calls.append("init")

    def watch(self, pattern, on_change):
        self.watched.append((pattern, on_change))
        self.calls.append(f"watch:{pattern}")

    @property
    def watchers(self):
        return self.watched

    async def serve_forever(self):
        self.calls.append("serve")

    async def stream(self, paths):
        self.calls.append(("stream", [Path(p).name for p in paths]))

    async def reload(self):
        self.calls.append(("reload", None))


def touch_later(path: Path, seconds: int = 10) -> None:
    st = path.stat()
    os.utime(path, (st.st_atime + seconds, st.st_mtime + seconds))


def test_inject_client_before_body_end() -> None:
    html = "<html><body><p>x</p></body></html>"
    out = inject_client(html)
    assert out.index(CLIENT_PATH) < out.index("</body>")
    assert inject_client("<p>x</p>").endswith(f'<script src="{CLIENT_PATH}"></script>')


def test_poll_detects_changes(config, project) -> None:
    bridge = ReloadBridge()
    bridge.init(config)
    seen = []

    async def on_change(paths):
        seen.append(paths)

    bridge.watch("src/scss/**/*.scss", on_change)

    async def scenario():
        assert await bridge.poll_once() == 0
        touch_later(project / "src/scss/main.scss")
        new = write(project / "src/scss/extra.scss", ".a{}")
        assert await bridge.poll_once() == 1
        return new

    new = asyncio.run(scenario())
    assert seen == [sorted([project / "src/scss/main.scss", new])]


def test_failing_callback_does_not_stop_polling(config, project) -> None:
    bridge = ReloadBridge()
    bridge.init(config)

    async def broken(paths):
        raise RuntimeError("nope")

    bridge.watch("src/**/*.html", broken)
    touch_later(project / "src/index.html")
    assert asyncio.run(bridge.poll_once()) == 1


def test_stream_and_reload_messages(config, project) -> None:
    bridge = ReloadBridge()
    bridge.init(config)
    sock = RecordingSocket()
    bridge._sockets.add(sock)

    asyncio.run(bridge.stream([project / "src/css/main.css"]))
    asyncio.run(bridge.stream([project / "src/js/app.js"]))

    assert sock.sent == [{"type": "css", "path": "css/main.css"}, {"type": "reload"}]


def test_watch_registers_before_serving(config) -> None:
    bridge = FakeBridge()
    registry = build_registry(config, bridge)
    dev = registry["dev"]
    watch = dev.stages[-1]

    asyncio.run(watch.run(config, Mode.DEV))

    assert bridge.calls == [
        "init",
        "watch:src/scss/**/*.scss",
        "watch:src/typescript/**/*.ts",
        "watch:src/**/*",
        "serve",
    ]


def test_tree_watcher_streams_css_and_ignores_sources(config, project) -> None:
    bridge = FakeBridge()
    bridge.init(config)
    stage = watch_stage(bridge, [])
    asyncio.run(stage.run(config, Mode.DEV))
    _, on_tree_change = bridge.watched[-1]

    asyncio.run(on_tree_change([project / "src/css/main.css"]))
    asyncio.run(on_tree_change([project / "src/index.html"]))

    assert bridge.calls[-2:] == [("stream", ["main.css"]), ("reload", None)]


def test_dev_pipeline_builds_and_notifies(config, project) -> None:
    bridge = FakeBridge()
    dev = build_registry(config, bridge)["dev"]

    results = asyncio.run(dev.run(config))

    assert results["styles"] == [project / "src/css/main.css"]
    assert project / "src/js/app.js" in results["scripts"]
    assert ("stream", ["main.css"]) in bridge.calls
    assert ("reload", None) in bridge.calls
    assert not (project / "dist").exists()
