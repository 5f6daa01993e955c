"""Live-reload bridge for the development pipeline.

Serves the development tree over HTTP, injects a small client script into
HTML pages and pushes `reload` / `css` messages to connected browsers over a
websocket. File changes are detected by polling modification times.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Iterable

from aiohttp import WSMsgType, web

from .cache import snapshot
from .config import BuildConfig
from .logging import get_logger
from .utils import expand_glob


WS_PATH = "/__assetpipe/ws"
CLIENT_PATH = "/__assetpipe/client.js"

CLIENT_SCRIPT = """(function () {
  var proto = location.protocol === "https:" ? "wss://" : "ws://";
  var socket = new WebSocket(proto + location.host + "%s");
  socket.onmessage = function (event) {
    var msg = JSON.parse(event.data);
    if (msg.type !== "css") { location.reload(); return; }
    var hit = false;
    document.querySelectorAll('link[rel="stylesheet"]').forEach(function (link) {
      var href = link.getAttribute("href").split("?")[0];
      if (href.endsWith(msg.path)) { link.href = href + "?v=" + Date.now(); hit = true; }
    });
    if (!hit) { location.reload(); }
  };
})();
""" % WS_PATH

OnChange = Callable[[list[Path]], Awaitable[None]]

log = get_logger("assetpipe.bridge")


def inject_client(html: str) -> str:
    tag = f'<script src="{CLIENT_PATH}"></script>'
    idx = html.lower().rfind("</body>")
    if idx == -1:
        return html + tag
    return html[:idx] + tag + html[idx:]


@dataclass
class Watcher:
    pattern: str
    on_change: OnChange
    mtimes: dict[Path, float | None] = field(default_factory=dict)


class ReloadBridge:
    def __init__(self) -> None:
        self.config: BuildConfig | None = None
        self.app: web.Application | None = None
        self._watchers: list[Watcher] = []
        self._sockets: set[web.WebSocketResponse] = set()
        self._runner: web.AppRunner | None = None

    def init(self, config: BuildConfig) -> None:
        self.config = config
        app = web.Application()
        app.router.add_get(WS_PATH, self._ws_handler)
        app.router.add_get(CLIENT_PATH, self._client_handler)
        app.router.add_get("/{tail:.*}", self._static_handler)
        self.app = app

    @property
    def base_dir(self) -> Path:
        return self._require_config().path(self._require_config().server.base_dir)

    def _require_config(self) -> BuildConfig:
        if self.config is None:
            raise RuntimeError("ReloadBridge.init() must be called first")
        return self.config

    def watch(self, pattern: str, on_change: OnChange) -> Watcher:
        """Register a watcher; the current state of the tree is its baseline."""
        root = self._require_config().root
        w = Watcher(pattern, on_change, snapshot(expand_glob(pattern, root)))
        self._watchers.append(w)
        log.debug("Watching %s (%d files)", pattern, len(w.mtimes))
        return w

    @property
    def watchers(self) -> list[Watcher]:
        return list(self._watchers)

    async def reload(self) -> None:
        await self._broadcast({"type": "reload"})

    async def stream(self, paths: Iterable[Path]) -> None:
        """Inject changed stylesheets; anything else needs a full reload."""
        base = self.base_dir
        for p in paths:
            if p.suffix != ".css":
                await self.reload()
                return
            try:
                rel = p.relative_to(base).as_posix()
            except ValueError:
                rel = p.name
            await self._broadcast({"type": "css", "path": rel})

    async def poll_once(self) -> int:
        """Check every watcher once; returns how many fired."""
        root = self._require_config().root
        fired = 0
        for w in self._watchers:
            current = snapshot(expand_glob(w.pattern, root))
            changed = sorted(
                p for p in set(current) | set(w.mtimes) if current.get(p) != w.mtimes.get(p)
            )
            w.mtimes = current
            if not changed:
                continue
            fired += 1
            try:
                await w.on_change(changed)
            except Exception:  # noqa: BLE001
                log.exception("Watch callback for %s failed", w.pattern)
        return fired

    async def start(self) -> None:
        cfg = self._require_config()
        if self.app is None:
            self.init(cfg)
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, cfg.server.host, cfg.server.port)
        await site.start()
        log.info("Serving %s on http://%s:%s", cfg.server.base_dir, cfg.server.host, cfg.server.port)

    async def serve_forever(self) -> None:
        await self.start()
        try:
            while True:
                await asyncio.sleep(self._require_config().server.poll_interval)
                await self.poll_once()
        finally:
            await self.close()

    async def close(self) -> None:
        for ws in list(self._sockets):
            await ws.close()
        self._sockets.clear()
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    async def _broadcast(self, message: dict) -> None:
        for ws in list(self._sockets):
            try:
                await ws.send_json(message)
            except ConnectionResetError:
                self._sockets.discard(ws)
        log.debug("Sent %s to %d client(s)", message, len(self._sockets))

    async def _ws_handler(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self._sockets.add(ws)
        try:
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    break
        finally:
            self._sockets.discard(ws)
        return ws

    async def _client_handler(self, request: web.Request) -> web.Response:
        return web.Response(text=CLIENT_SCRIPT, content_type="application/javascript")

    async def _static_handler(self, request: web.Request) -> web.StreamResponse:
        base = self.base_dir.resolve()
        target = (base / request.match_info["tail"]).resolve()
        if base != target and base not in target.parents:
            raise web.HTTPForbidden()
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            raise web.HTTPNotFound()
        if target.suffix in (".html", ".htm"):
            html = target.read_text(encoding="utf-8")
            return web.Response(text=inject_client(html), content_type="text/html")
        return web.FileResponse(target)
