"""Development server for staticforge.

Serves the finished site from the serve directory with defaults suited to
local authoring:
- Injects a reload script into HTML responses when watching.
- Rejects directory listings and missing paths with a 404 (serving 404.html when present).
- Watches the content and template directories and triggers rebuilds plus client reloads.

Key classes:
- DevServer: Main class for running the development server.
- _ReloadHandler: HTTP request handler that injects reload script and enforces 404s.
- _ChangeHandler: File system event handler for triggering rebuilds.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import os
import shutil
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import build_site
from .config import SiteConfig
from .errors import BuildError

logger = logging.getLogger(__name__)

RELOAD_SCRIPT_TEMPLATE = """
<script>
(() => {{
  const ws = new WebSocket('ws://' + location.hostname + ':{ws_port}');
  ws.onmessage = (event) => {{
    const data = JSON.parse(event.data || '{{}}');
    if (data.type === 'reload') location.reload();
  }};
}})();
</script>
"""


class _ReloadHandler(SimpleHTTPRequestHandler):
    """HTTP request handler that injects the live reload script into HTML pages."""

    reload_script = ""

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        return self._serve_404()

    def _inject(self, content: str) -> str:
        if not self.reload_script:
            return content
        if "</body>" in content:
            return content.replace("</body>", f"{self.reload_script}</body>")
        return content + self.reload_script

    def _send_html(self, status: int, content: str) -> None:
        encoded = self._inject(content).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(encoded)

    def _serve_404(self):
        """Serve 404.html (or 404/index.html) with a 404 status."""
        root = Path(self.directory)
        for candidate in (root / "404.html", root / "404" / "index.html"):
            if candidate.exists():
                self._send_html(404, candidate.read_text(encoding="utf-8"))
                return None
        self.send_error(404, "File not found")
        return None

    def send_head(self):
        path_obj = Path(self.translate_path(self.path))
        if path_obj.is_dir():
            index_path = path_obj / "index.html"
            if not index_path.exists():
                return self._serve_404()
            path_obj = index_path
        elif not path_obj.exists():
            return self._serve_404()

        if path_obj.suffix == ".html":
            self._send_html(200, path_obj.read_text(encoding="utf-8"))
            return None
        return super().send_head()


class DevServer:
    """Development server with optional watch-and-reload.

    Attributes:
        config: Site configuration.
        watch: Whether source changes trigger rebuilds and reloads.
        serve_dir: Directory served over HTTP.
        http_port: Port for HTTP server.
        ws_port: Port for WebSocket connections.
    """

    def __init__(self, config: SiteConfig, watch: bool = False):
        self.config = config
        self.watch = watch
        self.site_dir = config.site_dir
        self.serve_dir = config.serve_dir or config.site_dir
        self._staging_dir = self.serve_dir.with_name(self.serve_dir.name + ".staging")
        self.host = config.host
        self.http_port = config.port
        self.ws_port = config.ws_port if config.ws_port is not None else config.port + 1
        self._reload_script = (
            RELOAD_SCRIPT_TEMPLATE.format(ws_port=self.ws_port) if watch else ""
        )
        self._observer: Observer | None = None
        self._httpd: ThreadingHTTPServer | None = None
        self._ws_clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._rebuilding = False
        self._last_rebuild_at = 0.0
        self._last_signature: tuple | None = None
        self._debounce_seconds = 0.05
        self._post_build_delay = 0.05

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.http_port}"

    def start(self) -> None:  # pragma: no cover - integration path
        self.sync()
        self._last_signature = self._compute_signature()
        threading.Thread(target=self._start_http, daemon=True).start()
        if self.watch:
            threading.Thread(target=self._start_ws, daemon=True).start()
            self._start_watcher()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
        if self._httpd:
            self._httpd.shutdown()
        self._loop.call_soon_threadsafe(self._loop.stop)

    def sync(self) -> None:
        """Copy the site directory into the serve directory.

        The copy is staged next to the serve directory and swapped in, so
        the server never sees a half-copied site.
        """
        if self.serve_dir.resolve() == self.site_dir.resolve():
            return
        staging = self._staging_dir
        if staging.exists():
            shutil.rmtree(staging)
        shutil.copytree(self.site_dir, staging)
        if self.serve_dir.exists():
            shutil.rmtree(self.serve_dir)
        os.replace(staging, self.serve_dir)

    def _start_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_ReloadHandlerWithPort",
            (_ReloadHandler,),
            {"reload_script": self._reload_script},
        )
        handler = functools.partial(handler_cls, directory=str(self.serve_dir))
        self._httpd = ThreadingHTTPServer((self.host, self.http_port), handler)
        logger.info("Serving %s at %s", self.serve_dir, self.url)
        self._httpd.serve_forever()

    def _start_ws(self) -> None:  # pragma: no cover - integration path
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._run_ws_server())
        except OSError as exc:
            logger.error("WebSocket server failed to start (port %s): %s", self.ws_port, exc)

    async def _run_ws_server(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._ws_handler, self.host, self.ws_port):
            await asyncio.Future()

    async def _ws_handler(self, websocket):
        self._ws_clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._ws_clients.discard(websocket)

    def _broadcast_reload(self):
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._async_broadcast(message), self._loop)

    async def _async_broadcast(self, message: str):
        stale = set()
        for ws in self._ws_clients:
            try:
                await ws.send(message)
            except websockets.ConnectionClosed:
                stale.add(ws)
        for ws in stale:
            self._ws_clients.discard(ws)

    def watched_dirs(self) -> list[Path]:
        return [path for path in (self.config.content_dir, self.config.template_dir) if path.exists()]

    def ignored_dirs(self) -> list[Path]:
        return [self.config.output_dir, self.site_dir, self.serve_dir, self._staging_dir]

    def _start_watcher(self) -> None:
        handler = _ChangeHandler(self)
        observer = Observer()
        for folder in self.watched_dirs():
            observer.schedule(handler, str(folder), recursive=True)
        observer.start()
        self._observer = observer

    def rebuild(self) -> None:
        """Rebuild, re-sync and tell connected browsers to reload.

        Bursts of events are debounced and a rebuild is skipped when no
        source file changed. A failing build is logged and the previous
        site keeps being served.
        """
        now = time.time()
        if self._rebuilding or (now - self._last_rebuild_at) < self._debounce_seconds:
            return
        signature = self._compute_signature()
        if signature is not None and signature == self._last_signature:
            return
        self._rebuilding = True
        try:
            logger.info("Change detected; rebuilding...")
            try:
                build_site(self.config)
            except BuildError as exc:
                logger.error("Build failed: %s", exc)
                return
            self.sync()
            self._last_signature = signature
            if self._post_build_delay:
                time.sleep(self._post_build_delay)
            self._broadcast_reload()
        finally:
            self._rebuilding = False
            self._last_rebuild_at = time.time()

    def _compute_signature(self) -> tuple | None:
        entries: list[tuple] = []
        for root in self.watched_dirs():
            for path in sorted(root.rglob("*")):
                if path.is_dir():
                    continue
                try:
                    stat = path.stat()
                except OSError:
                    continue
                entries.append((str(path), stat.st_mtime_ns, stat.st_size))
        return tuple(entries) if entries else None


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer):
        super().__init__()
        self.server = server

    def on_any_event(self, event):
        if event.is_directory:
            return
        path = Path(os.fsdecode(event.src_path)).resolve()
        for ignored in self.server.ignored_dirs():
            if path.is_relative_to(ignored.resolve()):
                return
        self.server.rebuild()
