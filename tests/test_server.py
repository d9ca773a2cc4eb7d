import asyncio
import logging
import io
from pathlib import Path

import websockets

from staticforge.config import SiteConfig
from staticforge.errors import BuildError
from staticforge.server import RELOAD_SCRIPT_TEMPLATE, DevServer, _ChangeHandler, _ReloadHandler


class DummyEvent:
    def __init__(self, path, is_directory=False):
        self.src_path = path
        self.is_directory = is_directory


def make_config(tmp_path, **overrides):
    values = dict(
        site_name=str(tmp_path / "public"),
        content_dir=tmp_path / "content",
        template_dir=tmp_path / "templates",
        output_dir=tmp_path / "build",
    )
    values.update(overrides)
    return SiteConfig(**values)


def make_handler(root, path, reload_script="", command="GET"):
    handler = _ReloadHandler.__new__(_ReloadHandler)
    handler.path = path
    handler.directory = str(root)
    handler.command = command
    handler.request_version = "HTTP/1.1"
    handler.server_version = ""
    handler.sys_version = ""
    handler._headers_buffer = []
    handler.headers = {}
    handler.rfile = io.BytesIO(b"")
    handler.wfile = io.BytesIO()
    handler.reload_script = reload_script
    handler.codes = []
    handler.send_response = lambda code, message=None: handler.codes.append(code)
    handler.sent_headers = {}
    handler.send_header = lambda key, value: handler.sent_headers.__setitem__(key, value)
    handler.end_headers = lambda: None
    handler.send_error = lambda code, message=None: handler.codes.append(("error", code))
    return handler


def test_ports_and_directories(tmp_path):
    server = DevServer(make_config(tmp_path, port=5050))
    assert server.ws_port == 5051
    assert server.url == "http://127.0.0.1:5050"
    assert server.serve_dir == tmp_path / "public"
    assert server._reload_script == ""

    server = DevServer(make_config(tmp_path, ws_port=6000, serve_dir=tmp_path / "www"), watch=True)
    assert server.ws_port == 6000
    assert server.serve_dir == tmp_path / "www"
    assert "6000" in server._reload_script


def test_sync_copies_site_into_serve_dir(tmp_path):
    site = tmp_path / "public"
    site.mkdir()
    (site / "index.html").write_text("fresh", encoding="utf-8")
    serve = tmp_path / "www"
    serve.mkdir()
    (serve / "stale.html").write_text("old", encoding="utf-8")

    server = DevServer(make_config(tmp_path, serve_dir=serve))
    server.sync()

    assert (serve / "index.html").read_text(encoding="utf-8") == "fresh"
    assert not (serve / "stale.html").exists()
    assert not (tmp_path / "www.staging").exists()


def test_sync_is_noop_when_serving_site_dir(tmp_path):
    site = tmp_path / "public"
    site.mkdir()
    (site / "index.html").write_text("x", encoding="utf-8")
    DevServer(make_config(tmp_path)).sync()
    assert (site / "index.html").exists()


def test_change_handler_skips_outputs_and_directories(tmp_path):
    server = DevServer(make_config(tmp_path, serve_dir=tmp_path / "www"))
    calls = []
    server.rebuild = lambda: calls.append(True)
    handler = _ChangeHandler(server)

    handler.on_any_event(DummyEvent(str(tmp_path / "build" / "index.html")))
    handler.on_any_event(DummyEvent(str(tmp_path / "public" / "index.html")))
    handler.on_any_event(DummyEvent(str(tmp_path / "www" / "index.html")))
    handler.on_any_event(DummyEvent(str(tmp_path / "www.staging" / "index.html")))
    handler.on_any_event(DummyEvent(str(tmp_path / "content"), is_directory=True))
    assert calls == []

    handler.on_any_event(DummyEvent(str(tmp_path / "content" / "index.md")))
    assert calls == [True]


def test_async_broadcast_drops_closed_clients(tmp_path):
    server = DevServer(make_config(tmp_path))

    class GoodWS:
        def __init__(self):
            self.messages = []

        async def send(self, msg):
            self.messages.append(msg)

    class ClosedWS:
        async def send(self, msg):
            raise websockets.ConnectionClosed(None, None)

    good, closed = GoodWS(), ClosedWS()
    server._ws_clients = {good, closed}
    asyncio.run(server._async_broadcast('{"type": "reload"}'))

    assert good.messages == ['{"type": "reload"}']
    assert server._ws_clients == {good}


def test_ws_handler_tracks_clients(tmp_path):
    server = DevServer(make_config(tmp_path))

    class FakeWS:
        async def wait_closed(self):
            assert self in server._ws_clients

    ws = FakeWS()
    asyncio.run(server._ws_handler(ws))
    assert server._ws_clients == set()


def test_rebuild_builds_syncs_and_reloads(monkeypatch, tmp_path):
    (tmp_path / "content").mkdir()
    (tmp_path / "content" / "index.md").write_text("x", encoding="utf-8")
    server = DevServer(make_config(tmp_path))
    server._debounce_seconds = 0
    server._post_build_delay = 0

    events = []
    monkeypatch.setattr("staticforge.server.build_site", lambda config: events.append("build"))
    server.sync = lambda: events.append("sync")
    server._broadcast_reload = lambda: events.append("reload")

    server.rebuild()
    assert events == ["build", "sync", "reload"]

    # Nothing changed since the last build.
    server.rebuild()
    assert events == ["build", "sync", "reload"]


def test_rebuild_keeps_serving_after_build_error(monkeypatch, tmp_path, caplog):
    (tmp_path / "content").mkdir()
    (tmp_path / "content" / "index.md").write_text("x", encoding="utf-8")
    server = DevServer(make_config(tmp_path))
    server._debounce_seconds = 0

    def failing_build(config):
        raise BuildError(Path("content/index.md"), "bad front matter")

    events = []
    monkeypatch.setattr("staticforge.server.build_site", failing_build)
    server.sync = lambda: events.append("sync")
    server._broadcast_reload = lambda: events.append("reload")

    monkeypatch.setattr(logging.getLogger("staticforge"), "propagate", True)
    with caplog.at_level("ERROR", logger="staticforge.server"):
        server.rebuild()

    assert events == []
    assert "bad front matter" in caplog.text
    assert server._rebuilding is False
    assert server._last_signature is None


def test_rebuild_guard_skips_while_rebuilding(monkeypatch, tmp_path):
    server = DevServer(make_config(tmp_path))
    server._rebuilding = True

    def unexpected_build(config):
        raise AssertionError("build_site should not run")

    monkeypatch.setattr("staticforge.server.build_site", unexpected_build)
    server.rebuild()


def test_compute_signature(tmp_path):
    server = DevServer(make_config(tmp_path))
    assert server._compute_signature() is None

    (tmp_path / "templates").mkdir()
    (tmp_path / "templates" / "page.html").write_text("a", encoding="utf-8")
    first = server._compute_signature()
    assert first is not None
    (tmp_path / "templates" / "page.html").write_text("abc", encoding="utf-8")
    assert server._compute_signature() != first


def test_start_watcher_schedules_existing_dirs(monkeypatch, tmp_path):
    (tmp_path / "content").mkdir()
    scheduled = []

    class FakeObserver:
        def schedule(self, handler, path, recursive=False):
            scheduled.append((path, recursive))

        def start(self):
            scheduled.append("started")

        def stop(self):
            scheduled.append("stopped")

        def join(self):
            pass

    monkeypatch.setattr("staticforge.server.Observer", FakeObserver)
    server = DevServer(make_config(tmp_path), watch=True)
    server._start_watcher()
    assert scheduled == [(str(tmp_path / "content"), True), "started"]

    server.stop()
    assert scheduled[-1] == "stopped"


def test_send_head_injects_reload_script(tmp_path):
    (tmp_path / "posts").mkdir()
    (tmp_path / "posts" / "index.html").write_text("<html><body>index</body></html>", encoding="utf-8")
    script = RELOAD_SCRIPT_TEMPLATE.format(ws_port=8001)

    handler = make_handler(tmp_path, "/posts/", reload_script=script)
    assert _ReloadHandler.send_head(handler) is None
    assert handler.codes == [200]
    body = handler.wfile.getvalue().decode()
    assert body.endswith("</script>\n</body></html>")
    assert ":8001" in body


def test_send_head_without_watch_serves_plain_html(tmp_path):
    (tmp_path / "index.html").write_text("<p>plain</p>", encoding="utf-8")
    handler = make_handler(tmp_path, "/")
    _ReloadHandler.send_head(handler)
    assert handler.wfile.getvalue() == b"<p>plain</p>"


def test_head_request_sends_headers_without_body(tmp_path):
    (tmp_path / "index.html").write_text("<p>plain</p>", encoding="utf-8")
    handler = make_handler(tmp_path, "/", command="HEAD")
    assert _ReloadHandler.send_head(handler) is None
    assert handler.codes == [200]
    assert handler.sent_headers["Content-Length"] == str(len(b"<p>plain</p>"))
    assert handler.wfile.getvalue() == b""


def test_missing_paths_serve_404_page(tmp_path):
    handler = make_handler(tmp_path, "/missing/")
    assert _ReloadHandler.send_head(handler) is None
    assert handler.codes == [("error", 404)]

    (tmp_path / "404").mkdir()
    (tmp_path / "404" / "index.html").write_text("<body>oops</body>", encoding="utf-8")
    handler = make_handler(tmp_path, "/missing.html", reload_script="<script>reload</script>")
    _ReloadHandler.send_head(handler)
    assert handler.codes == [404]
    assert handler.wfile.getvalue().decode() == "<body>oops<script>reload</script></body>"

    (tmp_path / "empty").mkdir()
    handler = make_handler(tmp_path, "/empty/")
    _ReloadHandler.send_head(handler)
    assert handler.codes == [404]
