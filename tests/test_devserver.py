# tests/test_devserver.py

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from assetflow.core.errors import BuildIOError
from assetflow.server.devserver import (
    LIVERELOAD_PATH,
    LiveReloadHub,
    create_app,
    inject_snippet,
    serve_dev,
)


@pytest.fixture()
def site(tmp_path: Path) -> Path:
    root = tmp_path / "build"
    (root / "css").mkdir(parents=True)
    (root / "index.html").write_text("<html><body><h1>Hi</h1></body></html>", "utf-8")
    (root / "css" / "style.min.css").write_text("body{margin:0}", "utf-8")
    return root


def test_inject_snippet_before_closing_body() -> None:
    out = inject_snippet("<html><BODY>x</BODY></html>", snippet="<s/>")
    assert out == "<html><BODY>x<s/></BODY></html>"
    assert inject_snippet("<p>fragment</p>", snippet="<s/>") == "<p>fragment</p><s/>"


def test_html_gets_livereload_script_and_assets_do_not(site: Path) -> None:
    client = TestClient(create_app(site, LiveReloadHub()))

    page = client.get("/")
    assert page.status_code == 200
    assert LIVERELOAD_PATH in page.text
    assert page.text.index(LIVERELOAD_PATH) < page.text.lower().index("</body>")

    css = client.get("/css/style.min.css")
    assert css.status_code == 200
    assert css.text == "body{margin:0}"

    assert client.get("/missing.png").status_code == 404


def test_cors_is_open(site: Path) -> None:
    client = TestClient(create_app(site, LiveReloadHub()))
    r = client.get("/css/style.min.css", headers={"Origin": "http://example.test"})
    assert r.headers.get("access-control-allow-origin") == "*"


def test_reload_pushes_to_connected_browsers(site: Path) -> None:
    hub = LiveReloadHub()

    # One portal for the socket and the trigger request: both run on the same loop.
    with TestClient(create_app(site, hub)) as client:
        with client.websocket_connect(LIVERELOAD_PATH) as ws:
            assert ws.receive_text() == "connected"
            r = client.post(f"{LIVERELOAD_PATH}/reload")
            assert r.json() == {"notified": 1}
            assert ws.receive_text() == "reload"

    assert hub.reload_count == 1


class _Socket:
    def __init__(self, *, dead: bool = False) -> None:
        self.dead = dead
        self.sent: list[str] = []

    async def send_text(self, text: str) -> None:
        if self.dead:
            raise RuntimeError("socket closed")
        self.sent.append(text)


@pytest.mark.asyncio
async def test_hub_drops_dead_clients() -> None:
    hub = LiveReloadHub()
    alive, dead = _Socket(), _Socket(dead=True)
    hub.add(alive)  # type: ignore[arg-type]
    hub.add(dead)  # type: ignore[arg-type]

    assert await hub.reload() == 1
    assert alive.sent == ["reload"]
    assert hub.client_count == 1


@pytest.mark.asyncio
async def test_serve_dev_returns_handle(site: Path) -> None:
    handle = await serve_dev(site, host="127.0.0.1", port=0)
    try:
        assert handle.server.started
        assert await handle.reload() == 0
    finally:
        await handle.stop()
    assert handle.task.done()
    assert handle.url.startswith("http://127.0.0.1:")
    assert not handle.url.endswith(":0")


def test_css_push_reaches_connected_browsers(site: Path) -> None:
    hub = LiveReloadHub()

    with TestClient(create_app(site, hub)) as client:
        with client.websocket_connect(LIVERELOAD_PATH) as ws:
            assert ws.receive_text() == "connected"
            r = client.post(f"{LIVERELOAD_PATH}/css")
            assert r.json() == {"notified": 1}
            assert ws.receive_text() == "css"

    assert hub.css_count == 1
    assert hub.reload_count == 0


@pytest.mark.asyncio
async def test_serve_dev_on_busy_port_raises_build_io_error(site: Path, busy_port: int) -> None:
    with pytest.raises(BuildIOError) as ei:
        await serve_dev(site, host="127.0.0.1", port=busy_port)

    assert str(busy_port) in str(ei.value)


@pytest.mark.asyncio
async def test_startup_timeout_stops_the_server_task(site: Path) -> None:
    with pytest.raises(BuildIOError, match="did not start"):
        await serve_dev(site, host="127.0.0.1", port=0, startup_timeout=-1)

    leftovers = [t for t in asyncio.all_tasks() if t.get_name() == "assetflow-devserver" and not t.done()]
    assert leftovers == []
