# src/assetflow/server/devserver.py

"""
Local dev server with live reload.

- FastAPI app serving the build directory (index.html for directories),
- CORS open to any origin,
- HTML responses get a tiny client script injected before </body>,
- the script listens on the /__livereload websocket: "reload" reloads the
  page, "css" re-fetches the stylesheets in place,
- POST /__livereload/reload and /__livereload/css trigger the same pushes
  over plain HTTP.

`serve_dev` returns an explicit DevServerHandle; nothing is kept in module
globals, so several servers can coexist (tests do that).
"""

from __future__ import annotations

import asyncio
import logging
import socket
from dataclasses import dataclass
from pathlib import Path

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse
from fastapi.staticfiles import StaticFiles

from ..core.errors import BuildIOError

logger = logging.getLogger(__name__)

LIVERELOAD_PATH = "/__livereload"

_STOP_TIMEOUT = 5.0

LIVERELOAD_SNIPPET = (
    "<script>(function(){"
    "var p=location.protocol==='https:'?'wss://':'ws://';"
    f"var ws=new WebSocket(p+location.host+'{LIVERELOAD_PATH}');"
    "ws.onmessage=function(e){"
    "if(e.data==='reload'){location.reload();}"
    "else if(e.data==='css'){"
    "document.querySelectorAll('link[rel=\"stylesheet\"]').forEach(function(l){"
    "var u=new URL(l.href);u.searchParams.set('livereload',Date.now());l.href=u.toString();});}"
    "};"
    "})();</script>"
)


def inject_snippet(html: str, snippet: str = LIVERELOAD_SNIPPET) -> str:
    """Insert the client script before the last </body>, or append it if there is none."""
    idx = html.lower().rfind("</body>")
    if idx == -1:
        return html + snippet
    return html[:idx] + snippet + html[idx:]


class LiveReloadHub:
    """Connected browser sockets; `reload()` / `inject_css()` push to all of them."""

    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()
        self.reload_count = 0
        self.css_count = 0

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def add(self, ws: WebSocket) -> None:
        self._clients.add(ws)

    def discard(self, ws: WebSocket) -> None:
        self._clients.discard(ws)

    async def _push(self, message: str) -> int:
        notified = 0
        for ws in list(self._clients):
            try:
                await ws.send_text(message)
                notified += 1
            except Exception:
                # Browser tab went away between events.
                logger.debug("Dropping dead live-reload client.", exc_info=True)
                self._clients.discard(ws)
        return notified

    async def reload(self) -> int:
        self.reload_count += 1
        notified = await self._push("reload")
        logger.info("Reloading browsers (%d client(s))", notified)
        return notified

    async def inject_css(self) -> int:
        self.css_count += 1
        notified = await self._push("css")
        logger.info("Injecting stylesheets (%d client(s))", notified)
        return notified


class LiveReloadStaticFiles(StaticFiles):
    """StaticFiles that injects the live-reload client into HTML pages."""

    async def get_response(self, path: str, scope):
        response = await super().get_response(path, scope)
        if (
            isinstance(response, FileResponse)
            and response.status_code == 200
            and (response.media_type or "").startswith("text/html")
        ):
            html = await asyncio.to_thread(Path(response.path).read_text, "utf-8")
            return HTMLResponse(inject_snippet(html))
        return response


def create_app(base_dir: Path, hub: LiveReloadHub) -> FastAPI:
    app = FastAPI(title="assetflow dev server", docs_url=None, redoc_url=None, openapi_url=None)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.websocket(LIVERELOAD_PATH)
    async def livereload_socket(websocket: WebSocket) -> None:
        await websocket.accept()
        hub.add(websocket)
        await websocket.send_text("connected")
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            hub.discard(websocket)

    @app.post(f"{LIVERELOAD_PATH}/reload")
    async def trigger_reload() -> dict[str, int]:
        return {"notified": await hub.reload()}

    @app.post(f"{LIVERELOAD_PATH}/css")
    async def trigger_css() -> dict[str, int]:
        return {"notified": await hub.inject_css()}

    # Mounted last so the live-reload routes win over same-named files.
    app.mount("/", LiveReloadStaticFiles(directory=str(base_dir), html=True, check_dir=False), name="site")
    return app


@dataclass(slots=True)
class DevServerHandle:
    server: uvicorn.Server
    task: asyncio.Task[None]
    hub: LiveReloadHub
    url: str

    async def reload(self) -> int:
        return await self.hub.reload()

    async def inject_css(self) -> int:
        return await self.hub.inject_css()

    async def stop(self) -> None:
        self.server.should_exit = True
        await self.task


def _bind(host: str, port: int) -> socket.socket:
    """Bind the listening socket up front so a busy port surfaces as OSError."""
    family, kind, proto, _name, addr = socket.getaddrinfo(
        host, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
    )[0]
    sock = socket.socket(family, kind, proto)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(addr)
    except OSError:
        sock.close()
        raise
    return sock


async def _run_server(server: uvicorn.Server, sock: socket.socket, base_dir: Path) -> None:
    # uvicorn reports startup failures with sys.exit().
    try:
        await server.serve(sockets=[sock])
    except SystemExit as exc:
        raise BuildIOError(f"Dev server exited during startup (status {exc.code})", base_dir) from exc


async def _abandon(server: uvicorn.Server, task: asyncio.Task[None], sock: socket.socket) -> None:
    server.should_exit = True
    done, _pending = await asyncio.wait({task}, timeout=_STOP_TIMEOUT)
    if not done:
        task.cancel()
        await asyncio.wait({task})
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Dev server task ended with %r", task.exception())
    for listener in server.servers:
        listener.close()
    sock.close()


async def serve_dev(
    base_dir: Path,
    *,
    host: str = "localhost",
    port: int = 3000,
    startup_timeout: float = 10.0,
) -> DevServerHandle:
    """Start the dev server on the running loop and return once it accepts connections."""
    base_dir = Path(base_dir)
    try:
        sock = _bind(host, port)
    except OSError as exc:
        raise BuildIOError(f"Dev server cannot bind {host}:{port}: {exc.strerror or exc}", base_dir) from exc

    hub = LiveReloadHub()
    app = create_app(base_dir, hub)
    config = uvicorn.Config(app, log_level="warning", lifespan="off")
    server = uvicorn.Server(config)
    task = asyncio.create_task(_run_server(server, sock, base_dir), name="assetflow-devserver")

    loop = asyncio.get_running_loop()
    deadline = loop.time() + startup_timeout
    while not server.started:
        if task.done():
            exc = None if task.cancelled() else task.exception()
            sock.close()
            raise BuildIOError(f"Dev server failed to start: {exc or 'exited'}", base_dir)
        if loop.time() > deadline:
            await _abandon(server, task, sock)
            raise BuildIOError(f"Dev server did not start within {startup_timeout:.0f}s", base_dir)
        await asyncio.sleep(0.05)

    url = f"http://{host}:{sock.getsockname()[1]}"
    logger.info("Serving %s at %s", base_dir, url)
    return DevServerHandle(server=server, task=task, hub=hub, url=url)
