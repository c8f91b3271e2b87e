"""Development server for Packup.

Serves the latest build of every entrypoint from memory and reloads the browser
after each rebuild:
- Artifacts are served by name; ``/`` maps to ``index.html`` and any unknown
  path gets the ``404`` artifact (the main page) for client side routing.
- A websocket server on the live reload port serves ``/livereload.js`` over
  plain HTTP and pushes a reload message after every build.
- One watch loop thread per entrypoint rebuilds on change and swaps its
  completed build into the store, dropping the names of the previous one.

Key classes:
- DevServer: Main class for running the development server.
- ArtifactStore: Thread-safe mapping of artifact names to the latest artifacts.
- LiveReloadServer: Websocket server that serves the reload script and notifies clients.
- _ArtifactHandler: HTTP request handler that serves artifacts from the store.
"""

from __future__ import annotations

import asyncio
import json
import threading
from collections.abc import Callable, Iterable, Sequence
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import unquote, urlsplit

import click
import websockets
from websockets.datastructures import Headers
from websockets.http11 import Response

from .artifacts import Artifact
from .build import iter_static_artifacts
from .generate import (
    DEFAULT_LIVERELOAD_PORT,
    FALLBACK_NAME,
    LIVERELOAD_SCRIPT_PATH,
    GenerateOptions,
    watch_and_generate,
)
from .logger import ConsoleLogger
from .protocols import Logger
from .tools import Toolchain
from .utils import check_unique_entrypoints

INDEX_NAME = "index.html"

LIVERELOAD_SCRIPT_TEMPLATE = """\
(() => {{
  const connect = () => {{
    const ws = new WebSocket("ws://" + location.hostname + ":{port}/livereload");
    ws.onmessage = (event) => {{
      const data = JSON.parse(event.data || "{{}}");
      if (data.type === "reload") location.reload();
    }};
    ws.onclose = () => setTimeout(connect, 1000);
  }};
  connect();
}})();
"""


class ArtifactStore:
    """Latest artifacts by name, shared between watch loops and request threads.

    Artifacts added with ``put`` stay until overwritten. Artifacts published
    with ``replace`` belong to an owner (an entrypoint), and each ``replace``
    drops the owner's names that the new set no longer contains.
    """

    def __init__(self, artifacts: Iterable[Artifact] = ()):
        self._lock = threading.Lock()
        self._artifacts: dict[str, Artifact] = {}
        self._owned: dict[str, set[str]] = {}
        for artifact in artifacts:
            self.put(artifact)

    def put(self, artifact: Artifact) -> None:
        with self._lock:
            self._artifacts[artifact.name] = artifact

    def replace(self, owner: str, artifacts: Iterable[Artifact]) -> None:
        """Swap in the artifacts of ``owner``'s latest build in one step."""
        artifacts = list(artifacts)
        names = {artifact.name for artifact in artifacts}
        with self._lock:
            for stale in self._owned.get(owner, set()) - names:
                self._artifacts.pop(stale, None)
            for artifact in artifacts:
                self._artifacts[artifact.name] = artifact
            self._owned[owner] = names

    def get(self, name: str) -> Artifact | None:
        with self._lock:
            return self._artifacts.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._artifacts)

    def lookup(self, request_path: str) -> Artifact | None:
        """Return the artifact for a request path, falling back to ``404``."""
        name = unquote(urlsplit(request_path).path).lstrip("/") or INDEX_NAME
        return self.get(name) or self.get(FALLBACK_NAME)


class _ArtifactHandler(BaseHTTPRequestHandler):
    """HTTP request handler that serves artifacts from an ArtifactStore.

    Attributes:
        store: Store the artifacts are read from.
        logger: Logger that receives the access log at debug level.
    """

    store: ArtifactStore
    logger: Logger

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def do_GET(self):
        artifact = self._send_head()
        if artifact is not None:
            self.wfile.write(artifact.data)

    def do_HEAD(self):
        self._send_head()

    def _send_head(self) -> Artifact | None:
        artifact = self.store.lookup(self.path)
        if artifact is None:
            self.send_error(HTTPStatus.NOT_FOUND, "File not found")
            return None
        media_type = artifact.media_type
        if media_type.startswith("text/") or media_type == "application/javascript":
            media_type = f"{media_type}; charset=utf-8"
        self.send_response(HTTPStatus.OK)
        self.send_header("Content-type", media_type)
        self.send_header("Content-Length", str(artifact.size))
        self.end_headers()
        return artifact

    def log_message(self, format, *args):
        self.logger.debug(f"{self.address_string()} - {format % args}")


class LiveReloadServer:
    """Serves the live reload script and tells connected browsers to reload.

    Attributes:
        port: Port for both the script and the websocket connections.
    """

    def __init__(self, port: int = DEFAULT_LIVERELOAD_PORT, logger: Logger | None = None):
        self.port = port
        self.logger = logger or ConsoleLogger()
        self.script = LIVERELOAD_SCRIPT_TEMPLATE.format(port=port).encode("utf-8")
        self._clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._shutdown: asyncio.Event | None = None

    def start(self) -> threading.Thread:  # pragma: no cover - integration path
        thread = threading.Thread(target=self._run, name="packup-livereload", daemon=True)
        thread.start()
        return thread

    def stop(self) -> None:
        if self._shutdown is not None:
            self._loop.call_soon_threadsafe(self._shutdown.set)

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._serve())
        except OSError as exc:
            self.logger.error(
                f"Live reload server failed to start (port {self.port}): {exc}"
            )

    async def _serve(self) -> None:  # pragma: no cover - integration path
        self._shutdown = asyncio.Event()
        async with websockets.serve(
            self._handler, "0.0.0.0", self.port, process_request=self._process_request
        ):
            await self._shutdown.wait()

    def _process_request(self, connection, request) -> Response | None:
        """Answer plain HTTP requests for the script; let websocket upgrades through."""
        if urlsplit(request.path).path != LIVERELOAD_SCRIPT_PATH:
            return None
        headers = Headers(
            [
                ("Content-Type", "application/javascript; charset=utf-8"),
                ("Content-Length", str(len(self.script))),
                ("Cache-Control", "no-cache"),
            ]
        )
        return Response(HTTPStatus.OK.value, HTTPStatus.OK.phrase, headers, self.script)

    async def _handler(self, websocket):
        self._clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._clients.discard(websocket)

    def broadcast_reload(self) -> None:
        """Ask every connected browser to reload; safe to call from any thread."""
        if not self._loop.is_running():
            return
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._async_broadcast(message), self._loop)

    async def _async_broadcast(self, message: str):
        stale = set()
        for ws in list(self._clients):
            try:
                await ws.send(message)
            except Exception:
                stale.add(ws)
        for ws in stale:
            self._clients.discard(ws)


class DevServer:
    """Development server that rebuilds on change and reloads the browser.

    Attributes:
        entrypoints: HTML entrypoints being served.
        http_port: Port for the HTTP server.
        livereload_port: Port for the live reload server.
        public_url: URL prefix written into rewritten references.
        static_dir: Optional directory served alongside the artifacts.
        store: Latest artifacts of every entrypoint.
    """

    def __init__(
        self,
        entrypoints: Sequence[str | Path],
        *,
        http_port: int = 1234,
        livereload_port: int = DEFAULT_LIVERELOAD_PORT,
        public_url: str = ".",
        static_dir: Path | None = None,
        open_browser: bool = False,
        toolchain: Toolchain | None = None,
        logger: Logger | None = None,
    ):
        check_unique_entrypoints(entrypoints)
        self.entrypoints = list(entrypoints)
        self.http_port = http_port
        self.livereload_port = livereload_port
        self.public_url = public_url
        self.static_dir = static_dir
        self.open_browser = open_browser
        self.toolchain = toolchain
        self.logger = logger or ConsoleLogger()
        self.store = ArtifactStore()
        self.livereload = LiveReloadServer(livereload_port, self.logger)
        self._stop = threading.Event()
        self._failure: Exception | None = None
        self._httpd: ThreadingHTTPServer | None = None

    @property
    def url(self) -> str:
        return f"http://localhost:{self.http_port}/"

    def generate_options(
        self,
        *,
        main_as_404: bool = True,
        on_build: Callable[[], None] | None = None,
    ) -> GenerateOptions:
        return GenerateOptions(
            public_url=self.public_url,
            livereload_port=self.livereload_port,
            main_as_404=main_as_404,
            on_build=on_build or self.livereload.broadcast_reload,
        )

    def start(self) -> None:  # pragma: no cover - integration path
        """Serve until interrupted; re-raises the first build error of any watch loop."""
        if self.static_dir is not None:
            for artifact in iter_static_artifacts(self.static_dir):
                self.store.put(artifact)
        self.livereload.start()
        threading.Thread(target=self._start_http, daemon=True).start()
        for entrypoint in self.entrypoints:
            threading.Thread(
                target=self._run_watch_loop, args=(entrypoint,), daemon=True
            ).start()
        if self.open_browser:
            click.launch(self.url)
        try:
            while not self._stop.wait(1):
                pass
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()
        if self._failure is not None:
            raise self._failure

    def stop(self) -> None:
        self._stop.set()
        if self._httpd is not None:
            self._httpd.shutdown()
        self.livereload.stop()

    def _start_http(self) -> None:  # pragma: no cover - integration path
        self._httpd = self.make_http_server()
        self.logger.log(f"Serving {', '.join(map(str, self.entrypoints))} at {self.url}")
        self._httpd.serve_forever()

    def make_http_server(self, host: str = "") -> ThreadingHTTPServer:
        handler_cls = type(
            "_ArtifactHandlerWithStore",
            (_ArtifactHandler,),
            {"store": self.store, "logger": self.logger},
        )
        return ThreadingHTTPServer((host, self.http_port), handler_cls)

    def _run_watch_loop(self, entrypoint: str | Path) -> None:
        """Rebuild ``entrypoint`` until stopped, publishing each completed build.

        Only the first entrypoint provides the ``404`` fallback page.
        """
        pending: list[Artifact] = []

        def publish() -> None:
            self.store.replace(str(entrypoint), pending)
            pending.clear()
            self.livereload.broadcast_reload()

        options = self.generate_options(
            main_as_404=self.entrypoints.index(entrypoint) == 0, on_build=publish
        )
        try:
            for artifact in watch_and_generate(
                entrypoint,
                options,
                toolchain=self.toolchain,
                logger=self.logger,
                stop_event=self._stop,
            ):
                pending.append(artifact)
        except Exception as exc:
            self._failure = exc
            self._stop.set()
