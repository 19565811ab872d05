"""Shared fixtures for the HTTP data source tests."""

from __future__ import annotations

import logging
import socket
import threading
import time
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

import httpx
import pytest

from HttpProvider.DataSource.logging_config import LOGGER_NAME
from HttpProvider.DataSource.network.executor import RequestExecutor
from HttpProvider.DataSource.settings import HttpClientConfiguration


@dataclass
class Route:
    status: int = 200
    body: bytes = b""
    headers: Sequence[Tuple[str, str]] = ()
    delay: float = 0.0


@dataclass
class _ServerState:
    routes: Dict[str, Route] = field(default_factory=dict)
    requests: List[Tuple[str, Dict[str, str]]] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)


class _Handler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def do_GET(self) -> None:  # noqa: N802 - stdlib naming
        state: _ServerState = self.server.state  # type: ignore[attr-defined]
        path = urlparse(self.path).path
        with state.lock:
            state.requests.append((path, {k: v for k, v in self.headers.items()}))
            route = state.routes.get(path, Route(status=404))
        if route.delay:
            time.sleep(route.delay)
        self.send_response(route.status)
        for name, value in route.headers:
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(route.body)))
        self.end_headers()
        self.wfile.write(route.body)

    def log_message(self, format: str, *args) -> None:  # noqa: A002 - stdlib signature
        return None


class _QuietServer(ThreadingHTTPServer):
    daemon_threads = True

    def handle_error(self, request, client_address) -> None:
        # Clients that hit their timeout disconnect mid-response.
        return None


class LoopbackServer:
    """Real HTTP server on 127.0.0.1 serving canned routes."""

    def __init__(self) -> None:
        self.state = _ServerState()
        self._server = _QuietServer(("127.0.0.1", 0), _Handler)
        self._server.state = self.state  # type: ignore[attr-defined]
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    def start(self) -> "LoopbackServer":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()
        self._thread.join(timeout=5)

    @property
    def base_url(self) -> str:
        host, port = self._server.server_address[:2]
        return f"http://{host}:{port}"

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def add_route(
        self,
        path: str,
        *,
        status: int = 200,
        body: bytes = b"",
        headers: Sequence[Tuple[str, str]] = (),
        delay: float = 0.0,
    ) -> str:
        with self.state.lock:
            self.state.routes[path] = Route(status=status, body=body, headers=tuple(headers), delay=delay)
        return self.url(path)

    @property
    def requests(self) -> List[Tuple[str, Dict[str, str]]]:
        with self.state.lock:
            return list(self.state.requests)


_PROXY_VARIABLES = (
    "HTTP_PROXY",
    "HTTPS_PROXY",
    "ALL_PROXY",
    "http_proxy",
    "https_proxy",
    "all_proxy",
)


@pytest.fixture
def no_proxy_env(monkeypatch) -> None:
    for name in _PROXY_VARIABLES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def http_server(no_proxy_env) -> Iterator[LoopbackServer]:
    server = LoopbackServer().start()
    try:
        yield server
    finally:
        server.stop()


@pytest.fixture
def closed_port_url(no_proxy_env) -> str:
    """URL on 127.0.0.1 where nothing is listening."""

    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return f"http://127.0.0.1:{port}/unreachable"


class RecordingLogger:
    """FetchLogger capturing calls for assertions."""

    def __init__(self) -> None:
        self.records: List[Tuple[str, str, Dict[str, object]]] = []

    def _record(self, level: str, message: str, fields=None) -> None:
        self.records.append((level, message, dict(fields or {})))

    def error(self, message, fields=None) -> None:
        self._record("error", message, fields)

    def warn(self, message, fields=None) -> None:
        self._record("warn", message, fields)

    def info(self, message, fields=None) -> None:
        self._record("info", message, fields)

    def debug(self, message, fields=None) -> None:
        self._record("debug", message, fields)

    def messages(self, level: str) -> List[str]:
        return [message for lvl, message, _ in self.records if lvl == level]


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def mock_executor(recording_logger):
    """Build a :class:`RequestExecutor` over ``httpx.MockTransport``.

    Retry sleeps are recorded instead of performed.
    """

    def _factory(
        handler: Handler,
        *,
        config: Optional[HttpClientConfiguration] = None,
        sleeps: Optional[List[float]] = None,
    ) -> RequestExecutor:
        recorded = sleeps if sleeps is not None else []
        return RequestExecutor(
            config,
            logger=recording_logger,
            transport=httpx.MockTransport(handler),
            sleep=recorded.append,
        )

    return _factory


@pytest.fixture(autouse=True)
def _reset_data_source_logger() -> Iterator[None]:
    """Drop handlers installed by ``setup_logging`` during a test."""

    logger = logging.getLogger(LOGGER_NAME)
    level = logger.level
    yield
    for handler in list(logger.handlers):
        if getattr(handler, "_httpdata_managed", False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
