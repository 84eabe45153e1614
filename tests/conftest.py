"""Shared test fixtures and configuration."""

import gzip
import threading
import zlib
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Generator

import httpx
import pytest

from http_engine import EngineConfig, Request


# ============== Mock Transport Helpers ==============

def stream_response(
    status_code: int = 200,
    headers: dict[str, str] | None = None,
    content: bytes = b"",
) -> httpx.Response:
    """Response whose body is still unread, as a network response would be."""
    return httpx.Response(status_code, headers=headers, stream=httpx.ByteStream(content))


Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def recorded() -> list[httpx.Request]:
    """Requests seen by the mock transport, in order."""
    return []


@pytest.fixture
def make_transport(recorded: list[httpx.Request]) -> Callable[[Handler], httpx.MockTransport]:
    """Factory building a MockTransport that records every request."""

    def factory(handler: Handler) -> httpx.MockTransport:
        def record(request: httpx.Request) -> httpx.Response:
            recorded.append(request)
            return handler(request)

        return httpx.MockTransport(record)

    return factory


@pytest.fixture
def routes_transport(make_transport) -> httpx.MockTransport:
    """Mock transport serving a small fixed site."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/start":
            return stream_response(302, {"Location": "/next"})
        if path == "/next":
            return stream_response(302, {"Location": f"{request.url.scheme}://{request.url.host}/final"})
        if path == "/final":
            return stream_response(200, {"Content-Type": "text/plain"}, b"done")
        if path == "/loop":
            return stream_response(302, {"Location": "/loop"})
        if path == "/no-location":
            return stream_response(301)
        if path == "/gzip":
            return stream_response(200, {"Content-Encoding": "gzip"}, gzip.compress(b"hello gzip"))
        if path == "/deflate":
            return stream_response(200, {"Content-Encoding": "deflate"}, zlib.compress(b"hello deflate"))
        if path == "/latin1":
            return stream_response(
                200,
                {"Content-Type": "text/html; charset=ISO-8859-1"},
                "café".encode("latin-1"),
            )
        if path == "/lines":
            return stream_response(200, {"Content-Type": "text/plain"}, b"a\r\nb\nc")
        if path == "/missing":
            return stream_response(404, {"Content-Type": "text/plain"}, b"not found")
        return stream_response(200, {"Content-Type": "text/plain; charset=utf-8"}, b"hello world")

    return make_transport(handler)


@pytest.fixture
def engine_config() -> EngineConfig:
    """Configuration that ignores proxy settings from the environment."""
    return EngineConfig(trust_env=False)


@pytest.fixture
def sample_request() -> Request:
    """Sample GET request."""
    return Request(method="GET", url="https://example.com/hello")


# ============== Local Server ==============

class _SiteHandler(BaseHTTPRequestHandler):
    """Minimal site used by the end-to-end tests."""

    def log_message(self, format, *args):
        pass

    def _reply(self, status: int, body: bytes = b"", headers: dict[str, str] | None = None) -> None:
        self.send_response(status)
        for key, value in (headers or {}).items():
            self.send_header(key, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def do_GET(self):
        if self.path == "/redirect":
            self._reply(302, headers={"Location": "/next"})
        elif self.path == "/next":
            host, port = self.server.server_address[:2]
            self._reply(302, headers={"Location": f"http://{host}:{port}/final"})
        elif self.path == "/final":
            self._reply(200, b"final", {"Content-Type": "text/plain"})
        elif self.path == "/gzip":
            self._reply(
                200,
                gzip.compress(b"line one\nline two\n"),
                {"Content-Encoding": "gzip", "Content-Type": "text/plain"},
            )
        elif self.path == "/stream":
            self._reply(200, b"".join(b"line %d\r\n" % i for i in range(100)))
        elif self.path.startswith("/echo"):
            body = "\n".join(f"{key}: {value}" for key, value in self.headers.items())
            self._reply(200, f"{self.path}\n{body}".encode("utf-8"), {"Content-Type": "text/plain"})
        else:
            self._reply(404, b"not found")

    def do_HEAD(self):
        self.do_GET()

    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length)
        self._reply(
            200,
            body,
            {"Content-Type": self.headers.get("Content-Type", "application/octet-stream")},
        )


@pytest.fixture
def local_server() -> Generator[str, None, None]:
    """Threaded HTTP server on 127.0.0.1; yields its base URL."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _SiteHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()
