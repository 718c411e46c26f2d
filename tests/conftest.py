"""
pytest configuration and fixtures.
"""

import http.client
import logging
import threading
from pathlib import Path
from typing import Generator

import pytest

from staticserver import ServerConfig, StaticServer
from staticserver.http import HTTPRequest, HTTPResponse, parse_request


INDEX_HTML = b"<!doctype html><title>home</title><h1>Hello</h1>"
DOCS_INDEX_HTML = b"<!doctype html><title>docs</title>"


@pytest.fixture
def public_dir(tmp_path: Path) -> Path:
    """
    A small site:

        public/
            index.html
            style.css
            LICENSE            (no extension)
            .env               (dotfile)
            .git/config        (hidden directory)
            docs/index.html
    """
    root = tmp_path / "public"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "style.css").write_text("body { color: red; }")
    (root / "LICENSE").write_text("MIT")
    (root / ".env").write_text("SECRET=1")
    (root / ".git").mkdir()
    (root / ".git" / "config").write_text("[core]")
    (root / "docs").mkdir()
    (root / "docs" / "index.html").write_bytes(DOCS_INDEX_HTML)
    (tmp_path / "secret.txt").write_text("outside the root")
    return root


@pytest.fixture
def make_request():
    """Factory for parsed requests: make_request("/docs", method="HEAD")."""

    def factory(url: str = "/", method: str = "GET", headers: dict = None) -> HTTPRequest:
        lines = [f"{method} {url} HTTP/1.1", "Host: localhost"]
        for name, value in (headers or {}).items():
            lines.append(f"{name}: {value}")
        raw = ("\r\n".join(lines) + "\r\n\r\n").encode()
        return parse_request(raw, ("127.0.0.1", 50000))

    return factory


@pytest.fixture
def response() -> HTTPResponse:
    return HTTPResponse()


class RunningServer:
    """A StaticServer serving from a background thread."""

    def __init__(self, server: StaticServer):
        self.server = server
        self._thread = threading.Thread(target=server.serve_forever, daemon=True)

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self) -> "RunningServer":
        self.server.bind()
        self._thread.start()
        return self

    def stop(self):
        self.server.shutdown()
        self._thread.join(timeout=10.0)

    def request(self, method: str, url: str, headers: dict = None):
        """Send one request on a fresh connection; returns (response, body)."""
        conn = http.client.HTTPConnection("127.0.0.1", self.port, timeout=5)
        try:
            conn.request(method, url, headers=headers or {})
            resp = conn.getresponse()
            return resp, resp.read()
        finally:
            conn.close()


@pytest.fixture
def serve():
    """
    Start a server for a config and stop it after the test:

        running = serve(ServerConfig(directory=public_dir))
    """
    started = []

    def start(config: ServerConfig) -> RunningServer:
        config.host = config.host or "127.0.0.1"
        config.port = 0
        config.min_workers = 2
        config.max_workers = 4
        config.keep_alive_timeout = 1.0
        running = RunningServer(StaticServer(config)).start()
        started.append(running)
        return running

    yield start

    for running in started:
        running.stop()


@pytest.fixture
def running_server(serve, public_dir) -> Generator[RunningServer, None, None]:
    yield serve(ServerConfig(directory=str(public_dir)))


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo configure_logging() calls made during a test."""
    package_logger = logging.getLogger("staticserver")
    handlers, level = list(package_logger.handlers), package_logger.level
    yield
    package_logger.handlers[:] = handlers
    package_logger.setLevel(level)
