# tests/integration/conftest.py — v8
"""Shared fixtures for integration tests using a local HTTP server.

Server lifecycle:
- session scope: one threaded http.server on 127.0.0.1, random port
- artifacts are served from memory; /redirect/<name> answers 302 to /files/<name>
- every request path is counted so tests can assert download counts

Proxy variables are cleared per test so httpx talks to loopback directly.
"""

from __future__ import annotations

import hashlib
import threading
from collections import Counter
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from types import SimpleNamespace

import pytest

ARTIFACTS: dict[str, bytes] = {
    "foo-1.0.tar.gz": b"\x1f\x8b integration tarball " * 4096,
    "bar-2.3.tgz": b"integration resource\n" * 300,
    "empty.zip": b"",
}


class _ArtifactHandler(BaseHTTPRequestHandler):
    requests: Counter[str] = Counter()

    def do_GET(self) -> None:  # noqa: N802
        self.requests[self.path] += 1
        if self.path.startswith("/redirect/"):
            self.send_response(302)
            self.send_header("Location", "/files/" + self.path.removeprefix("/redirect/"))
            self.send_header("Content-Length", "0")
            self.end_headers()
            return
        body = ARTIFACTS.get(self.path.removeprefix("/files/"))
        if not self.path.startswith("/files/") or body is None:
            self.send_error(404)
            return
        self.send_response(200)
        self.send_header("Content-Type", "application/octet-stream")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:
        pass


@pytest.fixture(scope="session")
def artifact_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _ArtifactHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    base = f"http://127.0.0.1:{server.server_address[1]}"
    yield SimpleNamespace(
        base=base,
        url=lambda name: f"{base}/files/{name}",
        redirect=lambda name: f"{base}/redirect/{name}",
        sha=lambda name: hashlib.sha256(ARTIFACTS[name]).hexdigest(),
        requests=_ArtifactHandler.requests,
    )
    server.shutdown()
    server.server_close()


@pytest.fixture(autouse=True)
def _no_proxy(monkeypatch):
    for var in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def server(artifact_server):
    artifact_server.requests.clear()
    return artifact_server
