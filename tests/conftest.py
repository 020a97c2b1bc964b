# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides sample definition texts, fake downloadable artifacts served through
httpx.MockTransport, and fresh caches. No test touches the network.
"""

from __future__ import annotations

import hashlib
from collections import Counter
from pathlib import Path
from types import SimpleNamespace
from typing import Callable

import httpx
import pytest

from shalens.cache.checksum_cache import ChecksumCache
from shalens.checksum.hasher import HashComputer


# === HELPERS ===


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class FakeDownloads:
    """In-memory artifact server with per-URL request counting.

    ``artifacts`` maps URL -> body bytes, or -> an int status code to fail
    with, or -> an exception instance to raise.
    """

    def __init__(self, artifacts: dict[str, object] | None = None) -> None:
        self.artifacts: dict[str, object] = dict(artifacts or {})
        self.requests: Counter[str] = Counter()

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests[url] += 1
        body = self.artifacts.get(url)
        if body is None:
            return httpx.Response(404, request=request)
        if isinstance(body, Exception):
            raise body
        if isinstance(body, int):
            return httpx.Response(body, request=request)
        return httpx.Response(200, content=body, request=request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def total_requests(self) -> int:
        return sum(self.requests.values())


# === FIXTURES: Sample data ===

TARBALL_URL = "https://example.com/foo-1.0.tar.gz"
RESOURCE_URL = "https://files.example.org/bar-2.3.tgz"
TARBALL_BYTES = b"foo tarball contents\n" * 100
RESOURCE_BYTES = b"bar resource contents\n" * 50


@pytest.fixture
def sample() -> SimpleNamespace:
    """URLs, bodies and digests of the two sample artifacts."""
    return SimpleNamespace(
        tarball_url=TARBALL_URL,
        tarball_bytes=TARBALL_BYTES,
        tarball_sha=sha256_hex(TARBALL_BYTES),
        resource_url=RESOURCE_URL,
        resource_bytes=RESOURCE_BYTES,
        resource_sha=sha256_hex(RESOURCE_BYTES),
    )


@pytest.fixture
def artifacts() -> dict[str, object]:
    return {TARBALL_URL: TARBALL_BYTES, RESOURCE_URL: RESOURCE_BYTES}


@pytest.fixture
def make_downloads() -> type[FakeDownloads]:
    return FakeDownloads


@pytest.fixture
def downloads(artifacts: dict[str, object]) -> FakeDownloads:
    return FakeDownloads(artifacts)


@pytest.fixture
def hasher(downloads: FakeDownloads) -> HashComputer:
    return HashComputer(client=downloads.client(), chunk_size=64)


@pytest.fixture
def cache() -> ChecksumCache:
    return ChecksumCache()


@pytest.fixture
def formula_text() -> str:
    """Formula with one correct main digest and one stale resource digest."""
    return (
        "class Foo < Formula\n"
        '  desc "Foo tool"\n'
        f'  url "{TARBALL_URL}"\n'
        f'  sha256 "{sha256_hex(TARBALL_BYTES)}"\n'
        '  license "MIT"\n'
        "\n"
        '  resource "bar" do\n'
        f'    url "{RESOURCE_URL}"\n'
        f'    sha256 "{"0" * 64}"\n'
        "  end\n"
        "end\n"
    )


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
