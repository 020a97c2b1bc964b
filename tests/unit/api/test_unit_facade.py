# tests/unit/api/test_unit_facade.py — v2
"""Tests for api/facade.py — engine wiring and text/file entry points."""

from __future__ import annotations

import pytest

from shalens.api.facade import check_file, check_text, create_engine, fix_text
from shalens.cache.checksum_cache import ChecksumCache
from shalens.config.settings import Settings


@pytest.fixture
def engine(downloads):
    return create_engine(Settings(_env_file=None), client=downloads.client())


class TestCreateEngine:
    def test_wires_components_from_settings(self, downloads):
        settings = Settings(_env_file=None, lookback_window=3, digest_matching="strict")
        engine = create_engine(settings, client=downloads.client())
        assert engine.settings is settings
        assert engine.orchestrator.associator.window == 3
        assert engine.orchestrator.associator.extract_declarations('sha256 "abc"\n') == []

    def test_reuses_given_cache(self, downloads):
        cache = ChecksumCache()
        engine = create_engine(Settings(_env_file=None), client=downloads.client(), cache=cache)
        assert engine.cache is cache

    @pytest.mark.asyncio
    async def test_context_manager(self, downloads):
        async with create_engine(Settings(_env_file=None), client=downloads.client()) as engine:
            assert engine.hasher is not None


class TestCheckText:
    @pytest.mark.asyncio
    async def test_reports_stale_digest(self, engine, formula_text, sample):
        report = await check_text(formula_text, engine)
        assert len(report.findings) == 1
        finding = report.findings[0]
        assert finding.kind == "mismatch"
        assert finding.url == sample.resource_url
        assert finding.expected_digest == sample.resource_sha
        assert formula_text[finding.digest_range.start:finding.digest_range.end] == "0" * 64
        assert sorted(report.fetched) == sorted([sample.tarball_url, sample.resource_url])

    @pytest.mark.asyncio
    async def test_second_pass_reuses_cache(self, engine, downloads, formula_text):
        await check_text(formula_text, engine)
        report = await check_text(formula_text, engine)
        assert report.fetched == []
        assert len(report.reused) == 2
        assert downloads.total_requests == 2


class TestFixText:
    @pytest.mark.asyncio
    async def test_fixes_mismatch(self, engine, formula_text, sample):
        new_text, edits = await fix_text(formula_text, engine)
        assert len(edits) == 1
        assert "0" * 64 not in new_text
        assert f'sha256 "{sample.resource_sha}"' in new_text
        assert (await check_text(new_text, engine)).findings == []

    @pytest.mark.asyncio
    async def test_inserts_missing(self, engine, sample):
        text = f'class Foo < Formula\n  url "{sample.tarball_url}"\nend\n'
        new_text, edits = await fix_text(text, engine)
        assert len(edits) == 1
        assert new_text == (
            "class Foo < Formula\n"
            f'  url "{sample.tarball_url}"\n'
            f'  sha256 "{sample.tarball_sha}"\n'
            "end\n"
        )

    @pytest.mark.asyncio
    async def test_clean_text_unchanged(self, engine):
        text = "class Foo < Formula\nend\n"
        assert await fix_text(text, engine) == (text, [])


class TestCheckFile:
    @pytest.mark.asyncio
    async def test_check_only(self, engine, write_file, formula_text):
        path = write_file("foo.rb", formula_text)
        result = await check_file(path, engine)
        assert result.fixed == 0
        assert len(result.report.findings) == 1
        assert path.read_text(encoding="utf-8") == formula_text

    @pytest.mark.asyncio
    async def test_fix_writes_file(self, engine, write_file, formula_text, sample):
        path = write_file("foo.rb", formula_text)
        result = await check_file(path, engine, fix=True)
        assert result.fixed == 1
        assert sample.resource_sha in path.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_preserves_crlf(self, engine, tmp_path, sample):
        path = tmp_path / "crlf.rb"
        path.write_bytes(f'url "{sample.tarball_url}"\r\nsha256 "{"1" * 64}"\r\n'.encode())
        await check_file(path, engine, fix=True)
        assert path.read_bytes() == f'url "{sample.tarball_url}"\r\nsha256 "{sample.tarball_sha}"\r\n'.encode()
