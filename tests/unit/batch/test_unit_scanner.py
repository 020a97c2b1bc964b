# tests/unit/batch/test_unit_scanner.py — v2
"""Tests for batch/scanner.py — discovery, concurrent checks and summaries."""

from __future__ import annotations

import pytest

from shalens.api.facade import create_engine
from shalens.batch.models import FileReport
from shalens.batch.scanner import BatchScanner, summarize
from shalens.checksum.hasher import FetchError
from shalens.checksum.models import ScanReport
from shalens.config.settings import Settings


@pytest.fixture
def engine(downloads):
    return create_engine(Settings(_env_file=None), client=downloads.client())


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "Formula").mkdir()
    (tmp_path / "Formula" / "foo.rb").write_text('url "https://x/a.tgz"\n')
    (tmp_path / "bar.rb").write_text("# nothing here\n")
    (tmp_path / "README.md").write_text('url "https://x/a.tgz"\n')
    return tmp_path


class TestDiscover:
    def test_recursive(self, engine, tree):
        found = BatchScanner(engine).discover(tree)
        assert sorted(f.filename for f in found) == ["bar.rb", "foo.rb"]
        assert all(f.size_bytes > 0 for f in found)

    def test_non_recursive(self, engine, tree):
        found = BatchScanner(engine).discover(tree, recursive=False)
        assert [f.filename for f in found] == ["bar.rb"]

    def test_custom_globs(self, engine, tree):
        found = BatchScanner(engine).discover(tree, globs=["*.md"])
        assert [f.filename for f in found] == ["README.md"]

    def test_globs_from_settings(self, downloads, tree):
        engine = create_engine(
            Settings(_env_file=None, definition_globs="*.md,*.rb"), client=downloads.client()
        )
        assert len(BatchScanner(engine).discover(tree)) == 3

    def test_root_must_be_directory(self, engine, tree):
        with pytest.raises(ValueError, match="not a directory"):
            BatchScanner(engine).discover(tree / "bar.rb")


class TestCheckPaths:
    @pytest.mark.asyncio
    async def test_reports_findings(self, engine, write_file, formula_text):
        path = write_file("foo.rb", formula_text)
        reports = await BatchScanner(engine).check_paths([path])
        assert len(reports) == 1
        assert reports[0].error is None
        assert [f.kind for f in reports[0].report.findings] == ["mismatch"]
        assert reports[0].remaining == 1

    @pytest.mark.asyncio
    async def test_fix_writes_back(self, engine, write_file, formula_text, sample):
        path = write_file("foo.rb", formula_text)
        reports = await BatchScanner(engine).check_paths([path], fix=True)
        assert reports[0].fixed == 1
        assert reports[0].remaining == 0
        assert sample.resource_sha in path.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_shared_url_fetched_once(self, engine, downloads, write_file, formula_text, sample):
        paths = [write_file(f"f{i}.rb", formula_text) for i in range(4)]
        await BatchScanner(engine).check_paths(paths)
        assert downloads.requests[sample.tarball_url] == 1
        assert downloads.requests[sample.resource_url] == 1

    @pytest.mark.asyncio
    async def test_unreadable_file_reported(self, engine, tmp_path):
        bad = tmp_path / "latin1.rb"
        bad.write_bytes(b"url \"https://x/\xff\"\n")
        missing = tmp_path / "gone.rb"
        reports = await BatchScanner(engine).check_paths([bad, missing])
        assert all(r.error for r in reports)
        assert all(r.report is None for r in reports)

    @pytest.mark.asyncio
    async def test_refetch_failure_during_fix_reported(self, engine, monkeypatch, write_file, formula_text):
        async def expired_and_unreachable(finding, cancel_token=None):
            raise FetchError(finding.url, 503)

        monkeypatch.setattr(engine.updater, "edit_for", expired_and_unreachable)
        broken = write_file("broken.rb", formula_text)
        clean = write_file("clean.rb", "class Clean < Formula\nend\n")

        reports = await BatchScanner(engine).check_paths([broken, clean], fix=True)

        assert "status 503" in reports[0].error
        assert reports[1].error is None
        assert broken.read_text(encoding="utf-8") == formula_text


class TestScanAndCheck:
    @pytest.mark.asyncio
    async def test_summary(self, engine, tmp_path, formula_text):
        (tmp_path / "a.rb").write_text(formula_text, encoding="utf-8")
        (tmp_path / "b.rb").write_text("class B; end\n", encoding="utf-8")
        result = await BatchScanner(engine).scan_and_check(tmp_path)
        assert result.total_files_found == 2
        assert result.findings == 1
        assert result.fixed == 0
        assert result.errors == 0


class TestSummarize:
    def test_counts(self):
        reports = [
            FileReport(file_path="a.rb", report=ScanReport(), fixed=0),
            FileReport(file_path="b.rb", error="denied"),
        ]
        result = summarize("/tmp", reports, 1.234)
        assert result.total_files_found == 2
        assert result.errors == 1
        assert result.duration_seconds == 1.23
