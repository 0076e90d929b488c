"""
Unit Tests — PageRemover and ArtifactPostProcessor
═══════════════════════════════════════════════════
The qpdf tests use stand-in binaries (`false`, `true`, a missing path)
to drive the failure branches without a real PDF toolchain.

Coverage targets:
  ✅ qpdf command line
  ✅ launch failure / non-zero exit / empty output → PageRemovalError
  ✅ download → trim → upload ordering and returned URL
  ✅ temp files removed on success and on every failure path
  ✅ download failure stops before trimming
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from reportflow.clients.cdn import CloudinaryClient
from reportflow.pipeline.errors import DownloadError, PageRemovalError, UploadError
from reportflow.processing.artifacts import ArtifactPostProcessor
from reportflow.processing.pages import PageRemover

REPORT_URL = "https://reports.test/ai.pdf"


# ─────────────────────────────────────────────────────────────────────────────
# PageRemover
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
class TestPageRemover:

    def test_build_command(self):
        command = PageRemover("qpdf").build_command(Path("/t/in.pdf"), Path("/t/out.pdf"))
        assert command == ["qpdf", "/t/in.pdf", "/t/out.pdf", "--pages", "/t/in.pdf", "2-z", "--"]

    async def test_missing_binary_raises(self, tmp_path):
        remover = PageRemover(str(tmp_path / "no-such-qpdf"))
        with pytest.raises(PageRemovalError, match="Could not launch"):
            await remover.remove_first_page(tmp_path / "in.pdf", tmp_path / "out.pdf")

    @pytest.mark.skipif(shutil.which("false") is None, reason="needs `false`")
    async def test_failing_exit_code_raises(self, tmp_path):
        remover = PageRemover(shutil.which("false"))
        with pytest.raises(PageRemovalError) as exc_info:
            await remover.remove_first_page(tmp_path / "in.pdf", tmp_path / "out.pdf")
        assert exc_info.value.returncode == 1

    @pytest.mark.skipif(shutil.which("true") is None, reason="needs `true`")
    async def test_success_without_output_raises(self, tmp_path):
        remover = PageRemover(shutil.which("true"))
        with pytest.raises(PageRemovalError, match="no output"):
            await remover.remove_first_page(tmp_path / "in.pdf", tmp_path / "out.pdf")


# ─────────────────────────────────────────────────────────────────────────────
# ArtifactPostProcessor
# ─────────────────────────────────────────────────────────────────────────────

async def _fake_trim(input_path: Path, output_path: Path) -> int:
    data = input_path.read_bytes()
    output_path.write_bytes(data.replace(b"PAGE1", b""))
    return output_path.stat().st_size


@pytest.fixture
def work_dir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def page_remover():
    remover = MagicMock(spec=PageRemover)
    remover.remove_first_page = AsyncMock(side_effect=_fake_trim)
    return remover


@pytest.fixture
def cdn():
    client = MagicMock(spec=CloudinaryClient)
    uploaded: list[bytes] = []

    async def _upload(path: Path, public_id: str) -> str:
        uploaded.append(path.read_bytes())
        return f"https://res.cdn.test/{public_id}"

    client.upload_raw = AsyncMock(side_effect=_upload)
    client.uploaded = uploaded
    return client


@pytest.fixture
def make_processor(make_http, page_remover, cdn, work_dir):
    def _build(handler):
        return ArtifactPostProcessor(
            make_http(handler),
            page_remover=page_remover,
            cdn=cdn,
            public_id_prefix="reports",
            temp_dir=str(work_dir),
        )
    return _build


@pytest.mark.unit
class TestArtifactPostProcessor:

    def test_public_id_layout(self, make_processor, router):
        public_id = make_processor(router).public_id_for("ai_report")
        assert re.fullmatch(r"reports/ai_report_\d{13}\.pdf", public_id)

    async def test_process_downloads_trims_and_uploads(
        self, make_processor, router, page_remover, cdn, work_dir
    ):
        router.add("GET", REPORT_URL, httpx.Response(200, content=b"%PDF PAGE1 PAGE2"))

        url = await make_processor(router).process(REPORT_URL, "ai_report")

        assert re.fullmatch(r"https://res\.cdn\.test/reports/ai_report_\d+\.pdf", url)
        page_remover.remove_first_page.assert_awaited_once()
        assert cdn.uploaded == [b"%PDF  PAGE2"]
        assert list(work_dir.iterdir()) == []

    async def test_download_failure_skips_trim_and_cleans_up(
        self, make_processor, router, page_remover, cdn, work_dir
    ):
        router.add("GET", REPORT_URL, httpx.Response(404))

        with pytest.raises(DownloadError):
            await make_processor(router).process(REPORT_URL, "ai_report")

        page_remover.remove_first_page.assert_not_awaited()
        cdn.upload_raw.assert_not_awaited()
        assert list(work_dir.iterdir()) == []

    async def test_missing_url_raises_download_error(self, make_processor, router):
        with pytest.raises(DownloadError):
            await make_processor(router).process(None, "similarity_report")
        assert router.requests == []

    async def test_trim_failure_skips_upload_and_cleans_up(
        self, make_processor, router, page_remover, cdn, work_dir
    ):
        router.add("GET", REPORT_URL, httpx.Response(200, content=b"%PDF"))
        page_remover.remove_first_page.side_effect = PageRemovalError("qpdf failed", returncode=2)

        with pytest.raises(PageRemovalError):
            await make_processor(router).process(REPORT_URL, "ai_report")

        cdn.upload_raw.assert_not_awaited()
        assert list(work_dir.iterdir()) == []

    async def test_upload_failure_cleans_up(self, make_processor, router, cdn, work_dir):
        router.add("GET", REPORT_URL, httpx.Response(200, content=b"%PDF PAGE1"))
        cdn.upload_raw.side_effect = UploadError("CDN upload failed: HTTP 500")

        with pytest.raises(UploadError):
            await make_processor(router).process(REPORT_URL, "ai_report")

        assert list(work_dir.iterdir()) == []
