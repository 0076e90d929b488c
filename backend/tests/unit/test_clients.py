"""
Unit Tests — storage, analysis, job-status and CDN clients
═══════════════════════════════════════════════════════════
All HTTP goes through httpx.MockTransport.

Coverage targets:
  ✅ Storage upload: URL layout, headers, key precedence, key fallback
  ✅ Storage InvalidKey rejection surfaces as SubmissionError.is_invalid_key
  ✅ Analysis: payload, cookie header, job id precedence, missing job id
  ✅ Job status: list or object bodies, empty list, renamed fields
  ✅ CDN: request signature, secure_url extraction, error bodies
"""

from __future__ import annotations

import hashlib
import json

import httpx
import pytest

from reportflow.clients.analysis import AnalysisClient
from reportflow.clients.cdn import CloudinaryClient, sign_params
from reportflow.clients.jobs import JobStatusClient
from reportflow.clients.storage import StorageClient
from reportflow.pipeline.errors import SubmissionError, UploadError
from tests.helpers import ANALYSIS_URL, CDN_BASE, STORAGE_BASE, WORKFLOW_ID


# ─────────────────────────────────────────────────────────────────────────────
# Storage
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def storage_for(make_http):
    def _build(router):
        return StorageClient(
            make_http(router),
            base_url=STORAGE_BASE + "/",
            api_key="anon-key",
            bucket="files",
            workflow_id=WORKFLOW_ID,
        )
    return _build


@pytest.mark.unit
class TestStorageClient:

    def test_url_layout(self, storage_for, router):
        storage = storage_for(router)
        assert storage.object_url("a.docx") == (
            f"{STORAGE_BASE}/storage/v1/object/files/{WORKFLOW_ID}/a.docx"
        )
        assert storage.public_url("files/x/a.docx") == (
            f"{STORAGE_BASE}/storage/v1/object/public/files/x/a.docx"
        )

    async def test_upload_sends_auth_headers_and_multipart_file(self, storage_for, router):
        router.add("POST", STORAGE_BASE, httpx.Response(200, json={"Key": "files/wf-0001/a.docx"}))
        stored = await storage_for(router).upload(b"%PDF-1.4", "a.docx", "Bearer tok")

        request = router.requests[0]
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer tok"
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'filename="a.docx"' in request.content
        assert b"%PDF-1.4" in request.content
        assert stored.key == "files/wf-0001/a.docx"
        assert stored.public_url == f"{STORAGE_BASE}/storage/v1/object/public/files/wf-0001/a.docx"

    @pytest.mark.parametrize("body, expected", [
        ({"Key": "K", "key": "k", "name": "n"}, "K"),
        ({"key": "k", "name": "n"}, "k"),
        ({"name": "n"}, "n"),
    ])
    async def test_key_precedence(self, storage_for, router, body, expected):
        router.add("POST", STORAGE_BASE, httpx.Response(200, json=body))
        stored = await storage_for(router).upload(b"x", "a.docx", "t")
        assert stored.key == expected

    async def test_missing_key_falls_back_to_upload_path(self, storage_for, router):
        router.add("POST", STORAGE_BASE, httpx.Response(200, json={"Id": "123"}))
        stored = await storage_for(router).upload(b"x", "a.docx", "t")
        assert stored.key == f"files/{WORKFLOW_ID}/a.docx"

    async def test_invalid_key_rejection(self, storage_for, router):
        router.add("POST", STORAGE_BASE, httpx.Response(
            400,
            json={"statusCode": "400", "error": "InvalidKey", "message": "Invalid key"},
        ))
        with pytest.raises(SubmissionError) as exc_info:
            await storage_for(router).upload(b"x", "résumé.docx", "t")

        assert exc_info.value.status_code == 400
        assert exc_info.value.service_error == "InvalidKey"
        assert exc_info.value.is_invalid_key

    async def test_other_rejection_is_not_invalid_key(self, storage_for, router):
        router.add("POST", STORAGE_BASE, httpx.Response(413, json={"error": "Payload too large"}))
        with pytest.raises(SubmissionError) as exc_info:
            await storage_for(router).upload(b"x", "a.docx", "t")
        assert not exc_info.value.is_invalid_key

    async def test_transport_failure(self, storage_for):
        def boom(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(SubmissionError):
            await storage_for(boom).upload(b"x", "a.docx", "t")


# ─────────────────────────────────────────────────────────────────────────────
# Analysis
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
class TestAnalysisClient:

    async def test_submit_posts_uid_and_file_url_with_cookie(self, make_http, router):
        router.add("POST", ANALYSIS_URL, httpx.Response(200, json={"history_id": "job-1"}))
        client = AnalysisClient(make_http(router), ANALYSIS_URL, WORKFLOW_ID)

        job_id = await client.submit("https://public/a.docx", "sid=42")

        request = router.requests[0]
        assert json.loads(request.content) == {"uid": WORKFLOW_ID, "fileUrl": "https://public/a.docx"}
        assert request.headers["Cookie"] == "sid=42"
        assert job_id == "job-1"

    @pytest.mark.parametrize("body, expected", [
        ({"history_id": "a", "historyId": "b", "id": "c"}, "a"),
        ({"historyId": "b", "id": "c"}, "b"),
        ({"id": 17}, "17"),
        ({"message": "queued"}, None),
        ([], None),
    ])
    async def test_job_id_precedence(self, make_http, router, body, expected):
        router.add("POST", ANALYSIS_URL, httpx.Response(200, json=body))
        client = AnalysisClient(make_http(router), ANALYSIS_URL, WORKFLOW_ID)
        assert await client.submit("u", "c") == expected

    async def test_non_json_success_has_no_job_id(self, make_http, router):
        router.add("POST", ANALYSIS_URL, httpx.Response(200, text="ok"))
        client = AnalysisClient(make_http(router), ANALYSIS_URL, WORKFLOW_ID)
        assert await client.submit("u", "c") is None

    async def test_rejection_raises_with_service_error(self, make_http, router):
        router.add("POST", ANALYSIS_URL, httpx.Response(401, json={"code": "SessionExpired"}))
        client = AnalysisClient(make_http(router), ANALYSIS_URL, WORKFLOW_ID)

        with pytest.raises(SubmissionError) as exc_info:
            await client.submit("u", "c")
        assert exc_info.value.status_code == 401
        assert exc_info.value.service_error == "SessionExpired"


# ─────────────────────────────────────────────────────────────────────────────
# Job status
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
class TestJobStatusClient:

    def _client(self, make_http, router):
        return JobStatusClient(make_http(router), STORAGE_BASE, "anon-key")

    async def test_queries_history_by_id(self, make_http, router):
        router.add("GET", STORAGE_BASE, httpx.Response(200, json=[]))
        await self._client(make_http, router).get_status("job-1", "Bearer tok")

        request = router.requests[0]
        assert str(request.url) == f"{STORAGE_BASE}/rest/v1/checks_history?id=eq.job-1"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer tok"

    async def test_list_body_done(self, make_http, router):
        router.add("GET", STORAGE_BASE, httpx.Response(200, json=[{
            "turnitin_status": "done",
            "turnitin_report_url": "https://r/ai.pdf",
            "turnitin_similarity_report_url": "https://r/sim.pdf",
        }]))
        job = await self._client(make_http, router).get_status("job-1", "t")

        assert job.is_done
        assert job.ai_report_url == "https://r/ai.pdf"
        assert job.similarity_report_url == "https://r/sim.pdf"

    async def test_object_body_with_fallback_fields(self, make_http, router):
        router.add("GET", STORAGE_BASE, httpx.Response(200, json={
            "status": "processing",
            "report_url": "https://r/ai.pdf",
            "similarity_report_url": "https://r/sim.pdf",
        }))
        job = await self._client(make_http, router).get_status("job-1", "t")

        assert not job.is_done
        assert job.status == "processing"
        assert job.ai_report_url == "https://r/ai.pdf"

    async def test_empty_list_is_none(self, make_http, router):
        router.add("GET", STORAGE_BASE, httpx.Response(200, json=[]))
        assert await self._client(make_http, router).get_status("job-1", "t") is None

    async def test_error_status_raises(self, make_http, router):
        router.add("GET", STORAGE_BASE, httpx.Response(500, text="oops"))
        with pytest.raises(SubmissionError):
            await self._client(make_http, router).get_status("job-1", "t")


# ─────────────────────────────────────────────────────────────────────────────
# CDN
# ─────────────────────────────────────────────────────────────────────────────

UPLOAD_URL = f"{CDN_BASE}/demo/raw/upload"


@pytest.fixture
def cdn_for(make_http):
    def _build(router):
        return CloudinaryClient(
            make_http(router),
            cloud_name="demo",
            api_key="cdn-key",
            api_secret="cdn-secret",
            folder="homework_reports",
            base_url=CDN_BASE,
        )
    return _build


@pytest.fixture
def report_pdf(tmp_path):
    path = tmp_path / "output.pdf"
    path.write_bytes(b"%PDF-1.4 trimmed")
    return path


@pytest.mark.unit
class TestCloudinaryClient:

    def test_signature_is_sha1_of_sorted_params_plus_secret(self):
        params = {"timestamp": "1700000000", "folder": "f", "public_id": "reports/x.pdf"}
        expected = hashlib.sha1(
            b"folder=f&public_id=reports/x.pdf&timestamp=1700000000secret"
        ).hexdigest()
        assert sign_params(params, "secret") == expected

    async def test_upload_raw_returns_secure_url(self, cdn_for, router, report_pdf, monkeypatch):
        monkeypatch.setattr("reportflow.clients.cdn.time.time", lambda: 1700000000.5)
        router.add("POST", UPLOAD_URL, httpx.Response(200, json={
            "secure_url": "https://res.cdn.test/raw/upload/reports/ai_1.pdf",
        }))

        url = await cdn_for(router).upload_raw(report_pdf, "reports/ai_1.pdf")

        assert url == "https://res.cdn.test/raw/upload/reports/ai_1.pdf"
        body = router.requests[0].content
        signature = sign_params(
            {"folder": "homework_reports", "public_id": "reports/ai_1.pdf", "timestamp": "1700000000"},
            "cdn-secret",
        )
        assert signature.encode() in body
        assert b"cdn-key" in body
        assert b"%PDF-1.4 trimmed" in body

    async def test_error_body_raises_upload_error(self, cdn_for, router, report_pdf):
        router.add("POST", UPLOAD_URL, httpx.Response(401, json={"error": {"message": "Invalid Signature"}}))
        with pytest.raises(UploadError, match="Invalid Signature"):
            await cdn_for(router).upload_raw(report_pdf, "reports/ai_1.pdf")

    async def test_missing_secure_url_raises(self, cdn_for, router, report_pdf):
        router.add("POST", UPLOAD_URL, httpx.Response(200, json={"url": "http://insecure"}))
        with pytest.raises(UploadError, match="secure_url"):
            await cdn_for(router).upload_raw(report_pdf, "reports/ai_1.pdf")

    async def test_missing_file_raises(self, cdn_for, router, tmp_path):
        with pytest.raises(UploadError):
            await cdn_for(router).upload_raw(tmp_path / "nope.pdf", "reports/ai_1.pdf")
        assert router.requests == []
