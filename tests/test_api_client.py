"""Tests for the REST client and the typed endpoint wrappers."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from training_reels.api import ApiClient, ApiError, AuthenticationError, ReelsApi, TranscodingApi, UploadApi
from training_reels.api.models import (
    CompletedPart,
    CompleteUploadRequest,
    CreateReelRequest,
    InitiateUploadRequest,
    VideoSearchFilters,
)
from training_reels.services.credentials import CredentialStore


BASE_URL = "https://reels.test/api"


def _run(temp_config, handler, call):
    credentials = CredentialStore(temp_config)

    async def scenario():
        async with ApiClient(
            BASE_URL, credentials=credentials, transport=httpx.MockTransport(handler)
        ) as client:
            return await call(client)

    return asyncio.run(scenario())


def test_bearer_token_is_sent_when_stored(temp_config) -> None:
    CredentialStore(temp_config).save_token("  secret-token  ")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["url"] = str(request.url)
        return httpx.Response(200, json=["Line 3"])

    result = _run(temp_config, handler, lambda client: ReelsApi(client).get_machine_models())

    assert result == ["Line 3"]
    assert seen["auth"] == "Bearer secret-token"
    assert seen["url"] == f"{BASE_URL}/reels/machine-models"


def test_requests_without_token_have_no_authorization(temp_config) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(204)

    result = _run(temp_config, handler, lambda client: client.delete("/reels/r-1"))

    assert result is None
    assert seen["auth"] is None


def test_unauthorized_response_clears_token(temp_config) -> None:
    store = CredentialStore(temp_config)
    store.save_token("expired")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Token expired"})

    with pytest.raises(AuthenticationError) as excinfo:
        _run(temp_config, handler, lambda client: client.get("/uploads/active"))

    assert excinfo.value.status == 401
    assert store.load_token() is None
    assert not store.path.exists()


def test_error_response_carries_status_and_message(temp_config) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"error": "Upload already completed"})

    with pytest.raises(ApiError) as excinfo:
        _run(temp_config, handler, lambda client: client.post("/uploads/u-1/complete"))

    assert excinfo.value.status == 409
    assert str(excinfo.value) == "API Error: 409: Upload already completed"


def test_error_without_json_body(temp_config) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    with pytest.raises(ApiError) as excinfo:
        _run(temp_config, handler, lambda client: client.get("/transcoding/queue/status"))

    assert str(excinfo.value) == "API Error: 502"


def test_initiate_upload_uses_camel_case(temp_config) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "uploadId": "up-1",
                "chunkUrls": ["https://storage.test/1", "https://storage.test/2"],
                "expiresAt": "2026-10-19T12:00:00Z",
            },
        )

    response = _run(
        temp_config,
        handler,
        lambda client: UploadApi(client).initiate_upload(
            InitiateUploadRequest(
                file_name="clip.mp4", file_size=2048, file_type="video/mp4", chunk_count=2
            )
        ),
    )

    assert seen["path"] == "/api/uploads/initiate"
    assert seen["body"] == {
        "fileName": "clip.mp4",
        "fileSize": 2048,
        "fileType": "video/mp4",
        "chunkCount": 2,
    }
    assert response.upload_id == "up-1"
    assert len(response.chunk_urls) == 2


def test_complete_upload_sends_etags(temp_config) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200, json={"success": True, "reelId": "reel-9", "processingJobId": "job-3"}
        )

    response = _run(
        temp_config,
        handler,
        lambda client: UploadApi(client).complete_upload(
            "up-1",
            CompleteUploadRequest(
                upload_id="up-1",
                chunks=[CompletedPart(chunk_number=1, etag='"a"')],
            ),
        ),
    )

    assert seen["path"] == "/api/uploads/up-1/complete"
    assert seen["body"] == {"uploadId": "up-1", "chunks": [{"chunkNumber": 1, "etag": '"a"'}]}
    assert response.success
    assert response.reel_id == "reel-9"
    assert response.processing_job_id == "job-3"


def test_path_segments_are_escaped(temp_config) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["raw_path"] = request.url.raw_path
        return httpx.Response(200, json={"status": "queued", "progress": 0})

    job = _run(temp_config, handler, lambda client: TranscodingApi(client).get_job_status("a/b"))

    assert seen["raw_path"] == b"/api/transcoding/jobs/a%2Fb"
    assert job.status == "queued"
    assert not job.is_terminal


def test_create_reel_and_search(temp_config) -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        if request.url.path.endswith("/search"):
            return httpx.Response(
                200,
                json={
                    "reels": [{"id": "r-1", "title": "Changeover", "tags": [{"name": "setup"}]}],
                    "total": 1,
                    "page": 1,
                    "limit": 20,
                    "facets": {"tags": [{"value": "setup", "count": 1}]},
                },
            )
        return httpx.Response(
            201,
            json={
                "reel": {"id": "r-1", "title": "Changeover", "privacy": "internal"},
                "processingJob": {"id": "job-1", "status": "queued", "progress": 0},
            },
        )

    async def call(client):
        reels = ReelsApi(client)
        created = await reels.create_reel(
            CreateReelRequest(upload_id="up-1", title="Changeover", tags=["setup"])
        )
        found = await reels.search_reels(VideoSearchFilters(query="change", tags=["setup"]))
        return created, found

    created, found = _run(temp_config, handler, call)

    assert bodies[0] == {
        "uploadId": "up-1",
        "title": "Changeover",
        "tags": ["setup"],
        "tooling": [],
        "privacy": "internal",
    }
    assert bodies[1] == {"query": "change", "tags": ["setup"]}
    assert created.reel.id == "r-1"
    assert created.processing_job is not None
    assert created.processing_job.id == "job-1"
    assert found.total == 1
    assert found.reels[0].tags[0].name == "setup"
    assert found.facets.tags[0].count == 1


def test_tag_suggestions_pass_query(temp_config) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["q"] = request.url.params.get("q")
        return httpx.Response(200, json=["setup", "setpoint"])

    result = _run(temp_config, handler, lambda client: ReelsApi(client).get_tag_suggestions("set"))

    assert seen["q"] == "set"
    assert result == ["setup", "setpoint"]


def test_credential_store_round_trip(temp_config) -> None:
    store = CredentialStore(temp_config)
    assert store.load_token() is None

    store.save_token("abc")
    assert store.load_token() == "abc"

    store.path.write_text("{not json", encoding="utf-8")
    assert store.load_token() is None

    store.clear()
    assert not store.path.exists()


def test_credential_store_ignores_non_object_payloads(temp_config) -> None:
    store = CredentialStore(temp_config)
    store.path.parent.mkdir(parents=True, exist_ok=True)

    store.path.write_text("[1, 2]", encoding="utf-8")
    assert store.load_token() is None

    store.path.write_text('"token"', encoding="utf-8")
    assert store.load_token() is None
