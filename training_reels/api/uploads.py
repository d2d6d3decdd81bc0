"""Upload session endpoints."""

from __future__ import annotations

from typing import List
from urllib.parse import quote

from .client import ApiClient
from .models import (
    CompleteUploadRequest,
    CompleteUploadResponse,
    InitiateUploadRequest,
    InitiateUploadResponse,
    ProcessingJob,
    UploadStatusResponse,
)


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class UploadApi:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def initiate_upload(self, request: InitiateUploadRequest) -> InitiateUploadResponse:
        """Open a chunked upload session and receive one URL per chunk."""

        data = await self._client.post("/uploads/initiate", request.to_payload())
        return InitiateUploadResponse.model_validate(data)

    async def complete_upload(
        self, upload_id: str, request: CompleteUploadRequest
    ) -> CompleteUploadResponse:
        """Finalize the session with the recorded ETags and start processing."""

        data = await self._client.post(
            f"/uploads/{_segment(upload_id)}/complete", request.to_payload()
        )
        return CompleteUploadResponse.model_validate(data)

    async def get_upload_status(self, upload_id: str) -> UploadStatusResponse:
        data = await self._client.get(f"/uploads/{_segment(upload_id)}/status")
        return UploadStatusResponse.model_validate(data)

    async def get_processing_job(self, job_id: str) -> ProcessingJob:
        data = await self._client.get(f"/processing/{_segment(job_id)}")
        return ProcessingJob.model_validate(data)

    async def cancel_upload(self, upload_id: str) -> None:
        await self._client.delete(f"/uploads/{_segment(upload_id)}")

    async def get_active_uploads(self) -> List[UploadStatusResponse]:
        data = await self._client.get("/uploads/active")
        return [UploadStatusResponse.model_validate(item) for item in data or []]

    async def resume_upload(self, upload_id: str) -> InitiateUploadResponse:
        data = await self._client.post(f"/uploads/{_segment(upload_id)}/resume", {})
        return InitiateUploadResponse.model_validate(data)


__all__ = ["UploadApi"]
