"""Transcoding job endpoints."""

from __future__ import annotations

from typing import List

from .client import ApiClient
from .models import ProcessingJob, QueueStatus, TranscodingResult
from .uploads import _segment


class TranscodingApi:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_job_status(self, job_id: str) -> ProcessingJob:
        data = await self._client.get(f"/transcoding/jobs/{_segment(job_id)}")
        return ProcessingJob.model_validate(data)

    async def get_user_jobs(self) -> List[ProcessingJob]:
        data = await self._client.get("/transcoding/jobs")
        return [ProcessingJob.model_validate(item) for item in data or []]

    async def cancel_job(self, job_id: str) -> None:
        await self._client.delete(f"/transcoding/jobs/{_segment(job_id)}")

    async def retry_job(self, job_id: str) -> ProcessingJob:
        data = await self._client.post(f"/transcoding/jobs/{_segment(job_id)}/retry", {})
        return ProcessingJob.model_validate(data)

    async def get_result(self, job_id: str) -> TranscodingResult:
        data = await self._client.get(f"/transcoding/jobs/{_segment(job_id)}/result")
        return TranscodingResult.model_validate(data)

    async def get_queue_status(self) -> QueueStatus:
        data = await self._client.get("/transcoding/queue/status")
        return QueueStatus.model_validate(data)


__all__ = ["TranscodingApi"]
