"""High level upload pipeline: validate, upload in chunks, finalize, follow up."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Protocol, TypeVar

from ..api.models import (
    CompletedPart,
    CompleteUploadRequest,
    CreateReelRequest,
    CreateReelResponse,
    InitiateUploadRequest,
    ProcessingJob,
    UploadStatusResponse,
)
from ..api.reels import ReelsApi
from ..api.transcoding import TranscodingApi
from ..api.uploads import UploadApi
from ..transfer.chunked import (
    ChunkProgressCallback,
    ChunkedUploadManager,
    ProgressCallback,
    UploadRecord,
    UploadSource,
    plan_chunks,
)
from ..transfer.errors import UploadError
from .events import emit_task_event
from .validation import (
    DEFAULT_VIDEO_RULES,
    VideoProbe,
    VideoValidationResult,
    VideoValidationRules,
    guess_mime_type,
    validate_video_file,
)


LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound="_Pollable")
Sleep = Callable[[float], Awaitable[None]]


class _Pollable(Protocol):
    @property
    def is_terminal(self) -> bool: ...


class VideoValidationError(ValueError):
    """Raised when a file fails the blocking validation rules."""

    def __init__(self, result: VideoValidationResult) -> None:
        super().__init__(", ".join(result.errors) or "Video validation failed")
        self.result = result


class PollingTimeout(TimeoutError):
    """Raised when a remote status does not become terminal in time."""


@dataclass
class UploadOutcome:
    upload_id: str
    record: UploadRecord
    reel_id: Optional[str] = None
    processing_job_id: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


class ReelUploadWorkflow:
    """Coordinates the REST calls around a chunked upload."""

    def __init__(
        self,
        upload_api: UploadApi,
        manager: ChunkedUploadManager,
        *,
        reels_api: Optional[ReelsApi] = None,
        transcoding_api: Optional[TranscodingApi] = None,
        probe: Optional[VideoProbe] = None,
        rules: VideoValidationRules = DEFAULT_VIDEO_RULES,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._upload_api = upload_api
        self._manager = manager
        self._reels_api = reels_api
        self._transcoding_api = transcoding_api
        self._probe = probe
        self._rules = rules
        self._sleep = sleep

    @property
    def manager(self) -> ChunkedUploadManager:
        return self._manager

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def validate(self, path: Path, *, mime_type: Optional[str] = None) -> VideoValidationResult:
        return await asyncio.to_thread(
            validate_video_file,
            path,
            mime_type=mime_type,
            rules=self._rules,
            probe=self._probe,
        )

    async def upload(
        self,
        path: Path,
        *,
        mime_type: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_chunk_progress: Optional[ChunkProgressCallback] = None,
    ) -> UploadOutcome:
        """Validate and upload *path*, then finalize the session with the backend."""

        path = Path(path)
        declared_type = mime_type or guess_mime_type(path)

        validation = await self.validate(path, mime_type=declared_type)
        if not validation.is_valid:
            raise VideoValidationError(validation)
        for warning in validation.warnings:
            LOGGER.warning("Validation warning for %s: %s", path.name, warning)

        source = UploadSource(path=path)
        chunk_count = len(plan_chunks(source.size, self._manager.config.chunk_size))
        start = time.perf_counter()

        session = await self._upload_api.initiate_upload(
            InitiateUploadRequest(
                file_name=path.name,
                file_size=source.size,
                file_type=declared_type,
                chunk_count=chunk_count,
            )
        )
        emit_task_event(
            "initiated",
            "Upload session opened",
            payload={"file": path.name, "chunks": chunk_count},
            context={"upload_id": session.upload_id},
        )

        record = await self._manager.start_upload(
            source,
            session.upload_id,
            session.chunk_urls,
            on_progress=on_progress,
            on_chunk_progress=on_chunk_progress,
        )

        completion = await self._upload_api.complete_upload(
            session.upload_id,
            CompleteUploadRequest(
                upload_id=session.upload_id,
                chunks=[
                    CompletedPart(chunk_number=chunk.chunk_number, etag=chunk.etag)
                    for chunk in record.chunks
                ],
            ),
        )
        if not completion.success:
            record.mark_failed("Upload could not be finalized")
            raise UploadError(f"Backend rejected completion of upload {session.upload_id}")

        record.mark_processing(completion.reel_id)
        emit_task_event(
            "completed",
            "Upload finalized",
            payload={
                "reel_id": completion.reel_id,
                "processing_job_id": completion.processing_job_id,
            },
            context={"upload_id": session.upload_id},
            duration_ms=(time.perf_counter() - start) * 1000.0,
        )
        return UploadOutcome(
            upload_id=session.upload_id,
            record=record,
            reel_id=completion.reel_id,
            processing_job_id=completion.processing_job_id,
            warnings=list(validation.warnings),
        )

    async def create_reel(self, request: CreateReelRequest) -> CreateReelResponse:
        if self._reels_api is None:
            raise RuntimeError("Creating reels requires a ReelsApi")
        response = await self._reels_api.create_reel(request)
        self._manager.cleanup_upload(request.upload_id)
        return response

    async def wait_for_upload(
        self,
        upload_id: str,
        *,
        interval: float = 2.0,
        timeout: Optional[float] = None,
        on_update: Optional[Callable[[UploadStatusResponse], None]] = None,
    ) -> UploadStatusResponse:
        """Poll the backend until the upload is ``complete`` or ``error``."""

        return await self._poll(
            lambda: self._upload_api.get_upload_status(upload_id),
            interval=interval,
            timeout=timeout,
            on_update=on_update,
            label=f"Upload {upload_id}",
        )

    async def wait_for_job(
        self,
        job_id: str,
        *,
        interval: float = 3.0,
        timeout: Optional[float] = None,
        on_update: Optional[Callable[[ProcessingJob], None]] = None,
    ) -> ProcessingJob:
        """Poll a transcoding job until it is ``complete`` or ``error``."""

        if self._transcoding_api is None:
            raise RuntimeError("Polling processing jobs requires a TranscodingApi")
        transcoding_api = self._transcoding_api
        return await self._poll(
            lambda: transcoding_api.get_job_status(job_id),
            interval=interval,
            timeout=timeout,
            on_update=on_update,
            label=f"Processing job {job_id}",
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _poll(
        self,
        fetch: Callable[[], Awaitable[T]],
        *,
        interval: float,
        timeout: Optional[float],
        on_update: Optional[Callable[[T], None]],
        label: str,
    ) -> T:
        return await poll_until_terminal(
            fetch,
            interval=interval,
            timeout=timeout,
            on_update=on_update,
            label=label,
            sleep=self._sleep,
        )


async def poll_until_terminal(
    fetch: Callable[[], Awaitable[T]],
    *,
    interval: float,
    timeout: Optional[float] = None,
    on_update: Optional[Callable[[T], None]] = None,
    label: str = "Request",
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Call *fetch* every *interval* seconds until the result is terminal."""

    waited = 0.0
    while True:
        snapshot = await fetch()
        if on_update is not None:
            on_update(snapshot)
        if snapshot.is_terminal:
            return snapshot
        if timeout is not None and waited + interval > timeout:
            raise PollingTimeout(f"{label} did not finish within {timeout:g}s")
        await sleep(interval)
        waited += interval


__all__ = [
    "poll_until_terminal",
    "PollingTimeout",
    "ReelUploadWorkflow",
    "UploadOutcome",
    "VideoValidationError",
]
