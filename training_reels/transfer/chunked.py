"""Chunked, concurrent and retrying uploads to pre-signed destinations."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import (
    Awaitable,
    Callable,
    Dict,
    List,
    Literal,
    Optional,
    Sequence,
    Union,
)

import httpx

from ..services.events import emit_upload_event
from .cancellation import CancellationToken
from .errors import ChunkCountMismatch, ChunkTransferError, UploadAborted, UploadError
from .semaphore import FifoSemaphore


LOGGER = logging.getLogger(__name__)

UploadStatus = Literal["uploading", "processing", "transcoding", "complete", "error"]

ProgressCallback = Callable[["UploadRecord"], None]
ChunkProgressCallback = Callable[[int, int], None]
Sleep = Callable[[float], Awaitable[None]]

ABORTED_BY_USER_MESSAGE = "Upload aborted by user"

_MIB = 1024 * 1024


@dataclass(frozen=True)
class ChunkedUploadConfig:
    """Tuning knobs for :class:`ChunkedUploadManager`."""

    chunk_size: int = 5 * _MIB
    max_concurrent_chunks: int = 3
    retry_attempts: int = 3
    retry_delay: float = 1.0  # seconds; attempt N waits retry_delay * N

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        if self.max_concurrent_chunks < 1:
            raise ValueError("max_concurrent_chunks must be positive")
        if self.retry_attempts < 1:
            raise ValueError("retry_attempts must be positive")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must not be negative")


DEFAULT_CHUNK_CONFIG = ChunkedUploadConfig()


@dataclass(frozen=True)
class ChunkSpan:
    """A contiguous byte range of the source."""

    chunk_number: int
    offset: int
    size: int


def plan_chunks(total_size: int, chunk_size: int) -> List[ChunkSpan]:
    """Split ``total_size`` bytes into sequential spans of at most ``chunk_size``."""

    if total_size < 0:
        raise ValueError("total_size must not be negative")
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")

    spans: List[ChunkSpan] = []
    offset = 0
    while offset < total_size:
        size = min(chunk_size, total_size - offset)
        spans.append(ChunkSpan(chunk_number=len(spans) + 1, offset=offset, size=size))
        offset += size
    return spans


class UploadSource:
    """Binary payload with a known length, backed by a file or by memory."""

    def __init__(
        self,
        *,
        path: Optional[Path] = None,
        data: Optional[bytes] = None,
        name: Optional[str] = None,
    ) -> None:
        if (path is None) == (data is None):
            raise ValueError("UploadSource needs exactly one of 'path' or 'data'")
        self._path = Path(path) if path is not None else None
        self._data = bytes(data) if data is not None else None
        if self._path is not None:
            self._size = self._path.stat().st_size
            self._name = name or self._path.name
        else:
            self._size = len(self._data or b"")
            self._name = name

    @classmethod
    def coerce(cls, value: Union["UploadSource", Path, str, bytes, bytearray]) -> "UploadSource":
        if isinstance(value, UploadSource):
            return value
        if isinstance(value, (bytes, bytearray)):
            return cls(data=bytes(value))
        return cls(path=Path(value))

    @property
    def size(self) -> int:
        return self._size

    @property
    def name(self) -> Optional[str]:
        return self._name

    def read(self, offset: int, size: int) -> bytes:
        if self._data is not None:
            return self._data[offset : offset + size]
        assert self._path is not None
        with self._path.open("rb") as handle:
            handle.seek(offset)
            return handle.read(size)


@dataclass
class ChunkRecord:
    chunk_number: int
    size: int
    etag: str = ""
    uploaded: bool = False


@dataclass
class UploadRecord:
    """In-memory state of a single upload session."""

    id: str
    total_size: int
    chunks: List[ChunkRecord] = field(default_factory=list)
    progress: int = 0
    status: UploadStatus = "uploading"
    error: Optional[str] = None
    file_name: Optional[str] = None
    reel_id: Optional[str] = None

    @property
    def uploaded_chunks(self) -> int:
        return sum(1 for chunk in self.chunks if chunk.uploaded)

    def mark_complete(self) -> None:
        self.status = "complete"
        self.progress = 100
        self.error = None

    def mark_failed(self, message: str) -> None:
        self.status = "error"
        self.error = message

    def mark_processing(self, reel_id: Optional[str] = None) -> None:
        self.status = "processing"
        if reel_id:
            self.reel_id = reel_id

    def completed_parts(self) -> List[Dict[str, object]]:
        """Return the ``chunkNumber``/``etag`` pairs needed to finalize the upload."""

        return [
            {"chunkNumber": chunk.chunk_number, "etag": chunk.etag}
            for chunk in self.chunks
            if chunk.uploaded
        ]

    def snapshot(self) -> "UploadRecord":
        return replace(self, chunks=[replace(chunk) for chunk in self.chunks])


def _percent(done: int, total: int) -> int:
    # Half-up rounding keeps 12.5 -> 13 instead of banker's rounding.
    return int(math.floor(100.0 * done / total + 0.5))


class ChunkedUploadManager:
    """Upload large files as concurrently transferred, individually retried chunks."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ChunkedUploadConfig = DEFAULT_CHUNK_CONFIG,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._config = config
        self._sleep = sleep
        self._uploads: Dict[str, UploadRecord] = {}
        self._tokens: Dict[str, CancellationToken] = {}

    @property
    def config(self) -> ChunkedUploadConfig:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def start_upload(
        self,
        source: Union[UploadSource, Path, str, bytes],
        upload_id: str,
        chunk_urls: Sequence[str],
        on_progress: Optional[ProgressCallback] = None,
        on_chunk_progress: Optional[ChunkProgressCallback] = None,
    ) -> UploadRecord:
        """Upload *source* to ``chunk_urls`` and return the final record.

        Chunk *i* is sent to ``chunk_urls[i]``. The returned record is the live
        object tracked by the manager; callbacks receive snapshots.
        """

        upload_source = UploadSource.coerce(source)
        spans = plan_chunks(upload_source.size, self._config.chunk_size)
        urls = list(chunk_urls)
        if len(urls) != len(spans):
            raise ChunkCountMismatch(
                f"Expected {len(spans)} chunk URLs for {upload_source.size} bytes, "
                f"received {len(urls)}"
            )

        record = UploadRecord(
            id=upload_id,
            total_size=upload_source.size,
            file_name=upload_source.name,
            chunks=[ChunkRecord(chunk_number=span.chunk_number, size=span.size) for span in spans],
        )
        token = CancellationToken()
        self._uploads[upload_id] = record
        self._tokens[upload_id] = token

        emit_upload_event(
            "upload_started",
            upload_id,
            payload={
                "file": upload_source.name,
                "bytes": upload_source.size,
                "chunks": len(spans),
                "concurrency": self._config.max_concurrent_chunks,
            },
        )
        start = time.perf_counter()

        try:
            if spans:
                await self._upload_chunks(
                    record, upload_source, spans, urls, token, on_progress, on_chunk_progress
                )
            else:
                record.mark_complete()
                if on_progress is not None:
                    on_progress(record.snapshot())
        except asyncio.CancelledError:
            if record.status == "uploading":
                record.mark_failed("Upload cancelled")
            raise
        except Exception as error:
            if record.status == "complete":
                # Every chunk is stored; only a progress callback failed.
                raise
            if record.status != "error":
                record.mark_failed(str(error) or "Upload failed")
            emit_upload_event(
                "upload_failed",
                upload_id,
                payload={"error": record.error, "uploaded_chunks": record.uploaded_chunks},
                duration_ms=(time.perf_counter() - start) * 1000.0,
                level=logging.WARNING if isinstance(error, UploadAborted) else logging.ERROR,
            )
            if on_progress is not None:
                on_progress(record.snapshot())
            raise
        finally:
            if self._tokens.get(upload_id) is token:
                del self._tokens[upload_id]

        emit_upload_event(
            "upload_completed",
            upload_id,
            payload={"chunks": len(spans), "bytes": upload_source.size},
            duration_ms=(time.perf_counter() - start) * 1000.0,
        )
        return record

    def abort_upload(self, upload_id: str) -> None:
        """Cancel an active upload; repeated calls are no-ops."""

        token = self._tokens.pop(upload_id, None)
        if token is not None:
            token.cancel()

        record = self._uploads.get(upload_id)
        if record is not None and record.status == "uploading":
            record.mark_failed(ABORTED_BY_USER_MESSAGE)
            emit_upload_event(
                "upload_aborted",
                upload_id,
                payload={"uploaded_chunks": record.uploaded_chunks},
                level=logging.WARNING,
            )

    def get_upload_status(self, upload_id: str) -> Optional[UploadRecord]:
        record = self._uploads.get(upload_id)
        return record.snapshot() if record is not None else None

    def cleanup_upload(self, upload_id: str) -> None:
        self._uploads.pop(upload_id, None)
        self._tokens.pop(upload_id, None)

    def active_uploads(self) -> List[str]:
        return list(self._uploads)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _upload_chunks(
        self,
        record: UploadRecord,
        source: UploadSource,
        spans: Sequence[ChunkSpan],
        urls: Sequence[str],
        token: CancellationToken,
        on_progress: Optional[ProgressCallback],
        on_chunk_progress: Optional[ChunkProgressCallback],
    ) -> None:
        semaphore = FifoSemaphore(self._config.max_concurrent_chunks)
        total = len(spans)
        chunk_index = {chunk.chunk_number: chunk for chunk in record.chunks}

        async def run_chunk(span: ChunkSpan, url: str) -> None:
            release = await semaphore.acquire()
            try:
                etag = await self._upload_chunk(record.id, source, span, url, token)
            finally:
                release()

            if record.status != "uploading":
                return
            chunk = chunk_index[span.chunk_number]
            chunk.etag = etag
            chunk.uploaded = True
            uploaded = record.uploaded_chunks
            if uploaded == total:
                record.mark_complete()
            else:
                record.progress = _percent(uploaded, total)
            emit_upload_event(
                "chunk_uploaded",
                record.id,
                payload={"chunk": span.chunk_number, "progress": record.progress},
                level=logging.DEBUG,
            )
            if on_chunk_progress is not None:
                on_chunk_progress(span.chunk_number, 100)
            if on_progress is not None:
                on_progress(record.snapshot())

        tasks = [
            asyncio.ensure_future(run_chunk(span, url)) for span, url in zip(spans, urls)
        ]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        failure: Optional[BaseException] = None
        for task in tasks:
            if task.done() and not task.cancelled() and task.exception() is not None:
                failure = task.exception()
                break

        pending = [task for task in tasks if not task.done()]
        if pending:
            LOGGER.debug(
                "Cancelling %s outstanding chunk(s) of upload %s after a terminal failure",
                len(pending),
                record.id,
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        if failure is not None:
            raise failure

    async def _upload_chunk(
        self,
        upload_id: str,
        source: UploadSource,
        span: ChunkSpan,
        url: str,
        token: CancellationToken,
    ) -> str:
        """PUT one chunk, retrying with linear backoff, and return its ETag."""

        payload = await asyncio.to_thread(source.read, span.offset, span.size)
        attempts = self._config.retry_attempts
        last_error: Optional[UploadError] = None

        for attempt in range(1, attempts + 1):
            token.raise_if_cancelled()
            try:
                response = await token.run(
                    self._client.put(
                        url,
                        content=payload,
                        headers={"Content-Type": "application/octet-stream"},
                    )
                )
                if not response.is_success:
                    raise ChunkTransferError(
                        f"HTTP {response.status_code}: {response.reason_phrase}",
                        status_code=response.status_code,
                    )
                etag = response.headers.get("ETag")
                if not etag:
                    raise ChunkTransferError("No ETag received from server")
                return etag
            except ChunkTransferError as error:
                last_error = error
            except httpx.HTTPError as error:
                last_error = ChunkTransferError(f"{error.__class__.__name__}: {error}")
                last_error.__cause__ = error

            if attempt < attempts:
                delay = self._config.retry_delay * attempt
                emit_upload_event(
                    "chunk_retry",
                    upload_id,
                    payload={
                        "chunk": span.chunk_number,
                        "attempt": attempt,
                        "delay_s": delay,
                        "error": str(last_error),
                    },
                    level=logging.WARNING,
                )
                await token.run(self._sleep(delay))

        raise last_error or ChunkTransferError("Upload failed after all retries")


def calculate_optimal_chunk_size(file_size: int) -> int:
    """Pick a chunk size suited to *file_size*."""

    if file_size < 10 * _MIB:
        return _MIB
    if file_size < 100 * _MIB:
        return 5 * _MIB
    return 10 * _MIB


def estimate_upload_time(file_size: int, upload_speed: float = _MIB) -> int:
    """Return the expected upload duration in whole seconds."""

    if upload_speed <= 0:
        raise ValueError("upload_speed must be positive")
    return int(math.ceil(file_size / upload_speed))


__all__ = [
    "ABORTED_BY_USER_MESSAGE",
    "ChunkRecord",
    "ChunkSpan",
    "ChunkedUploadConfig",
    "ChunkedUploadManager",
    "DEFAULT_CHUNK_CONFIG",
    "UploadRecord",
    "UploadSource",
    "UploadStatus",
    "calculate_optimal_chunk_size",
    "estimate_upload_time",
    "plan_chunks",
]
