"""Chunked upload engine."""

from .cancellation import CancellationToken
from .chunked import (
    ABORTED_BY_USER_MESSAGE,
    DEFAULT_CHUNK_CONFIG,
    ChunkRecord,
    ChunkSpan,
    ChunkedUploadConfig,
    ChunkedUploadManager,
    UploadRecord,
    UploadSource,
    UploadStatus,
    calculate_optimal_chunk_size,
    estimate_upload_time,
    plan_chunks,
)
from .errors import ChunkCountMismatch, ChunkTransferError, UploadAborted, UploadError
from .semaphore import FifoSemaphore

__all__ = [
    "ABORTED_BY_USER_MESSAGE",
    "CancellationToken",
    "ChunkCountMismatch",
    "ChunkRecord",
    "ChunkSpan",
    "ChunkTransferError",
    "ChunkedUploadConfig",
    "ChunkedUploadManager",
    "DEFAULT_CHUNK_CONFIG",
    "FifoSemaphore",
    "UploadAborted",
    "UploadError",
    "UploadRecord",
    "UploadSource",
    "UploadStatus",
    "calculate_optimal_chunk_size",
    "estimate_upload_time",
    "plan_chunks",
]
