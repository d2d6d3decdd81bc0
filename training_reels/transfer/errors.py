"""Exceptions raised by the chunked upload engine."""

from __future__ import annotations


class UploadError(RuntimeError):
    """Base class for upload failures."""


class ChunkTransferError(UploadError):
    """A single chunk attempt failed."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UploadAborted(UploadError):
    """Raised when a cancellation token fires during an upload."""

    def __init__(self, message: str = "Upload aborted") -> None:
        super().__init__(message)


class ChunkCountMismatch(UploadError, ValueError):
    """The number of destination URLs does not match the chunk plan."""


__all__ = ["ChunkCountMismatch", "ChunkTransferError", "UploadAborted", "UploadError"]
