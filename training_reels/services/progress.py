"""Utilities for reporting progress, sizes and durations to humans."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from ..api.models import ProcessingJob


_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")

JOB_STATUS_MESSAGES = {
    "queued": "Waiting in queue...",
    "processing": "Processing video...",
    "transcoding": "Converting to HLS format...",
    "transcribing": "Generating transcript...",
    "tagging": "Analyzing content and generating tags...",
    "complete": "Processing complete!",
}


def format_progress_message(
    message: str,
    completed_steps: Optional[float],
    total_steps: Optional[float],
) -> str:
    """Append a percentage indicator to ``message`` when possible.

    When the totals are unavailable (``None`` or zero) the message is returned
    unchanged. Percentages are clamped to the inclusive range ``[0,100]``.
    """

    if completed_steps is None or total_steps in {None, 0}:
        return message

    try:
        ratio = float(completed_steps) / float(total_steps)
    except (TypeError, ValueError):
        return message

    clamped = max(0.0, min(ratio, 1.0))
    percent = int(round(clamped * 100))
    return f"{message} ({percent}%)"


def format_file_size(size: int) -> str:
    """Return ``size`` bytes as ``"1.5 MB"`` style text."""

    if size <= 0:
        return "0 Bytes"
    index = 0
    value = float(size)
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[index]}"


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{int(math.floor(seconds + 0.5))}s"
    minutes = int(seconds // 60)
    remaining = int(math.floor(seconds % 60 + 0.5))
    return f"{minutes}m {remaining}s"


def format_upload_speed(bytes_per_second: float) -> str:
    if bytes_per_second < 1024:
        return f"{bytes_per_second:g} B/s"
    kbps = bytes_per_second / 1024
    if kbps < 1024:
        return f"{kbps:.1f} KB/s"
    return f"{kbps / 1024:.1f} MB/s"


def describe_job_status(job: Optional["ProcessingJob"]) -> str:
    """Return the user-facing message for a processing job state."""

    if job is None:
        return "Unknown status"
    if job.status == "error":
        return f"Processing failed: {job.error or 'Unknown error'}"
    return JOB_STATUS_MESSAGES.get(job.status, "Processing...")


__all__ = [
    "JOB_STATUS_MESSAGES",
    "describe_job_status",
    "format_duration",
    "format_file_size",
    "format_progress_message",
    "format_upload_speed",
]
