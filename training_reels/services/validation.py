"""Pre-flight checks that run before a reel is uploaded."""

from __future__ import annotations

import json
import logging
import mimetypes
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional, Protocol, Tuple

from .progress import format_file_size


LOGGER = logging.getLogger(__name__)

_CODEC_ALIASES = {
    "hevc": "h265",
    "avc": "h264",
    "avc1": "h264",
}


class VideoProbeError(RuntimeError):
    """Raised when video metadata cannot be read."""


@dataclass(frozen=True)
class VideoValidationRules:
    max_file_size: int = 100 * 1024 * 1024
    max_duration: float = 30
    min_duration: float = 5
    allowed_formats: Tuple[str, ...] = (
        "video/mp4",
        "video/quicktime",
        "video/x-msvideo",
        "video/webm",
    )
    allowed_codecs: Tuple[str, ...] = ("h264", "h265", "vp8", "vp9")
    max_resolution: str = "1920x1080"


DEFAULT_VIDEO_RULES = VideoValidationRules()


@dataclass
class VideoValidationResult:
    """Blocking errors and advisory warnings for a candidate upload."""

    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    duration: Optional[float] = None
    file_size: Optional[int] = None
    resolution: Optional[str] = None
    codec: Optional[str] = None

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False


@dataclass(frozen=True)
class VideoInfo:
    duration: Optional[float]
    width: int = 0
    height: int = 0
    codec: Optional[str] = None

    @property
    def resolution(self) -> Optional[str]:
        if not self.width or not self.height:
            return None
        return f"{self.width}x{self.height}"


class VideoProbe(Protocol):
    """Protocol describing a metadata reader for video files."""

    def probe(self, path: Path) -> VideoInfo:
        """Return duration, dimensions and codec for *path*."""


def _normalise_codec(codec: Optional[str]) -> Optional[str]:
    if not codec:
        return None
    lowered = codec.strip().lower()
    return _CODEC_ALIASES.get(lowered, lowered)


def _parse_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_ffprobe_output(payload: Mapping[str, Any]) -> VideoInfo:
    """Build :class:`VideoInfo` from ``ffprobe -print_format json`` output."""

    streams = payload.get("streams") or []
    video_stream = next(
        (stream for stream in streams if stream.get("codec_type") == "video"),
        None,
    )
    if video_stream is None:
        raise VideoProbeError("No video stream found")

    duration = _parse_float(video_stream.get("duration"))
    if duration is None:
        duration = _parse_float((payload.get("format") or {}).get("duration"))

    return VideoInfo(
        duration=duration,
        width=int(video_stream.get("width") or 0),
        height=int(video_stream.get("height") or 0),
        codec=_normalise_codec(video_stream.get("codec_name")),
    )


class FFprobeVideoProbe:
    """Read video metadata with the ``ffprobe`` binary shipped with FFmpeg."""

    def __init__(self, binary: Optional[str] = None) -> None:
        self._binary = binary

    def probe(self, path: Path) -> VideoInfo:
        ffprobe_path = self._binary or shutil.which("ffprobe")
        if ffprobe_path is None:
            raise VideoProbeError("Video inspection requires ffprobe (FFmpeg) to be installed.")

        command = [
            ffprobe_path,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_streams",
            "-show_format",
            str(path),
        ]
        LOGGER.debug("Executing ffprobe command: %s", " ".join(command))
        try:
            completed = subprocess.run(
                command, stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=False
            )
        except FileNotFoundError as error:
            raise VideoProbeError(f"ffprobe binary not found at {ffprobe_path}") from error

        if completed.returncode != 0:
            stderr = completed.stderr.decode("utf-8", errors="ignore").strip()
            details = (stderr or "ffprobe exited with a non-zero status.").splitlines()
            raise VideoProbeError(details[0] if details else "Unknown error.")

        try:
            payload = json.loads(completed.stdout.decode("utf-8", errors="ignore") or "{}")
        except json.JSONDecodeError as error:
            raise VideoProbeError("ffprobe returned unreadable output") from error
        return parse_ffprobe_output(payload)


def _parse_resolution(value: str) -> Tuple[int, int]:
    width, _, height = value.lower().partition("x")
    return int(width), int(height)


def is_valid_resolution(resolution: str, max_resolution: str) -> bool:
    width, height = _parse_resolution(resolution)
    max_width, max_height = _parse_resolution(max_resolution)
    return width <= max_width and height <= max_height


def guess_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or "application/octet-stream"


def validate_video_file(
    path: Path,
    *,
    mime_type: Optional[str] = None,
    rules: VideoValidationRules = DEFAULT_VIDEO_RULES,
    probe: Optional[VideoProbe] = None,
) -> VideoValidationResult:
    """Validate *path* against ``rules``.

    Format and size problems are collected together. The file is only opened
    for inspection when both pass, so duration, resolution and codec are left
    unset for files rejected up front.
    """

    result = VideoValidationResult()
    declared_type = mime_type or guess_mime_type(path)

    if declared_type not in rules.allowed_formats:
        result.add_error(
            f"Unsupported file format. Allowed formats: {', '.join(rules.allowed_formats)}"
        )

    file_size = path.stat().st_size
    if file_size > rules.max_file_size:
        result.add_error(f"File too large. Maximum size: {format_file_size(rules.max_file_size)}")
    result.file_size = file_size

    if not result.is_valid or not declared_type.startswith("video/"):
        return result

    reader = probe if probe is not None else FFprobeVideoProbe()
    try:
        info = reader.probe(path)
    except (VideoProbeError, OSError, ValueError) as error:
        LOGGER.debug("Unable to probe %s: %s", path, error)
        result.add_error("Unable to read video file. Please ensure it's a valid video file.")
        return result

    result.duration = info.duration
    result.resolution = info.resolution
    result.codec = info.codec

    if info.duration is not None:
        if info.duration > rules.max_duration:
            result.add_error(f"Video too long. Maximum duration: {rules.max_duration:g}s")
        if info.duration < rules.min_duration:
            result.add_error(f"Video too short. Minimum duration: {rules.min_duration:g}s")

    if info.resolution and not is_valid_resolution(info.resolution, rules.max_resolution):
        result.warnings.append(
            f"High resolution video. Recommended: {rules.max_resolution} or lower"
        )

    if info.codec and info.codec not in rules.allowed_codecs:
        result.warnings.append(
            f"Unsupported codec: {info.codec}. Recommended: {', '.join(rules.allowed_codecs)}"
        )

    return result


__all__ = [
    "DEFAULT_VIDEO_RULES",
    "FFprobeVideoProbe",
    "VideoInfo",
    "VideoProbe",
    "VideoProbeError",
    "VideoValidationResult",
    "VideoValidationRules",
    "guess_mime_type",
    "is_valid_resolution",
    "parse_ffprobe_output",
    "validate_video_file",
]
