"""Configuration loading utilities for the Training Reels client."""

from __future__ import annotations

import contextlib
import json
import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, Mapping, Optional, Tuple

if TYPE_CHECKING:  # pragma: no cover - import only used for annotations
    from .transfer.chunked import ChunkedUploadConfig


LOGGER = logging.getLogger(__name__)


_PERMISSION_SENTINEL = ".training_reels_write_check"

DEFAULT_API_BASE_URL = "http://localhost:3000/api"
DEFAULT_CHUNK_SIZE = 5 * 1024 * 1024

_ENV_API_URL = "TRAINING_REELS_API_URL"
_ENV_CHUNK_SIZE = "TRAINING_REELS_CHUNK_SIZE"
_ENV_MAX_CONCURRENT = "TRAINING_REELS_MAX_CONCURRENT_CHUNKS"


def _ensure_writable_directory(path: Path) -> bool:
    """Return ``True`` if *path* can be created and written to."""

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False

    test_file = path / _PERMISSION_SENTINEL
    try:
        with test_file.open("w", encoding="utf-8") as handle:
            handle.write("ok")
    except OSError:
        return False
    finally:
        with contextlib.suppress(OSError):
            test_file.unlink()

    return True


def _select_writable_directory(
    preferred: Path,
    *,
    label: str,
    fallbacks: Iterable[Path] = (),
) -> Tuple[Path, bool]:
    """Return a usable directory based on ``preferred`` and ``fallbacks``.

    The first writable candidate wins and the flag reports whether a fallback
    was needed. When nothing can be prepared the original ``preferred`` path is
    returned so that callers can surface a meaningful error later on.
    """

    preferred = preferred.resolve()
    if _ensure_writable_directory(preferred):
        return preferred, False

    for fallback in fallbacks:
        candidate = fallback.resolve()
        if candidate == preferred:
            continue
        if _ensure_writable_directory(candidate):
            LOGGER.warning(
                "Preferred %s directory '%s' is not writable; using fallback '%s'.",
                label,
                preferred,
                candidate,
            )
            return candidate, True

    LOGGER.warning(
        "%s directory '%s' is not writable and no fallback is available.",
        label.capitalize(),
        preferred,
    )
    return preferred, False


def _coerce_positive_int(raw: Any, *, name: str, default: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        LOGGER.warning("Ignoring invalid %s value %r; using %s.", name, raw, default)
        return default
    if value <= 0:
        LOGGER.warning("Ignoring non-positive %s value %r; using %s.", name, raw, default)
        return default
    return value


def _coerce_float(raw: Any, *, name: str, default: float, allow_zero: bool = False) -> float:
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        LOGGER.warning("Ignoring invalid %s value %r; using %s.", name, raw, default)
        return default
    if not math.isfinite(value) or value < 0 or (value == 0 and not allow_zero):
        LOGGER.warning("Ignoring out of range %s value %r; using %s.", name, raw, default)
        return default
    return value


@dataclass(frozen=True)
class AppConfig:
    """Runtime settings for the upload client."""

    storage_root: Path
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = 30.0
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_concurrent_chunks: int = 3
    retry_attempts: int = 3
    retry_delay: float = 1.0
    upload_poll_interval: float = 2.0
    job_poll_interval: float = 3.0

    @property
    def credentials_file(self) -> Path:
        """Location of the persisted bearer token."""

        return (self.storage_root / "credentials.json").resolve()

    def upload_settings(self) -> "ChunkedUploadConfig":
        from .transfer.chunked import ChunkedUploadConfig

        return ChunkedUploadConfig(
            chunk_size=self.chunk_size,
            max_concurrent_chunks=self.max_concurrent_chunks,
            retry_attempts=self.retry_attempts,
            retry_delay=self.retry_delay,
        )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], *, base_path: Path) -> "AppConfig":
        preferred_storage = (base_path / mapping.get("storage_root", "storage")).resolve()
        storage_fallback = Path.home() / ".training_reels" / "storage"
        storage_root, _ = _select_writable_directory(
            preferred_storage,
            label="storage",
            fallbacks=(storage_fallback,),
        )

        api_base_url = str(mapping.get("api_base_url") or DEFAULT_API_BASE_URL).rstrip("/")

        upload = mapping.get("upload") or {}
        polling = mapping.get("polling") or {}

        return cls(
            storage_root=storage_root,
            api_base_url=api_base_url,
            request_timeout=_coerce_float(
                mapping.get("request_timeout", 30.0), name="request_timeout", default=30.0
            ),
            chunk_size=_coerce_positive_int(
                upload.get("chunk_size", DEFAULT_CHUNK_SIZE),
                name="chunk_size",
                default=DEFAULT_CHUNK_SIZE,
            ),
            max_concurrent_chunks=_coerce_positive_int(
                upload.get("max_concurrent_chunks", 3),
                name="max_concurrent_chunks",
                default=3,
            ),
            retry_attempts=_coerce_positive_int(
                upload.get("retry_attempts", 3),
                name="retry_attempts",
                default=3,
            ),
            retry_delay=_coerce_float(
                upload.get("retry_delay", 1.0), name="retry_delay", default=1.0, allow_zero=True
            ),
            upload_poll_interval=_coerce_float(
                polling.get("upload_interval", 2.0), name="upload_interval", default=2.0
            ),
            job_poll_interval=_coerce_float(
                polling.get("job_interval", 3.0), name="job_interval", default=3.0
            ),
        )


def _apply_environment(raw_config: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    merged = dict(raw_config)
    upload = dict(merged.get("upload") or {})

    api_url = (environ.get(_ENV_API_URL) or "").strip()
    if api_url:
        merged["api_base_url"] = api_url

    chunk_size = (environ.get(_ENV_CHUNK_SIZE) or "").strip()
    if chunk_size:
        upload["chunk_size"] = chunk_size

    max_concurrent = (environ.get(_ENV_MAX_CONCURRENT) or "").strip()
    if max_concurrent:
        upload["max_concurrent_chunks"] = max_concurrent

    merged["upload"] = upload
    return merged


def load_config(
    config_path: Path | None = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """Load the client configuration from ``config/default.json`` by default."""

    base_path = Path(__file__).resolve().parent.parent
    if config_path is None:
        config_path = base_path / "config" / "default.json"

    raw_config: Dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as config_file:
            raw_config = json.load(config_file)
    else:
        LOGGER.debug("Configuration file %s not found; using defaults", config_path)

    raw_config = _apply_environment(raw_config, os.environ if environ is None else environ)
    return AppConfig.from_mapping(raw_config, base_path=base_path)


__all__ = ["AppConfig", "DEFAULT_API_BASE_URL", "DEFAULT_CHUNK_SIZE", "load_config"]
