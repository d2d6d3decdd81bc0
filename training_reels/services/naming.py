"""Utility helpers for safe and unique upload file names."""

from __future__ import annotations

import random
import re
import string
import time
from dataclasses import dataclass, field
from typing import List, Optional

__all__ = [
    "FileNameValidation",
    "generate_unique_file_name",
    "validate_file_name",
]


_INVALID_CHARACTERS = re.compile(r'[<>:"/\\|?*]')
_MAX_NAME_LENGTH = 255
_RESERVED_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{index}" for index in range(1, 10)]
    + [f"LPT{index}" for index in range(1, 10)]
)


@dataclass
class FileNameValidation:
    is_valid: bool
    sanitized_name: str
    errors: List[str] = field(default_factory=list)


def validate_file_name(file_name: str) -> FileNameValidation:
    """Check *file_name* for characters, length and reserved device names."""

    errors: List[str] = []
    sanitized = file_name

    if _INVALID_CHARACTERS.search(file_name):
        errors.append("File name contains invalid characters")
        sanitized = _INVALID_CHARACTERS.sub("_", file_name)

    if len(file_name) > _MAX_NAME_LENGTH:
        errors.append(f"File name too long (max {_MAX_NAME_LENGTH} characters)")
        sanitized = file_name[:_MAX_NAME_LENGTH]

    if file_name.split(".")[0].upper() in _RESERVED_NAMES:
        errors.append("File name is reserved")
        sanitized = f"_{file_name}"

    return FileNameValidation(is_valid=not errors, sanitized_name=sanitized, errors=errors)


def generate_unique_file_name(
    original_name: str,
    *,
    timestamp_ms: Optional[int] = None,
    token: Optional[str] = None,
) -> str:
    """Return ``<stem>_<epoch ms>_<random>.<ext>`` for *original_name*."""

    stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    suffix = token or "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    stem, dot, extension = original_name.rpartition(".")
    if not dot or not stem:
        stem, extension = original_name, ""
    name = f"{stem}_{stamp}_{suffix}"
    return f"{name}.{extension}" if extension else name
