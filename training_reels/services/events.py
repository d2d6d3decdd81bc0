"""Structured event helpers shared across the client."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULT_EVENT_LOGGER = logging.getLogger("training_reels.events")


def sanitize_context_value(value: Any) -> Any:
    """Return a JSON-serialisable representation for *value*."""

    if value is None:
        return None
    if isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        sanitized: Dict[str, Any] = {}
        for key, item in value.items():
            if key is None:
                continue
            cleaned = sanitize_context_value(item)
            if cleaned is None or cleaned == "":
                continue
            sanitized[str(key)] = cleaned
        return sanitized
    if isinstance(value, (list, tuple, set)):
        joined = ", ".join(str(item) for item in value)
    else:
        joined = str(value)
    trimmed = joined.strip()
    if not trimmed:
        return None
    return trimmed[:200] + ("…" if len(trimmed) > 200 else "")


def normalize_context(values: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Normalise structured metadata for event emission."""

    if not values:
        return {}
    normalised: Dict[str, Any] = {}
    for key, raw_value in values.items():
        if not key:
            continue
        value = sanitize_context_value(raw_value)
        if value is None or value == "":
            continue
        normalised[str(key)] = value
    return normalised


def emit_structured_event(
    event_type: str,
    message: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    context: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
) -> None:
    """Emit a structured event with consistent logging metadata."""

    base_message = str(message).strip()
    normalised_context = normalize_context(context)
    normalised_payload = normalize_context(payload)
    combined_details = {**normalised_context, **normalised_payload}
    if duration_ms is not None:
        combined_details["duration_ms"] = round(float(duration_ms), 1)
    details_text = ", ".join(f"{key}={value}" for key, value in combined_details.items())
    display_message = f"[{event_type}] {base_message}" if event_type else base_message
    log_message = f"{display_message} ({details_text})" if details_text else display_message
    extra: Dict[str, Any] = {
        "event": base_message,
        "event_type": event_type or "",
    }
    if normalised_context:
        extra["event_context"] = normalised_context
    if normalised_payload:
        extra["event_payload"] = normalised_payload
    if duration_ms is not None:
        extra["event_duration_ms"] = float(duration_ms)
    logger.log(level, log_message, extra=extra)


def emit_http_event(
    method: str,
    endpoint: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.DEBUG,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
) -> None:
    """Emit a structured REST request event."""

    emit_structured_event(
        "HTTP_REQUEST",
        f"{method.upper()} {endpoint}",
        payload=payload,
        duration_ms=duration_ms,
        level=level,
        logger=logger,
    )


def emit_upload_event(
    action: str,
    upload_id: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
) -> None:
    """Emit a structured chunked-upload event."""

    emit_structured_event(
        "UPLOAD",
        action,
        payload=payload,
        context={"upload_id": upload_id},
        duration_ms=duration_ms,
        level=level,
        logger=logger,
    )


def emit_task_event(
    phase: str,
    message: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    context: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
) -> None:
    """Emit a structured task lifecycle event."""

    emit_structured_event(
        "TASK_STATE",
        message or phase,
        payload={"phase": phase, **(payload or {})},
        context=context,
        duration_ms=duration_ms,
        level=level,
        logger=logger,
    )


__all__ = [
    "DEFAULT_EVENT_LOGGER",
    "emit_http_event",
    "emit_structured_event",
    "emit_task_event",
    "emit_upload_event",
    "normalize_context",
    "sanitize_context_value",
]
