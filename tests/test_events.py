from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from training_reels.services.events import (
    emit_http_event,
    emit_structured_event,
    emit_upload_event,
    normalize_context,
    sanitize_context_value,
)


def test_sanitize_context_value_handles_common_types() -> None:
    assert sanitize_context_value(None) is None
    assert sanitize_context_value(3) == 3
    assert sanitize_context_value(Path("/tmp/clip.mp4")) == "/tmp/clip.mp4"
    assert sanitize_context_value(datetime(2026, 1, 2, 3, 4, 5)) == "2026-01-02T03:04:05"
    assert sanitize_context_value(["a", "b"]) == "a, b"
    assert sanitize_context_value("   ") is None
    assert sanitize_context_value("x" * 250).endswith("…")


def test_normalize_context_drops_empty_values() -> None:
    assert normalize_context({"upload_id": "up-1", "error": "", "": "ignored", "reel": None}) == {
        "upload_id": "up-1"
    }


def test_structured_event_is_logged_with_metadata(caplog) -> None:
    logger = logging.getLogger("tests.events")

    with caplog.at_level(logging.INFO, logger="tests.events"):
        emit_structured_event(
            "UPLOAD",
            "chunk_uploaded",
            payload={"chunk": 2},
            context={"upload_id": "up-1"},
            duration_ms=12.345,
            logger=logger,
        )

    record = caplog.records[-1]
    assert record.getMessage() == "[UPLOAD] chunk_uploaded (upload_id=up-1, chunk=2, duration_ms=12.3)"
    assert record.event_type == "UPLOAD"
    assert record.event_context == {"upload_id": "up-1"}
    assert record.event_payload == {"chunk": 2}


def test_upload_and_http_helpers(caplog) -> None:
    logger = logging.getLogger("tests.events")

    with caplog.at_level(logging.DEBUG, logger="tests.events"):
        emit_upload_event("upload_started", "up-7", payload={"chunks": 3}, logger=logger)
        emit_http_event("post", "/uploads/initiate", payload={"status": 200}, logger=logger)

    messages = [record.getMessage() for record in caplog.records]
    assert messages == [
        "[UPLOAD] upload_started (upload_id=up-7, chunks=3)",
        "[HTTP_REQUEST] POST /uploads/initiate (status=200)",
    ]
