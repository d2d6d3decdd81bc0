from __future__ import annotations

import sys
from pathlib import Path
from typing import List

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from training_reels.bootstrap import Bootstrapper
from training_reels.config import AppConfig
from training_reels.services.validation import VideoInfo


@pytest.fixture()
def temp_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_file = config_dir / "default.json"
    config_file.write_text(
        """
        {
            \"storage_root\": \"storage\",\n
            \"api_base_url\": \"https://reels.test/api\"\n
        }
        """,
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    config = AppConfig.from_mapping(
        {
            "storage_root": "storage",
            "api_base_url": "https://reels.test/api",
            "upload": {"chunk_size": 1024, "retry_delay": 0},
        },
        base_path=tmp_path,
    )

    Bootstrapper(config).initialize()
    return config


class FakeProbe:
    """Video probe returning canned metadata and recording the probed paths."""

    def __init__(self, info: VideoInfo) -> None:
        self.info = info
        self.calls: List[Path] = []

    def probe(self, path: Path) -> VideoInfo:
        self.calls.append(path)
        return self.info


@pytest.fixture()
def short_clip_probe() -> FakeProbe:
    return FakeProbe(VideoInfo(duration=10.0, width=1280, height=720, codec="h264"))
