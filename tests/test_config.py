import json
from pathlib import Path

import training_reels.config as config_module
from training_reels.config import AppConfig, DEFAULT_API_BASE_URL, load_config


def test_from_mapping_reads_upload_and_polling_sections(tmp_path: Path) -> None:
    config = AppConfig.from_mapping(
        {
            "storage_root": "storage",
            "api_base_url": "https://reels.test/api/",
            "request_timeout": 12,
            "upload": {
                "chunk_size": 2048,
                "max_concurrent_chunks": 5,
                "retry_attempts": 4,
                "retry_delay": 0.5,
            },
            "polling": {"upload_interval": 1, "job_interval": 4},
        },
        base_path=tmp_path,
    )

    assert config.storage_root == (tmp_path / "storage").resolve()
    assert config.api_base_url == "https://reels.test/api"
    assert config.request_timeout == 12.0
    assert config.upload_poll_interval == 1.0
    assert config.job_poll_interval == 4.0

    settings = config.upload_settings()
    assert settings.chunk_size == 2048
    assert settings.max_concurrent_chunks == 5
    assert settings.retry_attempts == 4
    assert settings.retry_delay == 0.5


def test_invalid_upload_numbers_fall_back_to_defaults(tmp_path: Path) -> None:
    config = AppConfig.from_mapping(
        {"upload": {"chunk_size": "lots", "max_concurrent_chunks": 0}},
        base_path=tmp_path,
    )

    assert config.chunk_size == 5 * 1024 * 1024
    assert config.max_concurrent_chunks == 3
    assert config.api_base_url == DEFAULT_API_BASE_URL


def test_invalid_timing_values_fall_back_to_defaults(tmp_path: Path) -> None:
    config = AppConfig.from_mapping(
        {
            "request_timeout": "soon",
            "upload": {"retry_delay": -1},
            "polling": {"upload_interval": 0, "job_interval": "nan"},
        },
        base_path=tmp_path,
    )

    assert config.request_timeout == 30.0
    assert config.retry_delay == 1.0
    assert config.upload_poll_interval == 2.0
    assert config.job_poll_interval == 3.0
    assert config.upload_settings().retry_delay == 1.0


def test_zero_retry_delay_is_accepted(tmp_path: Path) -> None:
    config = AppConfig.from_mapping({"upload": {"retry_delay": "0"}}, base_path=tmp_path)

    assert config.retry_delay == 0.0
    assert config.upload_settings().retry_delay == 0.0


def test_storage_root_falls_back_when_preferred_is_unusable(
    tmp_path: Path, monkeypatch
) -> None:
    home_dir = tmp_path / "home"
    monkeypatch.setattr(config_module.Path, "home", lambda: home_dir)

    preferred_storage = tmp_path / "storage"
    preferred_storage.write_text("not a directory", encoding="utf-8")

    config = AppConfig.from_mapping({"storage_root": "storage"}, base_path=tmp_path)

    expected_storage = (home_dir / ".training_reels" / "storage").resolve()
    assert config.storage_root == expected_storage
    assert config.credentials_file == (expected_storage / "credentials.json").resolve()
    assert expected_storage.exists()


def test_load_config_applies_environment_overrides(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(config_module.Path, "home", lambda: tmp_path / "home")
    config_file = tmp_path / "settings.json"
    config_file.write_text(
        json.dumps(
            {
                "storage_root": str(tmp_path / "state"),
                "api_base_url": "https://from-file.test/api",
                "upload": {"chunk_size": 4096, "max_concurrent_chunks": 2},
            }
        ),
        encoding="utf-8",
    )

    config = load_config(
        config_file,
        environ={
            "TRAINING_REELS_API_URL": "https://from-env.test/api",
            "TRAINING_REELS_MAX_CONCURRENT_CHUNKS": "6",
        },
    )

    assert config.api_base_url == "https://from-env.test/api"
    assert config.chunk_size == 4096
    assert config.max_concurrent_chunks == 6
    assert config.storage_root == (tmp_path / "state").resolve()


def test_load_config_uses_defaults_when_file_missing(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(config_module.Path, "home", lambda: tmp_path / "home")

    config = load_config(tmp_path / "missing.json", environ={})

    assert config.api_base_url == DEFAULT_API_BASE_URL
    assert config.chunk_size == 5 * 1024 * 1024
    assert config.retry_attempts == 3
