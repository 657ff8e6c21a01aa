from __future__ import annotations

import pytest

from textingest.ingestion.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_WORKER_TIMEOUT_SECONDS,
    IngestionSettings,
)


def test_settings_defaults_match_fixed_constants() -> None:
    settings = IngestionSettings.from_env({})

    assert settings.chunk_size == DEFAULT_CHUNK_SIZE == 1024 * 1024
    assert settings.worker_timeout_seconds == DEFAULT_WORKER_TIMEOUT_SECONDS
    assert settings.text_encoding == "utf-8"
    assert settings.worker_log_level == "WARNING"


def test_settings_load_overrides_from_env() -> None:
    settings = IngestionSettings.from_env(
        {
            "TEXTINGEST_CHUNK_SIZE": "4096",
            "TEXTINGEST_WORKER_TIMEOUT_SECONDS": "0",
            "TEXTINGEST_TEXT_ENCODING": "auto",
            "TEXTINGEST_WORKER_LOG_LEVEL": "debug",
        }
    )

    assert settings.chunk_size == 4096
    assert settings.worker_timeout_seconds is None
    assert settings.text_encoding == "auto"
    assert settings.worker_log_level == "DEBUG"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("TEXTINGEST_CHUNK_SIZE", "0"),
        ("TEXTINGEST_CHUNK_SIZE", ""),
        ("TEXTINGEST_WORKER_TIMEOUT_SECONDS", "-1"),
        ("TEXTINGEST_TEXT_ENCODING", "no-such-codec"),
        ("TEXTINGEST_WORKER_LOG_LEVEL", "LOUD"),
    ],
)
def test_settings_reject_invalid_values(name: str, value: str) -> None:
    with pytest.raises(ValueError, match=name):
        IngestionSettings.from_env({name: value})
