"""Runtime configuration for the ingestion dispatcher and worker process."""

from __future__ import annotations

import codecs
from dataclasses import dataclass
import logging
import os
from typing import Mapping


DEFAULT_CHUNK_SIZE = 1024 * 1024
DEFAULT_WORKER_TIMEOUT_SECONDS = 300.0
DEFAULT_TEXT_ENCODING = "utf-8"
DEFAULT_WORKER_LOG_LEVEL = "WARNING"
AUTO_ENCODING = "auto"


def _parse_positive_int(*, name: str, raw_value: str, minimum: int = 1) -> int:
    value = int(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_timeout(*, name: str, raw_value: str) -> float | None:
    value = float(raw_value)
    if value < 0:
        raise ValueError(f"{name} must be >= 0")
    return value or None


def _validate_encoding(*, name: str, raw_value: str) -> str:
    if raw_value == AUTO_ENCODING:
        return raw_value
    try:
        codecs.lookup(raw_value)
    except LookupError as exc:
        raise ValueError(f"{name} names an unknown encoding: {raw_value}") from exc
    return raw_value


@dataclass(frozen=True, slots=True)
class IngestionSettings:
    """Validated settings for one or more ``ingest`` calls."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    worker_timeout_seconds: float | None = DEFAULT_WORKER_TIMEOUT_SECONDS
    text_encoding: str = DEFAULT_TEXT_ENCODING
    worker_log_level: str = DEFAULT_WORKER_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "IngestionSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        chunk_size_raw = source.get("TEXTINGEST_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE)).strip()
        timeout_raw = source.get(
            "TEXTINGEST_WORKER_TIMEOUT_SECONDS", str(DEFAULT_WORKER_TIMEOUT_SECONDS)
        ).strip()
        encoding_raw = source.get("TEXTINGEST_TEXT_ENCODING", DEFAULT_TEXT_ENCODING).strip()
        log_level_raw = source.get("TEXTINGEST_WORKER_LOG_LEVEL", DEFAULT_WORKER_LOG_LEVEL).strip().upper()

        if not chunk_size_raw:
            raise ValueError("TEXTINGEST_CHUNK_SIZE cannot be empty")
        if not timeout_raw:
            raise ValueError("TEXTINGEST_WORKER_TIMEOUT_SECONDS cannot be empty")
        if not encoding_raw:
            raise ValueError("TEXTINGEST_TEXT_ENCODING cannot be empty")
        if not isinstance(logging.getLevelName(log_level_raw), int):
            raise ValueError(f"TEXTINGEST_WORKER_LOG_LEVEL is not a logging level: {log_level_raw}")

        return cls(
            chunk_size=_parse_positive_int(name="TEXTINGEST_CHUNK_SIZE", raw_value=chunk_size_raw),
            worker_timeout_seconds=_parse_timeout(
                name="TEXTINGEST_WORKER_TIMEOUT_SECONDS",
                raw_value=timeout_raw,
            ),
            text_encoding=_validate_encoding(name="TEXTINGEST_TEXT_ENCODING", raw_value=encoding_raw),
            worker_log_level=log_level_raw,
        )
