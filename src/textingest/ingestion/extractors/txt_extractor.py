"""Plain-text extractor decoding ordered chunks with a stateful decoder."""

from __future__ import annotations

import codecs
import logging
from typing import Callable, Sequence

from charset_normalizer import from_bytes

from textingest.ingestion.config import AUTO_ENCODING, DEFAULT_TEXT_ENCODING

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


def _detect_encoding(sample: bytes) -> str:
    best = from_bytes(sample).best()
    if best and best.encoding:
        name = best.encoding.lower()
        if codecs.lookup(name).name == "ascii":
            return DEFAULT_TEXT_ENCODING
        if name in {"windows-1251", "cp1251"}:
            return "cp1251"
        return best.encoding
    return DEFAULT_TEXT_ENCODING


def _decoder_codec(encoding: str, first_chunk: bytes | None) -> str:
    if encoding == AUTO_ENCODING:
        encoding = _detect_encoding(first_chunk) if first_chunk else DEFAULT_TEXT_ENCODING
        logger.debug("Detected text encoding %s", encoding)
    # Match browser TextDecoder behaviour: a leading UTF-8 BOM is not content.
    if codecs.lookup(encoding).name == "utf-8":
        return "utf-8-sig"
    return encoding


def extract_text(
    chunks: Sequence[bytes],
    on_progress: ProgressCallback,
    *,
    encoding: str = DEFAULT_TEXT_ENCODING,
) -> str:
    """Decode ``chunks`` in order, reporting progress after each one.

    The decoder keeps state across chunks, so a multi-byte character split by
    a chunk boundary decodes the same as it would from the whole buffer.
    """

    total = len(chunks)
    codec = _decoder_codec(encoding, chunks[0] if chunks else None)
    decoder = codecs.getincrementaldecoder(codec)(errors="replace")

    parts: list[str] = []
    for index, chunk in enumerate(chunks, start=1):
        parts.append(decoder.decode(chunk))
        on_progress(index / total)
    parts.append(decoder.decode(b"", final=True))
    return "".join(parts)
