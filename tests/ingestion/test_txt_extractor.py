from __future__ import annotations

from textingest.ingestion.dispatcher import chunk_sizes
from textingest.ingestion.extractors.txt_extractor import extract_text


def _split(raw: bytes, chunk_size: int) -> list[bytes]:
    chunks: list[bytes] = []
    offset = 0
    for size in chunk_sizes(len(raw), chunk_size):
        chunks.append(raw[offset : offset + size])
        offset += size
    return chunks


def test_single_chunk_reports_one_full_progress_and_keeps_content() -> None:
    raw = "Первая строка\nSecond line\n".encode("utf-8")
    fractions: list[float] = []

    text = extract_text([raw], fractions.append)

    assert text == "Первая строка\nSecond line\n"
    assert fractions == [1.0]


def test_multibyte_character_split_across_chunks_decodes_like_whole_buffer() -> None:
    raw = "añ€😀 Луна".encode("utf-8")

    for chunk_size in (1, 2, 3, 5):
        chunks = _split(raw, chunk_size)
        assert extract_text(chunks, lambda _: None) == raw.decode("utf-8")


def test_progress_counts_processed_chunks() -> None:
    chunks = _split(b"abcdefghij", 3)
    fractions: list[float] = []

    extract_text(chunks, fractions.append)

    assert len(chunks) == 4
    assert fractions == [0.25, 0.5, 0.75, 1.0]


def test_empty_source_yields_empty_text_without_progress() -> None:
    fractions: list[float] = []

    assert extract_text([], fractions.append) == ""
    assert fractions == []


def test_utf8_bom_is_stripped_and_invalid_bytes_replaced() -> None:
    raw = b"\xef\xbb\xbfhello \xff world"

    assert extract_text(_split(raw, 2), lambda _: None) == "hello \ufffd world"


def test_auto_encoding_detects_cp1251() -> None:
    raw = "Название: Путь\nАвтор: Ирина\n\nПривет мир\nТихий лес\n".encode("cp1251")

    text = extract_text([raw], lambda _: None, encoding="auto")

    assert "Привет мир" in text


def test_explicit_encoding_is_honoured() -> None:
    raw = "Привет".encode("cp1251")

    assert extract_text(_split(raw, 4), lambda _: None, encoding="cp1251") == "Привет"
