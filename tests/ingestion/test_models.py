from __future__ import annotations

from pathlib import Path

from textingest.ingestion.models import (
    UNKNOWN_MEDIA_TYPE,
    CancellationToken,
    InMemorySourceFile,
    LocalSourceFile,
    MediaType,
    SourceFile,
    guess_media_type,
)


def test_media_type_is_guessed_from_suffix_then_magic_bytes() -> None:
    assert guess_media_type(Path("book.TXT")) == MediaType.TEXT.value
    assert guess_media_type(Path("book.pdf")) == MediaType.PDF.value
    assert guess_media_type(Path("book.epub")) == MediaType.EPUB.value
    assert guess_media_type(Path("upload.bin"), b"%PDF-1.7\n") == MediaType.PDF.value
    epub_head = b"PK\x03\x04" + b"\x00" * 26 + b"mimetypeapplication/epub+zip"
    assert guess_media_type(Path("upload.bin"), epub_head) == MediaType.EPUB.value
    assert guess_media_type(Path("upload.bin"), b"PK\x03\x04" + b"\x00" * 40) == UNKNOWN_MEDIA_TYPE
    assert guess_media_type(Path("upload.bin")) == UNKNOWN_MEDIA_TYPE


def test_local_source_reads_sub_ranges(tmp_path: Path) -> None:
    sample = tmp_path / "sample.txt"
    sample.write_bytes(b"0123456789")

    source = LocalSourceFile.from_path(sample)

    assert isinstance(source, SourceFile)
    assert source.media_type == MediaType.TEXT.value
    assert source.size_bytes == 10
    assert source.read(2, 3) == b"234"
    assert source.read(8) == b"89"
    assert source.read() == b"0123456789"


def test_in_memory_source_reads_sub_ranges() -> None:
    source = InMemorySourceFile(b"abcdef", MediaType.TEXT.value)

    assert isinstance(source, SourceFile)
    assert source.size_bytes == 6
    assert source.read(4, 10) == b"ef"
    assert source.read() == b"abcdef"


def test_cancellation_token_can_be_raised_repeatedly() -> None:
    token = CancellationToken()
    assert not token.cancelled

    token.cancel()
    token.cancel()

    assert token.cancelled
