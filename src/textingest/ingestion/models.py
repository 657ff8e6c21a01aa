"""Source handles, media types and the cancellation token used by ``ingest``."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable

_PDF_MAGIC = b"%PDF-"
_ZIP_MAGIC = b"PK\x03\x04"
_EPUB_MIMETYPE = b"mimetypeapplication/epub+zip"
_SNIFF_BYTES = 64

UNKNOWN_MEDIA_TYPE = "application/octet-stream"


class MediaType(str, Enum):
    TEXT = "text/plain"
    PDF = "application/pdf"
    EPUB = "application/epub+zip"


_SUFFIX_MEDIA_TYPES: dict[str, str] = {
    ".txt": MediaType.TEXT.value,
    ".pdf": MediaType.PDF.value,
    ".epub": MediaType.EPUB.value,
}


def guess_media_type(path: Path, sniffed_bytes: bytes | None = None) -> str:
    """Resolve a media type from the file suffix, then from magic bytes."""

    by_suffix = _SUFFIX_MEDIA_TYPES.get(path.suffix.lower())
    if by_suffix is not None:
        return by_suffix
    if not sniffed_bytes:
        return UNKNOWN_MEDIA_TYPE
    if sniffed_bytes.startswith(_PDF_MAGIC):
        return MediaType.PDF.value
    # OCF containers store an uncompressed "mimetype" entry first.
    if sniffed_bytes.startswith(_ZIP_MAGIC) and sniffed_bytes[30:58] == _EPUB_MIMETYPE:
        return MediaType.EPUB.value
    return UNKNOWN_MEDIA_TYPE


@runtime_checkable
class SourceFile(Protocol):
    """Read-only handle to binary content owned by the caller."""

    @property
    def media_type(self) -> str:
        """MIME type of the content."""

    @property
    def size_bytes(self) -> int:
        """Total content length in bytes."""

    def read(self, offset: int = 0, size: int | None = None) -> bytes:
        """Return ``size`` bytes starting at ``offset`` (everything when ``size`` is None)."""


@dataclass(frozen=True, slots=True)
class LocalSourceFile:
    """A file on disk."""

    path: Path
    media_type: str
    size_bytes: int

    @classmethod
    def from_path(cls, path: str | Path, media_type: str | None = None) -> "LocalSourceFile":
        source = Path(path)
        size_bytes = source.stat().st_size
        if media_type is None:
            with source.open("rb") as handle:
                media_type = guess_media_type(source, handle.read(_SNIFF_BYTES))
        return cls(path=source, media_type=media_type, size_bytes=size_bytes)

    def read(self, offset: int = 0, size: int | None = None) -> bytes:
        with self.path.open("rb") as handle:
            handle.seek(offset)
            return handle.read() if size is None else handle.read(size)


@dataclass(frozen=True, slots=True)
class InMemorySourceFile:
    """Content that is already held in memory."""

    data: bytes
    media_type: str

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def read(self, offset: int = 0, size: int | None = None) -> bytes:
        end = None if size is None else offset + size
        return self.data[offset:end]


@dataclass(slots=True)
class CancellationToken:
    """External signal that aborts an in-flight ``ingest`` call.

    Raising the token more than once, or after the call has produced its
    result, has no effect.
    """

    _event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()
