"""Format extractors keyed by request kind."""

import logging
from typing import Callable

from textingest.ingestion.errors import UnsupportedFormatError
from textingest.ingestion.extractors.txt_extractor import extract_text
from textingest.ingestion.protocol import BufferRequest, Request, TextRequest

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]
Extractor = Callable[[Request, ProgressCallback], str]

try:
    from textingest.ingestion.extractors.pdf_extractor import extract_pdf_text
except ImportError:
    extract_pdf_text = None
    logger.warning("PDF support unavailable: install 'pymupdf'")

try:
    from textingest.ingestion.extractors.epub_extractor import extract_epub_text
except ImportError:
    extract_epub_text = None
    logger.warning("EPUB support unavailable: install 'beautifulsoup4' and 'lxml'")


def _run_text(request: Request, on_progress: ProgressCallback) -> str:
    if not isinstance(request, TextRequest):
        raise UnsupportedFormatError(f"Expected a chunked text request, got {request.kind}")
    return extract_text(request.chunks, on_progress, encoding=request.encoding)


def _buffer_of(request: Request) -> bytes:
    if not isinstance(request, BufferRequest):
        raise UnsupportedFormatError(f"Expected a buffered request, got {request.kind}")
    return request.buffer


def _run_pdf(request: Request, on_progress: ProgressCallback) -> str:
    return extract_pdf_text(_buffer_of(request), on_progress)


def _run_epub(request: Request, on_progress: ProgressCallback) -> str:
    return extract_epub_text(_buffer_of(request), on_progress)


def build_default_extractors() -> dict[str, Extractor]:
    """Return the extractor map for every format whose dependencies are installed."""
    extractors: dict[str, Extractor] = {"text": _run_text}
    if extract_pdf_text is not None:
        extractors["pdf"] = _run_pdf
    if extract_epub_text is not None:
        extractors["epub"] = _run_epub
    return extractors


__all__ = [
    "Extractor",
    "build_default_extractors",
    "extract_text",
    "extract_pdf_text",
    "extract_epub_text",
]
