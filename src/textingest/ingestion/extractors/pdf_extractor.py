"""PDF extractor joining per-page text spans in page order."""

from __future__ import annotations

from typing import Callable

import pymupdf

ProgressCallback = Callable[[float], None]

PAGE_SEPARATOR = "\n\n"


def _page_items(page: pymupdf.Page) -> list[str]:
    """Return the page's text spans in content-stream order."""

    items: list[str] = []
    for block in page.get_text("dict")["blocks"]:
        if block.get("type") != 0:
            continue
        for line in block.get("lines", []):
            items.extend(span["text"] for span in line.get("spans", []))
    return items


def extract_pdf_text(buffer: bytes, on_progress: ProgressCallback) -> str:
    """Extract text from every page, separating pages with a blank line.

    Empty pages still contribute an (empty) segment, so the number of
    separator-delimited segments always equals the page count.
    """

    pages: list[str] = []
    with pymupdf.open(stream=buffer, filetype="pdf") as doc:
        total = doc.page_count
        for page_number, page in enumerate(doc, start=1):
            pages.append(" ".join(_page_items(page)))
            on_progress(page_number / total)
    return PAGE_SEPARATOR.join(pages)
