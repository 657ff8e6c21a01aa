"""EPUB extractor reading HTML entries straight from the zip container."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
import logging
from typing import Callable
import warnings
from zipfile import BadZipFile, ZipFile

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from lxml import etree

from textingest.ingestion.errors import InvalidContainerError
from textingest.ingestion.normalization import normalize_whitespace

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

CONTAINER_PATH = "META-INF/container.xml"
EPUB_BATCH_SIZE = 5
ENTRY_SEPARATOR = "\n\n"
_HTML_SUFFIXES = (".html", ".xhtml")
_DROPPED_TAGS = ["style", "script"]


def _opf_path(container_xml: bytes) -> str:
    parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False, huge_tree=False)
    try:
        root = etree.fromstring(container_xml, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise InvalidContainerError("Invalid EPUB: Cannot find OPF file path") from exc

    for rootfile in root.xpath("//*[local-name()='rootfile']"):
        full_path = rootfile.get("full-path")
        if full_path:
            return full_path
    raise InvalidContainerError("Invalid EPUB: Cannot find OPF file path")


def html_to_text(markup: bytes | str) -> str:
    """Strip style/script blocks and tags, then collapse whitespace."""

    soup = BeautifulSoup(markup, "lxml")
    for node in soup.find_all(_DROPPED_TAGS):
        node.decompose()
    return normalize_whitespace(soup.get_text(" "))


def _entry_text(archive: ZipFile, name: str) -> str:
    return html_to_text(archive.read(name))


def extract_epub_text(
    buffer: bytes,
    on_progress: ProgressCallback,
    *,
    batch_size: int = EPUB_BATCH_SIZE,
) -> str:
    """Extract prose from every ``.html``/``.xhtml`` entry in archive order.

    Entries are processed in batches of ``batch_size``; entries inside a batch
    are extracted concurrently and the whole batch is awaited before the next
    one starts. Entries that are empty after stripping are dropped.
    """

    try:
        archive = ZipFile(BytesIO(buffer))
    except BadZipFile as exc:
        raise InvalidContainerError("Invalid EPUB: Not a zip archive") from exc

    with archive:
        try:
            container_xml = archive.read(CONTAINER_PATH)
        except KeyError as exc:
            raise InvalidContainerError("Invalid EPUB: Missing container.xml") from exc
        # Located for validation only; reading order follows the archive.
        logger.debug("EPUB package document at %s", _opf_path(container_xml))

        names = [name for name in archive.namelist() if name.endswith(_HTML_SUFFIXES)]
        total = len(names)
        texts: list[str] = []

        # XHTML entries go through the lenient HTML parser; the filter is
        # entered once here, never from the pool threads.
        with warnings.catch_warnings(), ThreadPoolExecutor(max_workers=batch_size) as pool:
            warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
            for start in range(0, total, batch_size):
                batch = names[start : start + batch_size]
                results = list(pool.map(lambda name: _entry_text(archive, name), batch))
                texts.extend(text for text in results if text)
                on_progress((start + len(batch)) / total)

    return ENTRY_SEPARATOR.join(texts)
