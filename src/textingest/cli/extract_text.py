"""CLI command extracting one document to plain text."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import signal
import sys

from dotenv import load_dotenv

from textingest.ingestion.config import IngestionSettings
from textingest.ingestion.errors import IngestionCancelledError, IngestionError
from textingest.ingestion.ingestor import ingest
from textingest.ingestion.models import CancellationToken, LocalSourceFile

LOGGER = logging.getLogger(__name__)

EXIT_CANCELLED = 130


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract plain text from a TXT, PDF or EPUB file")
    parser.add_argument("--path", required=True, help="Source file")
    parser.add_argument("--media-type", default=None, help="Override the detected media type")
    parser.add_argument("--output", default=None, help="Write text here instead of stdout")
    parser.add_argument("--json", action="store_true", help="Emit a JSON payload instead of raw text")
    return parser.parse_args(argv)


def _install_cancel_handler(token: CancellationToken) -> None:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except NotImplementedError:
        LOGGER.debug("Signal handlers unsupported on this platform; Ctrl-C stops the loop instead")


def _log_progress(fraction: float) -> None:
    LOGGER.info("Progress %3.0f%%", fraction * 100)


async def _extract(source: LocalSourceFile, settings: IngestionSettings) -> str:
    token = CancellationToken()
    _install_cancel_handler(token)
    return await ingest(source, _log_progress, token, settings=settings)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = _parse_args(argv)

    source_path = Path(args.path)
    if not source_path.is_file():
        LOGGER.error("path must be an existing file: %s", source_path)
        return 2

    settings = IngestionSettings.from_env()
    source = LocalSourceFile.from_path(source_path, media_type=args.media_type)

    try:
        text = asyncio.run(_extract(source, settings))
    except IngestionCancelledError:
        LOGGER.info("Extraction cancelled")
        return EXIT_CANCELLED
    except IngestionError as exc:
        payload = {"path": str(source_path), "media_type": source.media_type, "error": str(exc), "code": exc.code}
        print(json.dumps(payload, ensure_ascii=True, indent=2))
        return 1

    if not text:
        LOGGER.warning("No extractable content in %s", source_path)

    if args.json:
        output = json.dumps(
            {
                "path": str(source_path),
                "media_type": source.media_type,
                "characters": len(text),
                "text": text,
            },
            ensure_ascii=False,
            indent=2,
        )
    else:
        output = text

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
    else:
        sys.stdout.write(output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
