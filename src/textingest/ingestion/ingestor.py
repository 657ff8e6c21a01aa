"""Public entrypoint: extract one source file to normalized text."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from textingest.ingestion.config import IngestionSettings
from textingest.ingestion.dispatcher import ExtractionDispatcher
from textingest.ingestion.errors import IngestionCancelledError
from textingest.ingestion.models import CancellationToken, SourceFile

LOGGER = logging.getLogger(__name__)


async def ingest(
    source: SourceFile,
    on_progress: Callable[[float], None] | None = None,
    cancel: CancellationToken | None = None,
    *,
    settings: IngestionSettings | None = None,
) -> str:
    """Extract ``source`` in an isolated worker process and return its text.

    An empty string means the source holds no extractable prose. Raising
    ``cancel`` before the result arrives kills the worker and fails the call
    with ``IngestionCancelledError``; partial results are discarded. The
    dispatcher is closed on every exit path.
    """

    async with ExtractionDispatcher(settings) as dispatcher:
        if cancel is None:
            return await dispatcher.run(source, on_progress)
        if cancel.cancelled:
            raise IngestionCancelledError("Processing aborted")

        run_task = asyncio.create_task(dispatcher.run(source, on_progress))
        cancel_task = asyncio.create_task(cancel.wait())
        try:
            await asyncio.wait({run_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (cancel_task, run_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(run_task, cancel_task, return_exceptions=True)

        # A result that arrived before the token was raised wins.
        if not run_task.cancelled():
            return run_task.result()
        LOGGER.info("Ingestion of %s cancelled", source.media_type)
        raise IngestionCancelledError("Processing aborted")
