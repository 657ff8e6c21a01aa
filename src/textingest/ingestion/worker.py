"""Isolated execution context: serves exactly one extraction request.

Run as ``python -m textingest.ingestion.worker``. The request arrives on
stdin; progress and the single terminal message leave on stdout. Library
output that would otherwise land on stdout is redirected to stderr so the
channel carries protocol bytes only.
"""

from __future__ import annotations

from enum import Enum
import logging
import os
import sys
from typing import BinaryIO, Callable

from textingest.ingestion.errors import IngestionError, UnsupportedFormatError
from textingest.ingestion.extractors import Extractor, build_default_extractors
from textingest.ingestion.protocol import (
    CompleteMessage,
    ErrorMessage,
    Message,
    ProgressMessage,
    ProtocolError,
    Request,
    encode_message,
    read_request,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_ERROR_REASON = "Error processing file"


class ContextState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    TERMINATED = "terminated"


class ExecutionContext:
    """Runs one request through the matching extractor and emits its messages."""

    def __init__(
        self,
        emit: Callable[[Message], None],
        extractors: dict[str, Extractor] | None = None,
    ) -> None:
        self._emit = emit
        self._extractors = build_default_extractors() if extractors is None else extractors
        self._state = ContextState.IDLE

    @property
    def state(self) -> ContextState:
        return self._state

    def handle(self, request: Request) -> None:
        if self._state is not ContextState.IDLE:
            raise RuntimeError("Execution context already served a request")
        self._state = ContextState.RUNNING

        terminal: Message
        try:
            text = self._dispatch(request)
        except IngestionError as exc:
            terminal = ErrorMessage(reason=str(exc), code=exc.code)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Extractor failed for %s request", request.kind)
            terminal = ErrorMessage(reason=str(exc) or DEFAULT_ERROR_REASON)
        else:
            terminal = CompleteMessage(text=text)

        self._state = ContextState.TERMINATED
        self._emit(terminal)

    def _dispatch(self, request: Request) -> str:
        extractor = self._extractors.get(request.kind)
        if extractor is None:
            raise UnsupportedFormatError("Unsupported file type")
        return extractor(request, self._report_progress)

    def _report_progress(self, fraction: float) -> None:
        if self._state is ContextState.RUNNING:
            self._emit(ProgressMessage(fraction=min(max(fraction, 0.0), 1.0)))


def _claim_stdout() -> BinaryIO:
    """Keep the real stdout for protocol frames and point fd 1 at stderr."""

    sys.stdout.flush()
    channel = os.fdopen(os.dup(sys.stdout.fileno()), "wb")
    os.dup2(sys.stderr.fileno(), sys.stdout.fileno())
    sys.stdout = sys.stderr
    return channel


def main() -> int:
    logging.basicConfig(
        level=os.environ.get("TEXTINGEST_WORKER_LOG_LEVEL", "WARNING"),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    channel = _claim_stdout()

    def emit(message: Message) -> None:
        channel.write(encode_message(message))
        channel.flush()

    try:
        request = read_request(sys.stdin.buffer)
    except ProtocolError as exc:
        LOGGER.error("Rejected malformed request: %s", exc)
        emit(ErrorMessage(reason=f"Malformed request: {exc}"))
        return 1

    LOGGER.debug("Received %s request", request.kind)
    ExecutionContext(emit).handle(request)
    channel.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
