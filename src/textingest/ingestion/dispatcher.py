"""Bridge one source file to one worker process over the message protocol."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from pathlib import Path
import sys
from typing import Callable, Sequence

from textingest.ingestion.config import IngestionSettings
from textingest.ingestion.errors import (
    ExecutionFaultError,
    UnknownExtractionError,
    UnsupportedFormatError,
    error_for_code,
)
from textingest.ingestion.models import MediaType, SourceFile
from textingest.ingestion.protocol import CompleteMessage, ProgressMessage, read_message, request_header

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

_REQUEST_KINDS: dict[str, str] = {
    MediaType.TEXT.value: "text",
    MediaType.PDF.value: "pdf",
    MediaType.EPUB.value: "epub",
}
_STDERR_TAIL_BYTES = 4096


def worker_command() -> list[str]:
    """Command line that starts a fresh execution context."""

    return [sys.executable, "-m", "textingest.ingestion.worker"]


def _worker_env(settings: IngestionSettings) -> dict[str, str]:
    env = dict(os.environ)
    env["TEXTINGEST_WORKER_LOG_LEVEL"] = settings.worker_log_level
    package_root = str(Path(__file__).resolve().parents[2])
    env["PYTHONPATH"] = os.pathsep.join(path for path in (package_root, env.get("PYTHONPATH")) if path)
    return env


def chunk_sizes(total_bytes: int, chunk_size: int) -> list[int]:
    """Split ``total_bytes`` into ordered chunk lengths; only the last may be shorter."""

    return [min(chunk_size, total_bytes - offset) for offset in range(0, total_bytes, chunk_size)]


class ExtractionDispatcher:
    """
    Owns one worker process for exactly one extraction call.

    The request is written by a sender task while ``run`` reads messages, so a
    full pipe on either side never stalls the other. Closing the dispatcher
    kills the worker; closing is idempotent.
    """

    def __init__(
        self,
        settings: IngestionSettings | None = None,
        *,
        command: Sequence[str] | None = None,
    ) -> None:
        self._settings = settings or IngestionSettings()
        self._command = list(command) if command is not None else worker_command()
        self._process: asyncio.subprocess.Process | None = None
        self._sender: asyncio.Task[None] | None = None
        self._stderr_reader: asyncio.Task[None] | None = None
        self._stderr_tail = bytearray()
        self._send_error: Exception | None = None
        self._started = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def returncode(self) -> int | None:
        """Exit status of the worker, or None while it runs (or before it starts)."""

        return self._process.returncode if self._process is not None else None

    async def __aenter__(self) -> "ExtractionDispatcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def run(self, source: SourceFile, on_progress: ProgressCallback | None = None) -> str:
        """Extract ``source`` in the worker and return its text."""

        if self._closed:
            raise RuntimeError("Dispatcher is closed")
        if self._started:
            raise RuntimeError("Dispatcher already served a call")
        self._started = True

        kind = _REQUEST_KINDS.get(source.media_type)
        if kind is None:
            raise UnsupportedFormatError(f"Unsupported file type: {source.media_type}")

        try:
            process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=_worker_env(self._settings),
            )
        except OSError as exc:
            raise ExecutionFaultError(f"Failed to start worker: {exc}") from exc

        self._process = process
        LOGGER.debug("Started worker pid %d for %s request (%d bytes)", process.pid, kind, source.size_bytes)
        self._sender = asyncio.create_task(self._send_request(process.stdin, kind, source))
        self._stderr_reader = asyncio.create_task(self._drain_stderr(process.stderr))

        timeout = self._settings.worker_timeout_seconds
        try:
            return await asyncio.wait_for(self._handle_messages(process.stdout, on_progress), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise ExecutionFaultError(f"Worker timed out after {timeout:g}s") from exc
        finally:
            self.close()

    def close(self) -> None:
        """Destroy the worker process; repeated calls are no-ops."""

        if self._closed:
            return
        self._closed = True
        self._kill()
        if self._sender is not None and not self._sender.done():
            self._sender.cancel()

    async def aclose(self) -> None:
        """Close and wait until the worker process has been reaped."""

        self.close()
        if self._process is not None:
            await self._process.wait()
        pending = [task for task in (self._sender, self._stderr_reader) if task is not None]
        await asyncio.gather(*pending, return_exceptions=True)

    def _kill(self) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return
        # The worker may exit between the returncode check and the signal.
        with contextlib.suppress(ProcessLookupError):
            process.kill()

    async def _send_request(self, stdin: asyncio.StreamWriter, kind: str, source: SourceFile) -> None:
        try:
            if kind == "text":
                sizes = chunk_sizes(source.size_bytes, self._settings.chunk_size)
                stdin.write(request_header(kind, sizes, encoding=self._settings.text_encoding))
                offset = 0
                for size in sizes:
                    # Each chunk is handed to the pipe and not retained here.
                    stdin.write(source.read(offset, size))
                    offset += size
                    await stdin.drain()
            else:
                buffer = source.read()
                stdin.write(request_header(kind, [len(buffer)]))
                stdin.write(buffer)
                del buffer
                await stdin.drain()
            stdin.close()
        except (BrokenPipeError, ConnectionResetError) as exc:
            LOGGER.debug("Worker stopped reading its request: %s", exc)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Failed to read source for %s request: %s", kind, exc)
            self._send_error = exc
            self._kill()

    async def _drain_stderr(self, stderr: asyncio.StreamReader) -> None:
        while True:
            data = await stderr.read(_STDERR_TAIL_BYTES)
            if not data:
                return
            self._stderr_tail.extend(data)
            del self._stderr_tail[:-_STDERR_TAIL_BYTES]

    async def _handle_messages(self, stdout: asyncio.StreamReader, on_progress: ProgressCallback | None) -> str:
        while True:
            try:
                message = await read_message(stdout)
            except ValueError as exc:
                raise ExecutionFaultError(f"Worker sent malformed output: {exc}") from exc

            if message is None:
                if self._send_error is not None:
                    raise UnknownExtractionError(f"Failed to read source: {self._send_error}") from self._send_error
                raise await self._execution_fault()
            if isinstance(message, ProgressMessage):
                if on_progress is not None:
                    on_progress(message.fraction)
                continue
            if isinstance(message, CompleteMessage):
                return message.text
            raise error_for_code(message.code, message.reason)

    async def _execution_fault(self) -> ExecutionFaultError:
        assert self._process is not None
        returncode = await self._process.wait()
        if self._stderr_reader is not None:
            await self._stderr_reader
        message = f"Worker exited without a result (exit code {returncode})"
        detail = self._stderr_tail.decode("utf-8", errors="replace").strip()
        if detail:
            message = f"{message}: {detail.splitlines()[-1]}"
        return ExecutionFaultError(message)
