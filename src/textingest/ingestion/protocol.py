"""Message protocol spoken between the dispatcher and its worker process.

Every message starts with one JSON header line. Requests are followed by the
raw payload bytes announced in ``sizes``; a ``complete`` message is followed
by ``size`` bytes of UTF-8 text. Everything else fits on its header line.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import json
from typing import BinaryIO, ClassVar, Union

from textingest.ingestion.config import DEFAULT_TEXT_ENCODING


class ProtocolError(ValueError):
    """Raised when either side receives bytes that do not follow the protocol."""


@dataclass(frozen=True, slots=True)
class TextRequest:
    chunks: list[bytes]
    encoding: str = DEFAULT_TEXT_ENCODING
    kind: ClassVar[str] = "text"


@dataclass(frozen=True, slots=True)
class BufferRequest:
    kind: str
    buffer: bytes = field(repr=False)


@dataclass(frozen=True, slots=True)
class ProgressMessage:
    fraction: float


@dataclass(frozen=True, slots=True)
class CompleteMessage:
    text: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class ErrorMessage:
    reason: str
    code: str = "unknown"


Request = Union[TextRequest, BufferRequest]
Message = Union[ProgressMessage, CompleteMessage, ErrorMessage]


def _header_line(payload: dict[str, object]) -> bytes:
    return json.dumps(payload, ensure_ascii=True).encode("ascii") + b"\n"


def _parse_header(line: bytes) -> dict[str, object]:
    try:
        payload = json.loads(line)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProtocolError(f"Malformed header line: {line[:80]!r}") from exc
    if not isinstance(payload, dict) or not isinstance(payload.get("kind"), str):
        raise ProtocolError("Header is not an object with a string 'kind'")
    return payload


def request_header(kind: str, sizes: list[int], *, encoding: str = DEFAULT_TEXT_ENCODING) -> bytes:
    """Encode the header line announcing a request payload of ``sizes`` bytes."""

    return _header_line({"kind": kind, "sizes": sizes, "encoding": encoding})


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise ProtocolError(f"Request payload truncated: expected {size} bytes, got {len(data)}")
    return data


def read_request(stream: BinaryIO) -> Request:
    """Read exactly one request from a blocking binary stream."""

    line = stream.readline()
    if not line:
        raise ProtocolError("No request received")
    header = _parse_header(line)
    sizes = header.get("sizes")
    if not isinstance(sizes, list) or not all(isinstance(size, int) and size >= 0 for size in sizes):
        raise ProtocolError("Request 'sizes' must be a list of non-negative integers")

    kind = str(header["kind"])
    chunks = [_read_exact(stream, size) for size in sizes]
    if kind == TextRequest.kind:
        return TextRequest(chunks=chunks, encoding=str(header.get("encoding") or DEFAULT_TEXT_ENCODING))
    return BufferRequest(kind=kind, buffer=b"".join(chunks))


def encode_message(message: Message) -> bytes:
    """Encode a worker-to-dispatcher message."""

    if isinstance(message, ProgressMessage):
        return _header_line({"kind": "progress", "fraction": message.fraction})
    if isinstance(message, ErrorMessage):
        return _header_line({"kind": "error", "reason": message.reason, "code": message.code})
    payload = message.text.encode("utf-8")
    return _header_line({"kind": "complete", "size": len(payload)}) + payload


async def read_message(reader: asyncio.StreamReader) -> Message | None:
    """Read the next worker message, or None once the stream is exhausted."""

    line = await reader.readline()
    if not line:
        return None
    header = _parse_header(line)
    kind = header["kind"]

    if kind == "progress":
        fraction = header.get("fraction")
        if not isinstance(fraction, (int, float)):
            raise ProtocolError("Progress message without a numeric fraction")
        return ProgressMessage(fraction=float(fraction))
    if kind == "error":
        return ErrorMessage(
            reason=str(header.get("reason") or "Error processing file"),
            code=str(header.get("code") or "unknown"),
        )
    if kind == "complete":
        size = header.get("size")
        if not isinstance(size, int) or size < 0:
            raise ProtocolError("Complete message without a valid size")
        try:
            payload = await reader.readexactly(size)
        except asyncio.IncompleteReadError as exc:
            raise ProtocolError(f"Result truncated: expected {size} bytes, got {len(exc.partial)}") from exc
        return CompleteMessage(text=payload.decode("utf-8"))

    raise ProtocolError(f"Unknown message kind: {kind}")
