from __future__ import annotations

import pytest

from textingest.ingestion.errors import InvalidContainerError
from textingest.ingestion.extractors import build_default_extractors
from textingest.ingestion.protocol import (
    BufferRequest,
    CompleteMessage,
    ErrorMessage,
    Message,
    ProgressMessage,
    Request,
    TextRequest,
)
from textingest.ingestion.worker import ContextState, ExecutionContext


def test_text_request_emits_progress_then_a_single_complete() -> None:
    emitted: list[Message] = []
    context = ExecutionContext(emitted.append)

    context.handle(TextRequest(chunks=["Hello, ".encode("utf-8"), "мир".encode("utf-8")]))

    assert emitted == [ProgressMessage(0.5), ProgressMessage(1.0), CompleteMessage("Hello, мир")]
    assert context.state is ContextState.TERMINATED


def test_unknown_kind_terminates_with_unsupported_file_type() -> None:
    emitted: list[Message] = []

    ExecutionContext(emitted.append).handle(BufferRequest(kind="docx", buffer=b"PK"))

    assert emitted == [ErrorMessage("Unsupported file type", "unsupported_format")]


def test_request_shape_mismatch_is_rejected_as_unsupported() -> None:
    extractors = build_default_extractors()
    text_as_buffer: list[Message] = []
    chunks_to_pdf: list[Message] = []

    ExecutionContext(text_as_buffer.append, extractors).handle(BufferRequest(kind="text", buffer=b"hi"))
    ExecutionContext(chunks_to_pdf.append, {"text": extractors["pdf"]}).handle(TextRequest(chunks=[b"hi"]))

    assert text_as_buffer == [ErrorMessage("Expected a chunked text request, got text", "unsupported_format")]
    assert chunks_to_pdf == [ErrorMessage("Expected a buffered request, got text", "unsupported_format")]


def test_domain_errors_keep_their_code() -> None:
    emitted: list[Message] = []

    def _broken(request: Request, on_progress) -> str:
        raise InvalidContainerError("Invalid EPUB: Missing container.xml")

    ExecutionContext(emitted.append, {"epub": _broken}).handle(BufferRequest(kind="epub", buffer=b""))

    assert emitted == [ErrorMessage("Invalid EPUB: Missing container.xml", "invalid_container")]


def test_unexpected_exceptions_become_unknown_errors() -> None:
    emitted: list[Message] = []

    def _crashing(request: Request, on_progress) -> str:
        on_progress(0.5)
        raise RuntimeError("cannot open broken document")

    ExecutionContext(emitted.append, {"pdf": _crashing}).handle(BufferRequest(kind="pdf", buffer=b""))

    assert emitted == [ProgressMessage(0.5), ErrorMessage("cannot open broken document", "unknown")]


def test_exception_without_message_uses_default_reason() -> None:
    emitted: list[Message] = []

    def _silent(request: Request, on_progress) -> str:
        raise ValueError()

    ExecutionContext(emitted.append, {"pdf": _silent}).handle(BufferRequest(kind="pdf", buffer=b""))

    assert emitted == [ErrorMessage("Error processing file", "unknown")]


def test_context_serves_exactly_one_request() -> None:
    emitted: list[Message] = []
    context = ExecutionContext(emitted.append)
    context.handle(TextRequest(chunks=[b"one"]))

    with pytest.raises(RuntimeError, match="already served"):
        context.handle(TextRequest(chunks=[b"two"]))

    assert sum(isinstance(message, CompleteMessage) for message in emitted) == 1


def test_progress_after_termination_is_not_emitted() -> None:
    emitted: list[Message] = []
    captured = []

    def _leaky(request: Request, on_progress) -> str:
        captured.append(on_progress)
        return "done"

    ExecutionContext(emitted.append, {"pdf": _leaky}).handle(BufferRequest(kind="pdf", buffer=b""))
    captured[0](1.0)

    assert emitted == [CompleteMessage("done")]
