"""Error taxonomy shared by the orchestrator, dispatcher and worker process."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


@dataclass(slots=True)
class IngestionError(Exception):
    """Domain error for extraction failures, carrying a human-readable reason."""

    message: str
    code: ClassVar[str] = "unknown"

    def __str__(self) -> str:
        return self.message


class UnsupportedFormatError(IngestionError):
    """The media type has no extractor."""

    code = "unsupported_format"


class InvalidContainerError(IngestionError):
    """Structural prerequisites of a container format are missing."""

    code = "invalid_container"


class ExecutionFaultError(IngestionError):
    """The execution context itself became unusable."""

    code = "execution_fault"


class IngestionCancelledError(IngestionError):
    """The caller raised the cancellation token before a result arrived."""

    code = "cancelled"


class UnknownExtractionError(IngestionError):
    """An extractor raised an unanticipated fault."""

    code = "unknown"


_ERRORS_BY_CODE: dict[str, type[IngestionError]] = {
    error_type.code: error_type
    for error_type in (
        UnsupportedFormatError,
        InvalidContainerError,
        ExecutionFaultError,
        IngestionCancelledError,
        UnknownExtractionError,
    )
}


def error_for_code(code: str | None, reason: str) -> IngestionError:
    """Rebuild the error raised on the far side of the worker boundary."""

    error_type = _ERRORS_BY_CODE.get(code or "", UnknownExtractionError)
    return error_type(reason)
