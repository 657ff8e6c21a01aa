"""Ingestion package interfaces."""

from .config import IngestionSettings
from .errors import (
    ExecutionFaultError,
    IngestionCancelledError,
    IngestionError,
    InvalidContainerError,
    UnknownExtractionError,
    UnsupportedFormatError,
)
from .ingestor import ingest
from .models import CancellationToken, InMemorySourceFile, LocalSourceFile, MediaType, SourceFile

__all__ = [
    "CancellationToken",
    "ExecutionFaultError",
    "InMemorySourceFile",
    "IngestionCancelledError",
    "IngestionError",
    "IngestionSettings",
    "InvalidContainerError",
    "LocalSourceFile",
    "MediaType",
    "SourceFile",
    "UnknownExtractionError",
    "UnsupportedFormatError",
    "ingest",
]
