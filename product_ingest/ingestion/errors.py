"""Ingestion error definitions."""

from __future__ import annotations


class IngestionError(RuntimeError):
    """Base class for errors raised by the ingestion pipeline."""


class AdapterConfigError(IngestionError):
    """Raised when an adapter is missing a required credential or setting."""


class BatchCreationError(IngestionError):
    """Raised when the import batch record cannot be created."""


class BatchStateError(IngestionError):
    """Raised on an illegal batch status transition."""


class InvalidCandidateError(IngestionError):
    """Raised when a candidate product fails completeness validation."""


class UnsupportedFileError(IngestionError):
    """Raised when an import file has an extension the pipeline cannot read."""
