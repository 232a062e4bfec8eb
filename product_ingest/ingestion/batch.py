"""
Batch Tracking Module
=====================

In-memory state for one import run: counters, error strings and the
processing -> completed/failed transition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from product_ingest.core.enums import BatchStatus
from product_ingest.ingestion.errors import BatchStateError

ERROR_DISPLAY_LIMIT = 10


@dataclass
class ImportReport:
    """Final outcome of one import run."""

    batch_id: UUID
    source: str
    status: BatchStatus
    total: int = 0
    imported: int = 0
    failed: int = 0
    duplicates: int = 0
    processed: int = 0
    errors: list[str] = field(default_factory=list)
    parse_errors: list[str] = field(default_factory=list)

    def error_summary(self, limit: int = ERROR_DISPLAY_LIMIT) -> list[str]:
        """First ``limit`` errors, then a "... and N more" line if truncated."""
        shown = self.errors[:limit]
        remaining = len(self.errors) - len(shown)
        if remaining > 0:
            shown = shown + [f"... and {remaining} more"]
        return shown

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "batch_id": str(self.batch_id),
            "source": self.source,
            "status": self.status.value,
            "total": self.total,
            "imported": self.imported,
            "failed": self.failed,
            "duplicates": self.duplicates,
            "processed": self.processed,
            "errors": self.errors,
            "parse_errors": self.parse_errors,
        }


class BatchTracker:
    """
    Counts outcomes for one run.

    Every item ends as exactly one of imported, duplicate or failed.
    Rows rejected while parsing the input file are kept in the error list
    but never counted.
    The status leaves processing once; a second transition raises
    BatchStateError.
    """

    def __init__(self, batch_id: UUID, source: str, total: int) -> None:
        self.batch_id = batch_id
        self.source = source
        self.total = total
        self.status = BatchStatus.PROCESSING
        self.imported = 0
        self.failed = 0
        self.duplicates = 0
        self.processed = 0
        self.errors: list[str] = []
        self.parse_errors: list[str] = []

    def record_imported(self) -> None:
        self.imported += 1
        self.processed += 1

    def record_duplicate(self) -> None:
        self.duplicates += 1
        self.processed += 1

    def record_failure(self, name: str, message: str) -> None:
        self.failed += 1
        self.processed += 1
        self.errors.append(f"{name}: {message}")

    def record_parse_error(self, message: str) -> None:
        """Note a row rejected before the run; it is not one of ``total``."""
        self.parse_errors.append(message)
        self.errors.append(message)

    def complete(self) -> None:
        self._transition(BatchStatus.COMPLETED)

    def fail(self, error: str | None = None) -> None:
        self._transition(BatchStatus.FAILED)
        if error:
            self.errors.append(error)

    def _transition(self, status: BatchStatus) -> None:
        if self.status != BatchStatus.PROCESSING:
            raise BatchStateError(
                f"Batch {self.batch_id} is already {self.status.value}; cannot mark {status.value}"
            )
        self.status = status

    def snapshot(self) -> ImportReport:
        """Build the report for the current state."""
        return ImportReport(
            batch_id=self.batch_id,
            source=self.source,
            status=self.status,
            total=self.total,
            imported=self.imported,
            failed=self.failed,
            duplicates=self.duplicates,
            processed=self.processed,
            errors=list(self.errors),
            parse_errors=list(self.parse_errors),
        )
