"""Duplicate detection against staged and live inventory."""

from __future__ import annotations

from sqlalchemy.orm import Session

from product_ingest.db.repositories import LiveProductRepository, StagedProductRepository


class DeduplicationChecker:
    """
    Answers whether a (source, external id) pair is already known.

    Staged records are checked first, then live inventory.
    """

    def __init__(self, session: Session) -> None:
        self.staged = StagedProductRepository(session)
        self.live = LiveProductRepository(session)

    def is_duplicate(self, source: str, external_id: str) -> bool:
        if self.staged.exists_by_identity(source, external_id):
            return True
        return self.live.exists_by_identity(source, external_id)
