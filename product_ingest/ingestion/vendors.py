"""
Vendor Resolution Module
========================

Finds the vendor for a candidate by exact company name, creating it on
first sighting.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from product_ingest.core.enums import VendorStatus
from product_ingest.core.schema import Vendor
from product_ingest.db.repositories import VendorRepository
from product_ingest.ingestion.normalizer import ProductNormalizer, get_default_normalizer

logger = logging.getLogger(__name__)


class VendorResolver:
    """
    Get-or-create for vendors keyed on ``company_name``.

    Matching is exact: "Bella Decor" and "bella decor" are different
    vendors. The unique constraint on company_name settles races; the
    loser rolls back and re-reads the winner's row.
    """

    def __init__(
        self,
        session: Session,
        normalizer: ProductNormalizer | None = None,
    ) -> None:
        self.session = session
        self.vendors = VendorRepository(session)
        self.normalizer = normalizer or get_default_normalizer()

    def resolve(self, name: str, website: str | None = None) -> Vendor:
        """
        Return the vendor named ``name``, creating an approved one if absent.

        Args:
            name: Exact company name
            website: Vendor website, stored on creation only

        Returns:
            The existing or newly created Vendor
        """
        existing = self.vendors.get_by_company_name(name)
        if existing is not None:
            return existing

        vendor = Vendor(
            company_name=name,
            slug=self.normalizer.slugify(name),
            description=f"{name} - Wedding products",
            website=website or "",
            status=VendorStatus.APPROVED,
        )

        try:
            created = self.vendors.create(vendor)
        except IntegrityError:
            # Another run inserted the same name first
            self.session.rollback()
            winner = self.vendors.get_by_company_name(name)
            if winner is None:
                raise
            logger.info(f"Vendor '{name}' was created concurrently; using existing row")
            return winner

        logger.info(f"Created vendor '{name}' ({created.slug})")
        return created
