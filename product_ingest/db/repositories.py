"""Repository classes for ingestion database operations."""

import json
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from product_ingest.core.enums import (
    AffiliateNetwork,
    BatchStatus,
    FulfillmentType,
    ReviewStatus,
    VendorStatus,
)
from product_ingest.core.schema import ImportBatch, LiveProduct, StagedProduct, Vendor
from product_ingest.db.models import ImportBatchDB, LiveProductDB, StagedProductDB, VendorDB


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class VendorRepository:
    """Repository for Vendor CRUD operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, vendor: Vendor) -> Vendor:
        """
        Create a new vendor.

        Raises:
            sqlalchemy.exc.IntegrityError: If the company name already exists.
        """
        db_item = VendorDB(
            id=str(vendor.id),
            company_name=vendor.company_name,
            slug=vendor.slug,
            description=vendor.description,
            website=vendor.website,
            status=vendor.status.value,
            created_at=vendor.created_at,
            updated_at=vendor.updated_at,
        )
        self.session.add(db_item)
        self.session.flush()
        return self._to_domain(db_item)

    def get_by_id(self, vendor_id: UUID | str) -> Vendor | None:
        """Get a vendor by ID."""
        stmt = select(VendorDB).where(VendorDB.id == str(vendor_id))
        db_item = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_item) if db_item else None

    def get_by_company_name(self, company_name: str) -> Vendor | None:
        """Get a vendor by exact company name."""
        stmt = select(VendorDB).where(VendorDB.company_name == company_name)
        db_item = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_item) if db_item else None

    def list_all(self) -> list[Vendor]:
        """List all vendors ordered by name."""
        stmt = select(VendorDB).order_by(VendorDB.company_name)
        return [self._to_domain(v) for v in self.session.execute(stmt).scalars().all()]

    def _to_domain(self, db_item: VendorDB) -> Vendor:
        """Convert DB model to domain model."""
        return Vendor(
            id=UUID(db_item.id),
            company_name=db_item.company_name,
            slug=db_item.slug,
            description=db_item.description or "",
            website=db_item.website or "",
            status=VendorStatus(db_item.status),
            created_at=db_item.created_at,
            updated_at=db_item.updated_at,
        )


class ImportBatchRepository:
    """Repository for ImportBatch operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, batch: ImportBatch) -> ImportBatch:
        """
        Create a new import batch.

        Args:
            batch: The ImportBatch domain model to create.

        Returns:
            The created ImportBatch.
        """
        db_item = ImportBatchDB(
            id=str(batch.id),
            source=batch.source,
            status=batch.status.value,
            total_items=batch.total_items,
            imported_items=batch.imported_items,
            failed_items=batch.failed_items,
            duplicate_items=batch.duplicate_items,
            errors_json=json.dumps(batch.errors),
            created_at=batch.created_at,
            updated_at=batch.updated_at,
        )
        self.session.add(db_item)
        self.session.flush()
        return self._to_domain(db_item)

    def get_by_id(self, batch_id: UUID | str) -> ImportBatch | None:
        """Get an import batch by ID."""
        stmt = select(ImportBatchDB).where(ImportBatchDB.id == str(batch_id))
        db_item = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_item) if db_item else None

    def finalize(
        self,
        batch_id: UUID | str,
        status: BatchStatus,
        imported: int,
        failed: int,
        duplicates: int,
        errors: list[str],
    ) -> ImportBatch:
        """
        Write the terminal status and final counters of a batch.

        Args:
            batch_id: The batch to update.
            status: Terminal status (completed or failed).
            imported: Final imported count.
            failed: Final failed count.
            duplicates: Final duplicate count.
            errors: Accumulated error strings.

        Returns:
            The updated ImportBatch.
        """
        stmt = select(ImportBatchDB).where(ImportBatchDB.id == str(batch_id))
        db_item = self.session.execute(stmt).scalar_one_or_none()
        if db_item is None:
            raise ValueError(f"ImportBatch with id {batch_id} not found")

        db_item.status = status.value
        db_item.imported_items = imported
        db_item.failed_items = failed
        db_item.duplicate_items = duplicates
        db_item.errors_json = json.dumps(errors)
        db_item.updated_at = _utc_now()

        self.session.flush()
        return self._to_domain(db_item)

    def list_recent(self, limit: int = 20, source: str | None = None) -> list[ImportBatch]:
        """List the most recent batches, newest first."""
        stmt = select(ImportBatchDB).order_by(ImportBatchDB.created_at.desc()).limit(limit)
        if source:
            stmt = stmt.where(ImportBatchDB.source == source)
        return [self._to_domain(b) for b in self.session.execute(stmt).scalars().all()]

    def _to_domain(self, db_item: ImportBatchDB) -> ImportBatch:
        """Convert DB model to domain model."""
        return ImportBatch(
            id=UUID(db_item.id),
            source=db_item.source,
            status=BatchStatus(db_item.status),
            total_items=db_item.total_items,
            imported_items=db_item.imported_items,
            failed_items=db_item.failed_items,
            duplicate_items=db_item.duplicate_items,
            errors=json.loads(db_item.errors_json) if db_item.errors_json else [],
            created_at=db_item.created_at,
            updated_at=db_item.updated_at,
        )


class StagedProductRepository:
    """Repository for staged (scraped) products."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, product: StagedProduct) -> StagedProduct:
        """
        Create a staged product.

        Raises:
            sqlalchemy.exc.IntegrityError: If (import_source, external_id) already exists.
        """
        db_item = StagedProductDB(
            id=str(product.id),
            import_batch_id=str(product.import_batch_id) if product.import_batch_id else None,
            import_source=product.import_source,
            external_id=product.external_id,
            source_url=product.source_url,
            name=product.name,
            description=product.description,
            raw_category=product.raw_category,
            base_price=product.base_price,
            currency=product.currency,
            images_json=json.dumps(product.images),
            primary_image=product.primary_image,
            vendor_id=str(product.vendor_id) if product.vendor_id else None,
            vendor_name=product.vendor_name,
            vendor_url=product.vendor_url,
            suggested_category=product.suggested_category,
            suggested_subcategory=product.suggested_subcategory,
            suggested_fulfillment_type=product.suggested_fulfillment_type.value,
            suggested_style_tags_json=json.dumps(product.suggested_style_tags),
            suggested_color_palette_json=json.dumps(product.suggested_color_palette),
            ai_confidence=product.ai_confidence,
            ai_fallback_used=product.ai_fallback_used,
            affiliate_network=product.affiliate_network.value,
            affiliate_url=product.affiliate_url,
            review_status=product.review_status.value,
            raw_data_json=json.dumps(product.raw_data, default=str),
            scraped_at=product.scraped_at,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )
        self.session.add(db_item)
        self.session.flush()
        return self._to_domain(db_item)

    def get_by_id(self, product_id: UUID | str) -> StagedProduct | None:
        """Get a staged product by ID."""
        stmt = select(StagedProductDB).where(StagedProductDB.id == str(product_id))
        db_item = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_item) if db_item else None

    def get_by_identity(self, import_source: str, external_id: str) -> StagedProduct | None:
        """Get a staged product by its (source, external id) identity key."""
        stmt = select(StagedProductDB).where(
            StagedProductDB.import_source == import_source,
            StagedProductDB.external_id == external_id,
        )
        db_item = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_item) if db_item else None

    def exists_by_identity(self, import_source: str, external_id: str) -> bool:
        """Check whether a staged product exists for the identity key."""
        stmt = (
            select(StagedProductDB.id)
            .where(
                StagedProductDB.import_source == import_source,
                StagedProductDB.external_id == external_id,
            )
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None

    def list_by_batch(self, batch_id: UUID | str) -> list[StagedProduct]:
        """List staged products written by one batch, oldest first."""
        stmt = (
            select(StagedProductDB)
            .where(StagedProductDB.import_batch_id == str(batch_id))
            .order_by(StagedProductDB.created_at)
        )
        return [self._to_domain(p) for p in self.session.execute(stmt).scalars().all()]

    def count_by_review_status(self, status: ReviewStatus) -> int:
        """Count staged products in a review status."""
        stmt = select(func.count(StagedProductDB.id)).where(
            StagedProductDB.review_status == status.value
        )
        return self.session.execute(stmt).scalar_one()

    def _to_domain(self, db_item: StagedProductDB) -> StagedProduct:
        """Convert DB model to domain model."""
        return StagedProduct(
            id=UUID(db_item.id),
            import_batch_id=UUID(db_item.import_batch_id) if db_item.import_batch_id else None,
            import_source=db_item.import_source,
            external_id=db_item.external_id,
            source_url=db_item.source_url or "",
            name=db_item.name,
            description=db_item.description,
            raw_category=db_item.raw_category,
            base_price=db_item.base_price,
            currency=db_item.currency,
            images=json.loads(db_item.images_json) if db_item.images_json else [],
            primary_image=db_item.primary_image,
            vendor_id=UUID(db_item.vendor_id) if db_item.vendor_id else None,
            vendor_name=db_item.vendor_name or "",
            vendor_url=db_item.vendor_url,
            suggested_category=db_item.suggested_category,
            suggested_subcategory=db_item.suggested_subcategory,
            suggested_fulfillment_type=FulfillmentType(db_item.suggested_fulfillment_type),
            suggested_style_tags=json.loads(db_item.suggested_style_tags_json or "[]"),
            suggested_color_palette=json.loads(db_item.suggested_color_palette_json or "[]"),
            ai_confidence=db_item.ai_confidence,
            ai_fallback_used=db_item.ai_fallback_used,
            affiliate_network=AffiliateNetwork(db_item.affiliate_network),
            affiliate_url=db_item.affiliate_url or "",
            review_status=ReviewStatus(db_item.review_status),
            raw_data=json.loads(db_item.raw_data_json or "{}"),
            scraped_at=db_item.scraped_at,
            created_at=db_item.created_at,
            updated_at=db_item.updated_at,
        )


class LiveProductRepository:
    """Repository for live inventory lookups."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, product: LiveProduct) -> LiveProduct:
        """Create a live product (used when seeding inventory)."""
        db_item = LiveProductDB(
            id=str(product.id),
            import_source=product.import_source,
            external_id=product.external_id,
            name=product.name,
            vendor_id=str(product.vendor_id) if product.vendor_id else None,
            status=product.status,
            created_at=product.created_at,
        )
        self.session.add(db_item)
        self.session.flush()
        return self._to_domain(db_item)

    def exists_by_identity(self, import_source: str, external_id: str) -> bool:
        """Check whether a live product exists for the identity key."""
        stmt = (
            select(LiveProductDB.id)
            .where(
                LiveProductDB.import_source == import_source,
                LiveProductDB.external_id == external_id,
            )
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None

    def _to_domain(self, db_item: LiveProductDB) -> LiveProduct:
        """Convert DB model to domain model."""
        return LiveProduct(
            id=UUID(db_item.id),
            import_source=db_item.import_source,
            external_id=db_item.external_id,
            name=db_item.name,
            vendor_id=UUID(db_item.vendor_id) if db_item.vendor_id else None,
            status=db_item.status,
            created_at=db_item.created_at,
        )
