"""
Import Pipeline Module
======================

Stages candidate products for review.

Pipeline Stages (per item):
1. Dedup - Skip items already staged or live
2. Validate - Reject incomplete candidates
3. Vendor - Find or create the supplying vendor
4. Categorize - AI suggestions, with a fixed fallback
5. Persist - Write the staged record and commit

Each item is committed on its own, so a failure never undoes earlier
items. The batch record is created first and finalized last.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from product_ingest.core.enums import AffiliateNetwork, ImportSource, ReviewStatus
from product_ingest.core.schema import CandidateProduct, ImportBatch, StagedProduct
from product_ingest.db.repositories import ImportBatchRepository, StagedProductRepository
from product_ingest.ingestion.adapters.manual import ManualFileAdapter, extract_product_rows
from product_ingest.ingestion.batch import BatchTracker, ImportReport
from product_ingest.ingestion.categorizer import AICategorizer, CategorizationResult
from product_ingest.ingestion.dedup import DeduplicationChecker
from product_ingest.ingestion.errors import (
    BatchCreationError,
    InvalidCandidateError,
    UnsupportedFileError,
)
from product_ingest.ingestion.normalizer import ProductNormalizer, get_default_normalizer
from product_ingest.ingestion.vendors import VendorResolver

logger = logging.getLogger(__name__)

AFFILIATE_NETWORKS: dict[str, AffiliateNetwork] = {
    ImportSource.AMAZON.value: AffiliateNetwork.AMAZON,
    ImportSource.ETSY.value: AffiliateNetwork.AWIN,
    ImportSource.RENTAL.value: AffiliateNetwork.DIRECT,
    ImportSource.MANUAL.value: AffiliateNetwork.DIRECT,
}


def affiliate_network_for(source: str) -> AffiliateNetwork:
    """Affiliate network for a listing source (direct when unknown)."""
    return AFFILIATE_NETWORKS.get(source, AffiliateNetwork.DIRECT)


def infer_source(path: Path | str) -> str:
    """
    Guess the listing source from an import file name.

    CSV files are always manual. JSON files named after a source
    ("amazon-1700000000.json") use that source.
    """
    path = Path(path)
    if path.suffix.lower() == ".csv":
        return ImportSource.MANUAL.value

    stem = path.stem.lower()
    for source in (ImportSource.AMAZON, ImportSource.ETSY, ImportSource.RENTAL):
        if source.value in stem:
            return source.value
    return ImportSource.MANUAL.value


class ImportPipeline:
    """
    Runs candidates through dedup, validation, vendor resolution,
    categorization and persistence.

    Args:
        session: Database session; the pipeline commits per item.
        categorizer: AI categorizer (may have no client, then always falls back).
        dedup: Duplicate checker; defaults to one on ``session``.
        vendors: Vendor resolver; defaults to one on ``session``.
    """

    def __init__(
        self,
        session: Session,
        categorizer: AICategorizer,
        *,
        dedup: DeduplicationChecker | None = None,
        vendors: VendorResolver | None = None,
        normalizer: ProductNormalizer | None = None,
    ) -> None:
        self.session = session
        self.categorizer = categorizer
        self.normalizer = normalizer or get_default_normalizer()
        self.dedup = dedup or DeduplicationChecker(session)
        self.vendors = vendors or VendorResolver(session, self.normalizer)
        self.batches = ImportBatchRepository(session)
        self.staged = StagedProductRepository(session)

    def import_from_file(self, path: Path | str, source: str | None = None) -> ImportReport:
        """
        Import a JSON or CSV file.

        JSON files hold candidate objects (an array or a "products"
        wrapper). CSV files are parsed by the manual adapter; rows it
        rejects are written to the batch error list but not counted in
        its total.

        Args:
            path: File to import
            source: Listing source; inferred from the file name when omitted

        Raises:
            FileNotFoundError: If the file does not exist
            UnsupportedFileError: If the extension is not .json or .csv
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        ext = path.suffix.lower()
        parse_errors: list[str] = []
        items: list[CandidateProduct | dict[str, Any]]

        if ext == ".json":
            with open(path, encoding="utf-8") as f:
                items = extract_product_rows(json.load(f))
        elif ext == ".csv":
            parsed = ManualFileAdapter(normalizer=self.normalizer).load(path)
            items = list(parsed.candidates)
            parse_errors = parsed.errors
            for error in parse_errors:
                logger.warning(f"Skipped row in {path.name}: {error}")
        else:
            raise UnsupportedFileError(f"Unsupported file format: {ext}. Use .json or .csv")

        source = source or infer_source(path)
        logger.info(f"Importing {len(items)} products from {path} (source: {source})")
        return self.import_products(items, source, parse_errors=parse_errors)

    def import_products(
        self,
        candidates: Iterable[CandidateProduct | dict[str, Any]],
        source: str,
        parse_errors: list[str] | None = None,
    ) -> ImportReport:
        """
        Stage a list of candidates as one batch.

        Args:
            candidates: CandidateProducts or raw dicts in candidate shape
            source: Source recorded on the batch (and on items that lack one)
            parse_errors: Rows rejected upstream; recorded on the batch, not counted

        Returns:
            ImportReport with final counters

        Raises:
            BatchCreationError: If the batch record cannot be created
        """
        items = list(candidates)
        batch = self._create_batch(source, len(items))
        tracker = BatchTracker(batch.id, source, len(items))
        for error in parse_errors or []:
            tracker.record_parse_error(error)

        try:
            for index, item in enumerate(items, start=1):
                self._process_item(tracker, item, index, len(items), source)
        except Exception as e:
            logger.exception(f"Import batch {batch.id} failed")
            self.session.rollback()
            tracker.fail(f"Batch aborted: {e}")
            self._finalize(tracker)
            raise

        tracker.complete()
        self._finalize(tracker)

        report = tracker.snapshot()
        logger.info(
            f"Import complete: {report.imported} imported, {report.duplicates} duplicates, "
            f"{report.failed} failed (batch {report.batch_id})"
        )
        return report

    def _create_batch(self, source: str, total: int) -> ImportBatch:
        try:
            batch = self.batches.create(ImportBatch(source=source, total_items=total))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise BatchCreationError(f"Failed to create batch: {e}") from e

        logger.info(f"Created import batch: {batch.id}")
        return batch

    def _process_item(
        self,
        tracker: BatchTracker,
        item: CandidateProduct | dict[str, Any],
        index: int,
        total: int,
        source: str,
    ) -> None:
        try:
            candidate = self._coerce(item, source)
        except (TypeError, ValueError) as e:
            # pydantic ValidationError is a ValueError
            name = item.get("name") if isinstance(item, dict) else None
            logger.warning(f"Item {index} is not a valid candidate: {e}")
            tracker.record_failure(name or f"Item {index}", f"Invalid candidate data: {e}")
            return

        logger.info(f"[{index}/{total}] {candidate.name}")

        if self.dedup.is_duplicate(*candidate.identity_key):
            logger.info(f"Duplicate {candidate.source}:{candidate.external_id}, skipping")
            tracker.record_duplicate()
            return

        try:
            if not self.normalizer.validate_product(candidate):
                raise InvalidCandidateError("Missing required fields or images")

            vendor = self.vendors.resolve(candidate.vendor_name, candidate.vendor_url)
            categorization = self.categorizer.categorize(candidate)
            self.staged.create(self._build_staged(candidate, tracker, vendor.id, categorization))
            self.session.commit()
        except InvalidCandidateError as e:
            logger.warning(f"Rejected '{candidate.name}': {e}")
            self.session.rollback()
            tracker.record_failure(candidate.name, str(e))
            return
        except Exception as e:
            logger.exception(f"Failed to import '{candidate.name}'")
            self.session.rollback()
            tracker.record_failure(candidate.name, str(e))
            return

        logger.info(
            f"Staged '{candidate.name}' as {categorization.category.value} "
            f"({categorization.confidence:.0%} confidence"
            f"{', fallback' if categorization.used_fallback else ''})"
        )
        tracker.record_imported()

    def _coerce(self, item: CandidateProduct | dict[str, Any], source: str) -> CandidateProduct:
        if isinstance(item, CandidateProduct):
            candidate = item
        else:
            data = dict(item)
            if "price" in data:
                data["price"] = self.normalizer.normalize_price(data["price"])
            candidate = CandidateProduct.model_validate(data)
        if not candidate.source:
            candidate = candidate.model_copy(update={"source": source})
        return candidate

    def _build_staged(
        self,
        candidate: CandidateProduct,
        tracker: BatchTracker,
        vendor_id: UUID,
        categorization: CategorizationResult,
    ) -> StagedProduct:
        return StagedProduct(
            import_batch_id=tracker.batch_id,
            import_source=candidate.source,
            external_id=candidate.external_id,
            source_url=candidate.source_url,
            name=candidate.name,
            description=candidate.description,
            raw_category=candidate.raw_category,
            base_price=candidate.price,
            currency=candidate.currency,
            images=candidate.images,
            primary_image=candidate.primary_image,
            vendor_id=vendor_id,
            vendor_name=candidate.vendor_name,
            vendor_url=candidate.vendor_url,
            suggested_category=categorization.category.value,
            suggested_subcategory=categorization.subcategory,
            suggested_fulfillment_type=categorization.fulfillment_type,
            suggested_style_tags=categorization.style_tags,
            suggested_color_palette=categorization.color_palette,
            ai_confidence=categorization.confidence,
            ai_fallback_used=categorization.used_fallback,
            affiliate_network=affiliate_network_for(candidate.source),
            affiliate_url=candidate.affiliate_url,
            review_status=ReviewStatus.PENDING,
            raw_data=candidate.metadata,
            scraped_at=candidate.scraped_at,
        )

    def _finalize(self, tracker: BatchTracker) -> None:
        self.batches.finalize(
            tracker.batch_id,
            tracker.status,
            imported=tracker.imported,
            failed=tracker.failed,
            duplicates=tracker.duplicates,
            errors=tracker.errors,
        )
        self.session.commit()
