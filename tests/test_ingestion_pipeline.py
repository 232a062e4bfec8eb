"""Tests for the import pipeline."""

import csv
import json
import tempfile
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from product_ingest.core.enums import (
    AffiliateNetwork,
    BatchStatus,
    ReviewStatus,
    VendorStatus,
)
from product_ingest.core.schema import CandidateProduct, LiveProduct
from product_ingest.db.models import Base
from product_ingest.db.repositories import (
    ImportBatchRepository,
    LiveProductRepository,
    StagedProductRepository,
    VendorRepository,
)
from product_ingest.ingestion.adapters.manual import CSV_COLUMNS
from product_ingest.ingestion.categorizer import FALLBACK_CONFIDENCE, AICategorizer
from product_ingest.ingestion.dedup import DeduplicationChecker
from product_ingest.ingestion.errors import BatchCreationError, UnsupportedFileError
from product_ingest.ingestion.pipeline import (
    ImportPipeline,
    affiliate_network_for,
    infer_source,
)
from product_ingest.services.ai.client import AIProvider, ClassificationClient


class FakeClient(ClassificationClient):
    """Always answers with the same categorization."""

    provider = AIProvider.OPENAI
    model = "fake-model"

    def complete(self, prompt: str) -> str:
        return json.dumps(
            {
                "category": "centerpieces",
                "subcategory": "candle holders",
                "fulfillmentType": "purchasable",
                "styleTags": ["elegant", "modern"],
                "colorPalette": ["#D4AF37"],
                "confidence": 0.9,
            }
        )


class ExplodingDedup:
    """Dedup checker that fails on a given call."""

    def __init__(self, session: Session, fail_on: int) -> None:
        self.inner = DeduplicationChecker(session)
        self.fail_on = fail_on
        self.calls = 0

    def is_duplicate(self, source: str, external_id: str) -> bool:
        self.calls += 1
        if self.calls == self.fail_on:
            raise RuntimeError("database is locked")
        return self.inner.is_duplicate(source, external_id)


@pytest.fixture
def engine():
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def tmpdir():
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def pipeline(session: Session) -> ImportPipeline:
    return ImportPipeline(session, AICategorizer(FakeClient()))


def _item(external_id: str, **overrides) -> dict:
    """A scraped item in the camelCase shape written by the scrape command."""
    item = {
        "source": "amazon",
        "externalId": external_id,
        "sourceUrl": f"https://www.amazon.com/dp/{external_id}",
        "name": f"Gold Candlestick {external_id}",
        "description": "Elegant gold candlestick",
        "price": "$45.99",
        "currency": "USD",
        "images": [f"https://m.media-amazon.com/{external_id}.jpg"],
        "vendorName": "Bella Decor",
        "vendorUrl": "https://belladecor.com",
        "rawCategory": "Home & Kitchen",
        "metadata": {
            "asin": external_id,
            "affiliate_url": f"https://amazon.com/dp/{external_id}?tag=wed-20",
        },
    }
    item.update(overrides)
    return item


def _write_json(path: Path, items: list[dict]) -> Path:
    path.write_text(json.dumps(items), encoding="utf-8")
    return path


def _write_csv(path: Path, rows: list[dict]) -> Path:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)
    return path


def _csv_row(external_id: str, name: str, images: str) -> dict:
    return {
        "name": name,
        "price": "24.00",
        "images": images,
        "vendor_name": "Crystal Co",
        "source_url": f"https://crystalco.com/product/{external_id or name}",
        "external_id": external_id,
    }


def _assert_counters_add_up(report) -> None:
    assert report.imported + report.failed + report.duplicates == report.total
    assert report.processed == report.total


class TestImportProducts:
    """Tests for ImportPipeline.import_products."""

    def test_item_without_images_fails(self, pipeline: ImportPipeline, session: Session) -> None:
        items = [_item("B01"), _item("B02", name="Imageless Vase", images=[]), _item("B03")]

        report = pipeline.import_products(items, "amazon")

        assert (report.total, report.imported, report.failed, report.duplicates) == (3, 2, 1, 0)
        assert report.status == BatchStatus.COMPLETED
        assert report.errors == ["Imageless Vase: Missing required fields or images"]
        _assert_counters_add_up(report)

        batch = ImportBatchRepository(session).get_by_id(report.batch_id)
        assert batch.status == BatchStatus.COMPLETED
        assert (batch.total_items, batch.imported_items, batch.failed_items) == (3, 2, 1)
        assert batch.errors == report.errors

    def test_rerun_counts_duplicates(self, pipeline: ImportPipeline) -> None:
        first = pipeline.import_products([_item("B01")], "amazon")
        second = pipeline.import_products([_item("B01")], "amazon")

        assert (first.total, first.imported, first.failed, first.duplicates) == (1, 1, 0, 0)
        assert (second.total, second.imported, second.failed, second.duplicates) == (1, 0, 0, 1)
        assert first.batch_id != second.batch_id

    def test_live_products_are_duplicates(self, pipeline: ImportPipeline, session: Session) -> None:
        LiveProductRepository(session).create(
            LiveProduct(import_source="amazon", external_id="B01", name="Gold Candlestick")
        )
        session.commit()

        report = pipeline.import_products([_item("B01"), _item("B02")], "amazon")

        assert (report.imported, report.duplicates) == (1, 1)

    def test_same_id_from_other_source_is_not_duplicate(self, pipeline: ImportPipeline) -> None:
        pipeline.import_products([_item("101")], "amazon")

        report = pipeline.import_products([_item("101", source="etsy")], "etsy")

        assert report.imported == 1

    def test_staged_record(self, pipeline: ImportPipeline, session: Session) -> None:
        report = pipeline.import_products([_item("B01")], "amazon")

        staged = StagedProductRepository(session).get_by_identity("amazon", "B01")
        assert staged is not None
        assert staged.import_batch_id == report.batch_id
        assert staged.base_price == Decimal("45.99")
        assert staged.primary_image == "https://m.media-amazon.com/B01.jpg"
        assert staged.review_status == ReviewStatus.PENDING
        assert staged.suggested_category == "centerpieces"
        assert staged.suggested_style_tags == ["elegant", "modern"]
        assert staged.ai_confidence == 0.9
        assert staged.ai_fallback_used is False
        assert staged.affiliate_network == AffiliateNetwork.AMAZON
        assert staged.affiliate_url == "https://amazon.com/dp/B01?tag=wed-20"
        assert staged.raw_data["asin"] == "B01"

    def test_vendor_created_once(self, pipeline: ImportPipeline, session: Session) -> None:
        pipeline.import_products([_item("B01"), _item("B02")], "amazon")

        vendors = VendorRepository(session).list_all()
        assert len(vendors) == 1
        vendor = vendors[0]
        assert vendor.company_name == "Bella Decor"
        assert vendor.slug == "bella-decor"
        assert vendor.status == VendorStatus.APPROVED
        assert vendor.description == "Bella Decor - Wedding products"
        assert vendor.website == "https://belladecor.com"

        staged = StagedProductRepository(session).get_by_identity("amazon", "B02")
        assert staged.vendor_id == vendor.id

    def test_fallback_categorization_is_persisted(self, session: Session) -> None:
        pipeline = ImportPipeline(session, AICategorizer(None))

        report = pipeline.import_products([_item("B01")], "amazon")

        assert report.imported == 1
        staged = StagedProductRepository(session).get_by_identity("amazon", "B01")
        assert staged.ai_fallback_used is True
        assert staged.ai_confidence == FALLBACK_CONFIDENCE
        assert staged.suggested_category == "decor"
        assert staged.suggested_style_tags == ["classic"]
        assert staged.suggested_color_palette == ["#FFFFFF"]

    def test_accepts_candidate_models(self, pipeline: ImportPipeline) -> None:
        candidate = CandidateProduct.model_validate(_item("B01", price=45.99))

        report = pipeline.import_products([candidate], "amazon")

        assert report.imported == 1

    def test_items_without_source_inherit_run_source(
        self, pipeline: ImportPipeline, session: Session
    ) -> None:
        item = _item("101", source="")

        pipeline.import_products([item], "etsy")

        staged = StagedProductRepository(session).get_by_identity("etsy", "101")
        assert staged is not None
        assert staged.affiliate_network == AffiliateNetwork.AWIN

    def test_malformed_items_fail_individually(self, pipeline: ImportPipeline) -> None:
        items = [_item("B01"), {"name": "Broken Row", "images": "not-a-list"}, 42]

        report = pipeline.import_products(items, "amazon")

        assert (report.imported, report.failed) == (1, 2)
        assert report.errors[0].startswith("Broken Row: Invalid candidate data")
        assert report.errors[1].startswith("Item 3: Invalid candidate data")
        _assert_counters_add_up(report)

    def test_persist_failure_rolls_back_item_only(
        self, pipeline: ImportPipeline, session: Session, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        original = pipeline.staged.create

        def flaky_create(product):
            if product.external_id == "B02":
                raise SQLAlchemyError("disk I/O error")
            return original(product)

        monkeypatch.setattr(pipeline.staged, "create", flaky_create)

        report = pipeline.import_products([_item("B01"), _item("B02"), _item("B03")], "amazon")

        assert (report.imported, report.failed) == (2, 1)
        assert report.errors == ["Gold Candlestick B02: disk I/O error"]
        staged = StagedProductRepository(session)
        assert staged.exists_by_identity("amazon", "B01")
        assert not staged.exists_by_identity("amazon", "B02")
        assert staged.exists_by_identity("amazon", "B03")

    def test_escaping_error_fails_batch(self, session: Session) -> None:
        pipeline = ImportPipeline(
            session, AICategorizer(None), dedup=ExplodingDedup(session, fail_on=2)
        )

        with pytest.raises(RuntimeError, match="database is locked"):
            pipeline.import_products([_item("B01"), _item("B02"), _item("B03")], "amazon")

        batches = ImportBatchRepository(session).list_recent()
        assert len(batches) == 1
        batch = batches[0]
        assert batch.status == BatchStatus.FAILED
        assert batch.imported_items == 1
        assert batch.errors == ["Batch aborted: database is locked"]
        # Items committed before the failure stay staged
        assert StagedProductRepository(session).exists_by_identity("amazon", "B01")

    def test_batch_creation_failure(
        self, pipeline: ImportPipeline, session: Session, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken_create(batch):
            raise SQLAlchemyError("no such table: import_batches")

        monkeypatch.setattr(pipeline.batches, "create", broken_create)

        with pytest.raises(BatchCreationError):
            pipeline.import_products([_item("B01")], "amazon")

        assert StagedProductRepository(session).exists_by_identity("amazon", "B01") is False

    def test_empty_run(self, pipeline: ImportPipeline) -> None:
        report = pipeline.import_products([], "amazon")

        assert report.total == 0
        assert report.status == BatchStatus.COMPLETED


class TestImportFromFile:
    """Tests for ImportPipeline.import_from_file."""

    def test_json_file_source_inferred(
        self, pipeline: ImportPipeline, session: Session, tmpdir: Path
    ) -> None:
        items = [_item("101", source=""), _item("102", source="")]
        path = _write_json(tmpdir / "etsy-1700000000000.json", items)

        report = pipeline.import_from_file(path)

        assert report.source == "etsy"
        assert report.imported == 2
        assert StagedProductRepository(session).exists_by_identity("etsy", "101")

    def test_json_products_wrapper(self, pipeline: ImportPipeline, tmpdir: Path) -> None:
        path = tmpdir / "amazon-1.json"
        path.write_text(json.dumps({"products": [_item("B01")]}), encoding="utf-8")

        assert pipeline.import_from_file(path).imported == 1

    def test_explicit_source(self, pipeline: ImportPipeline, tmpdir: Path) -> None:
        path = _write_json(tmpdir / "export.json", [_item("R1", source="")])

        report = pipeline.import_from_file(path, source="rental")

        assert report.source == "rental"

    def test_csv_file(self, pipeline: ImportPipeline, session: Session, tmpdir: Path) -> None:
        path = tmpdir / "amazon-picks.csv"
        rows = [
            {
                "name": "Crystal Votive Holder",
                "price": "12.50",
                "images": "https://example.com/votive1.jpg",
                "vendor_name": "Crystal Co",
                "source_url": "https://crystalco.com/product/789",
            },
            {
                "name": "Priceless Row",
                "price": "",
                "images": "https://example.com/x.jpg",
                "vendor_name": "Crystal Co",
                "source_url": "https://crystalco.com/product/790",
            },
        ]
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            writer.writerows(rows)

        report = pipeline.import_from_file(path)

        assert report.source == "manual"
        assert report.total == 1
        assert report.imported == 1
        assert report.parse_errors == ["Row 2 (Priceless Row): Price must be greater than 0"]
        staged = StagedProductRepository(session).get_by_identity("manual", "manual-1")
        assert staged.affiliate_network == AffiliateNetwork.DIRECT
        assert staged.affiliate_url == "https://crystalco.com/product/789"

    def test_csv_rejected_rows_recorded_on_batch(
        self, pipeline: ImportPipeline, session: Session, tmpdir: Path
    ) -> None:
        rows = [
            _csv_row("cc-1", "Crystal Votive", "https://example.com/1.jpg"),
            _csv_row("cc-2", "Imageless Vase", ""),
            _csv_row("cc-3", "Glass Cylinder", "https://example.com/3.jpg"),
        ]
        path = _write_csv(tmpdir / "crystal.csv", rows)

        report = pipeline.import_from_file(path)

        assert (report.total, report.imported, report.failed, report.duplicates) == (2, 2, 0, 0)
        message = "Row 2 (Imageless Vase): At least one image URL is required"
        assert report.parse_errors == [message]
        assert report.errors == [message]

        batch = ImportBatchRepository(session).get_by_id(report.batch_id)
        assert batch.errors == [message]
        assert batch.total_items == 2

    def test_rerun_json_file(self, pipeline: ImportPipeline, tmpdir: Path) -> None:
        path = _write_json(tmpdir / "amazon-1700000000000.json", [_item("B01")])

        first = pipeline.import_from_file(path)
        second = pipeline.import_from_file(path)

        assert (first.total, first.imported, first.failed, first.duplicates) == (1, 1, 0, 0)
        assert (second.total, second.imported, second.failed, second.duplicates) == (1, 0, 0, 1)

    def test_rerun_csv_file(
        self, pipeline: ImportPipeline, session: Session, tmpdir: Path
    ) -> None:
        # No external_id, so identity comes from the row number
        path = _write_csv(
            tmpdir / "picks.csv", [_csv_row("", "Crystal Votive", "https://example.com/1.jpg")]
        )

        first = pipeline.import_from_file(path)
        second = pipeline.import_from_file(path)

        assert (first.total, first.imported, first.failed, first.duplicates) == (1, 1, 0, 0)
        assert (second.total, second.imported, second.failed, second.duplicates) == (1, 0, 0, 1)
        assert StagedProductRepository(session).exists_by_identity("manual", "manual-1")

    def test_unsupported_extension(self, pipeline: ImportPipeline, tmpdir: Path) -> None:
        path = tmpdir / "products.xml"
        path.write_text("<products/>")

        with pytest.raises(UnsupportedFileError):
            pipeline.import_from_file(path)

    def test_missing_file(self, pipeline: ImportPipeline, tmpdir: Path) -> None:
        with pytest.raises(FileNotFoundError):
            pipeline.import_from_file(tmpdir / "amazon-1.json")


@pytest.mark.parametrize(
    "filename,expected",
    [
        ("amazon-1700000000000.json", "amazon"),
        ("data/etsy-1700000000000.json", "etsy"),
        ("Rental-Export.json", "rental"),
        ("export.json", "manual"),
        ("amazon-picks.csv", "manual"),
    ],
)
def test_infer_source(filename: str, expected: str) -> None:
    assert infer_source(filename) == expected


@pytest.mark.parametrize(
    "source,expected",
    [
        ("amazon", AffiliateNetwork.AMAZON),
        ("etsy", AffiliateNetwork.AWIN),
        ("rental", AffiliateNetwork.DIRECT),
        ("manual", AffiliateNetwork.DIRECT),
        ("wayfair", AffiliateNetwork.DIRECT),
    ],
)
def test_affiliate_network_for(source: str, expected: AffiliateNetwork) -> None:
    assert affiliate_network_for(source) == expected
