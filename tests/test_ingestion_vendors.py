"""Tests for vendor resolution and duplicate detection."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from product_ingest.core.enums import VendorStatus
from product_ingest.core.schema import LiveProduct, Vendor
from product_ingest.db.models import Base
from product_ingest.db.repositories import LiveProductRepository, VendorRepository
from product_ingest.ingestion.dedup import DeduplicationChecker
from product_ingest.ingestion.vendors import VendorResolver


@pytest.fixture
def session():
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()
    yield session
    session.close()
    engine.dispose()


class TestVendorResolver:
    """Tests for VendorResolver."""

    def test_creates_approved_vendor(self, session: Session) -> None:
        vendor = VendorResolver(session).resolve("Boho Bride Studio", "https://etsy.com/shop/boho")
        session.commit()

        assert vendor.company_name == "Boho Bride Studio"
        assert vendor.slug == "boho-bride-studio"
        assert vendor.status == VendorStatus.APPROVED
        assert vendor.website == "https://etsy.com/shop/boho"

    def test_returns_existing_vendor(self, session: Session) -> None:
        resolver = VendorResolver(session)
        first = resolver.resolve("Bella Decor")
        session.commit()

        second = resolver.resolve("Bella Decor", "https://ignored.example.com")

        assert second.id == first.id
        assert second.website == ""
        assert len(VendorRepository(session).list_all()) == 1

    def test_casing_creates_distinct_vendors(self, session: Session) -> None:
        resolver = VendorResolver(session)
        a = resolver.resolve("Bella Decor")
        b = resolver.resolve("bella decor")

        assert a.id != b.id

    def test_lost_race_uses_winner(
        self, session: Session, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        winner = VendorRepository(session).create(
            Vendor(company_name="Bella Decor", slug="bella-decor", status=VendorStatus.APPROVED)
        )
        session.commit()

        resolver = VendorResolver(session)
        real_lookup = resolver.vendors.get_by_company_name
        calls = []

        def stale_lookup(name: str):
            # The first read misses the row another run just inserted
            calls.append(name)
            return None if len(calls) == 1 else real_lookup(name)

        monkeypatch.setattr(resolver.vendors, "get_by_company_name", stale_lookup)

        vendor = resolver.resolve("Bella Decor")

        assert vendor.id == winner.id
        assert len(calls) == 2


class TestDeduplicationChecker:
    """Tests for DeduplicationChecker."""

    def test_checks_live_inventory(self, session: Session) -> None:
        LiveProductRepository(session).create(
            LiveProduct(import_source="etsy", external_id="101", name="Macrame Backdrop")
        )
        session.commit()

        checker = DeduplicationChecker(session)

        assert checker.is_duplicate("etsy", "101") is True
        assert checker.is_duplicate("etsy", "102") is False
        assert checker.is_duplicate("amazon", "101") is False
