"""Tests for scrape-and-import jobs."""

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from product_ingest.db.models import Base
from product_ingest.db.repositories import ImportBatchRepository, StagedProductRepository
from product_ingest.ingestion.categorizer import AICategorizer
from product_ingest.ingestion.jobs import JobResult, JobStatus, WorkerSettings, run_source
from product_ingest.ingestion.rate_limiter import RateLimiter
from product_ingest.ingestion.registry import SourceConfig, SourceRegistry


async def _no_sleep(seconds: float) -> None:
    return None


def _listing(listing_id: int, with_images: bool = True) -> dict:
    return {
        "listing_id": listing_id,
        "title": f"Rustic Wood Sign {listing_id}",
        "description": "Hand-painted welcome sign",
        "url": f"https://www.etsy.com/listing/{listing_id}",
        "shop_id": 5,
        "price": {"amount": 4500, "divisor": 100, "currency_code": "USD"},
        "images": [{"url_fullxfull": f"https://i.etsystatic.com/{listing_id}.jpg"}]
        if with_images
        else [],
    }


def etsy_transport(listings: dict) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/listings/active"):
            return httpx.Response(200, json={"results": [{"listing_id": i} for i in listings]})
        if "/shops/" in path:
            return httpx.Response(200, json={"shop_name": "Rustic Signs Co"})
        return httpx.Response(200, json=listings[int(path.rsplit("/", 1)[-1])])

    return httpx.MockTransport(handler)


@pytest.fixture
def session():
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def registry() -> SourceRegistry:
    registry = SourceRegistry()
    registry.register(SourceConfig(name="etsy", adapter="etsy", default_query="rustic wedding"))
    registry.register(SourceConfig(name="amazon", adapter="amazon"))
    registry.register(SourceConfig(name="rental", adapter="rental"))
    registry.register(SourceConfig(name="old-shop", adapter="etsy", enabled=False))
    return registry


class TestRunSource:
    """Tests for run_source."""

    @pytest.mark.asyncio
    async def test_scrapes_and_imports(
        self, session: Session, registry: SourceRegistry, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ETSY_API_KEY", "etsy-key")
        client = httpx.AsyncClient(
            transport=etsy_transport({1: _listing(1), 2: _listing(2, with_images=False)})
        )

        result = await run_source(
            "etsy",
            None,
            session,
            AICategorizer(None),
            registry=registry,
            client=client,
            rate_limiter=RateLimiter(sleep=_no_sleep),
        )

        assert result.status == JobStatus.COMPLETED
        assert result.query == "rustic wedding"
        assert result.candidates_scraped == 1
        assert result.duration_seconds is not None
        assert result.report["imported"] == 1
        assert result.report["total"] == 1

        batch = ImportBatchRepository(session).list_recent()[0]
        assert batch.source == "etsy"
        assert StagedProductRepository(session).exists_by_identity("etsy", "1")

        data = result.to_dict()
        assert data["status"] == "completed"
        assert data["report"]["batch_id"] == str(batch.id)

    @pytest.mark.asyncio
    async def test_scrape_errors_are_carried(
        self, session: Session, registry: SourceRegistry, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ETSY_API_KEY", "etsy-key")
        client = httpx.AsyncClient(transport=etsy_transport({}))

        result = await run_source(
            "etsy", "x", session, AICategorizer(None), registry=registry, client=client
        )

        assert result.status == JobStatus.COMPLETED
        assert result.scrape_errors == ["No products found in search"]
        assert result.report["parse_errors"] == ["No products found in search"]
        assert result.report["total"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "source_name,message",
        [
            ("missing", "Source 'missing' not found"),
            ("old-shop", "Source 'old-shop' is disabled"),
            ("rental", "Adapter 'rental' not found"),
        ],
    )
    async def test_unrunnable_sources(
        self, session: Session, registry: SourceRegistry, source_name: str, message: str
    ) -> None:
        result = await run_source(
            source_name, None, session, AICategorizer(None), registry=registry
        )

        assert result.status == JobStatus.FAILED
        assert result.errors == [message]
        assert result.completed_at is not None

    @pytest.mark.asyncio
    async def test_missing_credentials(
        self, session: Session, registry: SourceRegistry, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("AMAZON_API_KEY", raising=False)

        result = await run_source("amazon", None, session, AICategorizer(None), registry=registry)

        assert result.status == JobStatus.FAILED
        assert "api_key" in result.errors[0]


def test_job_result_defaults() -> None:
    result = JobResult(job_id="abc", source_name="etsy", status=JobStatus.PENDING)
    data = result.to_dict()

    assert data["status"] == "pending"
    assert data["started_at"] is None
    assert data["report"] is None


def test_worker_runs_one_job_at_a_time() -> None:
    assert WorkerSettings.max_jobs == 1
    assert [f.__name__ for f in WorkerSettings.functions] == ["scrape_and_import"]
