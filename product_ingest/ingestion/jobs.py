"""
Background Jobs Module
======================

Defines arq tasks for scrape-then-import runs.
Uses Redis as the job queue backend. The worker runs one job at a time
so two runs never stage the same source concurrently.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from arq import create_pool
from arq.connections import RedisSettings
from arq.jobs import Job
from arq.jobs import JobStatus as ArqJobStatus
from sqlalchemy.orm import Session

from product_ingest.db.engine import get_session
from product_ingest.ingestion.adapters import ProviderAdapter, create_adapter_for_source
from product_ingest.ingestion.categorizer import AICategorizer, build_categorizer_from_env
from product_ingest.ingestion.errors import AdapterConfigError
from product_ingest.ingestion.pipeline import ImportPipeline
from product_ingest.ingestion.registry import SourceConfig, SourceRegistry, get_default_registry

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """Status of an ingestion job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class JobResult:
    """Outcome of one scrape-and-import run, as stored by the arq worker."""

    job_id: str
    source_name: str
    status: JobStatus
    query: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    candidates_scraped: int = 0
    scrape_errors: list[str] = field(default_factory=list)
    report: dict[str, Any] | None = None
    errors: list[str] = field(default_factory=list)
    duration_seconds: float | None = None

    def fail(self, message: str) -> JobResult:
        self.status = JobStatus.FAILED
        self.errors.append(message)
        return self

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        for key in ("started_at", "completed_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


def get_redis_settings() -> RedisSettings:
    """Redis location from ``REDIS_URL``, or the ``REDIS_HOST``/``PORT``/``DB`` trio."""
    url = os.environ.get("REDIS_URL")
    if url:
        return RedisSettings.from_dsn(url)
    return RedisSettings(
        host=os.environ.get("REDIS_HOST", "localhost"),
        port=int(os.environ.get("REDIS_PORT", "6379")),
        database=int(os.environ.get("REDIS_DB", "0")),
    )


class _JobRejected(Exception):
    """A source that cannot be run at all; reported without a traceback."""


def _build_adapter(
    source_name: str, registry: SourceRegistry, overrides: dict[str, Any]
) -> tuple[SourceConfig, ProviderAdapter]:
    source_config = registry.get_source(source_name)
    if source_config is None:
        raise _JobRejected(f"Source '{source_name}' not found")
    if not source_config.enabled:
        raise _JobRejected(f"Source '{source_name}' is disabled")

    try:
        adapter = create_adapter_for_source(source_config, registry.global_config, **overrides)
    except AdapterConfigError as e:
        raise _JobRejected(str(e)) from e
    if adapter is None:
        raise _JobRejected(f"Adapter '{source_config.adapter}' not found")
    return source_config, adapter


async def run_source(
    source_name: str,
    query: str | None,
    session: Session,
    categorizer: AICategorizer,
    *,
    registry: SourceRegistry | None = None,
    job_id: str | None = None,
    **adapter_overrides: Any,
) -> JobResult:
    """
    Scrape one configured source and import the candidates.

    Args:
        source_name: Name of the source in the registry
        query: Search query; the source's default_query when None
        session: Database session for the import
        categorizer: AI categorizer for the import
        registry: Source registry; the default registry when None
        job_id: Identifier recorded on the result
        **adapter_overrides: Adapter constructor overrides (e.g. client)

    Returns:
        JobResult describing the run. Failures are recorded on it, never raised.
    """
    result = JobResult(
        job_id=job_id or str(uuid4()),
        source_name=source_name,
        status=JobStatus.RUNNING,
        started_at=datetime.now(UTC),
    )

    try:
        source_config, adapter = _build_adapter(
            source_name, registry or get_default_registry(), adapter_overrides
        )
        result.query = query or source_config.default_query
        logger.info(f"Scraping source '{source_name}' (query={result.query!r})")
        scraped = await adapter.scrape(result.query)
        result.candidates_scraped = len(scraped.candidates)
        result.scrape_errors = scraped.errors

        report = ImportPipeline(session, categorizer).import_products(
            scraped.candidates, source_config.name, parse_errors=scraped.errors
        )
        result.report = report.to_dict()
        result.status = JobStatus.COMPLETED
    except _JobRejected as e:
        logger.warning(f"Job for '{source_name}' rejected: {e}")
        result.fail(str(e))
    except Exception as e:
        logger.exception(f"Ingestion job failed: {e}")
        result.fail(str(e))
    finally:
        result.completed_at = datetime.now(UTC)
        result.duration_seconds = (result.completed_at - result.started_at).total_seconds()

    return result


async def scrape_and_import(
    ctx: dict[str, Any],
    source_name: str,
    query: str | None = None,
) -> dict[str, Any]:
    """
    arq task: scrape a source and stage its products.

    Args:
        ctx: arq context (contains Redis connection)
        source_name: Name of the source to run
        query: Optional search query

    Returns:
        JobResult as dictionary
    """
    categorizer = build_categorizer_from_env()
    with get_session() as session:
        result = await run_source(
            source_name,
            query,
            session,
            categorizer,
            job_id=ctx.get("job_id"),
        )
    return result.to_dict()


async def enqueue_import(source_name: str, query: str | None = None) -> str:
    """
    Enqueue a scrape-and-import job for async processing.

    Returns:
        Job ID
    """
    redis = await create_pool(get_redis_settings())
    try:
        job = await redis.enqueue_job("scrape_and_import", source_name, query)
    finally:
        await redis.close()
    if job is None:
        raise RuntimeError("Job was not enqueued")
    return job.job_id


async def get_job_status(job_id: str) -> dict[str, Any] | None:
    """
    Get the status of a job.

    Args:
        job_id: Job ID to look up

    Returns:
        Job info dict, or None if not found
    """
    redis = await create_pool(get_redis_settings())
    try:
        job = Job(job_id, redis)
        status = await job.status()
        if status == ArqJobStatus.not_found:
            return None

        result = None
        if status == ArqJobStatus.complete:
            info = await job.result_info()
            result = info.result if info else None
    finally:
        await redis.close()

    return {
        "job_id": job_id,
        "status": status.value,
        "result": result,
    }


class WorkerSettings:
    """arq worker settings."""

    functions = [scrape_and_import]
    redis_settings = get_redis_settings()
    max_jobs = 1
    job_timeout = 3600  # 1 hour
    keep_result = 86400  # 24 hours
