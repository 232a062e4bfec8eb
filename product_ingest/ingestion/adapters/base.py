"""
Adapter Base Module
===================

Defines the abstract base class for source-specific adapters.
Adapters are responsible for:
1. Finding listings at a source (search, file rows)
2. Converting each listing into a CandidateProduct
3. Rejecting incomplete candidates before they reach the pipeline
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import httpx

from product_ingest.core.schema import CandidateProduct
from product_ingest.ingestion.normalizer import (
    DEFAULT_DESCRIPTION_LENGTH,
    ProductNormalizer,
    get_default_normalizer,
)
from product_ingest.ingestion.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "ProductIngest/0.1"
DEFAULT_TIMEOUT = 30.0


@dataclass
class ScrapeStats:
    """Per-run adapter counters."""

    total: int = 0
    successful: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "successful": self.successful, "failed": self.failed}


@dataclass
class ScrapeResult:
    """
    Outcome of one adapter run.

    ``success`` is true when at least one candidate was produced.
    """

    success: bool = False
    candidates: list[CandidateProduct] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    stats: ScrapeStats = field(default_factory=ScrapeStats)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": self.success,
            "candidates": [c.model_dump(mode="json") for c in self.candidates],
            "errors": self.errors,
            "stats": self.stats.to_dict(),
        }


class ProviderAdapter(ABC):
    """
    Abstract base class for source-specific adapters.

    Subclasses must implement:
    - scrape: Produce candidates for an optional query
    - validate_config: Fail fast on missing credentials

    Price, text and completeness helpers delegate to a ProductNormalizer
    so every adapter applies the same rules.
    """

    # Adapter identification (override in subclasses)
    ADAPTER_NAME: str = "base"
    ADAPTER_VERSION: str = "1.0.0"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        affiliate_id: str | None = None,
        max_results: int = 50,
        client: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
        normalizer: ProductNormalizer | None = None,
        config: dict[str, Any] | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            api_key: Provider API key, if the source needs one
            affiliate_id: Affiliate/tracking id used to build affiliate URLs
            max_results: Upper bound on items requested from a search
            client: HTTP client to use; one is created per run when omitted
            rate_limiter: Pacer between detail fetches
            normalizer: Shared price/text/completeness rules
            config: Optional custom configuration from sources.yaml
            user_agent: User-Agent header for owned clients
            timeout: Request timeout in seconds for owned clients
        """
        self.api_key = api_key
        self.affiliate_id = affiliate_id
        self.max_results = max_results
        self.config = config or {}
        self.rate_limiter = rate_limiter or RateLimiter()
        self.normalizer = normalizer or get_default_normalizer()
        self.user_agent = user_agent
        self.timeout = timeout
        self._client = client

        self.validate_config()

    @abstractmethod
    async def scrape(self, query: str | None = None) -> ScrapeResult:
        """
        Run the adapter.

        Args:
            query: Search terms (or, for file adapters, a path)

        Returns:
            ScrapeResult with candidates, errors and stats
        """

    @abstractmethod
    def validate_config(self) -> None:
        """
        Check required settings.

        Raises:
            AdapterConfigError: If a required credential is missing
        """

    def normalize_price(self, value: Any) -> Decimal:
        return self.normalizer.normalize_price(value)

    def clean_description(
        self, text: str | None, max_length: int = DEFAULT_DESCRIPTION_LENGTH
    ) -> str:
        return self.normalizer.clean_description(text, max_length)

    def validate_product(self, candidate: CandidateProduct) -> bool:
        return self.normalizer.validate_product(candidate)

    @asynccontextmanager
    async def http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the injected client, or an owned one closed on exit."""
        if self._client is not None:
            yield self._client
            return

        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
        ) as client:
            yield client


class SearchDetailAdapter(ProviderAdapter):
    """
    Two-phase adapter for product APIs.

    Phase 1 searches and returns item ids (at most ``max_results``).
    Phase 2 fetches each id in order, pausing between fetches but not
    after the last one. A failed item is recorded and the loop continues.
    """

    DEFAULT_QUERY: str = ""

    @abstractmethod
    async def search(self, client: httpx.AsyncClient, query: str) -> list[str]:
        """Return item ids matching the query."""

    @abstractmethod
    async def fetch_detail(
        self, client: httpx.AsyncClient, item_id: str
    ) -> CandidateProduct | None:
        """Fetch one item and convert it to a candidate (None if absent)."""

    async def scrape(self, query: str | None = None) -> ScrapeResult:
        result = ScrapeResult()
        query = query or self.config.get("default_query") or self.DEFAULT_QUERY
        logger.info(f"[{self.ADAPTER_NAME}] Starting scrape for: {query}")

        async with self.http_client() as client:
            try:
                item_ids = await self.search(client, query)
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"[{self.ADAPTER_NAME}] Search failed: {e}")
                result.errors.append(str(e))
                return result

            if not item_ids:
                result.errors.append("No products found in search")
                return result

            logger.info(f"[{self.ADAPTER_NAME}] Found {len(item_ids)} items to scrape")

            for i, item_id in enumerate(item_ids):
                logger.info(f"[{self.ADAPTER_NAME}] Scraping {i + 1}/{len(item_ids)}: {item_id}")

                try:
                    candidate = await self.fetch_detail(client, item_id)
                    if candidate is not None and self.validate_product(candidate):
                        result.candidates.append(candidate)
                        result.stats.successful += 1
                    else:
                        result.stats.failed += 1
                except Exception as e:
                    logger.exception(f"[{self.ADAPTER_NAME}] Failed to scrape {item_id}")
                    result.errors.append(f"{item_id}: {e}")
                    result.stats.failed += 1

                result.stats.total += 1

                if i < len(item_ids) - 1:
                    await self.rate_limiter.delay()

        result.success = result.stats.successful > 0
        logger.info(
            f"[{self.ADAPTER_NAME}] Scrape complete: "
            f"{result.stats.successful}/{result.stats.total} successful"
        )
        return result


def raise_for_api_error(response: httpx.Response, provider: str, message_key: str) -> Any:
    """
    Decode a JSON response, raising a descriptive error on non-2xx status.

    Returns:
        The decoded JSON body
    """
    try:
        data = response.json()
    except ValueError:
        data = {}

    if response.is_error:
        detail = data.get(message_key) if isinstance(data, dict) else None
        raise httpx.HTTPStatusError(
            f"{provider} API error: {detail or response.reason_phrase}",
            request=response.request,
            response=response,
        )
    return data
