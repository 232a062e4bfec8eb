"""
Product Ingestion Framework
===========================

This package pulls product listings from external sources and stages
them for human review.

Pipeline Stages:
1. Scrape - Adapters search a source and fetch listing detail
2. Normalize - Clean prices and descriptions, reject incomplete listings
3. Dedup - Skip listings already staged or live
4. Vendor - Find or create the supplying vendor
5. Categorize - AI suggestions for category, style and palette
6. Persist - Write staged records and the batch summary
"""

from product_ingest.ingestion.errors import (
    AdapterConfigError,
    BatchCreationError,
    BatchStateError,
    IngestionError,
    InvalidCandidateError,
    UnsupportedFileError,
)
from product_ingest.ingestion.rate_limiter import RateLimiter
from product_ingest.ingestion.normalizer import ProductNormalizer
from product_ingest.ingestion.registry import (
    GlobalConfig,
    RateLimitConfig,
    SourceConfig,
    SourceCredentials,
    SourceRegistry,
    get_default_registry,
    reset_default_registry,
)
from product_ingest.ingestion.adapters import (
    HandmadeAdapter,
    ManualFileAdapter,
    MarketplaceAdapter,
    ProviderAdapter,
    ScrapeResult,
    ScrapeStats,
)
from product_ingest.ingestion.dedup import DeduplicationChecker
from product_ingest.ingestion.vendors import VendorResolver
from product_ingest.ingestion.categorizer import (
    AICategorizer,
    CategorizationResult,
    build_categorizer_from_env,
)
from product_ingest.ingestion.batch import BatchTracker, ImportReport
from product_ingest.ingestion.pipeline import ImportPipeline, infer_source

__all__ = [
    # Errors
    "IngestionError",
    "AdapterConfigError",
    "BatchCreationError",
    "BatchStateError",
    "InvalidCandidateError",
    "UnsupportedFileError",
    # Pacing and normalization
    "RateLimiter",
    "ProductNormalizer",
    # Registry
    "SourceRegistry",
    "SourceConfig",
    "SourceCredentials",
    "GlobalConfig",
    "RateLimitConfig",
    "get_default_registry",
    "reset_default_registry",
    # Adapters
    "ProviderAdapter",
    "MarketplaceAdapter",
    "HandmadeAdapter",
    "ManualFileAdapter",
    "ScrapeResult",
    "ScrapeStats",
    # Pipeline
    "DeduplicationChecker",
    "VendorResolver",
    "AICategorizer",
    "CategorizationResult",
    "build_categorizer_from_env",
    "BatchTracker",
    "ImportReport",
    "ImportPipeline",
    "infer_source",
]
