"""Application services for product ingestion."""

from product_ingest.services.ai import (
    AIProvider,
    ClassificationClient,
    get_ai_client,
)

__all__ = [
    "AIProvider",
    "ClassificationClient",
    "get_ai_client",
]
