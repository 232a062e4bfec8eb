"""AI categorization services."""

from product_ingest.services.ai.client import AIProvider, ClassificationClient, get_ai_client
from product_ingest.services.ai.prompts import build_categorization_prompt

__all__ = [
    "AIProvider",
    "ClassificationClient",
    "build_categorization_prompt",
    "get_ai_client",
]
