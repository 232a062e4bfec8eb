"""AI provider implementations."""

from product_ingest.services.ai.providers.anthropic import AnthropicClient
from product_ingest.services.ai.providers.openai import OpenAIClient

__all__ = ["AnthropicClient", "OpenAIClient"]
