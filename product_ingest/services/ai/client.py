"""AI client interface and provider abstraction."""

from abc import ABC, abstractmethod
from enum import Enum


class AIProvider(str, Enum):
    """Supported AI providers."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class ClassificationClient(ABC):
    """Abstract base class for AI providers used to categorize products."""

    provider: AIProvider
    model: str

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """
        Send a prompt and return the model's raw text reply.

        Args:
            prompt: The full user prompt.

        Returns:
            The response text.

        Raises:
            Exception: Provider SDK errors propagate to the caller.
        """
        pass


def get_ai_client(
    provider: AIProvider | str,
    api_key: str,
    model: str | None = None,
) -> ClassificationClient:
    """
    Factory function to get an AI client for the specified provider.

    Args:
        provider: The AI provider to use.
        api_key: The API key for the provider.
        model: Optional model name override.

    Returns:
        A ClassificationClient instance for the specified provider.

    Raises:
        ValueError: If the provider is not supported.
    """
    if isinstance(provider, str):
        provider = AIProvider(provider.lower())

    if provider == AIProvider.ANTHROPIC:
        from product_ingest.services.ai.providers.anthropic import AnthropicClient

        return AnthropicClient(api_key=api_key, model=model)
    elif provider == AIProvider.OPENAI:
        from product_ingest.services.ai.providers.openai import OpenAIClient

        return OpenAIClient(api_key=api_key, model=model)
    else:
        raise ValueError(f"Unsupported AI provider: {provider}")
