"""OpenAI AI provider implementation."""

import logging

from product_ingest.services.ai.client import AIProvider, ClassificationClient

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"
MAX_TOKENS = 500


class OpenAIClient(ClassificationClient):
    """OpenAI GPT AI client."""

    provider = AIProvider.OPENAI

    def __init__(self, api_key: str, model: str | None = None):
        """
        Initialize the OpenAI client.

        Args:
            api_key: OpenAI API key.
            model: Model name (defaults to gpt-4o).
        """
        try:
            import openai
        except ImportError:
            raise ImportError(
                "openai package is required. Install with: pip install openai"
            )

        self.client = openai.OpenAI(api_key=api_key)
        self.model = model or DEFAULT_MODEL

    def complete(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            max_tokens=MAX_TOKENS,
            messages=[{"role": "user", "content": prompt}],
            response_format={"type": "json_object"},
        )

        text = response.choices[0].message.content or "{}"
        logger.debug(f"OpenAI response ({len(text)} chars): {text[:200]}")
        return text
