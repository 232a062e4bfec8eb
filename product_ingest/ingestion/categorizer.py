"""
AI Categorizer Module
=====================

Asks a classification model for category, fulfillment type, style tags
and palette. Any failure produces a fixed low-confidence fallback so a
product is never rejected for categorization reasons.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from product_ingest.core.enums import FulfillmentType, ProductCategory, StyleTag
from product_ingest.core.schema import CandidateProduct
from product_ingest.services.ai.client import AIProvider, ClassificationClient, get_ai_client
from product_ingest.services.ai.prompts import build_categorization_prompt

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.3

_STYLE_TAGS = {t.value for t in StyleTag}


class CategorizationResult(BaseModel):
    """
    Suggested merchandising metadata for one product.

    ``used_fallback`` is set when the defaults were used because the
    model could not be reached or its answer was unusable.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    category: ProductCategory = ProductCategory.DECOR
    subcategory: str | None = None
    fulfillment_type: FulfillmentType = FulfillmentType.PURCHASABLE
    style_tags: list[str] = Field(default_factory=lambda: [StyleTag.CLASSIC.value])
    color_palette: list[str] = Field(default_factory=lambda: ["#FFFFFF"])
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    used_fallback: bool = False
    error: str | None = None

    @classmethod
    def fallback(cls, error: str) -> CategorizationResult:
        """The fixed result used whenever categorization fails."""
        return cls(confidence=FALLBACK_CONFIDENCE, used_fallback=True, error=error)


def strip_code_fences(raw_response: str) -> str:
    """Remove a surrounding markdown code block, if present."""
    json_str = raw_response.strip()
    if json_str.startswith("```json"):
        json_str = json_str[7:]
    if json_str.startswith("```"):
        json_str = json_str[3:]
    if json_str.endswith("```"):
        json_str = json_str[:-3]
    return json_str.strip()


class AICategorizer:
    """Categorizes candidates with an optional classification client."""

    def __init__(self, client: ClassificationClient | None = None) -> None:
        self.client = client

    def categorize(self, candidate: CandidateProduct) -> CategorizationResult:
        """
        Categorize one candidate. Never raises.

        Args:
            candidate: The product to categorize.

        Returns:
            CategorizationResult, with used_fallback set on any failure.
        """
        if self.client is None:
            return self._fallback(candidate, "no classification client configured")

        prompt = build_categorization_prompt(
            name=candidate.name,
            description=candidate.description,
            price=candidate.price,
            vendor=candidate.vendor_name,
            raw_category=candidate.raw_category,
        )

        try:
            raw_response = self.client.complete(prompt)
        except Exception as e:
            return self._fallback(candidate, f"API error: {e}")

        try:
            return self.parse_response(raw_response)
        except json.JSONDecodeError as e:
            return self._fallback(candidate, f"JSON parse error: {e}")
        except (ValidationError, ValueError) as e:
            return self._fallback(candidate, f"Validation error: {e}")

    def parse_response(self, raw_response: str) -> CategorizationResult:
        """
        Parse and validate a model response.

        Missing or empty fields take their defaults. Unknown style tags
        are dropped.

        Raises:
            json.JSONDecodeError: If the response is not JSON
            ValueError: If the JSON is not an object
            ValidationError: If an enum value or the confidence is invalid
        """
        parsed = json.loads(strip_code_fences(raw_response))
        if not isinstance(parsed, dict):
            raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")

        data: dict[str, Any] = {
            k: v for k, v in parsed.items() if v is not None and v != "" and v != []
        }
        # Set by the categorizer only
        for key in ("usedFallback", "used_fallback", "error"):
            data.pop(key, None)

        tags = data.get("styleTags", data.get("style_tags"))
        if isinstance(tags, list):
            known = [t for t in tags if t in _STYLE_TAGS]
            data.pop("style_tags", None)
            if known:
                data["styleTags"] = known
            else:
                data.pop("styleTags", None)

        return CategorizationResult.model_validate(data)

    def _fallback(self, candidate: CandidateProduct, error: str) -> CategorizationResult:
        logger.warning(
            f"AI categorization failed for '{candidate.name}', using defaults: {error}"
        )
        return CategorizationResult.fallback(error)


def build_categorizer_from_env() -> AICategorizer:
    """
    Create a categorizer from environment variables.

    Reads AI_PROVIDER (anthropic or openai), the matching API key and an
    optional AI_MODEL. Without a key the categorizer always falls back.
    """
    provider = os.environ.get("AI_PROVIDER", AIProvider.ANTHROPIC.value).lower()
    model = os.environ.get("AI_MODEL") or None

    if provider == AIProvider.OPENAI.value:
        api_key = os.environ.get("OPENAI_API_KEY")
    else:
        api_key = os.environ.get("ANTHROPIC_API_KEY")

    if not api_key:
        logger.warning(
            f"No API key for AI provider '{provider}'; categorization will use defaults"
        )
        return AICategorizer(None)

    return AICategorizer(get_ai_client(provider, api_key=api_key, model=model))
