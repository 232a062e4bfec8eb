"""
Data Normalizer Module
======================

Cleans and checks candidate product data so every adapter applies the
same price, text and completeness rules.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from product_ingest.core.schema import CandidateProduct

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION_LENGTH = 500


class ProductNormalizer:
    """
    Normalizes raw listing values into candidate form.

    Handles:
    - Price parsing from numbers and currency strings ("$1,299.99")
    - Description cleanup (HTML tags, whitespace, truncation)
    - Image list parsing from comma-separated strings
    - Completeness checks before a candidate is staged
    """

    # Fields that must be truthy for a candidate to be staged
    REQUIRED_FIELDS: tuple[str, ...] = (
        "source",
        "external_id",
        "source_url",
        "name",
        "price",
        "vendor_name",
    )

    _TAG_RE = re.compile(r"<[^>]*>")
    _WHITESPACE_RE = re.compile(r"\s+")
    _PRICE_CHARS_RE = re.compile(r"[^0-9.]")
    _SLUG_RE = re.compile(r"[^a-z0-9]+")

    def normalize_price(self, value: Any) -> Decimal:
        """
        Convert a price value to Decimal.

        Numbers pass through. Strings are stripped of everything except
        digits and "." before parsing. Anything unparsable becomes 0.

        Args:
            value: Raw price (number, string, or None)

        Returns:
            Decimal price, or Decimal(0) when it cannot be parsed
        """
        if value is None or isinstance(value, bool):
            return Decimal(0)

        if isinstance(value, Decimal):
            return value

        if isinstance(value, (int, float)):
            return Decimal(str(value))

        cleaned = self._PRICE_CHARS_RE.sub("", str(value))
        if not cleaned:
            return Decimal(0)

        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return Decimal(0)

    def clean_description(
        self,
        text: str | None,
        max_length: int = DEFAULT_DESCRIPTION_LENGTH,
    ) -> str:
        """
        Strip markup and collapse whitespace, then truncate.

        Args:
            text: Raw description text
            max_length: Maximum length of the result

        Returns:
            Cleaned text, or "" for empty input
        """
        if not text:
            return ""

        cleaned = self._TAG_RE.sub("", text)
        cleaned = self._WHITESPACE_RE.sub(" ", cleaned).strip()
        return cleaned[:max_length]

    def parse_images(self, value: Any) -> list[str]:
        """
        Parse an image list from a comma-separated string or a list.

        Entries are trimmed and anything not starting with "http" is dropped.
        """
        if not value:
            return []

        if isinstance(value, str):
            parts = value.split(",")
        else:
            parts = [str(v) for v in value]

        return [p.strip() for p in parts if p.strip().startswith("http")]

    def validate_product(self, candidate: CandidateProduct) -> bool:
        """
        Check that a candidate is complete enough to stage.

        Logs a warning naming the first missing field.

        Returns:
            True if all required fields are present and there is an image
        """
        for field_name in self.REQUIRED_FIELDS:
            if not getattr(candidate, field_name):
                logger.warning(
                    f"Rejecting {candidate.source}:{candidate.external_id or '?'}: "
                    f"missing {field_name}"
                )
                return False

        if not candidate.images:
            logger.warning(
                f"Rejecting {candidate.source}:{candidate.external_id}: no images"
            )
            return False

        return True

    def slugify(self, text: str) -> str:
        """Lowercase text and join alphanumeric runs with hyphens."""
        return self._SLUG_RE.sub("-", text.lower()).strip("-")


# Shared default instance
_default_normalizer: ProductNormalizer | None = None


def get_default_normalizer() -> ProductNormalizer:
    """Get the shared ProductNormalizer instance."""
    global _default_normalizer
    if _default_normalizer is None:
        _default_normalizer = ProductNormalizer()
    return _default_normalizer
