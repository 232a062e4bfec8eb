"""Prompt templates for AI categorization."""

from product_ingest.core.enums import ProductCategory, StyleTag

CATEGORY_VOCABULARY = ", ".join(c.value for c in ProductCategory)
STYLE_TAG_VOCABULARY = ", ".join(t.value for t in StyleTag)

CATEGORIZATION_PROMPT_TEMPLATE = """Categorize this wedding product for a marketplace:

Name: {name}
Description: {description}
Price: ${price}
Vendor: {vendor}
Original Category: {raw_category}

Valid categories: {categories}

Valid style tags: {style_tags}

Return ONLY valid JSON (no markdown, no explanation):
{{
  "category": "category from list above",
  "subcategory": "optional specific subcategory",
  "fulfillmentType": "purchasable|rental|service",
  "styleTags": ["tag1", "tag2", "tag3"],
  "colorPalette": ["#HEX1", "#HEX2", "#HEX3"],
  "confidence": 0.95
}}"""


def build_categorization_prompt(
    name: str,
    description: str | None,
    price: object,
    vendor: str,
    raw_category: str | None,
) -> str:
    """
    Build the categorization prompt for one product.

    Args:
        name: Product name.
        description: Product description (may be empty).
        price: Product price as displayed to the model.
        vendor: Vendor name.
        raw_category: Category reported by the source, if any.

    Returns:
        The formatted prompt string.
    """
    return CATEGORIZATION_PROMPT_TEMPLATE.format(
        name=name,
        description=description or "N/A",
        price=price,
        vendor=vendor,
        raw_category=raw_category or "N/A",
        categories=CATEGORY_VOCABULARY,
        style_tags=STYLE_TAG_VOCABULARY,
    )
