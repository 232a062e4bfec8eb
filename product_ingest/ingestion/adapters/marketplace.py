"""
Marketplace Adapter
===================

Pulls Amazon listings through the Rainforest product-data API.
Docs: https://www.rainforestapi.com/docs/product-data-api/overview
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from product_ingest.core.schema import CandidateProduct
from product_ingest.ingestion.adapters.base import SearchDetailAdapter, raise_for_api_error
from product_ingest.ingestion.errors import AdapterConfigError

logger = logging.getLogger(__name__)

RAINFOREST_API_URL = "https://api.rainforestapi.com/request"
AMAZON_DOMAIN = "amazon.com"
AMAZON_VENDOR_URL = "https://amazon.com"


class MarketplaceAdapter(SearchDetailAdapter):
    """
    Adapter for the Amazon marketplace.

    Search returns ASINs; each ASIN is then fetched with a product call.
    """

    ADAPTER_NAME = "amazon"
    ADAPTER_VERSION = "1.0.0"
    DEFAULT_QUERY = "wedding decorations centerpieces linens"

    api_url: str = RAINFOREST_API_URL

    def validate_config(self) -> None:
        if not self.api_key:
            raise AdapterConfigError("Amazon adapter requires api_key (Rainforest API key)")
        if not self.affiliate_id:
            logger.warning(
                "Amazon adapter: no affiliate id provided. Affiliate links will not be generated."
            )

    async def search(self, client: httpx.AsyncClient, query: str) -> list[str]:
        params = {
            "api_key": self.api_key,
            "type": "search",
            "amazon_domain": self.config.get("amazon_domain", AMAZON_DOMAIN),
            "search_term": query,
            "max_page": "1",
        }
        response = await client.get(self.api_url, params=params)
        data = raise_for_api_error(response, "Amazon", "message")

        asins: list[str] = []
        for item in data.get("search_results") or []:
            if len(asins) >= self.max_results:
                break
            asin = item.get("asin")
            if asin:
                asins.append(asin)
        return asins

    async def fetch_detail(
        self, client: httpx.AsyncClient, item_id: str
    ) -> CandidateProduct | None:
        params = {
            "api_key": self.api_key,
            "type": "product",
            "amazon_domain": self.config.get("amazon_domain", AMAZON_DOMAIN),
            "asin": item_id,
        }
        response = await client.get(self.api_url, params=params)
        data = raise_for_api_error(response, "Amazon", "message")

        product = data.get("product")
        if not product:
            return None
        return self._to_candidate(item_id, product)

    def _to_candidate(self, asin: str, product: dict[str, Any]) -> CandidateProduct:
        images: list[str] = []
        main_image = (product.get("main_image") or {}).get("link")
        if main_image:
            images.append(main_image)
        for img in product.get("images") or []:
            link = img.get("link")
            if link and link not in images:
                images.append(link)

        price = product.get("price") or {}
        categories = product.get("categories") or []
        brand = product.get("brand")

        return CandidateProduct(
            source=self.ADAPTER_NAME,
            external_id=asin,
            source_url=product.get("link") or "",
            name=product.get("title") or "",
            description=self.clean_description(product.get("description")),
            price=self.normalize_price(price.get("value")),
            currency=price.get("currency") or "USD",
            images=images,
            vendor_name=brand or "Amazon",
            vendor_url=AMAZON_VENDOR_URL,
            raw_category=categories[0].get("name") if categories else None,
            metadata={
                "asin": asin,
                "brand": brand,
                "affiliate_url": self.build_affiliate_url(asin),
            },
        )

    def build_affiliate_url(self, asin: str) -> str:
        """Canonical product URL with the tracking tag, if one is configured."""
        url = f"https://amazon.com/dp/{asin}"
        if not self.affiliate_id:
            return url
        return f"{url}?tag={self.affiliate_id}"
