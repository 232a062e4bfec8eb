"""
Handmade Goods Adapter
======================

Pulls Etsy listings through the Etsy Open API v3.
Docs: https://developers.etsy.com/documentation/
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any
from urllib.parse import quote

import httpx

from product_ingest.core.schema import CandidateProduct
from product_ingest.ingestion.adapters.base import SearchDetailAdapter, raise_for_api_error
from product_ingest.ingestion.errors import AdapterConfigError

logger = logging.getLogger(__name__)

ETSY_API_URL = "https://openapi.etsy.com/v3/application"

# Etsy's merchant id on the Awin affiliate network
AWIN_MERCHANT_ID = "6983"

SHOP_LOOKUP_PAUSE_MS = 200
FALLBACK_VENDOR_NAME = "Etsy Shop"

# Characters left unescaped in the encoded destination
_URI_SAFE = "-_.!~*'()"


class HandmadeAdapter(SearchDetailAdapter):
    """
    Adapter for Etsy handmade goods.

    Each listing detail is followed by a shop lookup for the vendor name.
    A failed shop lookup does not fail the listing.
    """

    ADAPTER_NAME = "etsy"
    ADAPTER_VERSION = "1.0.0"
    DEFAULT_QUERY = "wedding centerpiece, wedding decor, wedding table, wedding linens"

    api_url: str = ETSY_API_URL

    def validate_config(self) -> None:
        if not self.api_key:
            raise AdapterConfigError("Etsy adapter requires api_key (Etsy API key)")

    @property
    def _headers(self) -> dict[str, str]:
        return {"x-api-key": self.api_key or ""}

    async def search(self, client: httpx.AsyncClient, query: str) -> list[str]:
        params = {
            "keywords": query,
            "limit": str(self.max_results),
            "sort_on": "score",
            "min_price": "10",
        }
        response = await client.get(
            f"{self.api_url}/listings/active", params=params, headers=self._headers
        )
        data = raise_for_api_error(response, "Etsy", "error")

        return [
            str(listing["listing_id"])
            for listing in (data.get("results") or [])[: self.max_results]
            if listing.get("listing_id") is not None
        ]

    async def fetch_detail(
        self, client: httpx.AsyncClient, item_id: str
    ) -> CandidateProduct | None:
        response = await client.get(
            f"{self.api_url}/listings/{item_id}",
            params={"includes": "Images"},
            headers=self._headers,
        )
        listing = raise_for_api_error(response, "Etsy", "error")
        if not listing:
            return None

        await self.rate_limiter.pause(SHOP_LOOKUP_PAUSE_MS)
        shop = await self.get_shop(client, listing.get("shop_id"))

        return self._to_candidate(item_id, listing, shop)

    async def get_shop(
        self, client: httpx.AsyncClient, shop_id: Any
    ) -> dict[str, Any] | None:
        """Look up a shop, returning None on any failure."""
        if shop_id is None:
            return None
        try:
            response = await client.get(
                f"{self.api_url}/shops/{shop_id}", headers=self._headers
            )
            if response.is_error:
                logger.warning(f"Shop lookup for {shop_id} failed: HTTP {response.status_code}")
                return None
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Shop lookup for {shop_id} failed: {e}")
            return None

    def _to_candidate(
        self,
        listing_id: str,
        listing: dict[str, Any],
        shop: dict[str, Any] | None,
    ) -> CandidateProduct:
        price = listing.get("price") or {}
        amount = self.normalize_price(price.get("amount"))
        divisor = self.normalize_price(price.get("divisor")) or Decimal(1)

        images = [
            img.get("url_fullxfull") or img.get("url_570xN")
            for img in listing.get("images") or []
        ]
        source_url = listing.get("url") or ""

        return CandidateProduct(
            source=self.ADAPTER_NAME,
            external_id=listing_id,
            source_url=source_url,
            name=listing.get("title") or "",
            description=self.clean_description(listing.get("description")),
            price=amount / divisor,
            currency=price.get("currency_code") or "USD",
            images=[url for url in images if url],
            vendor_name=(shop or {}).get("shop_name") or FALLBACK_VENDOR_NAME,
            vendor_url=(shop or {}).get("url"),
            raw_category=None,
            metadata={
                "listing_id": listing.get("listing_id"),
                "shop_id": listing.get("shop_id"),
                "taxonomy_id": listing.get("taxonomy_id"),
                "affiliate_url": self.build_affiliate_url(source_url),
            },
        )

    def build_affiliate_url(self, destination: str) -> str:
        """Awin redirect to the listing, or the listing URL itself."""
        if not self.affiliate_id:
            return destination
        return (
            f"https://www.awin1.com/cread.php?awinmid={AWIN_MERCHANT_ID}"
            f"&awinaffid={self.affiliate_id}&ued={quote(destination, safe=_URI_SAFE)}"
        )
