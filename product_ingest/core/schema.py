"""Pydantic v2 models for product ingestion.

These models define the records that flow through the pipeline:
- CandidateProduct (transient adapter output)
- ImportBatch (one ingestion run)
- StagedProduct (categorized candidate awaiting review)
- Vendor (supplying company)
- LiveProduct (published inventory, read for deduplication only)
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from product_ingest.core.enums import (
    AffiliateNetwork,
    BatchStatus,
    FulfillmentType,
    ReviewStatus,
    VendorStatus,
)


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


class CandidateProduct(BaseModel):
    """
    A single normalized listing produced by an adapter.

    Accepts both snake_case and camelCase keys so files written by older
    scraper tooling (``externalId``, ``vendorName``...) load unchanged.
    Completeness is checked by ``ProductNormalizer.validate_product``,
    not here.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source: str = ""
    external_id: str = ""
    source_url: str = ""

    name: str = ""
    description: str | None = None
    price: Decimal = Decimal("0")
    currency: str = "USD"

    images: list[str] = Field(default_factory=list)

    vendor_name: str = ""
    vendor_url: str | None = None

    raw_category: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    scraped_at: datetime = Field(default_factory=_utc_now)

    @field_validator("external_id", mode="before")
    @classmethod
    def coerce_external_id(cls, v: Any) -> Any:
        # Numeric listing ids are common in source payloads
        if isinstance(v, int):
            return str(v)
        return v

    @property
    def identity_key(self) -> tuple[str, str]:
        """The (source, external id) pair used for deduplication."""
        return (self.source, self.external_id)

    @property
    def primary_image(self) -> str | None:
        return self.images[0] if self.images else None

    @property
    def affiliate_url(self) -> str:
        """Affiliate URL recorded by the adapter, falling back to the source URL."""
        return (
            self.metadata.get("affiliate_url")
            or self.metadata.get("affiliateUrl")
            or self.source_url
        )


class Vendor(BaseModel):
    """A supplying vendor, created lazily on first sighting."""

    id: UUID = Field(default_factory=uuid4)
    company_name: str
    slug: str
    description: str = ""
    website: str = ""
    status: VendorStatus = VendorStatus.PENDING
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @field_validator("company_name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("company_name cannot be empty")
        return v


class ImportBatch(BaseModel):
    """
    Record tracking one ingestion run.

    ``total_items`` is fixed at creation; the counters and errors are
    written once when the run is finalized.
    """

    id: UUID = Field(default_factory=uuid4)
    source: str
    status: BatchStatus = BatchStatus.PROCESSING
    total_items: int = 0
    imported_items: int = 0
    failed_items: int = 0
    duplicate_items: int = 0
    errors: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class StagedProduct(BaseModel):
    """
    A persisted, AI-categorized candidate awaiting human review.

    ``review_status`` is only ever written as pending by the pipeline;
    later transitions belong to the review tooling.
    """

    id: UUID = Field(default_factory=uuid4)
    import_batch_id: UUID | None = None
    import_source: str
    external_id: str
    source_url: str = ""

    name: str
    description: str | None = None
    raw_category: str | None = None
    base_price: Decimal
    currency: str = "USD"
    images: list[str] = Field(default_factory=list)
    primary_image: str | None = None

    vendor_id: UUID | None = None
    vendor_name: str = ""
    vendor_url: str | None = None

    suggested_category: str
    suggested_subcategory: str | None = None
    suggested_fulfillment_type: FulfillmentType = FulfillmentType.PURCHASABLE
    suggested_style_tags: list[str] = Field(default_factory=list)
    suggested_color_palette: list[str] = Field(default_factory=list)
    ai_confidence: float = Field(ge=0.0, le=1.0)
    ai_fallback_used: bool = False

    affiliate_network: AffiliateNetwork = AffiliateNetwork.DIRECT
    affiliate_url: str = ""

    review_status: ReviewStatus = ReviewStatus.PENDING
    raw_data: dict[str, Any] = Field(default_factory=dict)
    scraped_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class LiveProduct(BaseModel):
    """A published inventory item (read-only from the pipeline's perspective)."""

    id: UUID = Field(default_factory=uuid4)
    import_source: str | None = None
    external_id: str | None = None
    name: str
    vendor_id: UUID | None = None
    status: str = "active"
    created_at: datetime = Field(default_factory=_utc_now)
