"""SQLAlchemy ORM models for the product ingestion store.

Tables:
- import_batches (one row per ingestion run)
- scraped_products (staged records awaiting review)
- products (live inventory, read for deduplication)
- vendors
"""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def _generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class VendorDB(Base):
    """
    Database model for vendors.

    ``company_name`` is unique so that two runs racing on the same new
    vendor cannot both insert it.
    """

    __tablename__ = "vendors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_generate_uuid)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, default="")
    website: Mapped[str] = mapped_column(String(500), default="")
    status: Mapped[str] = mapped_column(String(20), default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)

    staged_products: Mapped[list["StagedProductDB"]] = relationship(
        "StagedProductDB", back_populates="vendor"
    )

    def __repr__(self) -> str:
        return f"<VendorDB(id={self.id}, name='{self.company_name}')>"


class ImportBatchDB(Base):
    """Database model for import batches."""

    __tablename__ = "import_batches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_generate_uuid)
    source: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="processing")
    total_items: Mapped[int] = mapped_column(Integer, default=0)
    imported_items: Mapped[int] = mapped_column(Integer, default=0)
    failed_items: Mapped[int] = mapped_column(Integer, default=0)
    duplicate_items: Mapped[int] = mapped_column(Integer, default=0)
    errors_json: Mapped[str] = mapped_column(Text, default="[]")  # JSON array
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)

    staged_products: Mapped[list["StagedProductDB"]] = relationship(
        "StagedProductDB", back_populates="import_batch"
    )

    def __repr__(self) -> str:
        return f"<ImportBatchDB(id={self.id}, source='{self.source}', status='{self.status}')>"


class StagedProductDB(Base):
    """
    Database model for staged products.

    One row per (import_source, external_id); the review tooling moves
    rows through review_status after the pipeline has written them.
    """

    __tablename__ = "scraped_products"
    __table_args__ = (
        UniqueConstraint("import_source", "external_id", name="uq_scraped_products_identity"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_generate_uuid)
    import_batch_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("import_batches.id"), nullable=True, index=True
    )
    import_source: Mapped[str] = mapped_column(String(50), nullable=False)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    source_url: Mapped[str] = mapped_column(String(2000), default="")

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw_category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    base_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    images_json: Mapped[str] = mapped_column(Text, default="[]")  # JSON array
    primary_image: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    vendor_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("vendors.id"), nullable=True, index=True
    )
    vendor_name: Mapped[str] = mapped_column(String(255), default="")
    vendor_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    suggested_category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    suggested_subcategory: Mapped[str | None] = mapped_column(String(100), nullable=True)
    suggested_fulfillment_type: Mapped[str] = mapped_column(String(20), default="purchasable")
    suggested_style_tags_json: Mapped[str] = mapped_column(Text, default="[]")  # JSON array
    suggested_color_palette_json: Mapped[str] = mapped_column(Text, default="[]")  # JSON array
    ai_confidence: Mapped[float] = mapped_column(Float, nullable=False)
    ai_fallback_used: Mapped[bool] = mapped_column(Boolean, default=False)

    affiliate_network: Mapped[str] = mapped_column(String(20), default="direct")
    affiliate_url: Mapped[str] = mapped_column(String(2000), default="")

    review_status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    raw_data_json: Mapped[str] = mapped_column(Text, default="{}")  # JSON object
    scraped_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)

    import_batch: Mapped["ImportBatchDB"] = relationship(
        "ImportBatchDB", back_populates="staged_products"
    )
    vendor: Mapped["VendorDB"] = relationship("VendorDB", back_populates="staged_products")

    def __repr__(self) -> str:
        return (
            f"<StagedProductDB(id={self.id}, source='{self.import_source}', "
            f"external_id='{self.external_id}')>"
        )


class LiveProductDB(Base):
    """
    Database model for live inventory.

    Owned by the storefront; the pipeline only reads the identity columns.
    """

    __tablename__ = "products"
    __table_args__ = (Index("ix_products_identity", "import_source", "external_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_generate_uuid)
    import_source: Mapped[str | None] = mapped_column(String(50), nullable=True)
    external_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    vendor_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("vendors.id"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(20), default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    def __repr__(self) -> str:
        return f"<LiveProductDB(id={self.id}, name='{self.name}')>"
