"""Enums for product ingestion records."""

from enum import Enum


class ImportSource(str, Enum):
    """Known listing sources."""

    AMAZON = "amazon"
    ETSY = "etsy"
    RENTAL = "rental"
    MANUAL = "manual"


class BatchStatus(str, Enum):
    """Lifecycle status of an import batch."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class FulfillmentType(str, Enum):
    """How a staged product is fulfilled."""

    PURCHASABLE = "purchasable"
    RENTAL = "rental"
    SERVICE = "service"


class ReviewStatus(str, Enum):
    """Review state of a staged product (owned by the review UI)."""

    PENDING = "pending"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"


class VendorStatus(str, Enum):
    """Vendor account status."""

    PENDING = "pending"
    APPROVED = "approved"
    SUSPENDED = "suspended"


class AffiliateNetwork(str, Enum):
    """Affiliate network a staged product links through."""

    AMAZON = "amazon"
    AWIN = "awin"
    DIRECT = "direct"


class ProductCategory(str, Enum):
    """Controlled category vocabulary for AI categorization."""

    CENTERPIECES = "centerpieces"
    LINENS = "linens"
    CHAIRS = "chairs"
    LIGHTING = "lighting"
    PLACE_SETTINGS = "placeSettings"
    DECOR = "decor"
    FLORALS = "florals"
    FURNITURE = "furniture"
    TABLEWARE = "tableware"
    SIGNAGE = "signage"
    FAVORS = "favors"
    OTHER = "other"


class StyleTag(str, Enum):
    """Controlled style-tag vocabulary for AI categorization."""

    ROMANTIC = "romantic"
    MODERN = "modern"
    RUSTIC = "rustic"
    BOHO = "boho"
    CLASSIC = "classic"
    VINTAGE = "vintage"
    MINIMALIST = "minimalist"
    ELEGANT = "elegant"
    INDUSTRIAL = "industrial"
    ECLECTIC = "eclectic"
    COASTAL = "coastal"
    GARDEN = "garden"
