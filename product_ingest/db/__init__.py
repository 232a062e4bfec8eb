"""Database initialization and persistence layer."""

from product_ingest.db.engine import (
    create_db_engine,
    get_database_url,
    get_engine,
    get_session,
    get_session_factory,
    init_db,
    reset_engine,
)
from product_ingest.db.models import (
    Base,
    ImportBatchDB,
    LiveProductDB,
    StagedProductDB,
    VendorDB,
)
from product_ingest.db.repositories import (
    ImportBatchRepository,
    LiveProductRepository,
    StagedProductRepository,
    VendorRepository,
)

__all__ = [
    # Engine
    "create_db_engine",
    "get_database_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_db",
    "reset_engine",
    # Models
    "Base",
    "ImportBatchDB",
    "StagedProductDB",
    "LiveProductDB",
    "VendorDB",
    # Repositories
    "ImportBatchRepository",
    "StagedProductRepository",
    "LiveProductRepository",
    "VendorRepository",
]
