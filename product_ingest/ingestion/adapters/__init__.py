"""
Adapter Registry Module
=======================

Central registry for source-specific adapters.
Provides factory functions for creating adapters by name or from a
source configuration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Type

from product_ingest.ingestion.adapters.base import (
    ProviderAdapter,
    ScrapeResult,
    ScrapeStats,
    SearchDetailAdapter,
)
from product_ingest.ingestion.adapters.handmade import HandmadeAdapter
from product_ingest.ingestion.adapters.manual import ManualFileAdapter
from product_ingest.ingestion.adapters.marketplace import MarketplaceAdapter
from product_ingest.ingestion.rate_limiter import RateLimiter

if TYPE_CHECKING:
    from product_ingest.ingestion.registry import GlobalConfig, SourceConfig


# Registry mapping adapter names to their classes
ADAPTER_REGISTRY: dict[str, Type[ProviderAdapter]] = {
    "amazon": MarketplaceAdapter,
    "etsy": HandmadeAdapter,
    "manual": ManualFileAdapter,
}


def get_adapter(adapter_type: str, **kwargs: Any) -> ProviderAdapter | None:
    """
    Get an adapter instance by type name.

    Args:
        adapter_type: Name of the adapter (e.g., "amazon")
        **kwargs: Constructor arguments (api_key, affiliate_id, client...)

    Returns:
        Adapter instance, or None if type not found

    Raises:
        AdapterConfigError: If a required credential is missing
    """
    adapter_class = ADAPTER_REGISTRY.get(adapter_type)
    if adapter_class is None:
        return None
    return adapter_class(**kwargs)


def create_adapter_for_source(
    source: SourceConfig,
    global_config: GlobalConfig | None = None,
    **overrides: Any,
) -> ProviderAdapter | None:
    """
    Build an adapter from a source configuration.

    Credentials come from the environment; rate limit, result cap and
    HTTP settings come from the configuration. Keyword overrides (for
    example an injected client) take precedence.
    """
    credentials = source.credentials()
    kwargs: dict[str, Any] = {
        "api_key": credentials.api_key,
        "affiliate_id": credentials.affiliate_id,
        "max_results": source.max_results,
        "rate_limiter": RateLimiter(source.rate_limit.requests_per_minute),
        "config": {**source.custom_config, "default_query": source.default_query},
    }
    if global_config is not None:
        kwargs["user_agent"] = global_config.user_agent
        kwargs["timeout"] = float(global_config.request_timeout)
    kwargs.update(overrides)
    return get_adapter(source.adapter, **kwargs)


def register_adapter(name: str, adapter_class: Type[ProviderAdapter]) -> None:
    """
    Register a new adapter type.

    Args:
        name: Name to register the adapter under
        adapter_class: Adapter class (must inherit from ProviderAdapter)
    """
    if not issubclass(adapter_class, ProviderAdapter):
        raise TypeError(f"{adapter_class} must inherit from ProviderAdapter")
    ADAPTER_REGISTRY[name] = adapter_class


def list_adapters() -> list[str]:
    """List all registered adapter names."""
    return list(ADAPTER_REGISTRY.keys())


def get_adapter_info(adapter_type: str) -> dict[str, str] | None:
    """
    Get information about an adapter type.

    Args:
        adapter_type: Name of the adapter

    Returns:
        Dict with adapter info, or None if not found
    """
    adapter_class = ADAPTER_REGISTRY.get(adapter_type)
    if adapter_class is None:
        return None

    return {
        "name": adapter_class.ADAPTER_NAME,
        "version": adapter_class.ADAPTER_VERSION,
        "class": adapter_class.__name__,
    }


__all__ = [
    # Registry functions
    "get_adapter",
    "create_adapter_for_source",
    "register_adapter",
    "list_adapters",
    "get_adapter_info",
    "ADAPTER_REGISTRY",
    # Base classes
    "ProviderAdapter",
    "SearchDetailAdapter",
    "ScrapeResult",
    "ScrapeStats",
    # Concrete adapters
    "MarketplaceAdapter",
    "HandmadeAdapter",
    "ManualFileAdapter",
]
