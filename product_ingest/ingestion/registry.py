"""
Source Registry Module
======================

Sources are declared in YAML: which adapter serves them, the default query,
result caps and request pacing. API keys and affiliate ids stay out of the
file and are resolved from environment variables at run time.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from product_ingest.ingestion.rate_limiter import DEFAULT_REQUESTS_PER_MINUTE

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Request pacing for one source."""

    requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RateLimitConfig:
        if data is None:
            return cls()
        return cls(
            requests_per_minute=int(
                data.get("requests_per_minute", DEFAULT_REQUESTS_PER_MINUTE)
            ),
        )


@dataclass
class SourceCredentials:
    """API credentials for a source, resolved from the environment."""

    api_key: str | None = None
    api_secret: str | None = None
    affiliate_id: str | None = None


@dataclass
class SourceConfig:
    """One entry under `sources:` in the YAML file."""

    name: str
    adapter: str
    enabled: bool = True
    description: str = ""
    default_query: str | None = None
    max_results: int = 50
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    affiliate_id: str | None = None
    api_key_env: str | None = None
    custom_config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], default_rate_limit: RateLimitConfig | None = None
    ) -> SourceConfig:
        rate_limit_data = data.get("rate_limit")
        if rate_limit_data:
            rate_limit = RateLimitConfig.from_dict(rate_limit_data)
        elif default_rate_limit:
            rate_limit = default_rate_limit
        else:
            rate_limit = RateLimitConfig()

        affiliate_id = data.get("affiliate_id")
        return cls(
            name=data["name"],
            adapter=data.get("adapter", data["name"]),
            enabled=data.get("enabled", True),
            description=data.get("description", ""),
            default_query=data.get("default_query"),
            max_results=int(data.get("max_results", 50)),
            rate_limit=rate_limit,
            affiliate_id=str(affiliate_id) if affiliate_id is not None else None,
            api_key_env=data.get("api_key_env"),
            custom_config=data.get("custom_config", {}),
        )

    @property
    def env_prefix(self) -> str:
        """Prefix for this source's environment variables (e.g. AMAZON)."""
        return self.name.upper().replace("-", "_")

    @property
    def api_key_var(self) -> str:
        """Environment variable holding this source's API key."""
        return self.api_key_env or f"{self.env_prefix}_API_KEY"

    def credentials(self) -> SourceCredentials:
        """
        Resolve credentials from the environment.

        Reads <NAME>_API_KEY (or the variable named by api_key_env),
        <NAME>_API_SECRET and <NAME>_AFFILIATE_ID. The YAML affiliate_id
        is used when the environment does not set one.
        """
        prefix = self.env_prefix
        return SourceCredentials(
            api_key=os.environ.get(self.api_key_var) or None,
            api_secret=os.environ.get(f"{prefix}_API_SECRET") or None,
            affiliate_id=os.environ.get(f"{prefix}_AFFILIATE_ID") or self.affiliate_id,
        )


@dataclass
class GlobalConfig:
    """Settings under `global:` shared by every source."""

    default_rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    user_agent: str = "ProductIngest/0.1"
    request_timeout: int = 30
    data_dir: str = "data"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GlobalConfig:
        if data is None:
            return cls()
        return cls(
            default_rate_limit=RateLimitConfig.from_dict(
                data.get("default_rate_limit")
            ),
            user_agent=data.get("user_agent", "ProductIngest/0.1"),
            request_timeout=int(data.get("request_timeout", 30)),
            data_dir=data.get("data_dir", "data"),
        )


class SourceRegistry:
    """Named source definitions, keyed by ``name``.

    A registry starts empty; ``load_config`` replaces its contents from a
    YAML file and ``register`` adds sources programmatically.
    """

    def __init__(self) -> None:
        self._sources: dict[str, SourceConfig] = {}
        self._global_config: GlobalConfig = GlobalConfig()
        self._config_path: Path | None = None

    @property
    def global_config(self) -> GlobalConfig:
        return self._global_config

    @property
    def config_path(self) -> Path | None:
        return self._config_path

    def load_config(self, config_path: Path | str) -> None:
        """Replace the registry contents with the sources in ``config_path``.

        Sources without their own ``rate_limit`` block inherit the global
        ``default_rate_limit``.
        """
        path = Path(config_path).expanduser().resolve()
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        global_config = GlobalConfig.from_dict(data.get("global"))
        sources = [
            SourceConfig.from_dict(entry, global_config.default_rate_limit)
            for entry in data.get("sources") or []
        ]

        self._config_path = path
        self._global_config = global_config
        self._sources = {source.name: source for source in sources}
        logger.debug(f"Loaded {len(sources)} sources from {path}")

    def register(self, source: SourceConfig) -> None:
        self._sources[source.name] = source

    def get_source(self, name: str) -> SourceConfig | None:
        return self._sources.get(name)

    def list_sources(self) -> list[SourceConfig]:
        return list(self._sources.values())

    def list_enabled_sources(self) -> list[SourceConfig]:
        return [source for source in self._sources.values() if source.enabled]

    def enable_source(self, name: str) -> bool:
        """Enable ``name``; False when no such source is registered."""
        return self._set_enabled(name, True)

    def disable_source(self, name: str) -> bool:
        """Disable ``name``; False when no such source is registered."""
        return self._set_enabled(name, False)

    def _set_enabled(self, name: str, enabled: bool) -> bool:
        source = self._sources.get(name)
        if source is None:
            return False
        source.enabled = enabled
        return True


BUNDLED_CONFIG = Path(__file__).resolve().parents[2] / "config" / "sources.yaml"

_default_registry: SourceRegistry | None = None


def _default_config_path() -> Path:
    override = os.environ.get("SOURCES_CONFIG_PATH")
    return Path(override) if override else BUNDLED_CONFIG


def get_default_registry() -> SourceRegistry:
    """Return the shared registry, loading it on first use.

    The file comes from ``SOURCES_CONFIG_PATH`` when set, else the bundled
    ``config/sources.yaml``. A missing file leaves the registry empty.
    """
    global _default_registry
    if _default_registry is not None:
        return _default_registry

    registry = SourceRegistry()
    path = _default_config_path()
    if path.exists():
        registry.load_config(path)
    else:
        logger.warning(f"No sources config at {path}; registry is empty")
    _default_registry = registry
    return registry


def reset_default_registry() -> None:
    global _default_registry
    _default_registry = None
