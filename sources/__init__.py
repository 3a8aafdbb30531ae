"""
================================================================================
SoloToon v1.0 - Provider Registry
================================================================================
Holds the fixed set of provider connectors.

  - Built once at startup by build_registry() and passed to the aggregator
  - Lookup by id returns None for unknown ids (callers decide what that means)
  - Filtering by language and by page-reading support
  - No mutation after construction, so no locking is needed
================================================================================
"""

import logging
from typing import Dict, Iterable, List, Optional

from .base import BaseConnector, ProviderConfig
from .consumet import ConsumetConnector
from .http_client import HostRateLimiter, JsonTransport
from .providers import (
    DEFAULT_CONSUMET_URL, PROVIDER_PRIORITY, default_provider_configs
)

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Read-only registry of provider connectors.

    Usage:
        registry = build_registry(JsonTransport())
        registry.get("mangadex")        # connector or None
        registry.by_language("ko")      # providers that serve Korean
    """

    def __init__(self, connectors: Iterable[BaseConnector]):
        self._providers: Dict[str, BaseConnector] = {}
        for connector in connectors:
            if connector.id in self._providers:
                logger.warning(f"Duplicate provider id '{connector.id}', keeping the first")
                continue
            self._providers[connector.id] = connector

    def get(self, provider_id: str) -> Optional[BaseConnector]:
        return self._providers.get(provider_id)

    def all(self) -> List[BaseConnector]:
        return list(self._providers.values())

    def ids(self) -> List[str]:
        return list(self._providers.keys())

    def by_language(self, lang: str) -> List[BaseConnector]:
        return [p for p in self._providers.values() if lang in p.languages]

    def with_pages(self) -> List[BaseConnector]:
        return [p for p in self._providers.values() if p.supports_pages]

    def sorted_by_priority(self) -> List[BaseConnector]:
        return sorted(self._providers.values(), key=lambda p: p.priority, reverse=True)

    def priorities(self) -> Dict[str, int]:
        return {p.id: p.priority for p in self._providers.values()}

    def __contains__(self, provider_id: str) -> bool:
        return provider_id in self._providers

    def __len__(self) -> int:
        return len(self._providers)


def build_registry(
    transport: JsonTransport,
    configs: Optional[List[ProviderConfig]] = None
) -> ProviderRegistry:
    """Create Consumet connectors for every config sharing one transport."""
    configs = configs if configs is not None else default_provider_configs()
    registry = ProviderRegistry(ConsumetConnector(config, transport) for config in configs)
    logger.info(f"Loaded {len(registry)} providers: {', '.join(registry.ids())}")
    return registry


__all__ = [
    'BaseConnector', 'ConsumetConnector', 'DEFAULT_CONSUMET_URL', 'HostRateLimiter',
    'JsonTransport', 'PROVIDER_PRIORITY', 'ProviderConfig', 'ProviderRegistry',
    'build_registry', 'default_provider_configs',
]
