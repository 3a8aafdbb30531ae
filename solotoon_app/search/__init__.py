"""Multi-provider search: caching, deduplication and orchestration."""

from .aggregator import MangaAggregator, build_pagination, serialize_search_response
from .cache import LRUCache, make_cache_key
from .deduplicator import SearchDeduplicator, calculate_similarity, normalize_title

__all__ = [
    'MangaAggregator',
    'build_pagination',
    'serialize_search_response',
    'LRUCache',
    'make_cache_key',
    'SearchDeduplicator',
    'calculate_similarity',
    'normalize_title',
]
