"""
================================================================================
SoloToon v1.0 - Aggregation Orchestrator
================================================================================
Fans searches out to providers, merges, paginates and caches the result.

Search flow:
  1. Blank query -> empty response (no network, no cache)
  2. Cache lookup under the normalized request key
  3. Select providers (explicit ids > language filter > all)
  4. Query them in parallel; a failing provider contributes nothing
  5. Deduplicate, paginate, cache, return

Single-target flows (details, chapters, pages) parse the GlobalId first:
malformed ids and unknown providers are caller errors, never degraded.
================================================================================
"""

import asyncio
import logging
import math
import random
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sources import BaseConnector, ProviderRegistry
from sources.errors import MangaApiError, PageReadingUnsupportedError, ProviderNotFoundError
from sources.schemas import ProviderChapter, ProviderSearchResult
from ..image_proxy import ImageProxy
from ..models import CanonicalManga, Chapter, GlobalId, PageImage, Source
from .cache import LRUCache, make_cache_key
from .deduplicator import ProviderBatch, SearchDeduplicator, record_to_manga

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
SUGGESTION_LIMIT = 5
DEFAULT_BROWSE_PROVIDER = 'mangadex'

# Well-known titles used to fill the popular listing
POPULAR_QUERIES = ['one piece', 'naruto', 'attack on titan', 'demon slayer']

# Legacy spellings accepted for provider ids
PROVIDER_ALIASES = {'mangadx': 'mangadex'}


def build_pagination(page: int, limit: int, count: int, total: int) -> Dict[str, Any]:
    """Pagination block for a slice of `total` items."""
    return {
        'current_page': page,
        'has_next_page': page * limit < total,
        'last_visible_page': math.ceil(total / limit),
        'items': {
            'count': count,
            'total': total,
            'per_page': limit,
        },
    }


class MangaAggregator:
    """
    Multi-provider search and lookup with caching.

    Construct once at startup and share; registry and deduplicator are
    read-only, caches are internally locked.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        deduplicator: Optional[SearchDeduplicator] = None,
        image_proxy: Optional[ImageProxy] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        search_cache_size: int = 50,
        details_cache_size: int = 100,
        chapters_cache_size: int = 100
    ):
        self.registry = registry
        self.deduplicator = deduplicator or SearchDeduplicator(registry.priorities())
        self.image_proxy = image_proxy or ImageProxy()
        self.page_size = page_size
        self.search_cache = LRUCache(search_cache_size, name='search')
        self.details_cache = LRUCache(details_cache_size, name='details')
        self.chapters_cache = LRUCache(chapters_cache_size, name='chapters')

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search_multi(
        self,
        query: str,
        page: int = 1,
        lang: Optional[str] = None,
        providers: Optional[Sequence[str]] = None,
        limit: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Search every selected provider and return one deduplicated page.

        Returns:
            {"data": [CanonicalManga, ...], "pagination": {...}}
        """
        limit = limit or self.page_size
        if not query or not query.strip():
            return {
                'data': [],
                'pagination': {
                    'current_page': page,
                    'has_next_page': False,
                    'last_visible_page': page,
                    'items': {'count': 0, 'total': 0, 'per_page': limit},
                },
            }

        start_time = time.time()
        query = query.strip()
        cache_key = make_cache_key(
            query.lower(),
            page,
            lang or 'all',
            ','.join(sorted(set(providers))) if providers else 'all',
            limit
        )

        # CHECK CACHE FIRST
        cached = self.search_cache.get(cache_key)
        if cached is not None:
            logger.info(f"Cache HIT for query '{query}' (took {time.time() - start_time:.3f}s)")
            return cached

        targets = self.select_providers(lang, providers)
        logger.info(f"Cache MISS - searching '{query}' across {len(targets)} providers")

        batches = await self._parallel_search(query, page, lang, targets)
        merged = self.deduplicator.deduplicate(batches)

        start = (page - 1) * limit
        page_items = merged[start:start + limit]
        response = {
            'data': page_items,
            'pagination': build_pagination(page, limit, len(page_items), len(merged)),
        }

        # CACHE RESULTS BEFORE RETURNING
        self.search_cache.set(cache_key, response)
        logger.info(f"Search for '{query}' completed in {time.time() - start_time:.2f}s")
        return response

    def select_providers(
        self,
        lang: Optional[str] = None,
        providers: Optional[Sequence[str]] = None
    ) -> List[BaseConnector]:
        """Explicit ids (registry order) if given, else by language, else all."""
        if providers:
            wanted = set(providers)
            unknown = sorted(wanted - set(self.registry.ids()))
            if unknown:
                logger.warning(f"Ignoring unknown providers: {', '.join(unknown)}")
            return [p for p in self.registry.all() if p.id in wanted]
        if lang:
            return self.registry.by_language(lang)
        return self.registry.all()

    async def _parallel_search(
        self,
        query: str,
        page: int,
        lang: Optional[str],
        targets: List[BaseConnector]
    ) -> List[ProviderBatch]:
        """
        Query all targets concurrently and wait for every outcome.

        Returns one (provider_id, results) batch per target, in target order.
        """
        tasks = [self._search_source(provider, query, page, lang) for provider in targets]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        batches: List[ProviderBatch] = []
        for provider, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.error(f"Search failed for {provider.id}: {result!r}")
                result = []
            batches.append((provider.id, result))

        logger.info(f"Got {sum(len(b[1]) for b in batches)} raw results from {len(batches)} providers")
        return batches

    async def _search_source(
        self,
        provider: BaseConnector,
        query: str,
        page: int,
        lang: Optional[str]
    ) -> List[ProviderSearchResult]:
        """Search one provider; any failure counts as zero results."""
        try:
            return list(await provider.search(query, page, lang) or [])
        except Exception as e:
            logger.error(f"Search failed for provider {provider.id}: {e}")
            return []

    # =========================================================================
    # POPULAR & SUGGESTIONS
    # =========================================================================

    async def get_popular(self, page: int = 1, provider: str = DEFAULT_BROWSE_PROVIDER) -> Dict[str, Any]:
        """One provider's results for a randomly picked well-known title."""
        query = random.choice(POPULAR_QUERIES)
        provider = PROVIDER_ALIASES.get(provider, provider)
        logger.info(f"Popular page {page} from {provider} via '{query}'")
        return await self.search_multi(query, page=page, providers=[provider])

    async def suggest(
        self,
        query: str,
        provider: str = DEFAULT_BROWSE_PROVIDER,
        limit: int = SUGGESTION_LIMIT
    ) -> Dict[str, Any]:
        """Top few matches from a single provider, for search-as-you-type."""
        if not query or not query.strip():
            return {'data': []}
        provider = PROVIDER_ALIASES.get(provider, provider)
        result = await self.search_multi(query, page=1, providers=[provider], limit=limit)
        return {'data': result['data']}

    # =========================================================================
    # SINGLE-TARGET LOOKUPS
    # =========================================================================

    def _resolve(self, global_id: str) -> Tuple[GlobalId, BaseConnector]:
        gid = GlobalId.parse(global_id)
        provider = self.registry.get(gid.provider)
        if provider is None:
            raise ProviderNotFoundError(gid.provider)
        return gid, provider

    async def get_details(self, global_id: str) -> CanonicalManga:
        """
        Full details for one series from its own provider.

        Raises:
            InvalidGlobalIdError, ProviderNotFoundError, or the provider failure
        """
        gid, provider = self._resolve(global_id)
        cache_key = str(gid)
        cached = self.details_cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            record = await provider.get_manga_details(gid.raw_id)
        except MangaApiError as e:
            logger.error(f"Failed to get manga details for {global_id}: {e}")
            raise

        manga = record_to_manga(record, provider.id, provider.priority)
        manga.id = str(gid)
        manga.provider_id = gid.raw_id
        manga.sources = [Source(provider=provider.id, id=gid.raw_id, priority=provider.priority)]

        self.details_cache.set(cache_key, manga)
        return manga

    async def get_chapters(
        self,
        global_series_id: str,
        lang: Optional[str] = None,
        order: str = 'asc'
    ) -> List[Chapter]:
        """
        Chapter list of one series, sorted by chapter number.

        A failing provider yields [] (not cached); id errors raise.
        """
        gid, provider = self._resolve(global_series_id)
        order = 'desc' if order == 'desc' else 'asc'
        cache_key = make_cache_key(str(gid), lang or 'all', order)
        cached = self.chapters_cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            provider_chapters = await provider.get_chapters(gid.raw_id, lang=lang, order=order)
        except MangaApiError as e:
            logger.error(f"Failed to get chapters for {global_series_id}: {e}")
            return []

        chapters = [self._to_chapter(gid, provider.id, c) for c in provider_chapters]
        if chapters:
            self.chapters_cache.set(cache_key, chapters)
        return chapters

    def _to_chapter(self, series: GlobalId, provider_id: str, chapter: ProviderChapter) -> Chapter:
        number = chapter.number_text or '0'
        return Chapter(
            id=str(GlobalId(provider_id, chapter.id)),
            series_id=str(series),
            chapter_number=number,
            title=chapter.title or f"Chapter {number}",
            published_at=chapter.release_date or datetime.now(timezone.utc).isoformat(),
            provider=provider_id,
            provider_id=chapter.id,
            pages_count=chapter.pages,
            external_url=chapter.url,
        )

    async def get_pages(
        self,
        global_chapter_id: str,
        data_saver: bool = False
    ) -> List[PageImage]:
        """
        Page images of one chapter, indexed 0..N-1 in reading order.

        Raises PageReadingUnsupportedError before any network call when the
        provider cannot serve pages.
        """
        gid, provider = self._resolve(global_chapter_id)
        if not provider.supports_pages:
            raise PageReadingUnsupportedError(provider.id)

        try:
            provider_pages = await provider.get_pages(gid.raw_id, data_saver=data_saver)
        except PageReadingUnsupportedError:
            raise
        except MangaApiError as e:
            logger.error(f"Failed to get pages for {global_chapter_id}: {e}")
            return []

        ordered = sorted(
            enumerate(provider_pages),
            key=lambda item: (item[1].page if item[1].page is not None else item[0], item[0])
        )
        return [
            PageImage(
                index=index,
                original_url=page.img,
                data_saver_url=self.image_proxy.to_display_url(page.img, True) if data_saver else None,
                headers=dict(page.header_for_image or {}),
            )
            for index, (_, page) in enumerate(ordered)
        ]

    # =========================================================================
    # CACHE MANAGEMENT
    # =========================================================================

    def clear_cache(self) -> None:
        """Empty the search, details and chapters caches."""
        self.search_cache.clear()
        self.details_cache.clear()
        self.chapters_cache.clear()
        logger.info("Cleared search, details and chapters caches")

    def cache_stats(self) -> Dict[str, Any]:
        return {
            cache.name: cache.stats()
            for cache in (self.search_cache, self.details_cache, self.chapters_cache)
        }

    def list_providers(self) -> List[Dict[str, Any]]:
        return [provider.to_dict() for provider in self.registry.all()]


def serialize_search_response(response: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-ready copy of a search_multi() response."""
    return {
        'data': [manga.to_dict() for manga in response['data']],
        'pagination': response['pagination'],
    }
