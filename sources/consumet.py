"""
================================================================================
SoloToon v1.0 - Consumet Connector
================================================================================
Single concrete adapter for every provider proxied by a Consumet API instance.

URL scheme (per provider id):
  search   -> {base}/manga/{id}/{query}?page=N[&lang=xx]
  details  -> {base}/manga/{id}/info/{series_id}
  chapters -> {base}/manga/{id}/info/{series_id}   (chapters list in the body)
  pages    -> {base}/manga/{id}/read/{chapter_id}

Responses are validated item by item; one bad item never sinks a batch.
================================================================================
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

from pydantic import ValidationError

from .base import BaseConnector, ProviderConfig
from .errors import MangaApiError, PageReadingUnsupportedError, RecordValidationError
from .http_client import JsonTransport
from .schemas import ProviderChapter, ProviderPage, ProviderSearchResult

logger = logging.getLogger(__name__)


class ConsumetConnector(BaseConnector):
    """Provider adapter parameterized by a ProviderConfig and a shared transport."""

    def __init__(self, config: ProviderConfig, transport: JsonTransport):
        super().__init__(config)
        self.transport = transport

    def _endpoint(self, *parts: str) -> str:
        path = "/".join(quote(part, safe="") for part in parts)
        root = f"{self.config.base_url.rstrip('/')}/manga/{self.id}"
        return f"{root}/{path}" if path else root

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search(
        self,
        query: str,
        page: int = 1,
        lang: Optional[str] = None
    ) -> List[ProviderSearchResult]:
        params: Dict[str, Any] = {"page": page}
        if self.supports_language(lang):
            params["lang"] = lang
        url = f"{self._endpoint(query.strip())}?{urlencode(params)}"

        try:
            response = await self.transport.fetch_json(url)
        except MangaApiError as e:
            logger.error(f"Search failed for {self.id}: {e}")
            return []

        items = response.get("results") if isinstance(response, dict) else None
        if not isinstance(items, list):
            logger.error(f"Search failed for {self.id}: unexpected response shape")
            return []

        results = []
        for item in items:
            try:
                results.append(ProviderSearchResult.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Invalid result from {self.id}: {e.error_count()} error(s), dropped")
        return results

    # =========================================================================
    # DETAILS
    # =========================================================================

    async def get_manga_details(self, series_id: str) -> ProviderSearchResult:
        url = self._endpoint("info", series_id)
        response = await self.transport.fetch_json(url)
        if not isinstance(response, dict):
            raise RecordValidationError(self.id, "Details response is not an object", url)

        payload = dict(response)
        # The info endpoint inlines the chapter list; keep only its count.
        chapter_list = payload.get("chapters")
        if isinstance(chapter_list, list):
            payload["chapters"] = payload.get("totalChapters") or len(chapter_list)

        try:
            return ProviderSearchResult.model_validate(payload)
        except ValidationError as e:
            raise RecordValidationError(self.id, f"Invalid details for {series_id}: {e}", url) from e

    # =========================================================================
    # CHAPTERS
    # =========================================================================

    async def get_chapters(
        self,
        series_id: str,
        lang: Optional[str] = None,
        order: str = "asc"
    ) -> List[ProviderChapter]:
        url = self._endpoint("info", series_id)
        if self.supports_language(lang):
            url = f"{url}?{urlencode({'lang': lang})}"

        try:
            response = await self.transport.fetch_json(url)
        except MangaApiError as e:
            logger.error(f"Chapters failed for {self.id}: {e}")
            return []

        items = response.get("chapters") if isinstance(response, dict) else None
        if not isinstance(items, list):
            return []

        chapters = []
        for item in items:
            try:
                chapters.append(ProviderChapter.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Invalid chapter from {self.id}: {e.error_count()} error(s), dropped")

        return sorted(chapters, key=lambda c: c.sort_key, reverse=(order == "desc"))

    # =========================================================================
    # PAGES
    # =========================================================================

    async def get_pages(
        self,
        chapter_id: str,
        data_saver: bool = False
    ) -> List[ProviderPage]:
        if not self.supports_pages:
            raise PageReadingUnsupportedError(self.id)

        url = self._endpoint("read", chapter_id)
        try:
            response = await self.transport.fetch_json(url)
        except MangaApiError as e:
            logger.error(f"Pages failed for {self.id}: {e}")
            return []

        if not isinstance(response, list):
            logger.error(f"Pages failed for {self.id}: unexpected response shape")
            return []

        pages = []
        for position, item in enumerate(response):
            try:
                page = ProviderPage.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Invalid page from {self.id}: {e.error_count()} error(s), dropped")
                continue
            if page.page is None:
                page = page.model_copy(update={"page": position})
            pages.append(page)

        return sorted(pages, key=lambda p: p.page)
