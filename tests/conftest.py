import os
import sys
from typing import Dict, List, Optional

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from sources import BaseConnector, ProviderConfig, ProviderRegistry  # noqa: E402
from sources.schemas import ProviderChapter, ProviderPage, ProviderSearchResult  # noqa: E402


class FakeConnector(BaseConnector):
    """In-memory connector with canned responses and call counters."""

    def __init__(
        self,
        provider_id: str,
        priority: int = 0,
        languages: Optional[List[str]] = None,
        supports_pages: bool = True,
        results: Optional[List[dict]] = None,
        details: Optional[dict] = None,
        chapters: Optional[List[dict]] = None,
        pages: Optional[List[dict]] = None,
        error: Optional[Exception] = None
    ):
        super().__init__(ProviderConfig(
            id=provider_id,
            name=provider_id.title(),
            languages=languages or ["en"],
            priority=priority,
            supports_pages=supports_pages,
        ))
        self.results = [ProviderSearchResult.model_validate(r) for r in results or []]
        self.details = details
        self.chapters = [ProviderChapter.model_validate(c) for c in chapters or []]
        self.pages = [ProviderPage.model_validate(p) for p in pages or []]
        self.error = error
        self.calls: Dict[str, int] = {"search": 0, "details": 0, "chapters": 0, "pages": 0}
        self.last_search = None

    async def search(self, query, page=1, lang=None):
        self.calls["search"] += 1
        self.last_search = (query, page, lang)
        if self.error:
            raise self.error
        return list(self.results)

    async def get_manga_details(self, series_id):
        self.calls["details"] += 1
        if self.error:
            raise self.error
        return ProviderSearchResult.model_validate(self.details or {"id": series_id, "title": series_id})

    async def get_chapters(self, series_id, lang=None, order="asc"):
        self.calls["chapters"] += 1
        if self.error:
            raise self.error
        return sorted(self.chapters, key=lambda c: c.sort_key, reverse=(order == "desc"))

    async def get_pages(self, chapter_id, data_saver=False):
        self.calls["pages"] += 1
        if self.error:
            raise self.error
        return list(self.pages)


def record(record_id: str, title: str, **extra) -> dict:
    payload = {"id": record_id, "title": title}
    payload.update(extra)
    return payload


@pytest.fixture
def make_registry():
    def _make(*connectors: BaseConnector) -> ProviderRegistry:
        return ProviderRegistry(connectors)
    return _make
