"""
================================================================================
SoloToon v1.0 - Base Connector
================================================================================
Capability contract shared by every content provider.

Every provider implements the same four operations:
  1. search(query) -> Find manga by title
  2. get_manga_details(series_id) -> Full record for one series
  3. get_chapters(series_id) -> Chapter list
  4. get_pages(chapter_id) -> Page image URLs

Per-provider differences (id, display name, languages, priority, page support,
base URL) live in a ProviderConfig, not in subclasses.
================================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .schemas import ProviderChapter, ProviderPage, ProviderSearchResult


@dataclass(frozen=True)
class ProviderConfig:
    """Fixed metadata for one content provider."""
    id: str                          # Unique identifier, first half of a GlobalId
    name: str                        # Display name
    languages: List[str] = field(default_factory=lambda: ["en"])
    priority: int = 0                # Higher wins merges
    supports_pages: bool = True      # Whether chapter pages can be read
    base_url: str = ""
    icon: str = "📚"


class BaseConnector(ABC):
    """
    Abstract base class for provider connectors.

    Example:
        class FixtureConnector(BaseConnector):
            async def search(self, query, page=1, lang=None):
                return [ProviderSearchResult(id="1", title="One Piece")]
            ...

        connector = FixtureConnector(ProviderConfig(id="fixture", name="Fixture"))
    """

    def __init__(self, config: ProviderConfig):
        self.config = config

    # =========================================================================
    # PROVIDER METADATA
    # =========================================================================

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def languages(self) -> List[str]:
        return self.config.languages

    @property
    def priority(self) -> int:
        return self.config.priority

    @property
    def supports_pages(self) -> bool:
        return self.config.supports_pages

    def supports_language(self, lang: Optional[str]) -> bool:
        return bool(lang) and lang in self.config.languages

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary for the sources listing."""
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.config.icon,
            "languages": list(self.languages),
            "priority": self.priority,
            "supports_pages": self.supports_pages,
        }

    # =========================================================================
    # ABSTRACT METHODS (Must implement in subclass)
    # =========================================================================

    @abstractmethod
    async def search(
        self,
        query: str,
        page: int = 1,
        lang: Optional[str] = None
    ) -> List[ProviderSearchResult]:
        """
        Search for manga by title.

        Invalid items are dropped; an unreachable provider yields [].
        """

    @abstractmethod
    async def get_manga_details(self, series_id: str) -> ProviderSearchResult:
        """
        Get the full record for one series.

        Raises on transport or validation failure, there is nothing to fall back to.
        """

    @abstractmethod
    async def get_chapters(
        self,
        series_id: str,
        lang: Optional[str] = None,
        order: str = "asc"
    ) -> List[ProviderChapter]:
        """Get chapters sorted by numeric chapter number. Failure yields []."""

    @abstractmethod
    async def get_pages(
        self,
        chapter_id: str,
        data_saver: bool = False
    ) -> List[ProviderPage]:
        """
        Get page images sorted by page number.

        Raises PageReadingUnsupportedError if the provider cannot serve pages.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id='{self.id}' priority={self.priority}>"
