"""
================================================================================
SoloToon v1.0 - Domain Models
================================================================================
Provider-neutral shapes returned across the aggregation boundary.

  GlobalId        "provider:rawId", the only id ever exposed to clients
  CanonicalManga  one title after cross-provider deduplication
  Source          provenance record inside CanonicalManga.sources
  Chapter         one chapter under its provider's series GlobalId
  PageImage       one page image, dense zero-based index
================================================================================
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional

from sources.errors import InvalidGlobalIdError

PLACEHOLDER_COVER = '/placeholder.svg'


@dataclass(frozen=True)
class GlobalId:
    """
    Composite `provider:rawId` key.

    Only the first separator splits, so raw ids containing ':' survive intact.

    Example:
        GlobalId.parse("mangadex:a1c7c817")  -> GlobalId("mangadex", "a1c7c817")
        GlobalId.parse("mangadex")           -> InvalidGlobalIdError
    """
    provider: str
    raw_id: str

    SEPARATOR: ClassVar[str] = ':'

    @classmethod
    def parse(cls, value: Any) -> "GlobalId":
        if not isinstance(value, str) or cls.SEPARATOR not in value:
            raise InvalidGlobalIdError(str(value))
        provider, raw_id = value.split(cls.SEPARATOR, 1)
        provider = provider.strip()
        if not provider or not raw_id.strip():
            raise InvalidGlobalIdError(value)
        return cls(provider, raw_id)

    def __str__(self) -> str:
        return f"{self.provider}{self.SEPARATOR}{self.raw_id}"


@dataclass
class Source:
    """A provider where this manga is available."""
    provider: str
    id: str
    priority: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"provider": self.provider, "id": self.id, "priority": self.priority}


@dataclass
class CanonicalManga:
    """
    Deduplicated manga with every contributing source.

    Representative fields (id, provider, provider_id, cover, synopsis, score,
    chapters, volumes) come from the highest-priority source known so far.
    """
    id: str                          # GlobalId of the representative source
    title: str                       # First-seen title, never demoted
    provider: str
    provider_id: str
    cover: str = PLACEHOLDER_COVER
    status: str = "Unknown"          # Free-form provider status
    score: Optional[float] = None
    synopsis: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    authors: List[str] = field(default_factory=list)
    year: Optional[int] = None
    chapters: Optional[int] = None
    volumes: Optional[int] = None
    alt_titles: List[str] = field(default_factory=list)
    sources: List[Source] = field(default_factory=list)

    @property
    def representative_priority(self) -> int:
        return self.sources[0].priority if self.sources else 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary for API responses."""
        return {
            "id": self.id,
            "title": self.title,
            "altTitles": list(self.alt_titles),
            "cover": self.cover,
            "status": self.status,
            "score": self.score,
            "synopsis": self.synopsis,
            "tags": list(self.tags),
            "authors": list(self.authors),
            "year": self.year,
            "provider": self.provider,
            "providerId": self.provider_id,
            "chapters": self.chapters,
            "volumes": self.volumes,
            "sources": [s.to_dict() for s in self.sources],
        }


@dataclass
class Chapter:
    """Standardized chapter information."""
    id: str                          # provider:rawChapterId
    series_id: str                   # provider:rawSeriesId
    chapter_number: str              # String for "10.5"
    title: str
    published_at: str                # ISO timestamp
    provider: str
    provider_id: str
    pages_count: Optional[int] = None
    external_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "seriesId": self.series_id,
            "chapterNumber": self.chapter_number,
            "title": self.title,
            "pagesCount": self.pages_count,
            "publishedAt": self.published_at,
            "externalUrl": self.external_url,
            "provider": self.provider,
            "providerId": self.provider_id,
        }


@dataclass
class PageImage:
    """Standardized page/image information."""
    index: int                       # Page number (0-indexed, no gaps)
    original_url: str
    data_saver_url: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "originalUrl": self.original_url,
            "dataSaverUrl": self.data_saver_url,
            "headers": self.headers,
        }
