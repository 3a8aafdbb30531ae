"""Pydantic schemas for provider response validation.

Every record coming back from a provider is parsed through one of these models
right after transport. Unknown keys are ignored; a missing or mistyped required
field raises ``pydantic.ValidationError``.
"""

from __future__ import annotations

import math
import re
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

_YEAR_RE = re.compile(r'^\s*(\d{4})')


class NamedItem(BaseModel):
    """Genre or author given as an object instead of a plain string."""

    name: str

    model_config = {"extra": "ignore"}


class ProviderSearchResult(BaseModel):
    """A search or details record in a provider's own vocabulary."""

    id: str
    title: str
    image: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    chapters: Optional[int] = None
    volumes: Optional[int] = None
    rating: Optional[float] = None
    genres: Optional[List[Union[str, NamedItem]]] = None
    authors: Optional[List[Union[str, NamedItem]]] = None
    release_date: Optional[str] = Field(default=None, alias="releaseDate")
    url: Optional[str] = None
    alt_titles: Optional[List[Union[str, Dict[str, str]]]] = Field(default=None, alias="altTitles")

    model_config = {"extra": "ignore", "populate_by_name": True}

    def genre_names(self) -> List[str]:
        return _names(self.genres)

    def author_names(self) -> List[str]:
        return _names(self.authors)

    def alt_title_list(self) -> List[str]:
        titles: List[str] = []
        for item in self.alt_titles or []:
            values = item.values() if isinstance(item, dict) else [item]
            for value in values:
                if value and value not in titles:
                    titles.append(value)
        return titles

    @property
    def year(self) -> Optional[int]:
        """First-publication year parsed from ``releaseDate`` (``1997`` or ``1997-07-22``)."""
        if not self.release_date:
            return None
        match = _YEAR_RE.match(self.release_date)
        return int(match.group(1)) if match else None


class ProviderChapter(BaseModel):
    """A chapter entry from a provider's info endpoint."""

    id: str
    title: Optional[str] = None
    chapter_number: Optional[Union[str, float]] = Field(default=None, alias="chapterNumber")
    release_date: Optional[str] = Field(default=None, alias="releaseDate")
    url: Optional[str] = None
    pages: Optional[int] = None

    model_config = {"extra": "ignore", "populate_by_name": True}

    @property
    def number_text(self) -> Optional[str]:
        """Chapter number as text, ``12`` instead of ``12.0`` for whole numbers."""
        value = self.chapter_number
        if value is None:
            return None
        if isinstance(value, float):
            return str(int(value)) if value.is_integer() else str(value)
        return value

    @property
    def sort_key(self) -> float:
        """Numeric chapter number; unparsable numbers sort as 0."""
        try:
            number = float(self.chapter_number)
        except (TypeError, ValueError):
            return 0.0
        return 0.0 if math.isnan(number) else number


class ProviderPage(BaseModel):
    """A single page image of a chapter."""

    img: str
    page: Optional[int] = None
    header_for_image: Optional[Dict[str, str]] = Field(default=None, alias="headerForImage")

    model_config = {"extra": "ignore", "populate_by_name": True}


def _names(items) -> List[str]:
    names = []
    for item in items or []:
        name = item.name if isinstance(item, NamedItem) else item
        if name:
            names.append(name)
    return names
