"""
================================================================================
SoloToon v1.0 - Search Result Deduplicator
================================================================================
Merges records of the same title returned by different providers.

Problem:
  User searches "One Piece" -> every provider returns its own "One Piece"
  (and "One Piece ", "ONE PIECE!", ...)

Solution:
  1. Normalize titles (lowercase, strip punctuation, collapse whitespace)
  2. Score candidates with Jaro-Winkler (+ author and year boosts)
  3. Merge into the best existing entry scoring >= 0.85, else seed a new one
  4. Representative data follows the highest-priority source

Matching is greedy and single-pass: the order groups arrive in decides which
record seeds each cluster. The first-seen title is kept for good.

Example Output:
  {
    "id": "mangadex:a1c7c817",
    "title": "One Piece",
    "provider": "mangadex",
    "sources": [
      {"provider": "mangadex", "id": "a1c7c817", "priority": 100},
      {"provider": "comick", "id": "one-piece", "priority": 90}
    ]
  }
================================================================================
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from rapidfuzz.distance import JaroWinkler

from sources.providers import PROVIDER_PRIORITY
from sources.schemas import ProviderSearchResult
from ..models import CanonicalManga, GlobalId, PLACEHOLDER_COVER, Source

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.85
AUTHOR_WEIGHT = 0.8
YEAR_BONUS = 0.1

# (provider_id, records) as returned by one provider's search
ProviderBatch = Tuple[str, Sequence[ProviderSearchResult]]


def normalize_title(title: str) -> str:
    """
    Normalize title for comparison.

    Examples:
        "One-Piece!"   -> "onepiece"
        "One  Piece "  -> "one piece"
    """
    if not title:
        return ""
    title = title.lower()
    title = re.sub(r'[^\w\s]', '', title)
    title = re.sub(r'\s+', ' ', title)
    return title.strip()


def jaro_winkler(s1: str, s2: str) -> float:
    """
    Jaro-Winkler similarity (0-1).

    Match window max(len)/2 - 1, transpositions halved with integer division
    (strcmp95 rounding: 3 out-of-order matches count as 1), prefix bonus of 0.1 per
    leading matching character (up to 4). Symmetric; identical strings score 1.0.
    """
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    return JaroWinkler.similarity(s1, s2, prefix_weight=0.1)


@dataclass(frozen=True)
class MatchKey:
    """The parts of a record that similarity is computed from."""
    title: str                       # normalized
    authors: str                     # lowercased, space-joined
    year: Optional[int]

    @classmethod
    def build(cls, title: str, authors: Iterable[str], year: Optional[int]) -> "MatchKey":
        return cls(
            title=normalize_title(title),
            authors=' '.join(a for a in authors if a).lower(),
            year=year
        )


def calculate_similarity(first: MatchKey, second: MatchKey) -> float:
    """
    Similarity score between two records.

    Algorithm:
      1. Jaro-Winkler over normalized titles
      2. If both have authors: max(title score, 0.8 * author score)
      3. If both have a year and they differ by at most 1: +0.1
      4. Clamp to 1.0
    """
    score = jaro_winkler(first.title, second.title)

    if first.authors and second.authors:
        score = max(score, AUTHOR_WEIGHT * jaro_winkler(first.authors, second.authors))

    if first.year is not None and second.year is not None and abs(first.year - second.year) <= 1:
        score += YEAR_BONUS

    return min(score, 1.0)


def record_to_manga(record: ProviderSearchResult, provider: str, priority: int) -> CanonicalManga:
    """Convert one validated provider record into a single-source CanonicalManga."""
    return CanonicalManga(
        id=str(GlobalId(provider, record.id)),
        title=record.title,
        provider=provider,
        provider_id=record.id,
        cover=record.image or PLACEHOLDER_COVER,
        status=record.status or "Unknown",
        score=record.rating,
        synopsis=record.description,
        tags=record.genre_names(),
        authors=record.author_names(),
        year=record.year,
        chapters=record.chapters,
        volumes=record.volumes,
        alt_titles=[
            t for t in record.alt_title_list()
            if normalize_title(t) != normalize_title(record.title)
        ],
        sources=[Source(provider=provider, id=record.id, priority=priority)],
    )


class SearchDeduplicator:
    """
    Deduplicates provider search results into CanonicalManga entries.

    Holds only configuration; every deduplicate() call starts from scratch.
    """

    def __init__(
        self,
        priorities: Optional[Dict[str, int]] = None,
        similarity_threshold: float = DEFAULT_THRESHOLD
    ):
        """
        Initialize deduplicator.

        Args:
            priorities: provider id -> priority (defaults to the static table)
            similarity_threshold: Minimum score for merging (0-1)
        """
        self.priorities = dict(priorities) if priorities is not None else dict(PROVIDER_PRIORITY)
        self.similarity_threshold = similarity_threshold

    def get_priority(self, provider: str) -> int:
        return self.priorities.get(provider, 0)

    def deduplicate(self, batches: Iterable[ProviderBatch]) -> List[CanonicalManga]:
        """
        Merge all provider batches into a deduplicated list.

        Batches are processed in the given order, records in provider order.
        Output order is the order each canonical entry was first seeded.
        """
        merged: List[CanonicalManga] = []
        keys: List[MatchKey] = []
        total = 0

        for provider, records in batches:
            for record in records:
                total += 1
                candidate = MatchKey.build(record.title, record.author_names(), record.year)
                index, score = self._best_match(candidate, keys)

                if index is None:
                    merged.append(record_to_manga(record, provider, self.get_priority(provider)))
                    keys.append(candidate)
                    continue

                logger.debug(
                    f"Grouped '{record.title}' ({provider}) with '{merged[index].title}' "
                    f"(similarity: {score:.3f})"
                )
                self._merge(merged[index], record, provider)

        logger.info(f"Deduplicated {total} results into {len(merged)} unique manga")
        return merged

    def _best_match(
        self,
        candidate: MatchKey,
        keys: List[MatchKey]
    ) -> Tuple[Optional[int], float]:
        best_index = None
        best_score = 0.0
        for index, existing in enumerate(keys):
            score = calculate_similarity(candidate, existing)
            if score >= self.similarity_threshold and score > best_score:
                best_index = index
                best_score = score
        return best_index, best_score

    def _merge(self, target: CanonicalManga, record: ProviderSearchResult, provider: str) -> None:
        """
        Fold `record` into `target`.

        Strategy:
          - Add the provenance record and keep sources sorted by priority
          - A strictly higher priority takes over the representative fields,
            but only with values the record actually has
          - Title is never replaced; differing titles become alternatives
        """
        priority = self.get_priority(provider)
        current_priority = self.get_priority(target.provider)

        if not any(s.provider == provider and s.id == record.id for s in target.sources):
            target.sources.append(Source(provider=provider, id=record.id, priority=priority))
        target.sources.sort(key=lambda s: s.priority, reverse=True)

        if priority > current_priority:
            target.id = str(GlobalId(provider, record.id))
            target.provider = provider
            target.provider_id = record.id
            if record.image:
                target.cover = record.image
            if record.description:
                target.synopsis = record.description
            if record.rating is not None:
                target.score = record.rating
            if record.chapters is not None:
                target.chapters = record.chapters
            if record.volumes is not None:
                target.volumes = record.volumes

        seen = {normalize_title(t) for t in [target.title] + target.alt_titles}
        for title in [record.title] + record.alt_title_list():
            normalized = normalize_title(title)
            if normalized and normalized not in seen:
                target.alt_titles.append(title)
                seen.add(normalized)
