import pytest

from sources.schemas import ProviderSearchResult
from solotoon_app.search.deduplicator import (
    MatchKey, SearchDeduplicator, calculate_similarity, jaro_winkler, normalize_title
)

PRIORITIES = {"mangadex": 100, "comick": 90, "mangasee123": 80, "mangakakalot": 70}


def result(record_id, title, **extra):
    return ProviderSearchResult.model_validate({"id": record_id, "title": title, **extra})


@pytest.fixture
def dedup():
    return SearchDeduplicator(PRIORITIES)


# =============================================================================
# SIMILARITY
# =============================================================================

def test_normalize_title():
    assert normalize_title("One-Piece!") == "onepiece"
    assert normalize_title("  One   Piece ") == "one piece"
    assert normalize_title("") == ""


def test_jaro_winkler_known_value():
    assert jaro_winkler("martha", "marhta") == pytest.approx(0.9611, abs=1e-3)


def test_jaro_winkler_halves_transpositions_with_integer_division():
    # Three out-of-order matches count as one transposition, not 1.5
    assert jaro_winkler("abcdef", "abcfde") == pytest.approx(0.9611, abs=1e-3)


def test_jaro_winkler_edges():
    assert jaro_winkler("same", "same") == 1.0
    assert jaro_winkler("", "") == 1.0
    assert jaro_winkler("abc", "") == 0.0


def test_similarity_is_symmetric():
    a = MatchKey.build("Solo Leveling", ["Chugong"], 2018)
    b = MatchKey.build("Solo Levelling", ["Chu-Gong"], 2019)
    assert calculate_similarity(a, b) == calculate_similarity(b, a)


def test_similarity_identity_is_one():
    key = MatchKey.build("One Piece", ["Eiichiro Oda"], 1997)
    assert calculate_similarity(key, key) == 1.0


def test_year_bonus_within_one_year():
    without_year = calculate_similarity(MatchKey.build("Berserk", [], None), MatchKey.build("Berzerk", [], None))
    with_year = calculate_similarity(MatchKey.build("Berserk", [], 1989), MatchKey.build("Berzerk", [], 1990))
    far_years = calculate_similarity(MatchKey.build("Berserk", [], 1989), MatchKey.build("Berzerk", [], 1995))
    assert with_year == pytest.approx(min(without_year + 0.1, 1.0))
    assert far_years == pytest.approx(without_year)


def test_author_match_is_weighted():
    a = MatchKey.build("aaaaaa", ["Eiichiro Oda"], None)
    b = MatchKey.build("zzzzzz", ["Eiichiro Oda"], None)
    assert calculate_similarity(a, b) == pytest.approx(0.8)


# =============================================================================
# DEDUPLICATION
# =============================================================================

def test_same_title_from_two_providers_merges(dedup):
    merged = dedup.deduplicate([
        ("mangadex", [result("a1c7c817", "One Piece")]),
        ("comick", [result("one-piece", "One Piece")]),
    ])

    assert len(merged) == 1
    manga = merged[0]
    assert manga.id == "mangadex:a1c7c817"
    assert manga.provider == "mangadex"
    assert [(s.provider, s.priority) for s in manga.sources] == [("mangadex", 100), ("comick", 90)]


def test_higher_priority_source_becomes_representative(dedup):
    merged = dedup.deduplicate([
        ("comick", [result("one-piece", "One Piece", image="https://comick.io/op.jpg")]),
        ("mangadex", [result("a1c7c817", "ONE PIECE!", description="Pirates")]),
    ])

    manga = merged[0]
    assert manga.id == "mangadex:a1c7c817"
    assert manga.provider_id == "a1c7c817"
    assert manga.synopsis == "Pirates"
    # representative had no cover, the merged one keeps comick's
    assert manga.cover == "https://comick.io/op.jpg"
    # first-seen title stays, different spelling is not an alternative
    assert manga.title == "One Piece"
    assert manga.sources[0].provider == "mangadex"


def test_lower_priority_source_does_not_override(dedup):
    merged = dedup.deduplicate([
        ("mangadex", [result("1", "Naruto", description="Ninja")]),
        ("mangakakalot", [result("naruto", "Naruto", description="Other text", rating=9.1)]),
    ])
    manga = merged[0]
    assert manga.id == "mangadex:1"
    assert manga.synopsis == "Ninja"
    assert manga.score is None


def test_sources_are_sorted_by_priority(dedup):
    merged = dedup.deduplicate([
        ("mangakakalot", [result("k", "Vagabond")]),
        ("mangasee123", [result("s", "Vagabond")]),
        ("mangadex", [result("d", "Vagabond")]),
        ("comick", [result("c", "Vagabond")]),
    ])
    priorities = [s.priority for s in merged[0].sources]
    assert priorities == sorted(priorities, reverse=True)
    assert merged[0].representative_priority == 100


def test_different_titles_stay_separate(dedup):
    merged = dedup.deduplicate([
        ("mangadex", [result("1", "Berserk"), result("2", "Vinland Saga")]),
        ("comick", [result("3", "Monster")]),
    ])
    assert [m.title for m in merged] == ["Berserk", "Vinland Saga", "Monster"]


def test_alt_titles_are_unioned(dedup):
    merged = dedup.deduplicate([
        ("mangadex", [result("1", "Shingeki no Kyojin", altTitles=[{"en": "Attack on Titan"}])]),
        ("comick", [result("2", "Shingeki no Kyojin", altTitles=["Attack on Titan", "進撃の巨人"])]),
    ])
    assert merged[0].alt_titles == ["Attack on Titan", "進撃の巨人"]


def test_same_source_is_not_added_twice(dedup):
    merged = dedup.deduplicate([
        ("mangadex", [result("1", "Dorohedoro"), result("1", "Dorohedoro")]),
    ])
    assert len(merged[0].sources) == 1


def test_deduplication_is_repeatable(dedup):
    batches = [
        ("comick", [result("c", "Blue Lock"), result("x", "Kingdom")]),
        ("mangadex", [result("d", "Blue Lock")]),
    ]
    first = [m.to_dict() for m in dedup.deduplicate(batches)]
    second = [m.to_dict() for m in dedup.deduplicate(batches)]
    assert first == second


def test_threshold_is_configurable():
    strict = SearchDeduplicator(PRIORITIES, similarity_threshold=1.0)
    merged = strict.deduplicate([
        ("mangadex", [result("1", "Solo Leveling")]),
        ("comick", [result("2", "Solo Levelling")]),
    ])
    assert len(merged) == 2


def test_unknown_provider_has_zero_priority(dedup):
    assert dedup.get_priority("nowhere") == 0


def test_one_piece_with_author_variants(dedup):
    merged = dedup.deduplicate([
        ("mangadex", [result("md", "One Piece", authors=["Oda"], description="Pirates")]),
        ("comick", [result("ck", "One Piece ", authors=["Eiichiro Oda"])]),
    ])

    assert len(merged) == 1
    assert merged[0].id == "mangadex:md"
    assert merged[0].synopsis == "Pirates"
    assert [s.priority for s in merged[0].sources] == [100, 90]


def test_refetched_batch_does_not_add_entries(dedup):
    batch = [result("1", "Kingdom"), result("2", "Dungeon Meshi"), result("3", "Frieren")]
    once = dedup.deduplicate([("mangadex", batch)])
    twice = dedup.deduplicate([("mangadex", batch), ("mangadex", batch)])
    assert len(twice) == len(once) == 3
    assert [m.to_dict() for m in twice] == [m.to_dict() for m in once]
    assert all(len(m.sources) == 1 for m in twice)
