import httpx
import pytest

from sources import ConsumetConnector, ProviderConfig
from sources.errors import HttpError, PageReadingUnsupportedError, RecordValidationError
from sources.http_client import HostRateLimiter, JsonTransport

BASE_URL = "https://consumet.test"


async def _no_sleep(seconds):
    return None


def make_connector(handler, provider_id="mangadex", languages=("en", "ja"), supports_pages=True):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = JsonTransport(
        client=client,
        limiter=HostRateLimiter(1000, 1.0, sleep=_no_sleep),
        sleep=_no_sleep,
    )
    config = ProviderConfig(
        id=provider_id,
        name="Test",
        languages=list(languages),
        priority=100,
        supports_pages=supports_pages,
        base_url=BASE_URL,
    )
    return ConsumetConnector(config, transport)


# =============================================================================
# SEARCH
# =============================================================================

@pytest.mark.asyncio
async def test_search_builds_provider_url():
    seen = []

    def handler(request):
        seen.append(request.url)
        return httpx.Response(200, json={"results": []})

    connector = make_connector(handler)
    await connector.search("one piece", page=2, lang="ja")

    url = seen[0]
    assert url.host == "consumet.test"
    assert url.path == "/manga/mangadex/one piece"
    assert url.params["page"] == "2"
    assert url.params["lang"] == "ja"


@pytest.mark.asyncio
async def test_search_skips_unsupported_language():
    seen = []

    def handler(request):
        seen.append(request.url)
        return httpx.Response(200, json={"results": []})

    connector = make_connector(handler)
    await connector.search("naruto", lang="ko")
    assert "lang" not in seen[0].params


@pytest.mark.asyncio
async def test_search_drops_invalid_items():
    def handler(request):
        return httpx.Response(200, json={"results": [
            {"id": "1", "title": "Berserk", "genres": ["Action"], "releaseDate": "1989"},
            {"id": "2"},
            {"title": "no id"},
            {"id": "3", "title": "Monster", "authors": [{"name": "Naoki Urasawa"}]},
        ]})

    results = await make_connector(handler).search("x")
    assert [r.id for r in results] == ["1", "3"]
    assert results[0].year == 1989
    assert results[1].author_names() == ["Naoki Urasawa"]


@pytest.mark.asyncio
async def test_search_failure_returns_empty():
    def handler(request):
        return httpx.Response(500)

    assert await make_connector(handler).search("x") == []


@pytest.mark.asyncio
async def test_search_unexpected_shape_returns_empty():
    def handler(request):
        return httpx.Response(200, json=["not", "an", "object"])

    assert await make_connector(handler).search("x") == []


# =============================================================================
# DETAILS
# =============================================================================

@pytest.mark.asyncio
async def test_details_counts_inline_chapters():
    def handler(request):
        assert request.url.path == "/manga/mangadex/info/abc"
        return httpx.Response(200, json={
            "id": "abc",
            "title": "Vagabond",
            "chapters": [{"id": "c1"}, {"id": "c2"}],
        })

    details = await make_connector(handler).get_manga_details("abc")
    assert details.title == "Vagabond"
    assert details.chapters == 2


@pytest.mark.asyncio
async def test_details_invalid_record_raises():
    def handler(request):
        return httpx.Response(200, json={"id": "abc"})

    with pytest.raises(RecordValidationError):
        await make_connector(handler).get_manga_details("abc")


@pytest.mark.asyncio
async def test_details_propagates_http_errors():
    def handler(request):
        return httpx.Response(404)

    with pytest.raises(HttpError):
        await make_connector(handler).get_manga_details("abc")


# =============================================================================
# CHAPTERS
# =============================================================================

@pytest.mark.asyncio
async def test_chapters_are_sorted_numerically():
    def handler(request):
        return httpx.Response(200, json={"id": "abc", "title": "T", "chapters": [
            {"id": "c10", "chapterNumber": "10"},
            {"id": "c2", "chapterNumber": 2},
            {"id": "c2.5", "chapterNumber": "2.5"},
            {"id": "extra", "chapterNumber": "special"},
            {"title": "missing id"},
        ]})

    connector = make_connector(handler)
    chapters = await connector.get_chapters("abc")
    assert [c.id for c in chapters] == ["extra", "c2", "c2.5", "c10"]

    chapters = await connector.get_chapters("abc", order="desc")
    assert [c.id for c in chapters] == ["c10", "c2.5", "c2", "extra"]


@pytest.mark.asyncio
async def test_chapters_failure_returns_empty():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    assert await make_connector(handler).get_chapters("abc") == []


# =============================================================================
# PAGES
# =============================================================================

@pytest.mark.asyncio
async def test_pages_default_index_from_position():
    def handler(request):
        assert request.url.path == "/manga/mangadex/read/ch-1"
        return httpx.Response(200, json=[
            {"img": "https://img.test/1.jpg"},
            {"img": "https://img.test/2.jpg", "headerForImage": {"Referer": "https://site.test"}},
            {"page": 7},
        ])

    pages = await make_connector(handler).get_pages("ch-1")
    assert [(p.page, p.img) for p in pages] == [(0, "https://img.test/1.jpg"), (1, "https://img.test/2.jpg")]
    assert pages[1].header_for_image == {"Referer": "https://site.test"}


@pytest.mark.asyncio
async def test_pages_unsupported_raises_before_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=[])

    connector = make_connector(handler, supports_pages=False)
    with pytest.raises(PageReadingUnsupportedError):
        await connector.get_pages("ch-1")
    assert calls == []
