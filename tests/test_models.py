import pytest

from sources.errors import InvalidGlobalIdError
from solotoon_app.models import CanonicalManga, GlobalId, PLACEHOLDER_COVER, Source


def test_parse_global_id():
    gid = GlobalId.parse("mangadex:a1c7c817")
    assert gid.provider == "mangadex"
    assert gid.raw_id == "a1c7c817"
    assert str(gid) == "mangadex:a1c7c817"


def test_raw_id_may_contain_separator():
    gid = GlobalId.parse("mangapark:series:123")
    assert gid.provider == "mangapark"
    assert gid.raw_id == "series:123"
    assert str(gid) == "mangapark:series:123"


@pytest.mark.parametrize("value", ["noseparator", ":123", "mangadex:", "  :x", "", None, 42])
def test_malformed_global_ids(value):
    with pytest.raises(InvalidGlobalIdError) as exc:
        GlobalId.parse(value)
    assert exc.value.code == "INVALID_ID"
    assert exc.value.http_status == 400
    assert exc.value.is_retriable is False


def test_canonical_manga_to_dict():
    manga = CanonicalManga(
        id="mangadex:1",
        title="One Piece",
        provider="mangadex",
        provider_id="1",
        alt_titles=["ワンピース"],
        sources=[Source("mangadex", "1", 100), Source("comick", "op", 90)],
    )
    data = manga.to_dict()
    assert data["cover"] == PLACEHOLDER_COVER
    assert data["status"] == "Unknown"
    assert data["providerId"] == "1"
    assert data["altTitles"] == ["ワンピース"]
    assert data["sources"][1] == {"provider": "comick", "id": "op", "priority": 90}
    assert manga.representative_priority == 100
