"""Unit tests for the paginated favorite detail walk."""

from unittest.mock import AsyncMock

import pytest

from bbsync.application.services.favorite_fetcher import fetch_favorite_details
from bbsync.domain.dtos import BilibiliUpper, FavoriteFolderInfo, FavoriteListPage, FavoriteMedia
from bbsync.domain.exceptions import BilibiliApiError, SyncFavoriteFailed

UPPER = BilibiliUpper(mid=1, name="up")
INFO = FavoriteFolderInfo(id=9, title="fav", upper=UPPER)


def _page(bvids: list[str] | None, has_more: bool) -> FavoriteListPage:
    medias = None if bvids is None else [
        FavoriteMedia(id=i, bvid=bvid, title=bvid, upper=UPPER) for i, bvid in enumerate(bvids)
    ]
    return FavoriteListPage(info=INFO, medias=medias, has_more=has_more)


@pytest.fixture
def api() -> AsyncMock:
    return AsyncMock()


class TestFetchFavoriteDetails:
    """Exit conditions and hidden-item detection."""

    @pytest.mark.asyncio
    async def test_stops_once_everything_is_found(self, api: AsyncMock) -> None:
        api.get_favorite_list_contents.side_effect = [
            _page(["a", "b"], has_more=True),
            _page(["c", "d"], has_more=True),
            _page(["e"], has_more=False),
        ]

        outcome = await fetch_favorite_details(api, 9, ["c", "a"])

        assert list(outcome.found) == ["a", "c"]
        assert outcome.hidden == []
        assert outcome.pages_requested == 2
        assert api.get_favorite_list_contents.await_count == 2

    @pytest.mark.asyncio
    async def test_leftovers_after_last_page_are_hidden(self, api: AsyncMock) -> None:
        api.get_favorite_list_contents.side_effect = [
            _page(["a"], has_more=True),
            _page(["b"], has_more=False),
        ]

        outcome = await fetch_favorite_details(api, 9, ["a", "x", "b", "y"])

        assert set(outcome.found) == {"a", "b"}
        assert outcome.hidden == ["x", "y"]
        assert outcome.pages_requested == 2

    @pytest.mark.asyncio
    async def test_nothing_wanted_requests_nothing(self, api: AsyncMock) -> None:
        outcome = await fetch_favorite_details(api, 9, [])

        assert outcome.found == {}
        assert outcome.pages_requested == 0
        api.get_favorite_list_contents.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reuses_first_page(self, api: AsyncMock) -> None:
        api.get_favorite_list_contents.return_value = _page(["b"], has_more=False)

        outcome = await fetch_favorite_details(
            api, 9, ["a", "b"], first_page=_page(["a"], has_more=True)
        )

        assert set(outcome.found) == {"a", "b"}
        api.get_favorite_list_contents.assert_awaited_once_with(9, 2)

    @pytest.mark.asyncio
    async def test_page_cap_reports_rest_as_truncated(self, api: AsyncMock) -> None:
        api.get_favorite_list_contents.return_value = _page(["a"], has_more=True)

        outcome = await fetch_favorite_details(api, 9, ["a", "z"], max_pages=3)

        assert outcome.pages_requested == 3
        assert outcome.truncated == ["z"]
        assert outcome.hidden == []

    @pytest.mark.asyncio
    async def test_last_page_within_cap_still_means_hidden(self, api: AsyncMock) -> None:
        api.get_favorite_list_contents.side_effect = [
            _page(["a"], has_more=True),
            _page(["b"], has_more=False),
        ]

        outcome = await fetch_favorite_details(api, 9, ["a", "b", "z"], max_pages=2)

        assert outcome.hidden == ["z"]
        assert outcome.truncated == []

    @pytest.mark.asyncio
    async def test_null_media_list_fails(self, api: AsyncMock) -> None:
        api.get_favorite_list_contents.return_value = _page(None, has_more=False)

        with pytest.raises(SyncFavoriteFailed, match="no medias"):
            await fetch_favorite_details(api, 9, ["a"])

    @pytest.mark.asyncio
    async def test_api_error_propagates(self, api: AsyncMock) -> None:
        api.get_favorite_list_contents.side_effect = BilibiliApiError("boom")

        with pytest.raises(BilibiliApiError):
            await fetch_favorite_details(api, 9, ["a"])
