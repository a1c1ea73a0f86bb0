"""Tests for BilibiliClient.

Hey future me - pytest-httpx intercepts the client's requests, so these check the
exact endpoints/params we hit and how envelopes and garbage map to BilibiliApiError.
"""

import httpx
import pytest
from pytest_httpx import HTTPXMock

from bbsync.config import BilibiliSettings
from bbsync.domain.exceptions import BilibiliApiError
from bbsync.infrastructure.integrations.bilibili_client import BilibiliClient

BASE = "https://api.bilibili.com"
UPPER = {"mid": 42, "name": "up", "face": "https://i0.hdslb.com/face.jpg"}


def _ok(data):
    return {"code": 0, "message": "0", "ttl": 1, "data": data}


@pytest.fixture
async def client():
    client = BilibiliClient(BilibiliSettings(cookie="SESSDATA=abc", page_size=20))
    yield client
    await client.close()


class TestEnvelope:
    """Envelope unwrapping and error mapping."""

    @pytest.mark.asyncio
    async def test_nonzero_code_is_response_failed(self, client: BilibiliClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url=f"{BASE}/x/web-interface/view?bvid=BV17x411w7KC",
            json={"code": -404, "message": "啥都木有", "data": None},
        )

        with pytest.raises(BilibiliApiError) as exc_info:
            await client.get_video_details("BV17x411w7KC")

        assert exc_info.value.type == "ResponseFailed"
        assert exc_info.value.msg_code == -404
        assert exc_info.value.message == "啥都木有"

    @pytest.mark.asyncio
    async def test_http_status_error_is_request_failed(self, client: BilibiliClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=f"{BASE}/x/web-interface/view?bvid=BV1", status_code=412)

        with pytest.raises(BilibiliApiError) as exc_info:
            await client.get_video_details("BV1")

        assert exc_info.value.type == "RequestFailed"

    @pytest.mark.asyncio
    async def test_transport_error_is_request_failed(self, client: BilibiliClient, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ConnectTimeout("timed out"))

        with pytest.raises(BilibiliApiError) as exc_info:
            await client.get_video_details("BV1")

        assert exc_info.value.type == "RequestFailed"
        assert isinstance(exc_info.value.__cause__, httpx.ConnectTimeout)

    @pytest.mark.asyncio
    async def test_non_json_is_invalid_response(self, client: BilibiliClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=f"{BASE}/x/web-interface/view?bvid=BV1", text="<html>captcha</html>")

        with pytest.raises(BilibiliApiError) as exc_info:
            await client.get_video_details("BV1")

        assert exc_info.value.type == "InvalidResponse"

    @pytest.mark.asyncio
    async def test_missing_keys_is_invalid_response(self, client: BilibiliClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=f"{BASE}/x/web-interface/view?bvid=BV1", json=_ok({"aid": 1}))

        with pytest.raises(BilibiliApiError) as exc_info:
            await client.get_video_details("BV1")

        assert exc_info.value.type == "InvalidResponse"

    @pytest.mark.asyncio
    async def test_sends_cookie_and_referer(self, client: BilibiliClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=f"{BASE}/x/v3/fav/resource/ids?media_id=1", json=_ok([]))

        await client.get_favorite_list_all_contents(1)

        request = httpx_mock.get_request()
        assert request.headers["Cookie"] == "SESSDATA=abc"
        assert request.headers["Referer"] == "https://www.bilibili.com"


class TestEndpoints:
    """Parsing of each endpoint into DTOs."""

    @pytest.mark.asyncio
    async def test_favorite_index(self, client: BilibiliClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url=f"{BASE}/x/v3/fav/resource/ids?media_id=77",
            json=_ok([
                {"id": 1, "type": 2, "bv_id": "BV1a", "bvid": "BV1a"},
                {"id": 2, "type": 12, "bv_id": "BV1b", "bvid": "BV1b"},
            ]),
        )

        items = await client.get_favorite_list_all_contents(77)

        assert [(i.bvid, i.is_video) for i in items] == [("BV1a", True), ("BV1b", False)]

    @pytest.mark.asyncio
    async def test_favorite_index_null_data_is_empty(self, client: BilibiliClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=f"{BASE}/x/v3/fav/resource/ids?media_id=77", json=_ok(None))

        assert await client.get_favorite_list_all_contents(77) == []

    @pytest.mark.asyncio
    async def test_favorite_page(self, client: BilibiliClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url=f"{BASE}/x/v3/fav/resource/list?media_id=77&pn=2&ps=20",
            json=_ok({
                "info": {"id": 77, "title": "favs", "upper": UPPER, "cover": "c.jpg", "intro": "", "media_count": 41},
                "medias": [
                    {"id": 5, "bvid": "BV1a", "title": "A", "upper": UPPER, "cover": "a.jpg", "duration": 61, "attr": 0},
                    {"id": 6, "bvid": "BV1b", "title": "B", "upper": UPPER, "duration": 62, "attr": 9},
                ],
                "has_more": True,
            }),
        )

        page = await client.get_favorite_list_contents(77, 2)

        assert page.info.title == "favs"
        assert page.info.upper.mid == 42
        assert page.has_more is True
        assert [m.bvid for m in page.medias] == ["BV1a", "BV1b"]
        assert page.medias[1].attr == 9
        assert page.medias[0].duration == 61

    @pytest.mark.asyncio
    async def test_favorite_page_null_medias(self, client: BilibiliClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url=f"{BASE}/x/v3/fav/resource/list?media_id=77&pn=1&ps=20",
            json=_ok({"info": {"id": 77, "title": "favs", "upper": UPPER}, "medias": None, "has_more": False}),
        )

        page = await client.get_favorite_list_contents(77, 1)

        assert page.medias is None

    @pytest.mark.asyncio
    async def test_collection(self, client: BilibiliClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url=f"{BASE}/x/space/fav/season/list?season_id=9&ps=20&pn=1",
            json=_ok({
                "info": {"id": 9, "title": "Season", "upper": {"mid": 1, "name": "owner"}, "media_count": 1},
                "medias": [{"id": 1, "bvid": "BV1c", "title": "Ep1", "upper": UPPER, "duration": 100}],
            }),
        )

        contents = await client.get_collection_all_contents(9)

        assert contents.info.title == "Season"
        assert contents.info.upper.face is None
        assert [m.bvid for m in contents.medias] == ["BV1c"]

    @pytest.mark.asyncio
    async def test_video_details(self, client: BilibiliClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url=f"{BASE}/x/web-interface/view?bvid=BV17x411w7KC",
            json=_ok({
                "aid": 170001,
                "bvid": "BV17x411w7KC",
                "title": "Concert",
                "owner": UPPER,
                "cid": 279786,
                "pic": "pic.jpg",
                "desc": "live",
                "duration": 300,
                "pages": [
                    {"cid": 279786, "page": 1, "part": "Opening", "duration": 100},
                    {"cid": 279787, "page": 2, "part": "Encore", "duration": 200},
                ],
            }),
        )

        details = await client.get_video_details("BV17x411w7KC")

        assert details.aid == 170001
        assert details.owner.name == "up"
        assert [(p.cid, p.part) for p in details.pages] == [(279786, "Opening"), (279787, "Encore")]
