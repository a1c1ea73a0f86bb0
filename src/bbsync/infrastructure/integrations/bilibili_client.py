"""Bilibili web API client.

Hey future me - this is a deliberately thin client: one GET wrapper that unwraps the
{code, message, data} envelope, plus parsers that turn raw JSON into our DTOs.
It implements IBilibiliApi, so the sync services never see httpx or raw dicts.

Error mapping (everything raises BilibiliApiError):
- httpx transport error or non-2xx status -> type="RequestFailed"
- envelope code != 0                      -> type="ResponseFailed" (msg_code = code)
- missing keys / wrong shapes             -> type="InvalidResponse"

No retries and no rate limiting here; callers surface failures as-is.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from bbsync.config import BilibiliSettings
from bbsync.domain.dtos import (
    BilibiliUpper,
    CollectionContents,
    CollectionInfo,
    CollectionMedia,
    FavoriteFolderInfo,
    FavoriteIndexItem,
    FavoriteListPage,
    FavoriteMedia,
    VideoDetails,
    VideoPage,
)
from bbsync.domain.exceptions import BilibiliApiError
from bbsync.domain.ports import IBilibiliApi

logger = logging.getLogger(__name__)


class BilibiliClient(IBilibiliApi):
    """HTTP client for the Bilibili web API.

    Usage:
        client = BilibiliClient(settings.bilibili)
        page = await client.get_favorite_list_contents(123456, 1)
        await client.close()
    """

    FAVORITE_IDS_PATH = "/x/v3/fav/resource/ids"
    FAVORITE_LIST_PATH = "/x/v3/fav/resource/list"
    COLLECTION_LIST_PATH = "/x/space/fav/season/list"
    VIDEO_VIEW_PATH = "/x/web-interface/view"

    def __init__(
        self,
        settings: BilibiliSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Bilibili client.

        Args:
            settings: Bilibili settings (base URL, cookie, timeout, page sizes)
            transport: Optional httpx transport (tests)
        """
        self.settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {
                "User-Agent": self.settings.user_agent,
                "Referer": "https://www.bilibili.com",
                "Accept": "application/json",
            }
            if self.settings.cookie:
                headers["Cookie"] = self.settings.cookie
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers=headers,
                timeout=self.settings.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        """GET an endpoint and return the envelope's data field.

        Raises:
            BilibiliApiError: On transport, status, envelope or JSON errors
        """
        client = await self._get_client()
        try:
            response = await client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Bilibili request {path} failed: {e}")
            raise BilibiliApiError(
                f"Request to {path} failed: {e}", type="RequestFailed"
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            raise BilibiliApiError(
                f"Response of {path} is not JSON", type="InvalidResponse", raw=response.text
            ) from e

        if not isinstance(body, dict) or "code" not in body:
            raise BilibiliApiError(
                f"Response of {path} has no envelope", type="InvalidResponse", raw=body
            )
        if body["code"] != 0:
            raise BilibiliApiError(
                body.get("message") or f"Bilibili error {body['code']}",
                type="ResponseFailed",
                msg_code=body["code"],
                raw=body,
            )
        return body.get("data")

    # =========================================================================
    # IBilibiliApi
    # =========================================================================

    async def get_favorite_list_all_contents(
        self, favorite_id: int
    ) -> list[FavoriteIndexItem]:
        data = await self._get(self.FAVORITE_IDS_PATH, {"media_id": favorite_id})
        if data is None:
            return []
        try:
            return [
                FavoriteIndexItem(id=item["id"], bvid=item["bvid"], type=item["type"])
                for item in data
            ]
        except (KeyError, TypeError) as e:
            raise BilibiliApiError(
                f"Malformed favorite index for {favorite_id}", type="InvalidResponse", raw=data
            ) from e

    async def get_favorite_list_contents(
        self, favorite_id: int, page: int
    ) -> FavoriteListPage:
        data = await self._get(
            self.FAVORITE_LIST_PATH,
            {"media_id": favorite_id, "pn": page, "ps": self.settings.page_size},
        )
        try:
            medias = data.get("medias")
            return FavoriteListPage(
                info=self._parse_favorite_info(data["info"]),
                medias=None
                if medias is None
                else [self._parse_favorite_media(media) for media in medias],
                has_more=bool(data.get("has_more", False)),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise BilibiliApiError(
                f"Malformed favorite page {page} for {favorite_id}",
                type="InvalidResponse",
                raw=data,
            ) from e

    async def get_collection_all_contents(self, collection_id: int) -> CollectionContents:
        data = await self._get(
            self.COLLECTION_LIST_PATH,
            {
                "season_id": collection_id,
                "ps": self.settings.collection_page_size,
                "pn": 1,
            },
        )
        try:
            info = data["info"]
            medias = data.get("medias")
            return CollectionContents(
                info=CollectionInfo(
                    id=info["id"],
                    title=info["title"],
                    upper=self._parse_upper(info["upper"]),
                    cover=info.get("cover"),
                    intro=info.get("intro"),
                    media_count=info.get("media_count", 0),
                ),
                medias=None
                if medias is None
                else [
                    CollectionMedia(
                        id=media["id"],
                        bvid=media["bvid"],
                        title=media["title"],
                        upper=self._parse_upper(media["upper"]),
                        cover=media.get("cover"),
                        duration=media.get("duration", 0),
                    )
                    for media in medias
                ],
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise BilibiliApiError(
                f"Malformed collection {collection_id}", type="InvalidResponse", raw=data
            ) from e

    async def get_video_details(self, bvid: str) -> VideoDetails:
        data = await self._get(self.VIDEO_VIEW_PATH, {"bvid": bvid})
        try:
            return VideoDetails(
                aid=data["aid"],
                bvid=data["bvid"],
                title=data["title"],
                owner=self._parse_upper(data["owner"]),
                cid=data["cid"],
                pic=data.get("pic"),
                desc=data.get("desc"),
                duration=data.get("duration", 0),
                pages=[
                    VideoPage(
                        cid=page["cid"],
                        part=page["part"],
                        duration=page.get("duration", 0),
                        page=page.get("page", index),
                    )
                    for index, page in enumerate(data.get("pages") or [], start=1)
                ],
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise BilibiliApiError(
                f"Malformed video details for {bvid}", type="InvalidResponse", raw=data
            ) from e

    # =========================================================================
    # Parsers
    # =========================================================================

    def _parse_upper(self, data: dict[str, Any]) -> BilibiliUpper:
        return BilibiliUpper(mid=data["mid"], name=data["name"], face=data.get("face"))

    def _parse_favorite_info(self, data: dict[str, Any]) -> FavoriteFolderInfo:
        return FavoriteFolderInfo(
            id=data["id"],
            title=data["title"],
            upper=self._parse_upper(data["upper"]),
            cover=data.get("cover"),
            intro=data.get("intro"),
            media_count=data.get("media_count", 0),
        )

    def _parse_favorite_media(self, data: dict[str, Any]) -> FavoriteMedia:
        return FavoriteMedia(
            id=data["id"],
            bvid=data["bvid"],
            title=data["title"],
            upper=self._parse_upper(data["upper"]),
            cover=data.get("cover"),
            duration=data.get("duration", 0),
            pubdate=data.get("pubdate"),
            page=data.get("page", 1),
            type=data.get("type", 2),
            attr=data.get("attr", 0),
        )
