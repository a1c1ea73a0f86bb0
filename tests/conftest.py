"""Shared fixtures.

Hey future me - FakeBilibiliApi is an in-memory stand-in for the remote API. It
serves favorites page by page (hidden ids are in the index but on no page), records
every call, and can hold calls on an asyncio.Event so tests can line up concurrent
syncs deterministically.
"""

import asyncio
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest

from bbsync.application.services import PlaylistActionsService, PlaylistSyncService
from bbsync.config import DatabaseSettings, Settings
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
from bbsync.infrastructure.notifications import InAppNotificationProvider
from bbsync.infrastructure.persistence import Database


def make_upper(mid: int) -> BilibiliUpper:
    return BilibiliUpper(mid=mid, name=f"uploader-{mid}", face=f"https://i0.hdslb.com/face/{mid}.jpg")


def make_media(bvid: str, upper_mid: int = 100, attr: int = 0) -> FavoriteMedia:
    return FavoriteMedia(
        id=sum(ord(char) for char in bvid),
        bvid=bvid,
        title=f"Video {bvid}",
        upper=make_upper(upper_mid),
        cover=f"https://i0.hdslb.com/cover/{bvid}.jpg",
        duration=200,
        pubdate=1_700_000_000,
        attr=attr,
    )


class FakeBilibiliApi(IBilibiliApi):
    """In-memory IBilibiliApi."""

    def __init__(self) -> None:
        self.favorites: dict[int, dict[str, Any]] = {}
        self.collections: dict[int, CollectionContents] = {}
        self.videos: dict[str, VideoDetails] = {}
        self.calls: list[tuple[str, Any]] = []
        self.errors: dict[str, Exception] = {}
        # When set, every call waits on it before answering
        self.gate: asyncio.Event | None = None

    # -- setup helpers -------------------------------------------------------

    def set_favorite(
        self,
        favorite_id: int,
        medias: list[FavoriteMedia],
        hidden: list[str] | None = None,
        index: list[str] | None = None,
        page_size: int = 20,
        owner_mid: int = 1,
        extra_index_items: list[FavoriteIndexItem] | None = None,
    ) -> None:
        hidden = hidden or []
        bvids = index if index is not None else [m.bvid for m in medias] + hidden
        index_items = [FavoriteIndexItem(id=i + 1, bvid=bvid, type=2) for i, bvid in enumerate(bvids)]
        index_items.extend(extra_index_items or [])
        self.favorites[favorite_id] = {
            "info": FavoriteFolderInfo(
                id=favorite_id,
                title=f"Favorite {favorite_id}",
                upper=make_upper(owner_mid),
                cover=f"https://i0.hdslb.com/fav/{favorite_id}.jpg",
                intro="my favorites",
                media_count=len(bvids),
            ),
            "index": index_items,
            "visible": [m for m in medias if m.bvid not in hidden],
            "page_size": page_size,
        }

    def set_collection(
        self, collection_id: int, medias: list[CollectionMedia] | None, owner_mid: int = 1
    ) -> None:
        self.collections[collection_id] = CollectionContents(
            info=CollectionInfo(
                id=collection_id,
                title=f"Collection {collection_id}",
                upper=make_upper(owner_mid),
                cover="https://i0.hdslb.com/season.jpg",
                intro="a season",
                media_count=len(medias or []),
            ),
            medias=medias,
        )

    def set_video(self, bvid: str, aid: int, parts: list[tuple[int, str]], owner_mid: int = 7) -> None:
        self.videos[bvid] = VideoDetails(
            aid=aid,
            bvid=bvid,
            title=f"Video {bvid}",
            owner=make_upper(owner_mid),
            cid=parts[0][0] if parts else 0,
            pic=f"https://i0.hdslb.com/pic/{bvid}.jpg",
            desc="parts",
            duration=sum(60 for _ in parts),
            pages=[
                VideoPage(cid=cid, part=part, duration=60, page=index)
                for index, (cid, part) in enumerate(parts, start=1)
            ],
        )

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    async def _enter(self, method: str, args: Any) -> None:
        self.calls.append((method, args))
        if self.gate is not None:
            await self.gate.wait()
        if method in self.errors:
            raise self.errors[method]

    # -- IBilibiliApi --------------------------------------------------------

    async def get_favorite_list_all_contents(self, favorite_id: int) -> list[FavoriteIndexItem]:
        await self._enter("get_favorite_list_all_contents", favorite_id)
        return list(self.favorites[favorite_id]["index"])

    async def get_favorite_list_contents(self, favorite_id: int, page: int) -> FavoriteListPage:
        await self._enter("get_favorite_list_contents", (favorite_id, page))
        folder = self.favorites[favorite_id]
        size = folder["page_size"]
        visible = folder["visible"]
        start = (page - 1) * size
        return FavoriteListPage(
            info=folder["info"],
            medias=visible[start : start + size],
            has_more=start + size < len(visible),
        )

    async def get_collection_all_contents(self, collection_id: int) -> CollectionContents:
        await self._enter("get_collection_all_contents", collection_id)
        if collection_id not in self.collections:
            raise BilibiliApiError(f"Collection {collection_id} not found", type="ResponseFailed", msg_code=-404)
        return self.collections[collection_id]

    async def get_video_details(self, bvid: str) -> VideoDetails:
        await self._enter("get_video_details", bvid)
        if bvid not in self.videos:
            raise BilibiliApiError(f"Video {bvid} not found", type="ResponseFailed", msg_code=-404)
        return self.videos[bvid]


@pytest.fixture
def fake_api() -> FakeBilibiliApi:
    return FakeBilibiliApi()


@pytest.fixture
def media_factory() -> Callable[..., FavoriteMedia]:
    return make_media


@pytest.fixture
def collection_media_factory() -> Callable[..., CollectionMedia]:
    def _make(bvid: str, upper_mid: int = 100) -> CollectionMedia:
        return CollectionMedia(
            id=sum(ord(char) for char in bvid),
            bvid=bvid,
            title=f"Episode {bvid}",
            upper=make_upper(upper_mid),
            cover=f"https://i0.hdslb.com/cover/{bvid}.jpg",
            duration=300,
        )

    return _make


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite file."""
    return Settings(database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path}/test.db"))


@pytest.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database(settings)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def notifier() -> InAppNotificationProvider:
    return InAppNotificationProvider(max_count=10)


@pytest.fixture
def sync_service(
    fake_api: FakeBilibiliApi, database: Database, notifier: InAppNotificationProvider
) -> PlaylistSyncService:
    return PlaylistSyncService(
        bilibili_api=fake_api,
        session_scope=database.session_scope,
        notifier=notifier,
    )


@pytest.fixture
def actions_service(fake_api: FakeBilibiliApi, database: Database) -> PlaylistActionsService:
    return PlaylistActionsService(bilibili_api=fake_api, session_scope=database.session_scope)
