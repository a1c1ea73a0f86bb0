"""Data transfer objects for Bilibili API responses.

Hey future me - these are dumb data carriers. The HTTP client parses raw JSON into
them (see BilibiliClient._parse_*), the sync services only ever see these shapes.
Field names follow the Bilibili JSON keys so the mapping stays obvious.
"""

from dataclasses import dataclass, field

# Bilibili favorite index "type" for ordinary video uploads. Audio (12) and
# collections (21) also show up in the index and are skipped by sync.
FAVORITE_ITEM_TYPE_VIDEO = 2


@dataclass
class BilibiliUpper:
    """Uploader / owner info as embedded in list and detail payloads."""

    mid: int
    name: str
    face: str | None = None


@dataclass
class FavoriteIndexItem:
    """One entry of the lightweight favorite index (/x/v3/fav/resource/ids)."""

    id: int
    bvid: str
    type: int

    @property
    def is_video(self) -> bool:
        return self.type == FAVORITE_ITEM_TYPE_VIDEO


@dataclass
class FavoriteMedia:
    """One item of a favorite detail page."""

    id: int
    bvid: str
    title: str
    upper: BilibiliUpper
    cover: str | None = None
    duration: int = 0
    pubdate: int | None = None
    page: int = 1
    type: int = FAVORITE_ITEM_TYPE_VIDEO
    # 0 means the video is visible; anything else is deleted or restricted
    attr: int = 0


@dataclass
class FavoriteFolderInfo:
    """Favorite folder metadata returned alongside every detail page."""

    id: int
    title: str
    upper: BilibiliUpper
    cover: str | None = None
    intro: str | None = None
    media_count: int = 0


@dataclass
class FavoriteListPage:
    """One page of /x/v3/fav/resource/list.

    ``medias`` is None when Bilibili returns a null list (empty or broken folder).
    """

    info: FavoriteFolderInfo
    medias: list[FavoriteMedia] | None
    has_more: bool = False


@dataclass
class CollectionMedia:
    """One item of a collection (season) listing."""

    id: int
    bvid: str
    title: str
    upper: BilibiliUpper
    cover: str | None = None
    duration: int = 0


@dataclass
class CollectionInfo:
    """Collection (season) metadata."""

    id: int
    title: str
    upper: BilibiliUpper
    cover: str | None = None
    intro: str | None = None
    media_count: int = 0


@dataclass
class CollectionContents:
    """Full listing of a collection in a single call."""

    info: CollectionInfo
    medias: list[CollectionMedia] | None


@dataclass
class VideoPage:
    """One part of a (possibly multi-part) video."""

    cid: int
    part: str
    duration: int = 0
    page: int = 1


@dataclass
class VideoDetails:
    """Video detail payload (/x/web-interface/view)."""

    aid: int
    bvid: str
    title: str
    owner: BilibiliUpper
    cid: int
    pic: str | None = None
    desc: str | None = None
    duration: int = 0
    pages: list[VideoPage] = field(default_factory=list)


@dataclass
class RemotePlaylistMetadata:
    """Title, description and cover of a remote favorite, collection or multi-part video."""

    title: str
    description: str | None = None
    cover_url: str | None = None


__all__ = [
    "FAVORITE_ITEM_TYPE_VIDEO",
    "BilibiliUpper",
    "CollectionContents",
    "CollectionInfo",
    "CollectionMedia",
    "FavoriteFolderInfo",
    "FavoriteIndexItem",
    "FavoriteListPage",
    "FavoriteMedia",
    "RemotePlaylistMetadata",
    "VideoDetails",
    "VideoPage",
]
