"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod

from bbsync.domain.dtos import (
    CollectionContents,
    FavoriteIndexItem,
    FavoriteListPage,
    VideoDetails,
)
from bbsync.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationType,
)


class IBilibiliApi(ABC):
    """Port for the Bilibili web API.

    Every method raises BilibiliApiError on transport failure, non-zero response
    code or malformed payload. The sync engine never retries these.
    """

    @abstractmethod
    async def get_favorite_list_all_contents(
        self, favorite_id: int
    ) -> list[FavoriteIndexItem]:
        """
        Get the lightweight id index of a favorite folder.

        Args:
            favorite_id: Favorite folder id (media_id)

        Returns:
            Every indexed item in remote order (newest first), any content type
        """
        pass

    @abstractmethod
    async def get_favorite_list_contents(
        self, favorite_id: int, page: int
    ) -> FavoriteListPage:
        """
        Get one detail page of a favorite folder.

        Args:
            favorite_id: Favorite folder id (media_id)
            page: 1-based page number

        Returns:
            Folder info, the page's medias and whether more pages follow
        """
        pass

    @abstractmethod
    async def get_collection_all_contents(
        self, collection_id: int
    ) -> CollectionContents:
        """Get collection metadata and every item in one call."""
        pass

    @abstractmethod
    async def get_video_details(self, bvid: str) -> VideoDetails:
        """Get video details including the list of parts."""
        pass


__all__ = [
    "IBilibiliApi",
    "INotificationProvider",
    "Notification",
    "NotificationType",
]
