"""Paginated detail fetch for favorite folders.

Hey future me - Bilibili has no "give me details for these ids" endpoint for
favorites. We walk the detail pages newest-first and pick out only the ids we still
need. Two natural exits: nothing left to find, or has_more == False. Whatever is
still outstanding after that was hidden by its uploader: the lightweight index keeps
listing it, but no detail page ever will. The caller drops those ids.

A third exit is the optional page cap. Ids left over when it trips are NOT hidden,
we simply never looked far enough, so they are reported as truncated instead.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from bbsync.domain.dtos import FavoriteListPage, FavoriteMedia
from bbsync.domain.exceptions import SyncFavoriteFailed
from bbsync.domain.ports import IBilibiliApi

logger = logging.getLogger(__name__)


@dataclass
class FetchOutcome:
    """Result of a favorite detail walk."""

    # bvid -> media, in the order they were found (page order)
    found: dict[str, FavoriteMedia] = field(default_factory=dict)
    # Ids that never showed up on any page, in the order they were requested
    hidden: list[str] = field(default_factory=list)
    # Ids still outstanding when max_pages stopped the walk early
    truncated: list[str] = field(default_factory=list)
    pages_requested: int = 0


async def fetch_favorite_details(
    api: IBilibiliApi,
    favorite_id: int,
    wanted: Iterable[str],
    max_pages: int | None = None,
    first_page: FavoriteListPage | None = None,
) -> FetchOutcome:
    """Collect detail records for the wanted bvids.

    Args:
        api: Bilibili API port
        favorite_id: Favorite folder id
        wanted: bvids whose details are needed
        max_pages: Optional hard cap on pages walked
        first_page: Page 1 if the caller already has it; it is not requested again

    Returns:
        FetchOutcome with the found medias and the hidden (or truncated) leftovers

    Raises:
        BilibiliApiError: A page request failed
        SyncFavoriteFailed: A page came back without a media list
    """
    outstanding = dict.fromkeys(wanted)
    outcome = FetchOutcome()
    has_more = True

    while outstanding and has_more:
        if max_pages is not None and outcome.pages_requested >= max_pages:
            logger.warning(
                f"Favorite {favorite_id}: stopped after {max_pages} pages "
                f"with {len(outstanding)} ids still outstanding"
            )
            outcome.truncated = list(outstanding)
            return outcome

        page_number = outcome.pages_requested + 1
        if page_number == 1 and first_page is not None:
            page = first_page
        else:
            page = await api.get_favorite_list_contents(favorite_id, page_number)
        outcome.pages_requested = page_number

        if page.medias is None:
            raise SyncFavoriteFailed(
                f"Favorite {favorite_id} page {page_number} returned no medias"
            )

        has_more = page.has_more
        for media in page.medias:
            if media.bvid in outstanding:
                outcome.found[media.bvid] = media
                del outstanding[media.bvid]

        logger.debug(
            f"Favorite {favorite_id} page {page_number}: {len(page.medias)} items, "
            f"{len(outstanding)} still outstanding"
        )

    outcome.hidden = list(outstanding)
    return outcome
