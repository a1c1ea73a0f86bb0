"""Natural-key generation for tracks.

The unique key correlates "the Nth item in the remote order" with "the row id the
resolver produced for it" without re-querying by business columns. Formats:

    bilibili::{bvid}          single-part video
    bilibili::{bvid}::{cid}   one part of a multi-part video
    local::{local_path}       local file
"""

from bbsync.domain.entities import (
    BilibiliMetadata,
    CreateTrackPayload,
    LocalMetadata,
    TrackMetadata,
    TrackSource,
)
from bbsync.domain.exceptions import ValidationError

KEY_SEPARATOR = "::"


def generate_unique_track_key(payload: CreateTrackPayload) -> str:
    """Derive the deterministic unique key of a track payload.

    Args:
        payload: Track payload; its metadata variant must match its source

    Returns:
        Source-specific unique key string

    Raises:
        ValidationError: Unknown source, mismatched metadata, or a multi-part
            payload without cid
    """
    return unique_key_for(payload.source, payload.metadata)


def unique_key_for(source: TrackSource | str, metadata: TrackMetadata) -> str:
    """Same as generate_unique_track_key() for callers holding source + metadata only."""
    try:
        source = TrackSource(source)
    except ValueError:
        raise ValidationError(f"Unknown track source: {source}") from None

    match source, metadata:
        case TrackSource.BILIBILI, BilibiliMetadata(bvid=bvid, is_multi_page=True, cid=cid):
            if cid is None:
                raise ValidationError(f"cid is required for multi-part track {bvid}")
            return f"{source.value}{KEY_SEPARATOR}{bvid}{KEY_SEPARATOR}{cid}"
        case TrackSource.BILIBILI, BilibiliMetadata(bvid=bvid):
            if not bvid:
                raise ValidationError("bvid is required for bilibili tracks")
            return f"{source.value}{KEY_SEPARATOR}{bvid}"
        case TrackSource.LOCAL, LocalMetadata(local_path=local_path):
            if not local_path:
                raise ValidationError("local_path is required for local tracks")
            return f"{source.value}{KEY_SEPARATOR}{local_path}"
        case _:
            raise ValidationError(
                f"Track source '{source.value}' does not match metadata "
                f"{type(metadata).__name__}"
            )


def bilibili_video_key(bvid: str) -> str:
    """Unique key of a single-part bilibili video."""
    return unique_key_for(TrackSource.BILIBILI, BilibiliMetadata(bvid=bvid))
