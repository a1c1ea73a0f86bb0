"""Unit tests for track unique-key generation."""

import pytest

from bbsync.application.services.track_keys import (
    bilibili_video_key,
    generate_unique_track_key,
    unique_key_for,
)
from bbsync.domain.entities import (
    BilibiliMetadata,
    CreateTrackPayload,
    LocalMetadata,
    TrackSource,
)
from bbsync.domain.exceptions import ValidationError


class TestGenerateUniqueTrackKey:
    """Key format per source and metadata variant."""

    def test_single_part_video(self) -> None:
        payload = CreateTrackPayload(
            title="t", source=TrackSource.BILIBILI, metadata=BilibiliMetadata(bvid="BV1xx411c7mD")
        )
        assert generate_unique_track_key(payload) == "bilibili::BV1xx411c7mD"

    def test_multi_part_video_includes_cid(self) -> None:
        payload = CreateTrackPayload(
            title="P2",
            source=TrackSource.BILIBILI,
            metadata=BilibiliMetadata(bvid="BV1xx411c7mD", cid=98765, is_multi_page=True),
        )
        assert generate_unique_track_key(payload) == "bilibili::BV1xx411c7mD::98765"

    def test_cid_ignored_for_single_part(self) -> None:
        """A cid on a single-part track doesn't change its identity."""
        metadata = BilibiliMetadata(bvid="BV1xx411c7mD", cid=1, is_multi_page=False)
        assert unique_key_for(TrackSource.BILIBILI, metadata) == "bilibili::BV1xx411c7mD"

    def test_local_file(self) -> None:
        payload = CreateTrackPayload(
            title="song",
            source=TrackSource.LOCAL,
            metadata=LocalMetadata(local_path="/music/a.flac"),
        )
        assert generate_unique_track_key(payload) == "local::/music/a.flac"

    def test_multi_part_without_cid_rejected(self) -> None:
        metadata = BilibiliMetadata(bvid="BV1xx411c7mD", is_multi_page=True)
        with pytest.raises(ValidationError, match="cid"):
            unique_key_for(TrackSource.BILIBILI, metadata)

    def test_source_metadata_mismatch_rejected(self) -> None:
        with pytest.raises(ValidationError, match="does not match"):
            unique_key_for(TrackSource.LOCAL, BilibiliMetadata(bvid="BV1xx411c7mD"))
        with pytest.raises(ValidationError, match="does not match"):
            unique_key_for(TrackSource.BILIBILI, LocalMetadata(local_path="/a.mp3"))

    def test_unknown_source_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Unknown track source"):
            unique_key_for("youtube", BilibiliMetadata(bvid="BV1xx411c7mD"))

    def test_string_source_accepted(self) -> None:
        assert unique_key_for("bilibili", BilibiliMetadata(bvid="BV1")) == "bilibili::BV1"

    def test_empty_identity_rejected(self) -> None:
        with pytest.raises(ValidationError):
            unique_key_for(TrackSource.BILIBILI, BilibiliMetadata(bvid=""))
        with pytest.raises(ValidationError):
            unique_key_for(TrackSource.LOCAL, LocalMetadata(local_path=""))

    def test_video_key_shortcut(self) -> None:
        assert bilibili_video_key("BV17x411w7KC") == "bilibili::BV17x411w7KC"
