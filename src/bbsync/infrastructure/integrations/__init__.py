"""Integrations with external services."""

from bbsync.infrastructure.integrations.bilibili_client import BilibiliClient
from bbsync.infrastructure.integrations.bilibili_ids import av2bv, bv2av

__all__ = ["BilibiliClient", "av2bv", "bv2av"]
