"""Configuration module for bbsync."""

from .settings import BilibiliSettings, DatabaseSettings, Settings, get_settings

__all__ = ["BilibiliSettings", "DatabaseSettings", "Settings", "get_settings"]
