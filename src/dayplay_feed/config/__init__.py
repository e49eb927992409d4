"""
Configuration for the feed service.

Usage:
    from dayplay_feed.config import get_settings

    settings = get_settings()
    timeout = settings.upstream_timeout_seconds
"""

from dayplay_feed.config.settings import ScoreComposition, Settings, StoreBackend, get_settings

__all__ = ["ScoreComposition", "Settings", "StoreBackend", "get_settings"]
