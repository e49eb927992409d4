"""
HTTP surface for the feed engine.

Routes are organized by feature; `create_app` mounts them on one FastAPI app.
"""

from dayplay_feed.api.app import create_app

__all__ = ["create_app"]
