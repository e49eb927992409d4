"""
Route modules for the API.

Each module exports a FastAPI APIRouter with endpoints
for a specific domain/feature.
"""

from dayplay_feed.api.routes import feed
from dayplay_feed.api.routes import health

__all__ = ["feed", "health"]
