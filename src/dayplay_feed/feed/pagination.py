"""
Offset pagination over an already ordered candidate list.
"""

from typing import Sequence

from dayplay_feed.feed.models import FeedPage, Listing


class Paginator:
    """Stateless page slicer. The caller advances the page index."""

    @staticmethod
    def page(ordered: Sequence[Listing], page_index: int, page_size: int) -> FeedPage:
        """
        Slice `[page_index * page_size, page_index * page_size + page_size)`.

        Past the end returns no items but still reports the full total.

        Raises:
            ValueError: negative page index or non-positive page size.
        """
        if page_index < 0:
            raise ValueError(f"page_index must be >= 0, got {page_index}")
        if page_size <= 0:
            raise ValueError(f"page_size must be > 0, got {page_size}")

        start = page_index * page_size
        return FeedPage(items=list(ordered[start:start + page_size]), total=len(ordered))
