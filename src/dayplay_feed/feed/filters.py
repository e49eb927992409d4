"""
Attribute filters applied after the distance stage.

The catalog query already narrows by category and price tier; these run again
in-process so the in-memory store and the Supabase store behave identically,
and so rows whose category text was never canonicalized still match.
"""

from datetime import datetime, timedelta
from typing import AbstractSet, Iterable, List, Optional

from dayplay_feed.config.constants import DEFAULT_FILTER_CONFIG, FilterConfig
from dayplay_feed.core.utils import utc_now
from dayplay_feed.feed.categories import CategoryNormalizer, get_category_normalizer
from dayplay_feed.feed.models import FeedRequest, Listing


class FeedFilters:
    """Request-scoped filter chain."""

    def __init__(
        self,
        normalizer: Optional[CategoryNormalizer] = None,
        config: FilterConfig = DEFAULT_FILTER_CONFIG,
    ):
        self.normalizer = normalizer or get_category_normalizer()
        self.config = config

    def by_category(self, candidates: Iterable[Listing], categories: Iterable[str]) -> List[Listing]:
        wanted = self.normalizer.normalize_all(categories)
        if not wanted:
            return list(candidates)
        return [c for c in candidates if self.normalizer.normalize(c.category) in wanted]

    @staticmethod
    def by_price_tier(candidates: Iterable[Listing], tiers: AbstractSet[int]) -> List[Listing]:
        """Listings without a tier always pass."""
        if not tiers:
            return list(candidates)
        return [c for c in candidates if c.price_tier is None or c.price_tier in tiers]

    def new_this_week(self, candidates: Iterable[Listing], now: datetime) -> List[Listing]:
        cutoff = now - timedelta(days=self.config.NEW_THIS_WEEK_DAYS)
        return [c for c in candidates if c.created_at is not None and c.created_at > cutoff]

    @staticmethod
    def is_open(listing: Listing, now: datetime) -> bool:
        """
        Places count as open when they publish hours; events when now falls
        inside their start/end window.
        """
        if listing.is_event:
            end = listing.event_end or listing.event_start
            return listing.event_start <= now <= end
        return bool(listing.hours and listing.hours.strip())

    def open_now(self, candidates: Iterable[Listing], now: datetime) -> List[Listing]:
        return [c for c in candidates if self.is_open(c, now)]

    def apply(
        self,
        candidates: Iterable[Listing],
        request: FeedRequest,
        now: Optional[datetime] = None,
    ) -> List[Listing]:
        now = now or utc_now()
        result = self.by_category(candidates, request.categories)
        result = self.by_price_tier(result, set(request.price_tiers))
        if request.show_new_this_week:
            result = self.new_this_week(result, now)
        if request.show_open_now:
            result = self.open_now(result, now)
        return result
