"""
Popularity ranking from upvote signals.

A listing's trending score is its upvote count inside the resolved city
scope, with upvotes from the last `recent_days` optionally weighted higher.
With the default weight of 1 the score is a plain count.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence

from dayplay_feed.config.constants import DEFAULT_TRENDING_CONFIG
from dayplay_feed.core.utils import utc_now
from dayplay_feed.feed.models import SwipeRecord, TrendingCount, UpvoteSignal


class TrendingScorer:
    """Aggregates upvote signals into a ranked list of TrendingCount."""

    def __init__(self, recent_days: int = 7, recent_weight: int = 1):
        if recent_weight < 1:
            raise ValueError("recent_weight must be >= 1")
        self.recent_days = recent_days
        self.recent_weight = recent_weight

    def rank(
        self,
        city_scope: AbstractSet[str],
        signals: Iterable[UpvoteSignal],
        window: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> List[TrendingCount]:
        """
        Count signals per listing and rank them.

        Args:
            city_scope: Raw localities to count; empty means every city.
            signals: Upvote signals, any order.
            window: Ignore signals older than now - window.
            now: Reference time (defaults to the current UTC time).

        Returns:
            Every listing with at least one counted signal, by weighted score
            descending then listing id ascending.
        """
        now = now or utc_now()
        since = now - window if window is not None else None
        recent_since = now - timedelta(days=self.recent_days)
        scope = {c.lower() for c in city_scope}

        counts: Counter = Counter()
        recent: Counter = Counter()
        for signal in signals:
            if scope and (signal.city or "").lower() not in scope:
                continue
            if since is not None and signal.created_at < since:
                continue
            counts[signal.listing_id] += 1
            if signal.created_at >= recent_since:
                recent[signal.listing_id] += 1

        ranked = [
            TrendingCount(
                listing_id=listing_id,
                count=count,
                recent_count=recent[listing_id],
                weighted_score=count + (self.recent_weight - 1) * recent[listing_id],
            )
            for listing_id, count in counts.items()
        ]
        ranked.sort(key=lambda t: (-t.weighted_score, t.listing_id))
        return ranked

    @staticmethod
    def from_swipes(
        swipes: Iterable[SwipeRecord],
        min_likes: int = DEFAULT_TRENDING_CONFIG.MIN_LIKES_FROM_SWIPES,
    ) -> List[TrendingCount]:
        """
        Popularity from a like-swipe log: listings liked at least `min_likes`
        times, ranked like rank().
        """
        likes = Counter(s.listing_id for s in swipes if s.is_like)
        ranked = [
            TrendingCount(listing_id=listing_id, count=count, weighted_score=count)
            for listing_id, count in likes.items()
            if count >= min_likes
        ]
        ranked.sort(key=lambda t: (-t.weighted_score, t.listing_id))
        return ranked

    @staticmethod
    def rank_bonus(ranking: Sequence[TrendingCount], slots: int = 5) -> Dict[str, int]:
        """
        Inverse-rank bonus for the top `slots` listings.

        >>> TrendingScorer.rank_bonus([TrendingCount(listing_id="a", count=9),
        ...                            TrendingCount(listing_id="b", count=4)])
        {'a': 5, 'b': 4}
        """
        return {t.listing_id: slots - i for i, t in enumerate(ranking[:slots])}
