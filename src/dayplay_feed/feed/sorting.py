"""
Score composition and the final feed order.

The order is a strict total order so that any permutation of the same
candidates sorts identically and page boundaries never shift between calls:

    1. featured before non-featured
    2. higher composite score
    3. smaller distance, unknown distance last
    4. title, case-insensitive
    5. listing id
"""

import math
from typing import Dict, List, Optional, Sequence, Tuple

from dayplay_feed.config.settings import ScoreComposition
from dayplay_feed.feed.affinity import CandidateScorer
from dayplay_feed.feed.models import Listing


class ScoreComposer:
    """
    Folds affinity and trending into one integer per listing.

    The composition rule comes from deployment settings, so every session of
    a deployment ranks the same way.
    """

    def __init__(
        self,
        composition: ScoreComposition,
        affinity: Optional[CandidateScorer] = None,
        trending_bonus: Optional[Dict[str, int]] = None,
    ):
        self.composition = composition
        self.affinity = affinity
        self.trending_bonus = trending_bonus or {}

    def score(self, listing: Listing) -> int:
        composition = self.composition
        if composition == ScoreComposition.NONE:
            return 0

        affinity = self.affinity.score(listing) if self.affinity is not None else 0
        trending = self.trending_bonus.get(listing.id, 0)

        if composition == ScoreComposition.AFFINITY:
            return affinity
        if composition == ScoreComposition.TRENDING:
            return trending
        return affinity + trending

    def annotate(self, candidates: Sequence[Listing]) -> List[Listing]:
        return [c.model_copy(update={"rank_score": self.score(c)}) for c in candidates]


class SortComposer:
    """Orders annotated candidates for serving."""

    @staticmethod
    def sort_key(listing: Listing) -> Tuple[bool, int, float, str, str]:
        distance = listing.distance_km if listing.distance_km is not None else math.inf
        return (
            not listing.is_featured,
            -listing.rank_score,
            distance,
            (listing.title or "").casefold(),
            listing.id,
        )

    @classmethod
    def sort(cls, candidates: Sequence[Listing]) -> List[Listing]:
        return sorted(candidates, key=cls.sort_key)
