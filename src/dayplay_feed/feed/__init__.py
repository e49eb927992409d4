"""
Feed ranking engine: scoping, filtering, exclusion, scoring, ordering, paging.
"""

from dayplay_feed.feed.affinity import (
    AffinityScorer,
    CandidateScorer,
    UserAffinityProfile,
    VibeScorer,
    build_profile,
    spin,
    weighted_pick,
)
from dayplay_feed.feed.categories import CategoryNormalizer
from dayplay_feed.feed.city_scope import CityScopeResolver
from dayplay_feed.feed.errors import (
    DecisionError,
    FeedError,
    SessionNotFoundError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from dayplay_feed.feed.exclusion import ExclusionTracker, FeedSession, InMemorySessionBackend
from dayplay_feed.feed.geo import GeoFilter, distance_km
from dayplay_feed.feed.models import (
    FeedPage,
    FeedRequest,
    Listing,
    SwipeDirection,
    SwipeRecord,
    TrendingCount,
    UpvoteSignal,
    VibeSelection,
)
from dayplay_feed.feed.pagination import Paginator
from dayplay_feed.feed.service import FeedService
from dayplay_feed.feed.sorting import ScoreComposer, SortComposer
from dayplay_feed.feed.trending import TrendingScorer

__all__ = [
    "AffinityScorer",
    "CandidateScorer",
    "CategoryNormalizer",
    "CityScopeResolver",
    "DecisionError",
    "ExclusionTracker",
    "FeedError",
    "FeedPage",
    "FeedRequest",
    "FeedService",
    "FeedSession",
    "GeoFilter",
    "InMemorySessionBackend",
    "Listing",
    "Paginator",
    "ScoreComposer",
    "SessionNotFoundError",
    "SortComposer",
    "SwipeDirection",
    "SwipeRecord",
    "TrendingCount",
    "TrendingScorer",
    "UpstreamTimeoutError",
    "UpstreamUnavailableError",
    "UpvoteSignal",
    "UserAffinityProfile",
    "VibeScorer",
    "VibeSelection",
    "build_profile",
    "distance_km",
    "spin",
    "weighted_pick",
]
