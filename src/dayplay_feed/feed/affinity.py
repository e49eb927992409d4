"""
Affinity scoring from the user's own swipe history.

Scores are small additive integers, never probabilities:
- base 1 so a zero-affinity listing still competes
- +3 when the listing's category is one of the user's top liked categories
- +1 per liked tag the listing carries, capped at 4

The decision helper ("spin") reuses the same shape with a vibe in place of
the history profile, and turns the scores into weights for a random pick.
"""

import random
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, TypeVar, runtime_checkable

from dayplay_feed.config.constants import (
    DEFAULT_AFFINITY_CONFIG,
    DEFAULT_VIBE_CONFIG,
    VIBE_CATEGORIES,
    VIBE_KEYWORDS,
    AffinityConfig,
    VibeConfig,
)
from dayplay_feed.core.utils import normalize_string_set
from dayplay_feed.feed.categories import CategoryNormalizer, get_category_normalizer
from dayplay_feed.feed.errors import DecisionError
from dayplay_feed.feed.models import Listing, SwipeRecord, VibeSelection


T = TypeVar("T")


@runtime_checkable
class CandidateScorer(Protocol):
    """Anything that maps a listing to a non-negative integer score."""

    def score(self, listing: Listing) -> int:
        ...


# =============================================================================
# Profile
# =============================================================================

@dataclass
class UserAffinityProfile:
    """
    Like counts per canonical category and per tag.

    Derived only from right swipes and explicit vibe picks, so counts are
    non-negative and only grow as the log grows.
    """
    category_counts: Dict[str, int] = field(default_factory=dict)
    tag_counts: Dict[str, int] = field(default_factory=dict)
    likes: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.category_counts and not self.tag_counts

    def top_categories(self, n: int = 3) -> List[str]:
        """Most liked categories; ties broken alphabetically."""
        ranked = sorted(self.category_counts.items(), key=lambda kv: (-kv[1], kv[0]))
        return [category for category, _ in ranked[:n]]

    def to_dict(self) -> Dict[str, object]:
        return {
            "likes": self.likes,
            "top_categories": self.top_categories(),
            "category_counts": dict(self.category_counts),
            "tag_counts": dict(self.tag_counts),
        }


def build_profile(
    swipes: Sequence[SwipeRecord],
    vibe_selections: Iterable[VibeSelection] = (),
    window: int = 50,
    normalizer: Optional[CategoryNormalizer] = None,
) -> UserAffinityProfile:
    """
    Build an affinity profile from the most recent `window` swipes.

    Order of `swipes` does not matter: records are ranked by timestamp.
    Vibe selections count as one liked tag each (the vibe id).
    """
    normalizer = normalizer or get_category_normalizer()

    recent = sorted(swipes, key=lambda s: s.timestamp, reverse=True)[:window]
    liked = [s for s in recent if s.is_like]

    categories: Counter = Counter()
    tags: Counter = Counter()
    for swipe in liked:
        if swipe.category:
            categories[normalizer.normalize(swipe.category)] += 1
        tags.update(normalize_string_set(swipe.tags))

    for selection in vibe_selections:
        if selection.vibe:
            tags[selection.vibe.strip().lower()] += 1

    return UserAffinityProfile(
        category_counts=dict(categories),
        tag_counts=dict(tags),
        likes=len(liked),
    )


# =============================================================================
# Scorers
# =============================================================================

class AffinityScorer:
    """Scores listings against one user's affinity profile."""

    def __init__(
        self,
        profile: UserAffinityProfile,
        config: AffinityConfig = DEFAULT_AFFINITY_CONFIG,
        normalizer: Optional[CategoryNormalizer] = None,
    ):
        self.profile = profile
        self.config = config
        self.normalizer = normalizer or get_category_normalizer()
        self._top_categories = frozenset(profile.top_categories(config.TOP_CATEGORIES))
        self._liked_tags = frozenset(profile.tag_counts)

    def score(self, listing: Listing) -> int:
        cfg = self.config
        total = cfg.BASE_SCORE

        if self.normalizer.normalize(listing.category) in self._top_categories:
            total += min(cfg.CATEGORY_BONUS, cfg.RULE_CAP)

        matching = len(normalize_string_set(listing.tags) & self._liked_tags)
        total += min(matching, cfg.TAG_BONUS_CAP, cfg.RULE_CAP)

        return total


class VibeScorer:
    """
    Scores listings for an explicitly chosen vibe.

    Unknown vibes only get the base score plus a tag match, so every
    candidate stays pickable.
    """

    def __init__(
        self,
        vibe: str,
        config: VibeConfig = DEFAULT_VIBE_CONFIG,
        normalizer: Optional[CategoryNormalizer] = None,
    ):
        normalizer = normalizer or get_category_normalizer()
        self.vibe = vibe.strip().lower()
        self.config = config
        self._categories = tuple(
            normalizer.normalize(c).lower() for c in VIBE_CATEGORIES.get(self.vibe, ())
        )
        pattern, bonus = VIBE_KEYWORDS.get(self.vibe, (None, 0))
        self._keywords = re.compile(pattern, re.IGNORECASE) if pattern else None
        self._keyword_bonus = bonus

    def score(self, listing: Listing) -> int:
        cfg = self.config
        total = cfg.BASE_SCORE

        category = (listing.category or "").lower()
        if category and any(c in category for c in self._categories):
            total += min(cfg.CATEGORY_BONUS, cfg.RULE_CAP)

        if self.vibe in normalize_string_set(listing.tags):
            total += min(cfg.TAG_BONUS, cfg.RULE_CAP)

        if self._keywords is not None:
            text = f"{listing.title or ''} {listing.description or ''}"
            if self._keywords.search(text):
                total += min(self._keyword_bonus, cfg.RULE_CAP)

        return total


# =============================================================================
# Weighted Pick
# =============================================================================

def weighted_pick(
    candidates: Sequence[T],
    weights: Sequence[float],
    rng: Optional[random.Random] = None,
) -> T:
    """
    Pick one candidate with probability proportional to its weight.

    Draws r uniformly from [0, total) and returns the first candidate whose
    cumulative weight exceeds r. Falls back to a uniform choice when the
    total weight is not positive. Pass a seeded `random.Random` for
    reproducible picks.

    Raises:
        ValueError: empty candidates, or weights of a different length.
    """
    if not candidates:
        raise ValueError("weighted_pick needs at least one candidate")
    if len(candidates) != len(weights):
        raise ValueError(
            f"got {len(weights)} weights for {len(candidates)} candidates"
        )

    rng = rng or random.Random()
    # Negative weights would make the cumulative walk non-monotonic
    clean = [max(float(w), 0.0) for w in weights]
    total = sum(clean)
    if total <= 0:
        return candidates[rng.randrange(len(candidates))]

    r = rng.random() * total
    cumulative = 0.0
    for candidate, weight in zip(candidates, clean):
        cumulative += weight
        if r < cumulative:
            return candidate
    return candidates[-1]


def spin(
    candidates: Sequence[Listing],
    vibe: str,
    rng: Optional[random.Random] = None,
    config: VibeConfig = DEFAULT_VIBE_CONFIG,
) -> Listing:
    """
    Decision helper: pick one of the user's candidates for a vibe.

    Raises:
        DecisionError: fewer than `config.MIN_CANDIDATES` candidates.
    """
    if len(candidates) < config.MIN_CANDIDATES:
        raise DecisionError(
            f"need at least {config.MIN_CANDIDATES} candidates to spin, got {len(candidates)}"
        )
    scorer = VibeScorer(vibe, config=config)
    weights = [scorer.score(listing) for listing in candidates]
    return weighted_pick(candidates, weights, rng)
