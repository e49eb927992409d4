"""
Pydantic models for the feed engine.

Models cover:
- Catalog listings (places and events) with per-request annotations
- Append-only signals: swipes, vibe selections, upvotes
- Trending aggregates
- Feed request / page contracts
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dayplay_feed.config.constants import DEFAULT_FILTER_CONFIG
from dayplay_feed.core.utils import parse_timestamp, utc_now


# =============================================================================
# Enums
# =============================================================================

class SwipeDirection(str, Enum):
    """Swipe decision. Only RIGHT counts toward affinity; both exclude."""
    LEFT = "left"    # pass
    RIGHT = "right"  # like


# =============================================================================
# Catalog
# =============================================================================

class Listing(BaseModel):
    """
    A place or event candidate, as stored by the import pipelines.

    `distance_km` and `rank_score` are per-request annotations set by the
    engine and never written back to the catalog.
    """
    id: str
    title: str = ""
    subtitle: Optional[str] = None
    description: Optional[str] = None
    category: str = ""
    price_tier: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None
    created_at: Optional[datetime] = None
    event_start: Optional[datetime] = None
    event_end: Optional[datetime] = None
    hours: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    is_featured: bool = False
    is_published: bool = False

    # Annotations (not persisted)
    distance_km: Optional[float] = None
    rank_score: int = 0

    @field_validator("price_tier", mode="before")
    @classmethod
    def _coerce_price_tier(cls, v: Any) -> Optional[int]:
        # Imports write 0 or junk for "unknown"; only 1-4 is a tier
        try:
            tier = int(v)
        except (TypeError, ValueError):
            return None
        return tier if 1 <= tier <= 4 else None

    @field_validator("tags", "images", mode="before")
    @classmethod
    def _none_to_list(cls, v: Any) -> List[str]:
        return list(v) if v else []

    @field_validator("created_at", "event_start", "event_end", mode="before")
    @classmethod
    def _parse_timestamps(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @field_validator("is_featured", "is_published", mode="before")
    @classmethod
    def _null_is_false(cls, v: Any) -> bool:
        return bool(v)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_event(self) -> bool:
        return self.event_start is not None


# =============================================================================
# Signals (append-only)
# =============================================================================

class SwipeRecord(BaseModel):
    """One swipe decision. Immutable once written."""
    model_config = ConfigDict(frozen=True)

    listing_id: str
    direction: SwipeDirection
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("tags", mode="before")
    @classmethod
    def _none_to_list(cls, v: Any) -> List[str]:
        return list(v) if v else []

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, v: Any) -> datetime:
        return parse_timestamp(v) or utc_now()

    @property
    def is_like(self) -> bool:
        return self.direction == SwipeDirection.RIGHT


class VibeSelection(BaseModel):
    """An explicit vibe picked in the decision helper ("spin wheel")."""
    model_config = ConfigDict(frozen=True)

    vibe: str
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, v: Any) -> datetime:
        return parse_timestamp(v) or utc_now()


class UpvoteSignal(BaseModel):
    """A positive popularity signal for a listing, tagged with its city."""
    model_config = ConfigDict(frozen=True)

    listing_id: str
    city: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_timestamp(cls, v: Any) -> datetime:
        return parse_timestamp(v) or utc_now()


class TrendingCount(BaseModel):
    """Upvote aggregate for one listing within a city scope."""
    model_config = ConfigDict(frozen=True)

    listing_id: str
    count: int
    recent_count: int = 0
    weighted_score: int = 0


# =============================================================================
# Feed Contracts
# =============================================================================

class FeedRequest(BaseModel):
    """
    One feed fetch. Empty lists mean "no filter".

    `categories` may hold canonical ids or raw display strings; they are
    normalized before matching.
    """
    user_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    user_lon: Optional[float] = Field(default=None, ge=-180, le=180)
    radius_km: float = Field(default=15.0, gt=0)
    categories: List[str] = Field(default_factory=list)
    price_tiers: List[int] = Field(default_factory=list)
    city: Optional[str] = None
    exclude_ids: List[str] = Field(default_factory=list)
    page: int = Field(default=0, ge=0)
    page_size: int = Field(default=20, ge=1)
    show_new_this_week: bool = False
    show_open_now: bool = False

    @field_validator("price_tiers")
    @classmethod
    def _valid_tiers(cls, v: List[int]) -> List[int]:
        allowed = DEFAULT_FILTER_CONFIG.PRICE_TIERS
        bad = [tier for tier in v if tier not in allowed]
        if bad:
            raise ValueError(f"price tiers must be one of {list(allowed)}, got {bad}")
        return sorted(set(v))

    @property
    def has_location(self) -> bool:
        return self.user_lat is not None and self.user_lon is not None


class FeedPage(BaseModel):
    """
    Ordered page of annotated listings.

    `total` counts the full filtered, de-duplicated candidate list before
    slicing: `total == 0` means no matches at all, an empty page with a
    positive total means the caller paged past the end.
    """
    items: List[Listing] = Field(default_factory=list)
    total: int = 0

    @property
    def ids(self) -> List[str]:
        return [item.id for item in self.items]
