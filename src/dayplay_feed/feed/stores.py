"""
Storage adapters for the catalog, the swipe log and upvote signals.

The engine only sees the three Protocols below. Two implementations ship:

- Supabase*: PostgREST queries through the shared Supabase client. Any
  client error is re-raised as UpstreamUnavailableError naming the source.
- InMemory*: lock-guarded lists for tests and local development.

Tables:
    listings          catalog rows (+ listing_photos for images)
    swipes            user_id, listing_id, direction, created_at
    vibe_selections   user_id, vibe, created_at
    listing_upvotes   user_id, listing_id, created_at
"""

from datetime import datetime
from threading import Lock
from typing import (
    AbstractSet, Any, Dict, FrozenSet, Iterable, List, Optional, Protocol, Sequence,
)

from supabase import Client

from dayplay_feed.core.logging import LoggerMixin
from dayplay_feed.core.utils import chunk_list, utc_now
from dayplay_feed.feed.errors import UpstreamUnavailableError
from dayplay_feed.feed.models import (
    Listing, SwipeDirection, SwipeRecord, UpvoteSignal, VibeSelection,
)


# PostgREST returns at most this many rows per request
POSTGREST_PAGE_SIZE = 1000
# Most recent swipes read for affinity scoring
MAX_HISTORY = 200
# Ids per `in` filter; longer lists blow the URL length limit
ID_CHUNK_SIZE = 100

LISTING_COLUMNS = (
    "id, title, subtitle, description, category, price_tier, latitude, longitude, "
    "city, created_at, event_start, event_end, hours, tags, is_featured, is_published, "
    "listing_photos(url, sort_order)"
)


# =============================================================================
# Protocols
# =============================================================================

class CatalogStore(Protocol):
    def fetch_published_listings(
        self,
        city_scope: AbstractSet[str],
        categories: Sequence[str],
        price_tiers: Sequence[int],
    ) -> List[Listing]:
        """Published listings, pre-narrowed by scope. Empty arguments mean no narrowing."""
        ...

    def fetch_listings(self, listing_ids: Sequence[str]) -> List[Listing]:
        ...


class SwipeLog(Protocol):
    def history(self, user_id: str, limit: int = MAX_HISTORY) -> List[SwipeRecord]:
        """Newest first."""
        ...

    def swiped_ids(self, user_id: str) -> FrozenSet[str]:
        """Every listing id the user has ever swiped. Never truncated."""
        ...

    def append(self, user_id: str, record: SwipeRecord) -> None:
        ...

    def vibe_selections(self, user_id: str) -> List[VibeSelection]:
        ...

    def append_vibe_selection(self, user_id: str, selection: VibeSelection) -> None:
        ...


class SignalStore(Protocol):
    def fetch_upvotes(
        self,
        city_scope: AbstractSet[str],
        since: Optional[datetime] = None,
    ) -> List[UpvoteSignal]:
        ...


# =============================================================================
# Row Mapping
# =============================================================================

def listing_from_row(row: Dict[str, Any]) -> Listing:
    """Map a `listings` row (with embedded photos) to a Listing."""
    data = dict(row)
    photos = data.pop("listing_photos", None) or []
    if photos and not data.get("images"):
        ordered = sorted(photos, key=lambda p: p.get("sort_order") or 0)
        data["images"] = [p["url"] for p in ordered if p.get("url")]
    return Listing.model_validate(data)


def swipe_from_row(row: Dict[str, Any]) -> SwipeRecord:
    listing = row.get("listings") or {}
    return SwipeRecord(
        listing_id=str(row["listing_id"]),
        direction=SwipeDirection(row["direction"]),
        category=listing.get("category") or row.get("category") or "",
        tags=listing.get("tags") or row.get("tags") or [],
        timestamp=row.get("created_at"),
    )


def upvote_from_row(row: Dict[str, Any]) -> UpvoteSignal:
    listing = row.get("listings") or {}
    return UpvoteSignal(
        listing_id=str(row["listing_id"]),
        city=listing.get("city") or row.get("city"),
        created_at=row.get("created_at"),
    )


# =============================================================================
# Supabase Implementations
# =============================================================================

def scope_by_city(query, column: str, city_scope: AbstractSet[str]):
    """
    Narrow a query to a resolved city scope.

    A single city (anything outside the metro table) is matched
    case-insensitively with `ilike`. Metro scopes come from the curated
    table, whose labels match the stored spelling, and use one `in` filter.
    """
    if not city_scope:
        return query
    if len(city_scope) == 1:
        (city,) = city_scope
        pattern = city.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        return query.ilike(column, pattern)
    return query.in_(column, sorted(city_scope))


class SupabaseCatalogStore(LoggerMixin):
    """Catalog reads against the `listings` table."""

    source = "catalog"

    def __init__(self, client: Client, fetch_limit: int = 3000):
        self.client = client
        self.fetch_limit = fetch_limit

    def _base_query(self):
        return (
            self.client.table("listings")
            .select(LISTING_COLUMNS)
            .eq("is_published", True)
        )

    def fetch_published_listings(
        self,
        city_scope: AbstractSet[str],
        categories: Sequence[str],
        price_tiers: Sequence[int],
    ) -> List[Listing]:
        rows: List[Dict[str, Any]] = []
        try:
            offset = 0
            while offset < self.fetch_limit:
                query = scope_by_city(self._base_query(), "city", city_scope)
                if categories:
                    query = query.in_("category", list(categories))
                if price_tiers:
                    tiers = ",".join(str(t) for t in sorted(price_tiers))
                    query = query.or_(f"price_tier.is.null,price_tier.in.({tiers})")

                # Newest first so fresh imports survive fetch_limit; id keeps pages stable
                end = min(offset + POSTGREST_PAGE_SIZE, self.fetch_limit) - 1
                batch = (
                    query.order("created_at", desc=True, nullsfirst=False)
                    .order("id")
                    .range(offset, end)
                    .execute()
                    .data or []
                )
                rows.extend(batch)
                if len(batch) < end - offset + 1:
                    break
                offset = end + 1
        except Exception as e:
            raise UpstreamUnavailableError(self.source, f"catalog query failed: {e}") from e

        self.logger.debug("Catalog rows fetched", rows=len(rows), cities=len(city_scope))
        return [listing_from_row(row) for row in rows]

    def fetch_listings(self, listing_ids: Sequence[str]) -> List[Listing]:
        rows: List[Dict[str, Any]] = []
        try:
            for chunk in chunk_list(list(listing_ids), ID_CHUNK_SIZE):
                rows.extend(
                    self.client.table("listings")
                    .select(LISTING_COLUMNS)
                    .in_("id", chunk)
                    .execute()
                    .data or []
                )
        except Exception as e:
            raise UpstreamUnavailableError(self.source, f"listing lookup failed: {e}") from e
        return [listing_from_row(row) for row in rows]


class SupabaseSwipeLog(LoggerMixin):
    """Swipe and vibe-selection log in Supabase."""

    source = "swipe_history"

    def __init__(self, client: Client):
        self.client = client

    def history(self, user_id: str, limit: int = MAX_HISTORY) -> List[SwipeRecord]:
        try:
            rows = (
                self.client.table("swipes")
                .select("listing_id, direction, created_at, listings(category, tags)")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
                .data or []
            )
        except Exception as e:
            raise UpstreamUnavailableError(self.source, f"swipe history query failed: {e}") from e
        self.logger.debug("Swipe history fetched", user_id=user_id, rows=len(rows))
        return [swipe_from_row(row) for row in rows]

    def swiped_ids(self, user_id: str) -> FrozenSet[str]:
        ids = set()
        try:
            offset = 0
            while True:
                end = offset + POSTGREST_PAGE_SIZE - 1
                batch = (
                    self.client.table("swipes")
                    .select("listing_id")
                    .eq("user_id", user_id)
                    .order("created_at")
                    .order("listing_id")
                    .range(offset, end)
                    .execute()
                    .data or []
                )
                ids.update(str(row["listing_id"]) for row in batch)
                if len(batch) < POSTGREST_PAGE_SIZE:
                    break
                offset = end + 1
        except Exception as e:
            raise UpstreamUnavailableError(self.source, f"swiped id query failed: {e}") from e
        self.logger.debug("Swiped ids fetched", user_id=user_id, ids=len(ids))
        return frozenset(ids)

    def append(self, user_id: str, record: SwipeRecord) -> None:
        try:
            self.client.table("swipes").insert({
                "user_id": user_id,
                "listing_id": record.listing_id,
                "direction": record.direction.value,
                "created_at": record.timestamp.isoformat(),
            }).execute()
        except Exception as e:
            raise UpstreamUnavailableError(self.source, f"swipe insert failed: {e}") from e

    def vibe_selections(self, user_id: str) -> List[VibeSelection]:
        try:
            rows = (
                self.client.table("vibe_selections")
                .select("vibe, created_at")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .limit(MAX_HISTORY)
                .execute()
                .data or []
            )
        except Exception as e:
            raise UpstreamUnavailableError(self.source, f"vibe selection query failed: {e}") from e
        return [VibeSelection(vibe=row["vibe"], timestamp=row.get("created_at")) for row in rows]

    def append_vibe_selection(self, user_id: str, selection: VibeSelection) -> None:
        try:
            self.client.table("vibe_selections").insert({
                "user_id": user_id,
                "vibe": selection.vibe,
                "created_at": selection.timestamp.isoformat(),
            }).execute()
        except Exception as e:
            raise UpstreamUnavailableError(self.source, f"vibe selection insert failed: {e}") from e


class SupabaseSignalStore(LoggerMixin):
    """Upvote signals from `listing_upvotes`, joined to the listing city."""

    source = "signals"

    def __init__(self, client: Client):
        self.client = client

    def fetch_upvotes(
        self,
        city_scope: AbstractSet[str],
        since: Optional[datetime] = None,
    ) -> List[UpvoteSignal]:
        try:
            query = (
                self.client.table("listing_upvotes")
                .select("listing_id, created_at, listings!inner(city)")
            )
            query = scope_by_city(query, "listings.city", city_scope)
            if since is not None:
                query = query.gte("created_at", since.isoformat())
            rows = query.execute().data or []
        except Exception as e:
            raise UpstreamUnavailableError(self.source, f"upvote query failed: {e}") from e
        self.logger.debug("Upvotes fetched", rows=len(rows), cities=len(city_scope))
        return [upvote_from_row(row) for row in rows]


# =============================================================================
# In-Memory Implementations
# =============================================================================

class InMemoryCatalogStore:
    """Catalog held in a list. Filtering mirrors the Supabase query."""

    source = "catalog"

    def __init__(self, listings: Iterable[Listing] = ()):
        self._listings: Dict[str, Listing] = {}
        self._lock = Lock()
        self.add_many(listings)

    def add(self, listing: Listing) -> None:
        with self._lock:
            self._listings[listing.id] = listing

    def add_many(self, listings: Iterable[Listing]) -> None:
        for listing in listings:
            self.add(listing)

    def fetch_published_listings(
        self,
        city_scope: AbstractSet[str],
        categories: Sequence[str],
        price_tiers: Sequence[int],
    ) -> List[Listing]:
        cities = {c.lower() for c in city_scope}
        wanted = {c.lower() for c in categories}
        tiers = set(price_tiers)

        with self._lock:
            listings = list(self._listings.values())

        result = []
        for listing in listings:
            if not listing.is_published:
                continue
            if cities and (listing.city or "").lower() not in cities:
                continue
            if wanted and (listing.category or "").lower() not in wanted:
                continue
            if tiers and listing.price_tier is not None and listing.price_tier not in tiers:
                continue
            result.append(listing)
        return result

    def fetch_listings(self, listing_ids: Sequence[str]) -> List[Listing]:
        with self._lock:
            return [self._listings[i] for i in listing_ids if i in self._listings]

    def __len__(self) -> int:
        return len(self._listings)


class InMemorySwipeLog:
    """Append-only per-user swipe and vibe logs. Reads are newest first."""

    source = "swipe_history"

    def __init__(self):
        self._swipes: Dict[str, List[SwipeRecord]] = {}
        self._vibes: Dict[str, List[VibeSelection]] = {}
        self._lock = Lock()

    def history(self, user_id: str, limit: int = MAX_HISTORY) -> List[SwipeRecord]:
        with self._lock:
            log = self._swipes.get(user_id, [])
            return log[::-1][:limit]

    def swiped_ids(self, user_id: str) -> FrozenSet[str]:
        with self._lock:
            return frozenset(s.listing_id for s in self._swipes.get(user_id, []))

    def append(self, user_id: str, record: SwipeRecord) -> None:
        with self._lock:
            self._swipes.setdefault(user_id, []).append(record)

    def vibe_selections(self, user_id: str) -> List[VibeSelection]:
        with self._lock:
            log = self._vibes.get(user_id, [])
            return log[::-1][:MAX_HISTORY]

    def append_vibe_selection(self, user_id: str, selection: VibeSelection) -> None:
        with self._lock:
            self._vibes.setdefault(user_id, []).append(selection)


class InMemorySignalStore:
    """Upvote signals held in a list."""

    source = "signals"

    def __init__(self, signals: Iterable[UpvoteSignal] = ()):
        self._signals: List[UpvoteSignal] = list(signals)
        self._lock = Lock()

    def upvote(self, listing_id: str, city: Optional[str] = None, created_at: Optional[datetime] = None) -> None:
        signal = UpvoteSignal(listing_id=listing_id, city=city, created_at=created_at or utc_now())
        with self._lock:
            self._signals.append(signal)

    def fetch_upvotes(
        self,
        city_scope: AbstractSet[str],
        since: Optional[datetime] = None,
    ) -> List[UpvoteSignal]:
        cities = {c.lower() for c in city_scope}
        with self._lock:
            signals = list(self._signals)
        return [
            s for s in signals
            if (not cities or (s.city or "").lower() in cities)
            and (since is None or s.created_at >= since)
        ]
