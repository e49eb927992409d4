"""
Feed orchestration.

FeedService wires the pure ranking stages to the three stores:

    request -> scoping (categories, city)
            -> concurrent fetch: catalog | swipe history | upvote signals
            -> distance -> attribute filters -> exclusion
            -> affinity + trending scores -> sort -> page

Fetches share one request deadline. If any fetch fails or misses the
deadline the request fails with an UpstreamUnavailableError; nothing is
served from a partial candidate set.
"""

import random
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence

from dayplay_feed.config.settings import ScoreComposition, Settings, StoreBackend, get_settings
from dayplay_feed.core.logging import get_logger
from dayplay_feed.core.utils import utc_now
from dayplay_feed.feed.affinity import AffinityScorer, build_profile, spin as spin_candidates
from dayplay_feed.feed.categories import CategoryNormalizer, get_category_normalizer
from dayplay_feed.feed.city_scope import CityScopeResolver, get_city_scope_resolver
from dayplay_feed.feed.errors import (
    SessionNotFoundError, UpstreamTimeoutError, UpstreamUnavailableError,
)
from dayplay_feed.feed.exclusion import ExclusionTracker, FeedSession, InMemorySessionBackend
from dayplay_feed.feed.filters import FeedFilters
from dayplay_feed.feed.geo import GeoFilter
from dayplay_feed.feed.models import (
    FeedPage, FeedRequest, Listing, SwipeDirection, SwipeRecord, TrendingCount, VibeSelection,
)
from dayplay_feed.feed.pagination import Paginator
from dayplay_feed.feed.sorting import ScoreComposer, SortComposer
from dayplay_feed.feed.stores import (
    ID_CHUNK_SIZE, CatalogStore, InMemoryCatalogStore, InMemorySignalStore, InMemorySwipeLog,
    SignalStore, SupabaseCatalogStore, SupabaseSignalStore, SupabaseSwipeLog, SwipeLog,
)
from dayplay_feed.feed.trending import TrendingScorer


logger = get_logger(__name__)


class FeedService:
    """
    Request-scoped feed ranking over injected stores.

    Holds no per-request state; sessions live in the session backend.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        swipes: SwipeLog,
        signals: SignalStore,
        settings: Optional[Settings] = None,
        sessions: Optional[InMemorySessionBackend] = None,
        normalizer: Optional[CategoryNormalizer] = None,
        resolver: Optional[CityScopeResolver] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.catalog = catalog
        self.swipes = swipes
        self.signals = signals
        self.settings = settings or get_settings()
        self.sessions = sessions or InMemorySessionBackend(ttl_seconds=self.settings.session_ttl_seconds)
        self.normalizer = normalizer or get_category_normalizer()
        self.resolver = resolver or get_city_scope_resolver()
        self.clock = clock

        self.filters = FeedFilters(normalizer=self.normalizer)
        self.trending = TrendingScorer(
            recent_days=self.settings.trending_recent_days,
            recent_weight=self.settings.trending_recent_weight,
        )

    # =========================================================================
    # Upstream Fetches
    # =========================================================================

    def _gather(self, tasks: Dict[str, Callable[[], Any]]) -> Dict[str, Any]:
        """
        Run fetches concurrently under one deadline.

        Raises:
            UpstreamTimeoutError: a fetch missed the deadline.
            UpstreamUnavailableError: a fetch raised.
        """
        timeout = self.settings.upstream_timeout_seconds
        deadline = time.monotonic() + timeout
        executor = ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix="feed-fetch")
        try:
            futures = {name: executor.submit(fn) for name, fn in tasks.items()}
            results: Dict[str, Any] = {}
            for name, future in futures.items():
                remaining = max(deadline - time.monotonic(), 0.0)
                try:
                    results[name] = future.result(timeout=remaining)
                except FuturesTimeoutError:
                    logger.error("Upstream fetch timed out", source=name, timeout_s=timeout)
                    raise UpstreamTimeoutError(name, timeout) from None
                except UpstreamUnavailableError as e:
                    logger.error("Upstream fetch failed", source=e.source, error=str(e))
                    raise
                except Exception as e:
                    logger.error("Upstream fetch failed", source=name, error=str(e))
                    raise UpstreamUnavailableError(name, f"{name} fetch failed: {e}") from e
            return results
        finally:
            # Never block the request on a stuck fetch
            executor.shutdown(wait=False, cancel_futures=True)

    def _fetch_history(self, user_id: Optional[str]):
        """Capped recent history for affinity, plus every swiped id for exclusion."""
        if not user_id:
            return [], [], frozenset()
        return (
            self.swipes.history(user_id),
            self.swipes.vibe_selections(user_id),
            self.swipes.swiped_ids(user_id),
        )

    def _trending_since(self, now: datetime) -> Optional[datetime]:
        days = self.settings.trending_window_days
        return now - timedelta(days=days) if days else None

    def _uses_trending(self) -> bool:
        return self.settings.score_composition in (
            ScoreComposition.AFFINITY_PLUS_TRENDING, ScoreComposition.TRENDING,
        )

    # =========================================================================
    # Feed
    # =========================================================================

    def get_feed(
        self,
        user_id: Optional[str],
        request: FeedRequest,
        exclude_ids: Iterable[str] = (),
    ) -> FeedPage:
        """
        Rank and page the feed for one request.

        The exclusion set is the user's swiped ids, the request's
        `exclude_ids` and any extra `exclude_ids` passed by a session.
        """
        started = time.time()
        now = self.clock()
        log = logger.bind(user_id=user_id, page=request.page, city=request.city)

        ordered = self._ranked_candidates(user_id, request, frozenset(exclude_ids), now, log)
        page = Paginator.page(ordered, request.page, request.page_size)

        log.info(
            "Feed served",
            items=len(page.items),
            total=page.total,
            duration_ms=round((time.time() - started) * 1000, 2),
        )
        return page

    def _ranked_candidates(
        self,
        user_id: Optional[str],
        request: FeedRequest,
        extra_exclude: FrozenSet[str],
        now: datetime,
        log,
    ) -> List[Listing]:
        settings = self.settings
        city_scope = self.resolver.resolve(request.city)
        category_variants = self.normalizer.expand_all(request.categories)

        tasks: Dict[str, Callable[[], Any]] = {
            "catalog": lambda: self.catalog.fetch_published_listings(
                city_scope, category_variants, request.price_tiers
            ),
            "swipe_history": lambda: self._fetch_history(user_id),
        }
        if self._uses_trending():
            since = self._trending_since(now)
            tasks["signals"] = lambda: self.signals.fetch_upvotes(city_scope, since)

        fetched = self._gather(tasks)
        candidates: List[Listing] = fetched["catalog"]
        history, vibes, swiped_ids = fetched["swipe_history"]
        upvotes = fetched.get("signals", [])
        log.info(
            "Upstream fetched",
            candidates=len(candidates),
            swipes=len(history),
            upvotes=len(upvotes),
            cities=len(city_scope),
        )

        # Distance
        before = len(candidates)
        candidates = GeoFilter.annotate(candidates, request.user_lat, request.user_lon)
        if request.has_location:
            candidates = GeoFilter.filter_by_radius(candidates, request.radius_km)
        log.debug("Radius filter", before=before, after=len(candidates), radius_km=request.radius_km)

        # Attributes
        before = len(candidates)
        candidates = self.filters.apply(candidates, request, now)
        log.debug("Attribute filters", before=before, after=len(candidates))
        eligible_ids = {c.id for c in candidates}

        # Exclusion
        exclude = ExclusionTracker.seed(swiped_ids)
        exclude = ExclusionTracker.extend(exclude, request.exclude_ids)
        exclude = ExclusionTracker.extend(exclude, extra_exclude)
        before = len(candidates)
        candidates = ExclusionTracker.apply(candidates, exclude)
        log.debug("Exclusion", before=before, after=len(candidates), excluded=len(exclude))

        # Duplicate catalog rows would otherwise split across pages
        unique: Dict[str, Listing] = {}
        for listing in candidates:
            unique.setdefault(listing.id, listing)
        candidates = list(unique.values())

        # Scores
        profile = build_profile(
            history, vibes, window=settings.affinity_history_window, normalizer=self.normalizer
        )
        trending_bonus: Dict[str, int] = {}
        if upvotes:
            # Bonus slots go only to listings this request could serve
            ranking = [
                t for t in self.trending.rank(city_scope, upvotes, now=now)
                if t.listing_id in eligible_ids
            ]
            trending_bonus = TrendingScorer.rank_bonus(ranking, settings.trending_bonus_slots)
        composer = ScoreComposer(
            settings.score_composition,
            affinity=AffinityScorer(profile, normalizer=self.normalizer),
            trending_bonus=trending_bonus,
        )
        candidates = composer.annotate(candidates)

        return SortComposer.sort(candidates)

    # =========================================================================
    # Sessions
    # =========================================================================

    def start_session(self, user_id: str) -> FeedSession:
        """Open a session whose exclusion set is seeded from the swipe log."""
        swiped_ids = self._gather(
            {"swipe_history": lambda: self.swipes.swiped_ids(user_id)}
        )["swipe_history"]
        session = self.sessions.create_session(user_id, ExclusionTracker.seed(swiped_ids))
        logger.info(
            "Feed session started",
            session_id=session.session_id,
            user_id=user_id,
            excluded=len(session.exclude_ids),
        )
        return session

    def get_session(self, session_id: str) -> FeedSession:
        session = self.sessions.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def next_page(self, session: FeedSession, request: FeedRequest) -> FeedPage:
        """
        Serve the next page of a session.

        Served ids are folded into the session's exclusion set, so every call
        ranks the remaining candidates and takes their first page.
        `request.page` is ignored.
        """
        first_page = request.model_copy(update={"page": 0})
        page = self.get_feed(session.user_id, first_page, exclude_ids=session.exclude_ids)
        session.mark_served(page.ids)
        self.sessions.update_session(session)
        logger.debug(
            "Session advanced",
            session_id=session.session_id,
            pages_served=session.pages_served,
            excluded=len(session.exclude_ids),
        )
        return page

    # =========================================================================
    # Signals
    # =========================================================================

    def record_swipe(
        self,
        user_id: str,
        listing_id: str,
        direction: SwipeDirection,
        category: str = "",
        tags: Sequence[str] = (),
    ) -> SwipeRecord:
        record = SwipeRecord(
            listing_id=listing_id,
            direction=direction,
            category=self.normalizer.normalize(category) or "",
            tags=list(tags),
            timestamp=self.clock(),
        )
        self.swipes.append(user_id, record)
        logger.info("Swipe recorded", user_id=user_id, listing_id=listing_id, direction=record.direction.value)
        return record

    def record_vibe_selection(self, user_id: str, vibe: str) -> VibeSelection:
        selection = VibeSelection(vibe=vibe.strip().lower(), timestamp=self.clock())
        self.swipes.append_vibe_selection(user_id, selection)
        logger.info("Vibe selection recorded", user_id=user_id, vibe=selection.vibe)
        return selection

    # =========================================================================
    # Trending
    # =========================================================================

    def trending_ranking(self, city: Optional[str], user_id: Optional[str] = None) -> List[TrendingCount]:
        """
        Ranked upvote counts for a city.

        With no upvotes in scope and a user given, falls back to the
        popularity seen in that user's own like log.
        """
        now = self.clock()
        city_scope = self.resolver.resolve(city)
        since = self._trending_since(now)
        upvotes = self._gather(
            {"signals": lambda: self.signals.fetch_upvotes(city_scope, since)}
        )["signals"]
        ranking = self.trending.rank(city_scope, upvotes, now=now)
        if not ranking and user_id:
            history = self._gather(
                {"swipe_history": lambda: self.swipes.history(user_id)}
            )["swipe_history"]
            ranking = TrendingScorer.from_swipes(history)
        return ranking

    def get_trending(
        self,
        city: Optional[str],
        limit: Optional[int] = None,
        user_id: Optional[str] = None,
    ) -> List[Listing]:
        """
        Top trending published listings for a city, most popular first.

        Unpublished listings are dropped before the cut, so upvotes on a
        draft never take one of the `limit` slots.
        """
        limit = limit or self.settings.trending_default_limit
        ranking = self.trending_ranking(city, user_id)

        result: List[Listing] = []
        for offset in range(0, len(ranking), ID_CHUNK_SIZE):
            batch = ranking[offset:offset + ID_CHUNK_SIZE]
            ids = [t.listing_id for t in batch]
            found = self._gather(
                {"catalog": lambda ids=ids: self.catalog.fetch_listings(ids)}
            )["catalog"]
            by_id = {listing.id: listing for listing in found if listing.is_published}
            for t in batch:
                if t.listing_id in by_id:
                    result.append(by_id[t.listing_id].model_copy(update={"rank_score": t.weighted_score}))
                    if len(result) == limit:
                        break
            if len(result) == limit:
                break

        logger.info("Trending served", city=city, requested=limit, items=len(result))
        return result

    # =========================================================================
    # Decision Helper
    # =========================================================================

    def spin(
        self,
        listing_ids: Sequence[str],
        vibe: str,
        seed: Optional[int] = None,
        user_id: Optional[str] = None,
    ) -> Listing:
        """
        Pick one of the given listings for a vibe.

        Raises:
            DecisionError: fewer than two of the ids resolve to listings.
        """
        ids = list(dict.fromkeys(listing_ids))
        found = self._gather({"catalog": lambda: self.catalog.fetch_listings(ids)})["catalog"]
        by_id = {listing.id: listing for listing in found}
        candidates = [by_id[i] for i in ids if i in by_id]

        rng = random.Random(seed) if seed is not None else random.Random()
        choice = spin_candidates(candidates, vibe, rng)

        if user_id:
            self.record_vibe_selection(user_id, vibe)
        logger.info("Spin decided", vibe=vibe, candidates=len(candidates), listing_id=choice.id)
        return choice


def create_feed_service(settings: Optional[Settings] = None) -> FeedService:
    """
    Build a FeedService over the store backend named in settings.

    Raises:
        SupabaseClientError: STORE_BACKEND=supabase without usable credentials.
    """
    settings = settings or get_settings()

    if settings.store_backend == StoreBackend.SUPABASE:
        from dayplay_feed.config.database import get_supabase_client

        client = get_supabase_client()
        catalog = SupabaseCatalogStore(client, fetch_limit=settings.catalog_fetch_limit)
        swipes = SupabaseSwipeLog(client)
        signals = SupabaseSignalStore(client)
    else:
        catalog = InMemoryCatalogStore()
        swipes = InMemorySwipeLog()
        signals = InMemorySignalStore()

    logger.info(
        "Feed service created",
        store_backend=settings.store_backend.value,
        score_composition=settings.score_composition.value,
    )
    return FeedService(catalog, swipes, signals, settings=settings)
