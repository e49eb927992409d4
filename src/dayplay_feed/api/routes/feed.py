"""
Feed, swipe, trending and decision-helper routes.

Callers identify the user with a plain `user_id`; authentication happens in
front of this service.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, ValidationError

from dayplay_feed.config.database import SupabaseClientError
from dayplay_feed.config.settings import Settings, get_settings
from dayplay_feed.core.logging import get_logger
from dayplay_feed.core.utils import split_csv
from dayplay_feed.feed.errors import (
    DecisionError, SessionNotFoundError, UpstreamUnavailableError,
)
from dayplay_feed.feed.models import FeedPage, FeedRequest, Listing, SwipeDirection
from dayplay_feed.feed.service import FeedService, create_feed_service


logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Feed"])


# =============================================================================
# Service Singleton
# =============================================================================

_feed_service: Optional[FeedService] = None


def get_feed_service() -> FeedService:
    """FastAPI dependency returning the process-wide FeedService."""
    global _feed_service
    if _feed_service is None:
        try:
            _feed_service = create_feed_service()
        except SupabaseClientError as e:
            logger.error("Feed service unavailable", error=str(e))
            raise HTTPException(status_code=503, detail="Feed store is not configured")
    return _feed_service


def reset_feed_service() -> None:
    global _feed_service
    _feed_service = None


# =============================================================================
# Request/Response Models
# =============================================================================

class FeedResponse(BaseModel):
    items: List[Listing]
    total: int
    page: int
    page_size: int
    has_more: bool


class SessionStartRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class SwipeRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    listing_id: str = Field(..., min_length=1)
    direction: SwipeDirection
    category: str = ""
    tags: List[str] = Field(default_factory=list)


class VibeRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    vibe: str = Field(..., min_length=1)


class SpinRequest(BaseModel):
    listing_ids: List[str] = Field(..., description="Saved listings to choose between")
    vibe: str = Field(..., min_length=1)
    seed: Optional[int] = Field(default=None, description="Fix the random draw")
    user_id: Optional[str] = None


# =============================================================================
# Helpers
# =============================================================================

def feed_request_params(
    lat: Optional[float] = Query(default=None),
    lon: Optional[float] = Query(default=None),
    radius_km: Optional[float] = Query(default=None, description="Defaults to DEFAULT_RADIUS_KM"),
    categories: Optional[str] = Query(default=None, description="Comma separated"),
    price_tiers: Optional[str] = Query(default=None, description="Comma separated, 1-4"),
    city: Optional[str] = Query(default=None),
    exclude_ids: Optional[str] = Query(default=None, description="Comma separated"),
    page: int = Query(default=0),
    page_size: Optional[int] = Query(default=None, description="Defaults to DEFAULT_PAGE_SIZE"),
    new_this_week: bool = Query(default=False),
    open_now: bool = Query(default=False),
    settings: Settings = Depends(get_settings),
) -> FeedRequest:
    """
    Build and validate a FeedRequest from query parameters.

    Radius and page size fall back to the configured defaults; page size is
    capped at MAX_PAGE_SIZE.
    """
    page_size = settings.default_page_size if page_size is None else page_size
    if page_size > settings.max_page_size:
        raise HTTPException(
            status_code=422,
            detail=f"page_size must be at most {settings.max_page_size}",
        )
    try:
        tiers = [int(t) for t in split_csv(price_tiers)]
        return FeedRequest(
            user_lat=lat,
            user_lon=lon,
            radius_km=settings.default_radius_km if radius_km is None else radius_km,
            categories=split_csv(categories),
            price_tiers=tiers,
            city=city,
            exclude_ids=split_csv(exclude_ids),
            page=page,
            page_size=page_size,
            show_new_this_week=new_this_week,
            show_open_now=open_now,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _upstream_error(e: UpstreamUnavailableError) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={"error": "upstream_unavailable", "source": e.source, "message": str(e)},
    )


def _feed_response(page: FeedPage, request: FeedRequest, page_index: int) -> FeedResponse:
    return FeedResponse(
        items=page.items,
        total=page.total,
        page=page_index,
        page_size=request.page_size,
        has_more=(page_index + 1) * request.page_size < page.total,
    )


# =============================================================================
# Feed Endpoints
# =============================================================================

@router.get("/feed", summary="Ranked feed page", response_model=FeedResponse)
def get_feed(
    user_id: Optional[str] = Query(default=None),
    request: FeedRequest = Depends(feed_request_params),
    service: FeedService = Depends(get_feed_service),
) -> FeedResponse:
    """
    Stateless feed page. The caller advances `page` and passes already
    served ids in `exclude_ids`.
    """
    try:
        page = service.get_feed(user_id, request)
    except UpstreamUnavailableError as e:
        raise _upstream_error(e)
    return _feed_response(page, request, request.page)


@router.post("/feed/session", summary="Start a feed session")
def start_session(
    body: SessionStartRequest,
    service: FeedService = Depends(get_feed_service),
) -> Dict[str, Any]:
    try:
        session = service.start_session(body.user_id)
    except UpstreamUnavailableError as e:
        raise _upstream_error(e)
    return session.to_dict()


@router.get(
    "/feed/session/{session_id}/next",
    summary="Next page of a feed session",
    response_model=FeedResponse,
)
def next_page(
    session_id: str,
    request: FeedRequest = Depends(feed_request_params),
    service: FeedService = Depends(get_feed_service),
) -> FeedResponse:
    """
    Serve the next unseen page. Every listing served through a session is
    excluded from its later pages.
    """
    try:
        session = service.get_session(session_id)
        page_index = session.pages_served
        page = service.next_page(session, request)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except UpstreamUnavailableError as e:
        raise _upstream_error(e)

    return FeedResponse(
        items=page.items,
        total=page.total,
        page=page_index,
        page_size=request.page_size,
        has_more=page.total > len(page.items),
    )


# =============================================================================
# Signal Endpoints
# =============================================================================

@router.post("/swipes", summary="Record a swipe")
def record_swipe(
    body: SwipeRequest,
    service: FeedService = Depends(get_feed_service),
) -> Dict[str, Any]:
    try:
        record = service.record_swipe(
            body.user_id, body.listing_id, body.direction, body.category, body.tags
        )
    except UpstreamUnavailableError as e:
        raise _upstream_error(e)
    return {"status": "recorded", "swipe": record.model_dump(mode="json")}


@router.post("/vibes", summary="Record a vibe selection")
def record_vibe(
    body: VibeRequest,
    service: FeedService = Depends(get_feed_service),
) -> Dict[str, Any]:
    try:
        selection = service.record_vibe_selection(body.user_id, body.vibe)
    except UpstreamUnavailableError as e:
        raise _upstream_error(e)
    return {"status": "recorded", "vibe_selection": selection.model_dump(mode="json")}


@router.get("/trending", summary="Trending listings for a city")
def get_trending(
    city: Optional[str] = Query(default=None),
    limit: int = Query(default=5, ge=1, le=50),
    user_id: Optional[str] = Query(default=None),
    service: FeedService = Depends(get_feed_service),
) -> Dict[str, Any]:
    try:
        items = service.get_trending(city, limit, user_id=user_id)
    except UpstreamUnavailableError as e:
        raise _upstream_error(e)
    return {
        "city": city,
        "items": [item.model_dump(mode="json") for item in items],
        "count": len(items),
    }


# =============================================================================
# Decision Helper
# =============================================================================

@router.post("/decision/spin", summary="Pick one saved listing for a vibe")
def spin(
    body: SpinRequest,
    service: FeedService = Depends(get_feed_service),
) -> Dict[str, Any]:
    try:
        choice = service.spin(body.listing_ids, body.vibe, seed=body.seed, user_id=body.user_id)
    except DecisionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UpstreamUnavailableError as e:
        raise _upstream_error(e)
    return {"vibe": body.vibe, "choice": choice.model_dump(mode="json")}
