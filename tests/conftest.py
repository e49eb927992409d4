"""
Pytest configuration and shared fixtures for the feed engine tests.
"""
import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator, List
from unittest.mock import MagicMock, patch

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

# Load environment variables
from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"))

from dayplay_feed.config.settings import Settings, get_settings, get_settings_for_testing
from dayplay_feed.feed.models import Listing, SwipeDirection, SwipeRecord, UpvoteSignal
from dayplay_feed.feed.service import FeedService
from dayplay_feed.feed.stores import (
    InMemoryCatalogStore, InMemorySignalStore, InMemorySwipeLog,
)


FIXED_NOW = datetime(2024, 11, 15, 18, 0, tzinfo=timezone.utc)

# Downtown San Francisco
SF_LAT, SF_LON = 37.7749, -122.4194


# ============================================================================
# Fixtures: Test Data Factories
# ============================================================================

def make_listing(listing_id: str, **overrides) -> Listing:
    """Published SF listing a few hundred meters from downtown."""
    data = {
        "id": listing_id,
        "title": f"Listing {listing_id}",
        "category": "food",
        "city": "San Francisco",
        "latitude": 37.7790,
        "longitude": -122.4180,
        "created_at": FIXED_NOW - timedelta(days=30),
        "tags": [],
        "is_published": True,
    }
    data.update(overrides)
    return Listing(**data)


def make_swipe(
    listing_id: str,
    direction: SwipeDirection = SwipeDirection.RIGHT,
    category: str = "food",
    tags: List[str] = None,
    minutes_ago: int = 0,
) -> SwipeRecord:
    return SwipeRecord(
        listing_id=listing_id,
        direction=direction,
        category=category,
        tags=tags or [],
        timestamp=FIXED_NOW - timedelta(minutes=minutes_ago),
    )


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def listing_factory() -> Callable[..., Listing]:
    return make_listing


@pytest.fixture
def swipe_factory() -> Callable[..., SwipeRecord]:
    return make_swipe


@pytest.fixture
def sample_listings() -> List[Listing]:
    """A small SF catalog with mixed categories, tiers and distances."""
    return [
        make_listing("cafe-1", title="Blue Bottle", category="coffee", price_tier=1,
                     tags=["cozy", "wifi"]),
        make_listing("cafe-2", title="Sightglass", category="cafe", price_tier=2,
                     latitude=37.7710, longitude=-122.4090, tags=["cozy"]),
        make_listing("museum-1", title="SFMOMA", category="museums", price_tier=3,
                     latitude=37.7857, longitude=-122.4011, hours="10am-5pm"),
        make_listing("bar-1", title="Zeitgeist", category="Drinks & Bars", price_tier=None,
                     latitude=37.7700, longitude=-122.4220, tags=["outdoor"]),
        make_listing("park-1", title="Dolores Park", category="outdoors",
                     latitude=37.7596, longitude=-122.4269, is_featured=True),
        make_listing("oak-1", title="Lake Merritt", category="outdoors", city="Oakland",
                     latitude=37.8044, longitude=-122.2712),
        make_listing("nogeo-1", title="Pop-up Market", category="festivals-pop-ups",
                     latitude=None, longitude=None),
        make_listing("draft-1", title="Unpublished", is_published=False),
    ]


@pytest.fixture
def sample_upvotes() -> List[UpvoteSignal]:
    return [
        UpvoteSignal(listing_id="museum-1", city="San Francisco", created_at=FIXED_NOW - timedelta(days=1)),
        UpvoteSignal(listing_id="museum-1", city="San Francisco", created_at=FIXED_NOW - timedelta(days=2)),
        UpvoteSignal(listing_id="museum-1", city="San Francisco", created_at=FIXED_NOW - timedelta(days=20)),
        UpvoteSignal(listing_id="bar-1", city="San Francisco", created_at=FIXED_NOW - timedelta(days=3)),
        UpvoteSignal(listing_id="oak-1", city="Oakland", created_at=FIXED_NOW - timedelta(days=1)),
    ]


# ============================================================================
# Fixtures: Settings & Stores
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    return get_settings_for_testing()


@pytest.fixture
def catalog_store(sample_listings) -> InMemoryCatalogStore:
    return InMemoryCatalogStore(sample_listings)


@pytest.fixture
def swipe_log() -> InMemorySwipeLog:
    return InMemorySwipeLog()


@pytest.fixture
def signal_store(sample_upvotes) -> InMemorySignalStore:
    return InMemorySignalStore(sample_upvotes)


@pytest.fixture
def feed_service(catalog_store, swipe_log, signal_store, settings) -> FeedService:
    return FeedService(
        catalog_store, swipe_log, signal_store,
        settings=settings,
        clock=lambda: FIXED_NOW,
    )


# ============================================================================
# Fixtures: Mock Services
# ============================================================================

@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client; every query chain returns itself."""
    mock_client = MagicMock()
    query = MagicMock()
    for method in ("select", "eq", "neq", "in_", "ilike", "or_", "gte", "order", "limit", "range", "insert"):
        getattr(query, method).return_value = query
    query.execute.return_value.data = []
    mock_client.table.return_value = query
    mock_client.query = query
    return mock_client


@pytest.fixture
def mock_supabase(mock_supabase_client):
    """Patch Supabase client creation."""
    with patch("dayplay_feed.config.database.create_client", return_value=mock_supabase_client):
        yield mock_supabase_client


# ============================================================================
# Fixtures: FastAPI Test Client
# ============================================================================

@pytest.fixture
def app(feed_service, monkeypatch):
    """FastAPI app wired to the in-memory feed service."""
    from dayplay_feed.api.app import create_app
    from dayplay_feed.api.routes.feed import get_feed_service

    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("ENVIRONMENT", "testing")
    get_settings.cache_clear()

    application = create_app()
    application.dependency_overrides[get_feed_service] = lambda: feed_service
    yield application
    application.dependency_overrides.clear()
    get_settings.cache_clear()


@pytest.fixture
def client(app) -> Generator:
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "supabase: marks tests that require Supabase")


def pytest_collection_modifyitems(config, items):
    """Auto-skip tests that need a live Supabase project when none is configured."""
    skip_supabase = pytest.mark.skip(reason="Supabase tests require credentials")
    supabase_url = os.getenv("SUPABASE_URL")

    for item in items:
        if item.get_closest_marker("supabase") and not supabase_url:
            item.add_marker(skip_supabase)
