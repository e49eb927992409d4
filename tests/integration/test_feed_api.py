"""
Integration tests for the HTTP API.

Runs the FastAPI app in-process (TestClient) against the in-memory stores
seeded by conftest, so no server or Supabase project is needed.
"""

import pytest

from dayplay_feed.api.routes.feed import get_feed_service, reset_feed_service
from dayplay_feed.config.settings import get_settings, get_settings_for_testing
from dayplay_feed.feed.errors import UpstreamTimeoutError


SF_PARAMS = {"lat": 37.7749, "lon": -122.4194}


# =============================================================================
# Health
# =============================================================================

class TestHealth:
    """Tests for health, readiness and liveness endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "dayplay-feed"

    def test_detailed_in_memory(self, client):
        data = client.get("/health/detailed").json()

        assert data["status"] == "healthy"
        assert data["checks"]["store"]["backend"] == "memory"
        assert data["ranking"]["score_composition"] == "affinity_plus_trending"
        assert "taxonomy_version" in data["ranking"]

    def test_readiness_and_liveness(self, client):
        assert client.get("/ready").json() == {"status": "ready"}
        assert client.get("/live").json() == {"status": "alive"}

    def test_request_id_header(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"


# =============================================================================
# Feed
# =============================================================================

class TestFeedEndpoint:
    """Tests for GET /api/feed."""

    def test_first_page(self, client):
        response = client.get("/api/feed", params={**SF_PARAMS, "user_id": "u1", "page_size": 3})

        assert response.status_code == 200
        data = response.json()
        assert data["page"] == 0
        assert data["page_size"] == 3
        assert len(data["items"]) == 3
        assert data["total"] == 7
        assert data["has_more"] is True
        assert data["items"][0]["id"] == "park-1"

    def test_last_page_has_no_more(self, client):
        data = client.get("/api/feed", params={**SF_PARAMS, "page": 2, "page_size": 3}).json()

        assert len(data["items"]) == 1
        assert data["has_more"] is False

    def test_csv_filters(self, client):
        params = {**SF_PARAMS, "categories": "coffee,museums", "price_tiers": "1,3"}

        data = client.get("/api/feed", params=params).json()

        assert {item["id"] for item in data["items"]} == {"cafe-1", "museum-1"}

    def test_exclude_ids(self, client):
        data = client.get("/api/feed", params={**SF_PARAMS, "exclude_ids": "park-1,museum-1"}).json()
        ids = {item["id"] for item in data["items"]}

        assert "park-1" not in ids
        assert "museum-1" not in ids

    def test_distance_in_payload(self, client):
        data = client.get("/api/feed", params={**SF_PARAMS, "radius_km": 1}).json()

        assert data["items"]
        assert all(item["distance_km"] is None or item["distance_km"] <= 1 for item in data["items"])

    @pytest.mark.parametrize("params", [
        {"price_tiers": "7"},
        {"price_tiers": "cheap"},
        {"page": -1},
        {"page_size": 0},
        {"radius_km": -5},
        {"page_size": 101},
    ])
    def test_invalid_params(self, client, params):
        response = client.get("/api/feed", params=params)

        assert response.status_code == 422

    def test_upstream_failure_is_503(self, client, feed_service, monkeypatch):
        def fail(*args):
            raise UpstreamTimeoutError("catalog", 0.5)

        monkeypatch.setattr(feed_service.catalog, "fetch_published_listings", fail)

        response = client.get("/api/feed")

        assert response.status_code == 503
        detail = response.json()["detail"]
        assert detail["error"] == "upstream_unavailable"
        assert detail["source"] == "catalog"


class TestRequestDefaults:
    """Tests for page size and radius defaults taken from settings."""

    @pytest.fixture
    def configure(self, app):
        def apply(**overrides):
            app.dependency_overrides[get_settings] = lambda: get_settings_for_testing(**overrides)
        return apply

    def test_default_page_size(self, client, configure):
        configure(default_page_size=2, max_page_size=5)

        data = client.get("/api/feed", params=SF_PARAMS).json()

        assert data["page_size"] == 2
        assert len(data["items"]) == 2

    def test_max_page_size(self, client, configure):
        configure(default_page_size=2, max_page_size=5)

        assert client.get("/api/feed", params={**SF_PARAMS, "page_size": 5}).status_code == 200
        assert client.get("/api/feed", params={**SF_PARAMS, "page_size": 6}).status_code == 422

    def test_default_radius(self, client, configure):
        configure(default_radius_km=1.0)

        data = client.get("/api/feed", params=SF_PARAMS).json()
        ids = {item["id"] for item in data["items"]}

        assert "park-1" not in ids
        assert all(item["distance_km"] is None or item["distance_km"] <= 1 for item in data["items"])

    def test_explicit_radius_wins(self, client, configure):
        configure(default_radius_km=1.0)

        data = client.get("/api/feed", params={**SF_PARAMS, "radius_km": 5}).json()

        assert "park-1" in {item["id"] for item in data["items"]}


# =============================================================================
# Sessions
# =============================================================================

class TestSessionEndpoints:
    """Tests for session start and paging."""

    def test_start_session_seeded_from_swipes(self, client):
        client.post("/api/swipes", json={"user_id": "u1", "listing_id": "cafe-1", "direction": "right"})

        response = client.post("/api/feed/session", json={"user_id": "u1"})

        assert response.status_code == 200
        data = response.json()
        assert data["session_id"].startswith("fs_")
        assert data["excluded"] == 1

    def test_pages_never_repeat(self, client):
        session_id = client.post("/api/feed/session", json={"user_id": "u1"}).json()["session_id"]
        served = []

        for expected_page in range(3):
            data = client.get(
                f"/api/feed/session/{session_id}/next", params={"page_size": 3}
            ).json()
            assert data["page"] == expected_page
            served.extend(item["id"] for item in data["items"])

        assert len(served) == 7
        assert len(set(served)) == 7

    def test_has_more_until_drained(self, client):
        session_id = client.post("/api/feed/session", json={"user_id": "u1"}).json()["session_id"]

        first = client.get(f"/api/feed/session/{session_id}/next", params={"page_size": 5}).json()
        second = client.get(f"/api/feed/session/{session_id}/next", params={"page_size": 5}).json()

        assert first["has_more"] is True
        assert len(second["items"]) == 2
        assert second["has_more"] is False

    def test_unknown_session_is_404(self, client):
        response = client.get("/api/feed/session/fs_missing/next")

        assert response.status_code == 404

    def test_session_requires_user(self, client):
        assert client.post("/api/feed/session", json={}).status_code == 422


# =============================================================================
# Signals
# =============================================================================

class TestSignalEndpoints:
    """Tests for swipe and vibe recording."""

    def test_swipe_recorded_and_excluded(self, client):
        response = client.post("/api/swipes", json={
            "user_id": "u1",
            "listing_id": "park-1",
            "direction": "left",
            "category": "Parks",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "recorded"
        assert body["swipe"]["category"] == "outdoors"

        feed = client.get("/api/feed", params={"user_id": "u1"}).json()
        assert "park-1" not in {item["id"] for item in feed["items"]}

    def test_invalid_direction(self, client):
        response = client.post("/api/swipes", json={"user_id": "u1", "listing_id": "x", "direction": "up"})

        assert response.status_code == 422

    def test_vibe_recorded(self, client, swipe_log):
        response = client.post("/api/vibes", json={"user_id": "u1", "vibe": "Chill"})

        assert response.status_code == 200
        assert response.json()["vibe_selection"]["vibe"] == "chill"
        assert [v.vibe for v in swipe_log.vibe_selections("u1")] == ["chill"]


# =============================================================================
# Trending & Spin
# =============================================================================

class TestTrendingEndpoint:
    """Tests for GET /api/trending."""

    def test_city_trending(self, client):
        data = client.get("/api/trending", params={"city": "San Francisco", "limit": 2}).json()

        assert data["city"] == "San Francisco"
        assert data["count"] == 2
        assert [item["id"] for item in data["items"]] == ["museum-1", "bar-1"]

    def test_limit_bounds(self, client):
        assert client.get("/api/trending", params={"limit": 0}).status_code == 422
        assert client.get("/api/trending", params={"limit": 51}).status_code == 422


class TestSpinEndpoint:
    """Tests for POST /api/decision/spin."""

    def test_spin_choice(self, client):
        ids = ["cafe-1", "cafe-2", "park-1"]

        first = client.post("/api/decision/spin", json={"listing_ids": ids, "vibe": "chill", "seed": 7})
        second = client.post("/api/decision/spin", json={"listing_ids": ids, "vibe": "chill", "seed": 7})

        assert first.status_code == 200
        assert first.json()["choice"]["id"] in ids
        assert first.json()["choice"]["id"] == second.json()["choice"]["id"]

    def test_too_few_candidates(self, client):
        response = client.post("/api/decision/spin", json={"listing_ids": ["cafe-1"], "vibe": "chill"})

        assert response.status_code == 400


# =============================================================================
# Service Wiring
# =============================================================================

class TestServiceDependency:
    """Tests for the FeedService dependency without overrides."""

    def test_missing_supabase_credentials_is_503(self, monkeypatch):
        from fastapi import HTTPException

        from dayplay_feed.config.database import get_supabase_client

        monkeypatch.setenv("STORE_BACKEND", "supabase")
        monkeypatch.setenv("SUPABASE_URL", "")
        monkeypatch.setenv("SUPABASE_SERVICE_KEY", "")
        get_settings.cache_clear()
        get_supabase_client.cache_clear()
        reset_feed_service()
        try:
            with pytest.raises(HTTPException) as exc_info:
                get_feed_service()
            assert exc_info.value.status_code == 503
        finally:
            reset_feed_service()
            get_settings.cache_clear()
            get_supabase_client.cache_clear()
