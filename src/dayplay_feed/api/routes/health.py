"""
Health check endpoints.

Provides endpoints for monitoring application health and status.
"""

from typing import Any, Dict

from fastapi import APIRouter

from dayplay_feed import __version__
from dayplay_feed.config.constants import METRO_TABLE_VERSION, TAXONOMY_VERSION
from dayplay_feed.config.database import get_supabase_client_optional
from dayplay_feed.config.settings import StoreBackend, get_settings


router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "dayplay-feed",
        "version": __version__,
    }


@router.get("/health/detailed")
async def detailed_health_check() -> Dict[str, Any]:
    """
    Detailed health check with dependency status.

    Checks:
    - Configuration loaded
    - Supabase connection (only when it is the store backend)
    """
    settings = get_settings()

    store_status = "in_memory"
    store_error = None
    if settings.store_backend == StoreBackend.SUPABASE:
        try:
            client = get_supabase_client_optional()
            if client:
                result = client.table("listings").select("id").limit(1).execute()
                store_status = "connected" if result.data else "empty"
            else:
                store_status = "not_configured"
        except Exception as e:
            store_status = "error"
            store_error = str(e)

    healthy = store_status in ("connected", "in_memory")
    return {
        "status": "healthy" if healthy else "degraded",
        "service": "dayplay-feed",
        "environment": settings.environment,
        "checks": {
            "config": "ok",
            "store": {
                "backend": settings.store_backend.value,
                "status": store_status,
                "error": store_error,
            },
        },
        "ranking": {
            "score_composition": settings.score_composition.value,
            "taxonomy_version": TAXONOMY_VERSION,
            "metro_table_version": METRO_TABLE_VERSION,
        },
    }


@router.get("/ready")
async def readiness_check() -> Dict[str, str]:
    """
    Kubernetes-style readiness probe.

    Ready when the configured store backend is reachable.
    """
    settings = get_settings()
    if settings.store_backend == StoreBackend.SUPABASE and get_supabase_client_optional() is None:
        return {"status": "not_ready", "reason": "database_not_configured"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    """Kubernetes-style liveness probe."""
    return {"status": "alive"}
