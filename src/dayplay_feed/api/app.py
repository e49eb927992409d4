"""
FastAPI Application Factory.

Usage:
    # Development
    uvicorn dayplay_feed.api.app:create_app --factory --reload

    # Production
    uvicorn dayplay_feed.api.app:create_app --factory --host 0.0.0.0 --port 8080 --workers 4
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dayplay_feed import __version__
from dayplay_feed.config.settings import get_settings
from dayplay_feed.core.logging import configure_logging, get_logger
from dayplay_feed.core.middleware import RequestTracingMiddleware


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Configures logging on startup. The feed service is created lazily on
    the first feed request.
    """
    settings = get_settings()

    configure_logging(
        json_logs=settings.is_production,
        log_level="DEBUG" if settings.debug else "INFO",
    )

    logger.info(
        "Starting feed API",
        environment=settings.environment,
        port=settings.port,
        store_backend=settings.store_backend.value,
        score_composition=settings.score_composition.value,
    )

    yield

    logger.info("Shutting down feed API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Dayplay Feed API",
        description="""
        Feed ranking for swipe-based local discovery.

        ## Main Endpoints

        - `/api/feed` - Ranked, filtered, paged feed
        - `/api/feed/session` - Sessions that never repeat a served listing
        - `/api/swipes`, `/api/vibes` - Preference signals
        - `/api/trending` - Popular listings per city
        - `/api/decision/spin` - Weighted pick for a vibe

        ## Health Checks

        - `/health`, `/health/detailed`, `/ready`, `/live`
        """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # =========================================================================
    # Middleware (order matters - first added = outermost)
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request tracing (adds X-Request-ID, logs timing)
    app.add_middleware(RequestTracingMiddleware)

    # =========================================================================
    # Routes
    # =========================================================================

    from dayplay_feed.api.routes.health import router as health_router
    app.include_router(health_router, tags=["Health"])

    from dayplay_feed.api.routes.feed import router as feed_router
    app.include_router(feed_router)

    return app


def main() -> None:
    """Console entry point: serve with uvicorn using configured host/port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "dayplay_feed.api.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
    )
