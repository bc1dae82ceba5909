"""
FastAPI application entry point.
Challenge: Mount routes, middleware (Prometheus), error handlers, startup events (logging/ES init).
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from marketplace.api.error_handlers import register_error_handlers
from marketplace.api.v1.router import api_router
from marketplace.cache.redis_client import RedisCounterStore
from marketplace.config import get_settings
from marketplace.core.locks import KeyedLock
from marketplace.core.logging import setup_logging
from marketplace.core.rate_limit import RateLimiter
from marketplace.search.elasticsearch_client import ensure_items_index

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: configure logging, ensure Elasticsearch index when ES is available."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    if settings.search_indexing_enabled:
        try:
            await ensure_items_index()
        except Exception as exc:
            # ES may be down; the app still works (search returns empty)
            logger.warning("search index unavailable at startup: %s", exc)
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Marketplace backend: users, items, comments, favorites and follows.",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Process-local state shared by all requests
    app.state.item_locks = KeyedLock()
    app.state.rate_limiter = RateLimiter(
        RedisCounterStore(),
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )

    # CORS for frontend/API consumers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Prometheus metrics at /metrics
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()
