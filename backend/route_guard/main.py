"""Route Guard — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Every non-excluded request passes through AccessGuardMiddleware
    - Collaborators (DB pool, HTTP client, pipeline) built once in the lifespan
      and shared read-only across requests
    - Global error handlers map RouteGuardError → structured JSON responses
    - An invalid route configuration does not stop startup: the guard fails open
      and /api/v1/health/ready reports route_config_invalid

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Pipeline stored on app.state: the middleware is constructed before startup,
      so it looks the pipeline up per request instead of holding it
"""

import logging
import os
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from route_guard.api.error_handlers import register_error_handlers
from route_guard.api.guard_middleware import AccessGuardMiddleware
from route_guard.api.routes import health
from route_guard.config import Settings, get_settings
from route_guard.core.errors import RouteConfigError
from route_guard.core.route_config import load_route_config
from route_guard.infrastructure.database import close_db, init_db
from route_guard.infrastructure.observability import setup_logging
from route_guard.infrastructure.profile_store import SqlProfileStore
from route_guard.infrastructure.session_backend import HttpSessionBackend
from route_guard.services.access_pipeline import AccessPipeline
from route_guard.services.identity_resolver import IdentityResolver
from route_guard.services.profile_status_provider import ProfileStatusProvider

logger = logging.getLogger(__name__)


def build_pipeline(
    settings: Settings, http_client: httpx.AsyncClient, db_manager,
) -> AccessPipeline:
    """Wire the pipeline from settings and shared IO clients."""
    config = load_route_config(settings.route_config_path)
    identity_resolver = IdentityResolver(
        HttpSessionBackend(http_client, settings.auth_base_url, settings.auth_api_key),
        timeout_seconds=settings.identity_timeout_seconds,
        max_retries=settings.identity_max_retries,
        base_delay_ms=settings.identity_base_delay_ms,
        max_delay_ms=settings.identity_max_delay_ms,
        refresh_margin_seconds=settings.refresh_margin_seconds,
    )
    profile_provider = ProfileStatusProvider(
        SqlProfileStore(db_manager),
        timeout_seconds=settings.profile_timeout_seconds,
    )
    return AccessPipeline(
        config,
        identity_resolver,
        profile_provider,
        window_ms=settings.guard_window_ms,
        max_redirects=settings.guard_max_redirects,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db_manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    http_client = httpx.AsyncClient(timeout=settings.auth_http_timeout_seconds)
    app.state.route_config_error = None
    try:
        app.state.access_pipeline = build_pipeline(settings, http_client, db_manager)
    except RouteConfigError as e:
        # Guard passes requests through; readiness reports the error
        logger.critical(e.message, extra={"error_code": e.code})
        app.state.access_pipeline = None
        app.state.route_config_error = e
    else:
        logger.info(
            f"Route guard started (routes {app.state.access_pipeline.config.version})",
        )
    yield
    logger.info("Route guard shutting down")
    await http_client.aclose()
    await close_db()


app = FastAPI(title="Route Guard", version="1.0.0", lifespan=lifespan)

app.add_middleware(AccessGuardMiddleware)
register_error_handlers(app)

app.include_router(health.router)

# Static files: the guarded frontend build, mounted after API routes
if os.path.isdir("static"):
    app.mount("/", StaticFiles(directory="static", html=True), name="static")
