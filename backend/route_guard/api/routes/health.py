"""Health & Readiness Probes — liveness and readiness endpoints.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready raises ServiceNotReadyError (503 envelope with a reason)
      if the profile database is unreachable, the route configuration failed to
      load, or the access pipeline was not built (readiness)
    - Both live under /api, which the guard middleware never intercepts

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes the
      instance from the load balancer
    - Route config version reported so a rollout can be checked per instance
"""

import logging

from fastapi import APIRouter, Request, status

from route_guard.core.errors import ServiceNotReadyError
from route_guard.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "route-guard",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness probe — database connectivity and pipeline presence."""
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        raise ServiceNotReadyError("database_unavailable", "Profile database unreachable")

    pipeline = getattr(request.app.state, "access_pipeline", None)
    if pipeline is None:
        config_error = getattr(request.app.state, "route_config_error", None)
        if config_error is not None:
            raise ServiceNotReadyError("route_config_invalid", config_error.message)
        raise ServiceNotReadyError("pipeline_unavailable", "Access pipeline not built")

    return {
        "status": "ready",
        "checks": {"database": "healthy"},
        "route_config_version": pipeline.config.version,
    }
