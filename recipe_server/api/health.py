"""
Health endpoints for operational monitoring.

/healthz is liveness only. /readyz asks the configured recipe store whether
it can serve (PostgreSQL reachable and tables present; in-memory is always ready).
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from recipe_server.api.deps import get_gateway
from recipe_server.features.gateway.service import RecipeGateway

logger = logging.getLogger("recipe_server")

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz(gateway: RecipeGateway = Depends(get_gateway)):
    try:
        ready = gateway.store.check_ready()
    except Exception as e:
        logger.error(f"[readyz] readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "recipe store unreachable"})

    if not ready:
        return JSONResponse(status_code=503, content={"status": "error", "detail": "recipe store not ready"})
    return {"status": "ok"}
