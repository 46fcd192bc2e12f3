# WORKFLOW: Health check endpoints for monitoring and operational status.
# Used by: Load balancers, monitoring systems, operational dashboards
# Endpoints:
# 1. /healthz - Basic health check (always returns healthy)
# 2. /readyz - Readiness check (schema table loaded, working directories present)
# 3. /livez - Liveness check for Kubernetes probes
#
# Health flow: Health check request -> Service status check -> Health response
# Used for service discovery, load balancing, and operational monitoring.

from fastapi import APIRouter, Request
from pathlib import Path
import logging
from datetime import datetime, timezone

from core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/healthz")
async def health_check():
    """
    Basic health check endpoint.

    Returns:
        Health status of the API
    """
    return {
        "status": "healthy",
        "timestamp": _now(),
        "version": settings.version,
        "environment": settings.environment
    }


@router.get("/readyz")
async def readiness_check(request: Request):
    """
    Readiness check endpoint.

    Checks if the service is ready to handle requests by verifying:
    - The XSD schema table has been loaded
    - The schema directory exists

    Returns:
        Readiness status with detailed checks
    """
    schema_table = getattr(request.app.state, "schema_table", None)
    checks = {
        "schema_table": schema_table is not None,
        "schema_directory": Path(settings.schema_path).is_dir(),
    }

    is_ready = all(checks.values())
    if not is_ready:
        logger.warning(f"Readiness check failed: {checks}")

    return {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": _now(),
        "checks": checks,
        "record_types": len(schema_table) if schema_table is not None else 0,
        "version": settings.version
    }


@router.get("/livez")
async def liveness_check():
    """
    Liveness check endpoint.

    Simple check to determine if the service is alive.
    Used by Kubernetes liveness probes.

    Returns:
        Liveness status
    """
    return {
        "status": "alive",
        "timestamp": _now()
    }
