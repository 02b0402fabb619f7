"""
Health check API endpoints.

This module provides health check endpoints for monitoring
application and component status.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....application.startup import ApplicationStartup
from ....infrastructure.config.models import ApplicationConfig
from ..dependencies import get_config, get_startup

router = APIRouter(prefix="/health")


def _application_info(config: ApplicationConfig) -> Dict[str, Any]:
    return {
        "name": config.name,
        "version": config.version,
        "environment": config.environment
    }


@router.get("")
async def health_check(
    config: ApplicationConfig = Depends(get_config)
) -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Answers as long as the process serves HTTP.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "application": _application_info(config)
    }


@router.get("/detailed")
async def detailed_health_check(
    config: ApplicationConfig = Depends(get_config),
    startup: ApplicationStartup = Depends(get_startup)
) -> Dict[str, Any]:
    """
    Detailed health check with component status.

    Returns the health report of the store, both queues, the lifecycle
    engine and the inbound poller.
    """
    components_health = {}
    overall_healthy = True

    for name, component in startup.components.items():
        try:
            health_info = await component.check_health()
        except Exception as e:
            health_info = {
                "healthy": False,
                "status": "error",
                "details": {"error": str(e)}
            }

        components_health[name] = health_info
        if not health_info.get("healthy", True):
            overall_healthy = False

    return {
        "status": "healthy" if overall_healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "application": _application_info(config),
        "components": components_health
    }
