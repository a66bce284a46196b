"""
Health check API endpoints.

Reports whether each monitoring service is initialized and reachable.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from .. import __version__
from ..core.logging import get_logger
from ..services.container import ServiceContainer
from .deps import get_container
from .responses import ok

logger = get_logger(__name__)

health_router = APIRouter(prefix="/health", tags=["health"])


@health_router.get("")
async def health_check(
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    """Basic health check endpoint."""
    services = await container.health()
    uptime = (container.clock() - container.started_at).total_seconds()
    return ok(
        {
            "status": "healthy" if all(services.values()) else "degraded",
            "version": __version__,
            "environment": container.config.environment.value,
            "uptime_seconds": uptime,
            "services": services,
            "emergency_mode": container.sos.is_emergency_mode_active(),
        }
    )
