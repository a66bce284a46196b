"""
Prometheus metrics API endpoint.

Provides /metrics endpoint for Prometheus scraping and monitoring.
"""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import PlainTextResponse

from ..core.logging import get_logger
from ..services.container import ServiceContainer
from .deps import get_container

logger = get_logger(__name__)

metrics_router = APIRouter(prefix="/metrics", tags=["metrics"])


@metrics_router.get("")
async def get_metrics(container: ServiceContainer = Depends(get_container)) -> Response:
    """Get Prometheus metrics in text format."""
    metrics_data = container.metrics.get_metrics()
    logger.debug("Metrics endpoint accessed")
    return PlainTextResponse(
        content=metrics_data.decode("utf-8"),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
