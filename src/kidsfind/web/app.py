"""
FastAPI application factory for KidsFind Monitor.

Wires the service container, middleware, error handlers and routers into one
application. The container is initialized on startup and shut down (timers
cancelled, data flushed) on shutdown.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core.config import Config
from ..core.logging import configure_logging, get_logger
from ..services.container import ServiceContainer, create_service_container
from .error_handlers import register_error_handlers
from .features.battery_api import router as battery_router
from .features.calls_api import router as calls_router
from .features.listening_api import router as listening_router
from .features.notifications_api import router as notifications_router
from .features.remote_sound_api import router as remote_sound_router
from .features.sos_api import router as sos_router
from .features.usage_api import router as usage_router
from .health_api import health_router
from .logging_middleware import LoggingMiddleware
from .metrics_api import metrics_router

logger = get_logger(__name__)


def create_app(
    config: Optional[Config] = None, container: Optional[ServiceContainer] = None
) -> FastAPI:
    """Build the HTTP application around a (new or given) service container."""
    if container is None:
        container = create_service_container(config or Config())
    config = container.config

    configure_logging(
        "DEBUG" if config.debug else config.monitoring.log_level,
        json_format=config.monitoring.json_logs,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await container.initialize()
        logger.info(
            "KidsFind Monitor started", environment=config.environment.value
        )
        try:
            yield
        finally:
            await container.shutdown()

    app = FastAPI(title="KidsFind Monitor API", version=__version__, lifespan=lifespan)
    app.state.container = container

    app.add_middleware(
        LoggingMiddleware,
        metrics=container.metrics if config.monitoring.prometheus_enabled else None,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    prefix = config.api.prefix
    for router in (
        listening_router,
        usage_router,
        calls_router,
        battery_router,
        sos_router,
        remote_sound_router,
        notifications_router,
    ):
        app.include_router(router, prefix=prefix)
    app.include_router(health_router)
    app.include_router(metrics_router)
    return app
