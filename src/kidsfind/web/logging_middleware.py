"""
Request correlation, access logging and request metrics.

Each request gets a request id (reused from ``X-Request-ID`` when the client
sends one) and a fresh trace id. Both are bound to the logging context for
the duration of the request and echoed back as response headers. A client
may name the monitored child with ``X-Child-ID``.
"""

import time
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..core.logging import (
    clear_request_context,
    generate_request_id,
    generate_trace_id,
    get_logger,
    set_request_context,
)
from ..core.metrics import MetricsCollector

REQUEST_ID_HEADER = "X-Request-ID"
TRACE_ID_HEADER = "X-Trace-ID"
CHILD_ID_HEADER = "X-Child-ID"


def route_template(request: Request) -> str:
    """``/contacts/{contact_id}`` rather than the concrete path, when routed."""
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class LoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, metrics: Optional[MetricsCollector] = None):
        super().__init__(app)
        self.logger = get_logger("kidsfind.web.access")
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        trace_id = generate_trace_id()
        set_request_context(
            request_id=request_id,
            trace_id=trace_id,
            child_id=request.headers.get(CHILD_ID_HEADER),
        )

        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception as e:
            self.logger.error(
                "Unhandled error while serving request",
                method=request.method,
                path=request.url.path,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                error_type=type(e).__name__,
                error=str(e),
            )
            raise
        else:
            elapsed = time.perf_counter() - started
            self.logger.log_api_request(
                request.method,
                request.url.path,
                response.status_code,
                round(elapsed * 1000, 2),
            )
            if self.metrics is not None:
                self.metrics.record_api_request(
                    request.method, route_template(request), response.status_code, elapsed
                )
            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers[TRACE_ID_HEADER] = trace_id
            return response
        finally:
            clear_request_context()
