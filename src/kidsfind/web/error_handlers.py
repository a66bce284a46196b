"""
Exception handlers that turn errors into the failure envelope.

Domain errors carry their own error code. Request validation failures map to
``VALIDATION_ERROR``; anything unexpected is logged and reported as
``SERVER_ERROR``.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.exceptions import KidsFindError
from ..core.logging import get_logger
from .responses import error_response, kidsfind_error_response

logger = get_logger(__name__)

_STATUS_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
}


def _record_error(request: Request, component: str, error_type: str) -> None:
    container = getattr(request.app.state, "container", None)
    if container is not None:
        container.metrics.record_error(component, error_type)


async def handle_kidsfind_error(request: Request, exc: KidsFindError) -> JSONResponse:
    logger.warning(
        "Request rejected",
        path=request.url.path,
        error_code=exc.error_code,
        error=exc.message,
    )
    _record_error(request, exc.component or "api", exc.error_code or "unknown")
    return kidsfind_error_response(exc)


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"field": ".".join(str(p) for p in e.get("loc", ())), "reason": e.get("msg")}
        for e in exc.errors()
    ]
    return error_response("VALIDATION_ERROR", {"errors": errors})


async def handle_http_error(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = _STATUS_CODES.get(exc.status_code, "SERVER_ERROR")
    response = error_response(code)
    response.status_code = exc.status_code
    return response


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unexpected error occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
    )
    _record_error(request, "api", type(exc).__name__)
    return error_response("SERVER_ERROR")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(KidsFindError, handle_kidsfind_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, handle_http_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)
