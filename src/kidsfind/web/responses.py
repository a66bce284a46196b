"""
Response envelope helpers.

Every JSON response is either ``{"success": true, "data": ...}`` or
``{"success": false, "error": "<message>", "error_code": "..."}``.
"""

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

from ..core.exceptions import KidsFindError
from ..services.error_messages import ServiceErrorMessages


def _serialize(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


def ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Success envelope; objects with ``to_dict`` are serialized."""
    body: Dict[str, Any] = {"success": True, "data": _serialize(data)}
    if message:
        body["message"] = message
    return body


def error_body(error_code: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "success": False,
        "error": ServiceErrorMessages.for_code(error_code),
        "error_code": error_code,
    }
    if details:
        body["details"] = details
    return body


def error_response(
    error_code: str, details: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=ServiceErrorMessages.status_for(error_code),
        content=error_body(error_code, details),
    )


def kidsfind_error_response(error: KidsFindError) -> JSONResponse:
    code = error.error_code or "SERVER_ERROR"
    return error_response(code, error.details or None)
