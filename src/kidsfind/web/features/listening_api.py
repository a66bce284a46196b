"""
Environment listening API endpoints.

Session start/stop/cancel, child consent answers, premium access and
listening settings.
"""

from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field

from ...core.logging import get_logger, set_request_context
from ...features.environment_listening import (
    EnvironmentListeningService,
    ListeningRequest,
    StopReason,
)
from ..deps import get_listening_service
from ..responses import ok

logger = get_logger(__name__)

router = APIRouter(prefix="/listening", tags=["Environment Listening"])


class StartSessionRequest(BaseModel):
    """Request model for opening a listening session."""

    child_id: str = Field(..., min_length=1, description="Child to listen to")
    parent_id: str = Field(..., min_length=1, description="Requesting parent")
    duration: int = Field(300, description="Requested duration in seconds")
    reason: str = Field(..., description="emergency, safety_check or lost_child")
    emergency_mode: bool = Field(False, description="Bypass consent when allowed")
    require_consent: bool = Field(True, description="Ask the child first")
    audio_quality: str = Field("medium", description="low, medium or high")
    metadata: Dict[str, Any] = Field(default_factory=dict)


class StopSessionRequest(BaseModel):
    reason: str = Field(StopReason.USER_REQUEST.value)


class CancelSessionRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="Parent or child cancelling")


class ConsentAnswer(BaseModel):
    child_id: str = Field(..., min_length=1)
    granted: bool


class PremiumRequest(BaseModel):
    parent_id: str = Field(..., min_length=1)
    is_premium: bool = True


@router.post("/sessions")
async def start_session(
    request: StartSessionRequest,
    service: EnvironmentListeningService = Depends(get_listening_service),
) -> Dict[str, Any]:
    """Open a listening session."""
    session = await service.start_listening_session(
        ListeningRequest(**request.model_dump())
    )
    logger.log_session_event("started", session.id, session.subject_id)
    return ok(session)


@router.post("/sessions/{session_id}/stop")
async def stop_session(
    session_id: str,
    request: Optional[StopSessionRequest] = None,
    service: EnvironmentListeningService = Depends(get_listening_service),
) -> Dict[str, Any]:
    reason = request.reason if request else StopReason.USER_REQUEST.value
    set_request_context(session_id=session_id)
    stopped = await service.stop_listening_session(session_id, reason)
    session = service.get_session(session_id)
    if stopped:
        logger.log_session_event("stopped", session_id, session.subject_id, reason=reason)
    return ok({"stopped": stopped, "session": session})


@router.post("/sessions/{session_id}/cancel")
async def cancel_session(
    session_id: str,
    request: CancelSessionRequest,
    service: EnvironmentListeningService = Depends(get_listening_service),
) -> Dict[str, Any]:
    set_request_context(session_id=session_id)
    cancelled = await service.cancel_listening_session(session_id, request.user_id)
    return ok({"cancelled": cancelled})


@router.get("/sessions")
async def list_sessions(
    parent_id: Optional[str] = Query(None),
    days: int = Query(30, ge=1),
    service: EnvironmentListeningService = Depends(get_listening_service),
) -> Dict[str, Any]:
    return ok(service.get_session_history(parent_id, days))


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    service: EnvironmentListeningService = Depends(get_listening_service),
) -> Dict[str, Any]:
    return ok(service.get_session(session_id))


@router.get("/active/{child_id}")
async def get_active_session(
    child_id: str,
    service: EnvironmentListeningService = Depends(get_listening_service),
) -> Dict[str, Any]:
    return ok(service.get_active_session(child_id))


@router.post("/consent")
async def answer_consent(
    answer: ConsentAnswer,
    service: EnvironmentListeningService = Depends(get_listening_service),
) -> Dict[str, Any]:
    """Deliver the child's answer to a pending consent request."""
    delivered = service.consent.respond(answer.child_id, answer.granted)
    return ok({"delivered": delivered})


@router.get("/consent/{child_id}")
async def pending_consent(
    child_id: str,
    service: EnvironmentListeningService = Depends(get_listening_service),
) -> Dict[str, Any]:
    return ok(service.consent.pending(child_id))


@router.post("/premium")
async def set_premium(
    request: PremiumRequest,
    service: EnvironmentListeningService = Depends(get_listening_service),
) -> Dict[str, Any]:
    service.set_premium(request.parent_id, request.is_premium)
    return ok({"parent_id": request.parent_id, "is_premium": request.is_premium})


@router.get("/settings")
async def get_settings(
    service: EnvironmentListeningService = Depends(get_listening_service),
) -> Dict[str, Any]:
    return ok(asdict(service.get_settings()))


@router.put("/settings")
async def update_settings(
    changes: Dict[str, Any] = Body(...),
    service: EnvironmentListeningService = Depends(get_listening_service),
) -> Dict[str, Any]:
    return ok(asdict(service.update_settings(**changes)))
