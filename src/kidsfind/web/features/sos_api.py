"""SOS alert API endpoints."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ...core.exceptions import NotFoundError
from ...core.logging import get_logger, set_request_context
from ...features.sos import Location, SOSService
from ...services.error_messages import SuccessMessages
from ..deps import get_sos_service
from ..responses import ok

router = APIRouter(prefix="/alerts/sos", tags=["SOS"])
logger = get_logger(__name__)


class LocationModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: float = 0.0
    altitude: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    address: Optional[str] = None


class TriggerRequest(BaseModel):
    child_id: str = Field(..., min_length=1)
    location: Optional[LocationModel] = None
    message: Optional[str] = None


class CloseRequest(BaseModel):
    alert_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1, description="Who resolves or cancels")


@router.post("/create")
async def trigger_sos(
    request: TriggerRequest, service: SOSService = Depends(get_sos_service)
) -> Dict[str, Any]:
    set_request_context(child_id=request.child_id)
    location = Location(**request.location.model_dump()) if request.location else None
    alert = await service.trigger_sos_alert(request.child_id, location, request.message)
    logger.log_alert("sos_triggered", alert.severity, alert.child_id, alert_id=alert.id)
    return ok(alert, message=SuccessMessages.SOS_SENT)


@router.post("/resolve")
async def resolve_sos(
    request: CloseRequest, service: SOSService = Depends(get_sos_service)
) -> Dict[str, Any]:
    return ok({"resolved": service.resolve_sos_alert(request.alert_id, request.user_id)})


@router.post("/cancel")
async def cancel_sos(
    request: CloseRequest, service: SOSService = Depends(get_sos_service)
) -> Dict[str, Any]:
    return ok({"cancelled": service.cancel_sos_alert(request.alert_id, request.user_id)})


@router.get("")
async def active_alerts(
    child_id: Optional[str] = Query(None),
    service: SOSService = Depends(get_sos_service),
) -> Dict[str, Any]:
    return ok(
        {
            "alerts": service.get_active_alerts(child_id),
            "emergency_mode": service.is_emergency_mode_active(),
        }
    )


@router.get("/history")
async def alert_history(
    child_id: Optional[str] = Query(None),
    days: int = Query(30, ge=1),
    service: SOSService = Depends(get_sos_service),
) -> Dict[str, Any]:
    return ok(service.get_alert_history(child_id, days))


@router.get("/{alert_id}")
async def alert_details(
    alert_id: str, service: SOSService = Depends(get_sos_service)
) -> Dict[str, Any]:
    details = service.get_alert_details(alert_id)
    if details is None:
        raise NotFoundError("SOS alert", alert_id)
    return ok(details)
