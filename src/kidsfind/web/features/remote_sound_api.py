"""Remote sound API endpoints."""

from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field

from ...core.logging import get_logger, set_request_context
from ...features.remote_sound import RemoteSoundService
from ..deps import get_remote_sound_service
from ..responses import ok

router = APIRouter(prefix="/remote-sound", tags=["Remote Sound"])
logger = get_logger(__name__)


class TriggerSoundRequest(BaseModel):
    child_id: str = Field(..., min_length=1)
    parent_id: str = Field(..., min_length=1)
    sound_type: Optional[str] = Field(
        None, description="alarm, whistle, siren, bell or custom"
    )
    duration: Optional[int] = Field(
        None, ge=0, description="Seconds, clamped to the configured bounds"
    )
    volume: Optional[int] = Field(None, ge=0, le=100)
    message: Optional[str] = None


class StopSoundsRequest(BaseModel):
    child_id: Optional[str] = None


class VolumeRequest(BaseModel):
    volume: int = Field(..., ge=0, le=100)


@router.post("/trigger")
async def trigger_sound(
    request: TriggerSoundRequest,
    service: RemoteSoundService = Depends(get_remote_sound_service),
) -> Dict[str, Any]:
    set_request_context(child_id=request.child_id)
    sound = await service.trigger_remote_sound(**request.model_dump())
    logger.log_session_event(
        "started", sound.id, sound.child_id, sound_type=sound.sound_type.value
    )
    return ok(sound)


@router.post("/stop")
async def stop_sounds(
    request: Optional[StopSoundsRequest] = None,
    service: RemoteSoundService = Depends(get_remote_sound_service),
) -> Dict[str, Any]:
    child_id = request.child_id if request else None
    return ok({"stopped": await service.stop_all_sounds(child_id)})


@router.get("")
async def active_sounds(
    child_id: Optional[str] = Query(None),
    service: RemoteSoundService = Depends(get_remote_sound_service),
) -> Dict[str, Any]:
    return ok(service.get_active_sounds(child_id))


@router.get("/history")
async def sound_history(
    child_id: Optional[str] = Query(None),
    days: int = Query(7, ge=1),
    service: RemoteSoundService = Depends(get_remote_sound_service),
) -> Dict[str, Any]:
    return ok(service.get_sound_history(child_id, days))


@router.get("/statistics")
async def statistics(
    child_id: Optional[str] = Query(None),
    service: RemoteSoundService = Depends(get_remote_sound_service),
) -> Dict[str, Any]:
    return ok(service.get_statistics(child_id))


@router.get("/volume")
async def get_volume(
    service: RemoteSoundService = Depends(get_remote_sound_service),
) -> Dict[str, Any]:
    return ok({"volume": service.get_volume()})


@router.put("/volume")
async def set_volume(
    request: VolumeRequest,
    service: RemoteSoundService = Depends(get_remote_sound_service),
) -> Dict[str, Any]:
    return ok({"volume": await service.set_volume(request.volume)})


@router.get("/settings")
async def get_settings(
    service: RemoteSoundService = Depends(get_remote_sound_service),
) -> Dict[str, Any]:
    return ok(asdict(service.get_settings()))


@router.put("/settings")
async def update_settings(
    changes: Dict[str, Any] = Body(...),
    service: RemoteSoundService = Depends(get_remote_sound_service),
) -> Dict[str, Any]:
    return ok(asdict(service.update_settings(**changes)))


@router.get("/{request_id}")
async def get_sound(
    request_id: str,
    service: RemoteSoundService = Depends(get_remote_sound_service),
) -> Dict[str, Any]:
    return ok(service.get_request(request_id))


@router.post("/{request_id}/cancel")
async def cancel_sound(
    request_id: str,
    service: RemoteSoundService = Depends(get_remote_sound_service),
) -> Dict[str, Any]:
    set_request_context(session_id=request_id)
    return ok({"cancelled": await service.cancel_remote_sound(request_id)})
