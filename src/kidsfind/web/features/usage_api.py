"""Usage control API endpoints: screen time sessions and app control."""

from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field

from ...features.usage_control import AppControlRequest, UsageControlService
from ..deps import get_usage_service
from ..responses import ok

router = APIRouter(prefix="/monitoring", tags=["Usage Control"])


class StartScreenTimeRequest(BaseModel):
    device_type: str = Field("phone")


class StopScreenTimeRequest(BaseModel):
    child_id: Optional[str] = Field(None, description="Stop one child, or all")


class AppControlBody(BaseModel):
    child_id: str = Field(..., min_length=1)
    package_name: str = Field(..., min_length=1)
    action: str = Field(..., description="block, unblock, limit or unlimited")
    time_limit: Optional[int] = Field(None, description="Minutes, for 'limit'")
    reason: Optional[str] = None


class AppUsageReport(BaseModel):
    child_id: str = Field(..., min_length=1)
    package_name: str = Field(..., min_length=1)
    minutes: float = Field(..., ge=0)
    app_name: Optional[str] = None
    category: Optional[str] = None
    opens: int = Field(1, ge=0)


@router.post("/screentime/{child_id}/start")
async def start_screen_time(
    child_id: str,
    request: Optional[StartScreenTimeRequest] = None,
    service: UsageControlService = Depends(get_usage_service),
) -> Dict[str, Any]:
    device_type = request.device_type if request else "phone"
    started = await service.start_screen_time_monitoring(child_id, device_type)
    return ok({"started": started, "session": service.get_current_session(child_id)})


@router.post("/screentime/stop")
async def stop_screen_time(
    request: Optional[StopScreenTimeRequest] = None,
    service: UsageControlService = Depends(get_usage_service),
) -> Dict[str, Any]:
    stopped = await service.stop_screen_time_monitoring(
        request.child_id if request else None
    )
    return ok(stopped)


@router.get("/screentime/{child_id}")
async def today_usage(
    child_id: str, service: UsageControlService = Depends(get_usage_service)
) -> Dict[str, Any]:
    return ok(service.get_today_usage(child_id))


@router.get("/screentime/{child_id}/weekly")
async def weekly_usage(
    child_id: str, service: UsageControlService = Depends(get_usage_service)
) -> Dict[str, Any]:
    return ok(service.get_weekly_usage(child_id))


@router.post("/apps")
async def control_app(
    request: AppControlBody, service: UsageControlService = Depends(get_usage_service)
) -> Dict[str, Any]:
    applied = service.apply_app_control(AppControlRequest(**request.model_dump()))
    return ok({"applied": applied, "package_name": request.package_name})


@router.post("/apps/usage")
async def report_app_usage(
    report: AppUsageReport, service: UsageControlService = Depends(get_usage_service)
) -> Dict[str, Any]:
    app = service.record_app_usage(**report.model_dump())
    allowed, reason = service.is_app_allowed(report.child_id, report.package_name)
    return ok({"app": app, "allowed": allowed, "reason": reason})


@router.get("/apps/blocked")
async def blocked_apps(
    child_id: str = Query(..., min_length=1),
    service: UsageControlService = Depends(get_usage_service),
) -> Dict[str, Any]:
    return ok(service.get_blocked_apps(child_id))


@router.get("/apps/{package_name}/allowed")
async def app_allowed(
    package_name: str,
    child_id: str = Query(..., min_length=1),
    service: UsageControlService = Depends(get_usage_service),
) -> Dict[str, Any]:
    allowed, reason = service.is_app_allowed(child_id, package_name)
    return ok({"allowed": allowed, "reason": reason})


@router.get("/usage/settings")
async def get_settings(
    service: UsageControlService = Depends(get_usage_service),
) -> Dict[str, Any]:
    return ok(asdict(service.get_settings()))


@router.put("/usage/settings")
async def update_settings(
    changes: Dict[str, Any] = Body(...),
    service: UsageControlService = Depends(get_usage_service),
) -> Dict[str, Any]:
    return ok(asdict(service.update_settings(**changes)))
