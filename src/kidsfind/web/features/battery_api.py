"""Battery monitoring API endpoints."""

from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field

from ...core.exceptions import NotFoundError
from ...features.battery import BatteryMonitoringService
from ..deps import get_battery_service
from ..responses import ok

router = APIRouter(prefix="/monitoring/battery", tags=["Battery"])


class BatteryReport(BaseModel):
    """Battery state reported by the child device (level in percent)."""

    child_id: str = Field(..., min_length=1)
    level: float = Field(..., description="0-100, clamped")
    is_charging: bool = False
    temperature: Optional[float] = None
    health_pct: Optional[float] = None


@router.post("")
async def report_battery(
    report: BatteryReport,
    service: BatteryMonitoringService = Depends(get_battery_service),
) -> Dict[str, Any]:
    return ok(service.record_reading(**report.model_dump()))


@router.get("/alerts")
async def alert_history(
    child_id: Optional[str] = Query(None),
    days: int = Query(30, ge=1),
    service: BatteryMonitoringService = Depends(get_battery_service),
) -> Dict[str, Any]:
    return ok(service.get_alert_history(child_id, days))


@router.post("/alerts/{alert_id}/acknowledge")
async def acknowledge_alert(
    alert_id: str, service: BatteryMonitoringService = Depends(get_battery_service)
) -> Dict[str, Any]:
    if not service.acknowledge_alert(alert_id):
        raise NotFoundError("battery alert", alert_id)
    return ok({"acknowledged": True})


@router.get("/settings")
async def get_settings(
    service: BatteryMonitoringService = Depends(get_battery_service),
) -> Dict[str, Any]:
    return ok(asdict(service.get_settings()))


@router.put("/settings")
async def update_settings(
    changes: Dict[str, Any] = Body(...),
    service: BatteryMonitoringService = Depends(get_battery_service),
) -> Dict[str, Any]:
    return ok(asdict(service.update_settings(**changes)))


@router.get("/{child_id}")
async def current_battery(
    child_id: str,
    days: int = Query(1, ge=1, description="History window in days"),
    service: BatteryMonitoringService = Depends(get_battery_service),
) -> Dict[str, Any]:
    return ok(
        {
            "current": service.get_current_battery_info(child_id),
            "history": service.get_battery_history(child_id, days),
        }
    )


@router.get("/{child_id}/analytics")
async def battery_analytics(
    child_id: str,
    days: int = Query(7, ge=1),
    service: BatteryMonitoringService = Depends(get_battery_service),
) -> Dict[str, Any]:
    return ok(service.get_battery_analytics(child_id, days))
