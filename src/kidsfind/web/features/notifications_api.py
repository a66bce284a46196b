"""Parent notification API endpoints."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ...services.container import ServiceContainer
from ..deps import get_container
from ..responses import ok

router = APIRouter(prefix="/notifications", tags=["Notifications"])


class MarkReadRequest(BaseModel):
    ids: List[str] = Field(default_factory=list, description="Empty marks all")
    child_id: Optional[str] = None


@router.get("")
async def list_notifications(
    child_id: Optional[str] = Query(None),
    unread_only: bool = Query(False),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    center = container.notifications
    return ok(
        {
            "notifications": center.list(child_id, unread_only),
            "unread": center.unread_count(child_id),
        }
    )


@router.post("/read")
async def mark_read(
    request: MarkReadRequest, container: ServiceContainer = Depends(get_container)
) -> Dict[str, Any]:
    center = container.notifications
    if request.ids:
        marked = sum(1 for nid in request.ids if center.mark_read(nid))
    else:
        marked = center.mark_all_read(request.child_id)
    return ok({"marked": marked})
