"""
Call filtering API endpoints.

Screening of incoming calls and messages, call/message logs, contacts and
whitelist requests.
"""

from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field

from ...features.call_filtering import CallFilteringService
from ..deps import get_call_filtering_service
from ..responses import ok

router = APIRouter(tags=["Call Filtering"])


class ScreenCallRequest(BaseModel):
    phone_number: str = Field(..., description="Caller number as received")
    caller_name: Optional[str] = None


class ScreenMessageRequest(BaseModel):
    phone_number: str
    content: str = ""
    sender_name: Optional[str] = None


class AllowedHoursModel(BaseModel):
    start: str = Field(..., description="HH:MM")
    end: str = Field(..., description="HH:MM")


class ContactRequest(BaseModel):
    """Request model for creating a contact."""

    name: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=1)
    relationship: str = Field("other")
    email: Optional[str] = None
    is_whitelisted: bool = False
    is_blocked: bool = False
    allow_calls: bool = True
    allow_sms: bool = True
    allowed_hours: Optional[AllowedHoursModel] = None
    priority: str = Field("medium", description="high, medium or low")
    added_by: str = ""


class WhitelistRequestBody(BaseModel):
    child_id: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    reason: str = ""


class ReviewRequest(BaseModel):
    approve: bool
    reviewer_id: str = Field(..., min_length=1)
    notes: Optional[str] = None


# Screening


@router.post("/monitoring/calls/screen")
async def screen_call(
    request: ScreenCallRequest,
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    return ok(service.handle_incoming_call(request.phone_number, request.caller_name))


@router.post("/monitoring/messages/screen")
async def screen_message(
    request: ScreenMessageRequest,
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    decision = service.handle_incoming_message(
        request.phone_number, request.content, request.sender_name
    )
    return ok(decision)


@router.get("/monitoring/calls")
async def call_logs(
    days: int = Query(7, ge=1),
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    return ok(service.get_call_logs(days))


@router.get("/monitoring/messages")
async def message_logs(
    days: int = Query(7, ge=1),
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    return ok(service.get_message_logs(days))


@router.delete("/monitoring/calls")
async def clear_logs(
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    service.clear_logs()
    return ok({"cleared": True})


@router.get("/monitoring/calls/settings")
async def get_settings(
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    return ok(asdict(service.get_settings()))


@router.put("/monitoring/calls/settings")
async def update_settings(
    changes: Dict[str, Any] = Body(...),
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    return ok(asdict(service.update_settings(**changes)))


# Contacts


@router.get("/contacts")
async def list_contacts(
    filter: Optional[str] = Query(
        None, description="whitelisted, blocked or emergency"
    ),
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    if filter == "whitelisted":
        return ok(service.get_whitelisted_contacts())
    if filter == "blocked":
        return ok(service.get_blocked_contacts())
    if filter == "emergency":
        return ok(service.get_emergency_contacts())
    return ok(service.get_contacts())


@router.post("/contacts")
async def add_contact(
    request: ContactRequest,
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    fields = request.model_dump()
    return ok(service.add_contact(**fields))


@router.put("/contacts/{contact_id}")
async def update_contact(
    contact_id: str,
    changes: Dict[str, Any] = Body(...),
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    return ok(service.update_contact(contact_id, **changes))


@router.delete("/contacts/{contact_id}")
async def remove_contact(
    contact_id: str,
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    service.get_contact(contact_id)
    return ok({"removed": service.remove_contact(contact_id)})


@router.post("/contacts/{contact_id}/block")
async def block_contact(
    contact_id: str,
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    return ok(service.block_contact(contact_id))


@router.post("/contacts/{contact_id}/unblock")
async def unblock_contact(
    contact_id: str,
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    return ok(service.unblock_contact(contact_id))


@router.post("/contacts/{contact_id}/whitelist")
async def whitelist_contact(
    contact_id: str,
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    return ok(service.whitelist_contact(contact_id))


# Whitelist requests


@router.post("/contacts/whitelist-requests")
async def request_whitelist(
    request: WhitelistRequestBody,
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    return ok(
        service.request_whitelist(
            request.child_id, request.phone_number, request.name, request.reason
        )
    )


@router.get("/contacts/whitelist-requests")
async def list_whitelist_requests(
    pending_only: bool = Query(False),
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    if pending_only:
        return ok(service.get_pending_whitelist_requests())
    return ok(service.get_whitelist_request_history())


@router.post("/contacts/whitelist-requests/{request_id}/review")
async def review_whitelist_request(
    request_id: str,
    review: ReviewRequest,
    service: CallFilteringService = Depends(get_call_filtering_service),
) -> Dict[str, Any]:
    reviewed = service.review_whitelist_request(
        request_id, review.approve, review.reviewer_id, review.notes
    )
    return ok({"reviewed": reviewed})
