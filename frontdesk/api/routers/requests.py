"""
Guest card requests API router.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from frontdesk.core.db import (
    RequestStatus,
    create_request, get_request, list_requests,
    update_request_status, delete_request
)
from frontdesk.api.models import CreateRequestBody, UpdateRequestBody
from frontdesk.api.security import require_api_key

router = APIRouter(prefix="/api/requests", tags=["Guest Card Requests"])


def _clean(value: Optional[str]) -> str:
    return value.strip() if value else ""


@router.get("")
def get_requests(
    id: Optional[str] = Query(None, description="Return a single request"),
    pending: bool = Query(False, description="Only pending requests"),
):
    """List requests newest first, only pending ones, or a single request by id."""
    if id:
        request = get_request(id)
        if not request:
            raise HTTPException(status_code=404, detail="Request not found")
        return request

    return list_requests(status=RequestStatus.PENDING if pending else None)


@router.post("", status_code=201)
def submit_request(body: CreateRequestBody):
    """
    Submit a guest card request.

    Accepts {firstName, lastName, email, phone}, or the older {name} form.
    """
    first_name = last_name = email = phone = None

    if body.first_name and body.last_name:
        first_name, last_name = _clean(body.first_name), _clean(body.last_name)
        if not first_name or not last_name:
            raise HTTPException(status_code=400, detail="First name and last name are required")
        email, phone = _clean(body.email), _clean(body.phone)
        if not email:
            raise HTTPException(status_code=400, detail="Email is required")
        if not phone:
            raise HTTPException(status_code=400, detail="Phone number is required")
        name = f"{first_name} {last_name}"
    elif body.name:
        name = _clean(body.name)
        if not name:
            raise HTTPException(status_code=400, detail="Name is required")
    else:
        raise HTTPException(status_code=400, detail="Name or first/last name is required")

    return create_request(
        name=name,
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=phone,
    )


@router.put("")
def update_request(body: UpdateRequestBody, id: Optional[str] = Query(None)):
    """Change a request's status."""
    if not id:
        raise HTTPException(status_code=400, detail="Request id is required")
    try:
        status = RequestStatus(body.status)
    except ValueError:
        allowed = ", ".join(s.value for s in RequestStatus)
        raise HTTPException(status_code=400, detail=f"Status must be one of: {allowed}")

    if not update_request_status(id, status):
        raise HTTPException(status_code=404, detail="Request not found")
    return {"message": "Request updated"}


@router.delete("", dependencies=[Depends(require_api_key)])
def remove_request(id: Optional[str] = Query(None)):
    """Delete a request."""
    if not id:
        raise HTTPException(status_code=400, detail="Request id is required")
    if not delete_request(id):
        raise HTTPException(status_code=404, detail="Request not found")
    return {"message": "Request deleted"}
