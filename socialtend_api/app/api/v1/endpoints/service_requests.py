"""
Service request endpoints for API v1.

Organizers send requests; the addressed professional accepts or
declines them.  Payment moves an accepted request to ``paid`` (see the
payments endpoints) and either participant may then mark it
``completed``.
"""

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from socialtend_api.app.core.security import get_current_user, require_roles
from socialtend_api.app.schemas.service_request import (
    RequestStatus,
    ServiceRequestCreate,
    ServiceRequestRead,
    ServiceRequestStatusUpdate,
)
from socialtend_api.app.services.service_request_service import InvalidTransitionError, ServiceRequestService

router = APIRouter()


@router.post("/", response_model=ServiceRequestRead, status_code=status.HTTP_201_CREATED)
async def create_service_request(
    data: ServiceRequestCreate,
    current_user: dict = Depends(require_roles("organizer")),
) -> ServiceRequestRead:
    try:
        return await ServiceRequestService.create_request(current_user["user_id"], data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[ServiceRequestRead])
async def list_service_requests(
    role: Optional[Literal["organizer", "professional"]] = Query(
        None, description="'professional' lists requests addressed to you; otherwise requests you sent"
    ),
    status_param: Optional[RequestStatus] = Query(None, alias="status"),
    current_user: dict = Depends(get_current_user),
) -> List[ServiceRequestRead]:
    return await ServiceRequestService.list_requests(current_user["user_id"], role=role, status=status_param)


@router.get("/{request_id}", response_model=ServiceRequestRead)
async def get_service_request(
    request_id: int = Path(..., description="Service request ID"),
    current_user: dict = Depends(get_current_user),
) -> ServiceRequestRead:
    request = await ServiceRequestService.get_request(request_id)
    if not request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service request not found")
    if ServiceRequestService.participant_side(request, current_user["user_id"]) is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a participant of this service request")
    return request


@router.patch("/{request_id}/status", response_model=ServiceRequestRead)
async def update_service_request_status(
    payload: ServiceRequestStatusUpdate,
    request_id: int = Path(..., description="Service request ID"),
    current_user: dict = Depends(get_current_user),
) -> ServiceRequestRead:
    """Move a request along its lifecycle.

    ``accepted`` and ``declined`` are reserved for the addressed
    professional while the request is pending; ``completed`` is allowed
    to either participant once it is paid.  Everything else is a 409.
    """
    try:
        updated = await ServiceRequestService.update_status(
            request_id, payload.status, current_user["user_id"], payload.response_message
        )
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service request not found")
    return updated
