"""
Payment endpoints for API v1.

Deposits for accepted service requests are charged through Stripe.
The client creates a PaymentIntent here, completes it with Stripe.js
and then calls ``/confirm``; Stripe also reports the outcome to
``/stripe/webhook``.  Either path records the payment exactly once.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from socialtend_api.app.core.security import get_current_user
from socialtend_api.app.schemas.payment import (
    PaymentConfirm,
    PaymentConfirmRead,
    PaymentIntentCreate,
    PaymentIntentRead,
    PaymentRead,
)
from socialtend_api.app.schemas.service_request import ServiceRequestRead
from socialtend_api.app.services.payment_service import (
    PaymentProviderError,
    PaymentService,
    PaymentsNotConfiguredError,
)
from socialtend_api.app.services.service_request_service import InvalidTransitionError, ServiceRequestService

router = APIRouter()


async def _load_request(service_request_id: int) -> ServiceRequestRead:
    request = await ServiceRequestService.get_request(service_request_id)
    if not request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service request not found")
    return request


@router.post("/create-payment-intent", response_model=PaymentIntentRead)
async def create_payment_intent(
    data: PaymentIntentCreate, current_user: dict = Depends(get_current_user)
) -> PaymentIntentRead:
    """Start a deposit payment for an accepted service request.

    Only the organizer who sent the request may pay for it.  Amounts are
    in cents.
    """
    request = await _load_request(data.service_request_id)
    if request.organizer_id != current_user["user_id"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the organizer can pay for this request")
    try:
        return await PaymentService.create_payment_intent(request, data)
    except PaymentsNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except PaymentProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/confirm", response_model=PaymentConfirmRead)
async def confirm_payment(data: PaymentConfirm, current_user: dict = Depends(get_current_user)) -> PaymentConfirmRead:
    request = await _load_request(data.service_request_id)
    if ServiceRequestService.participant_side(request, current_user["user_id"]) is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a participant of this service request")
    try:
        updated = await PaymentService.confirm_payment(request, data.payment_intent_id)
    except PaymentsNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except PaymentProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return PaymentConfirmRead(service_request=updated)


@router.post("/stripe/webhook")
async def stripe_webhook(request: Request) -> dict:
    """Receive Stripe events.  The raw body is needed for the signature check."""
    payload = await request.body()
    try:
        event_type = await PaymentService.handle_webhook(payload, request.headers.get("stripe-signature"))
    except PaymentsNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"received": True, "type": event_type}


@router.get("/", response_model=List[PaymentRead])
async def list_payments(
    service_request_id: Optional[int] = Query(None, description="Only payments for this service request"),
    current_user: dict = Depends(get_current_user),
) -> List[PaymentRead]:
    return await PaymentService.list_payments(current_user["user_id"], service_request_id=service_request_id)
