"""
Pydantic models for deposit payments.

Amounts are integers in cents, as expected by Stripe.  A ``Payment``
row is only written once Stripe reports the intent as succeeded; the
pending state lives on the service request.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .service_request import ServiceRequestRead


class PaymentIntentCreate(BaseModel):
    service_request_id: int = Field(..., ge=1)
    amount: int = Field(..., description="Deposit to charge now, in cents", examples=[5000])
    total_amount: Optional[int] = Field(None, description="Full price of the service, in cents", examples=[20000])


class PaymentIntentRead(BaseModel):
    client_secret: Optional[str]
    payment_intent_id: str


class PaymentConfirm(BaseModel):
    service_request_id: int = Field(..., ge=1)
    payment_intent_id: str = Field(..., min_length=1)


class PaymentConfirmRead(BaseModel):
    success: bool = True
    service_request: ServiceRequestRead


class PaymentRead(BaseModel):
    id: int
    service_request_id: int
    organizer_id: int
    professional_id: int
    amount: int
    currency: str
    stripe_payment_intent_id: str
    type: str
    status: str
    platform_fee: Optional[int] = None
    professional_earnings: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }
