"""
Pydantic models for service requests.

A service request is an organizer's formal inquiry to a professional.
Its ``status`` follows the lifecycle enforced by
``ServiceRequestService``; payment fields are filled in by the payment
flow.  Amounts are integers in the smallest currency unit (cents).
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

RequestStatus = Literal["pending", "accepted", "declined", "expired", "paid", "completed"]
PaymentStatus = Literal["unpaid", "pending", "paid", "failed"]


class ServiceRequestCreate(BaseModel):
    professional_id: int = Field(..., ge=1)
    event_title: str = Field(..., min_length=1, max_length=200)
    request_message: str = Field(..., min_length=1, max_length=5000)
    event_date: Optional[str] = Field(None, examples=["2026-05-02"])
    event_location: Optional[str] = None
    event_description: Optional[str] = Field(None, max_length=5000)
    expires_at: Optional[datetime] = Field(None, description="The request expires if not answered by then")
    deposit_amount: Optional[int] = Field(None, gt=0, description="Requested deposit in cents")
    total_amount: Optional[int] = Field(None, gt=0, description="Quoted total in cents")

    @model_validator(mode="after")
    def _deposit_within_total(self) -> "ServiceRequestCreate":
        if self.deposit_amount and self.total_amount and self.deposit_amount > self.total_amount:
            raise ValueError("deposit_amount cannot exceed total_amount")
        return self


class ServiceRequestStatusUpdate(BaseModel):
    status: RequestStatus
    response_message: Optional[str] = Field(None, max_length=5000)


class ServiceRequestRead(BaseModel):
    id: int
    organizer_id: int
    professional_id: int
    event_title: str
    event_date: Optional[str] = None
    event_location: Optional[str] = None
    event_description: Optional[str] = None
    request_message: str
    status: RequestStatus
    response_message: Optional[str] = None
    responded_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    deposit_amount: Optional[int] = None
    total_amount: Optional[int] = None
    stripe_payment_intent_id: Optional[str] = None
    payment_status: PaymentStatus = "unpaid"
    paid_at: Optional[datetime] = None
    created_at: datetime

    model_config = {
        "from_attributes": True,
    }
