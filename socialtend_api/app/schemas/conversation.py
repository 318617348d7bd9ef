"""
Pydantic models for conversations and messages.

A conversation pairs one organizer with one professional for one
event.  Messages carry the side of the conversation they were sent
from (``sender_type``) and a server-side ``is_read`` flag.
"""

from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

SenderType = Literal["organizer", "professional"]
ConversationStatus = Literal["active", "closed", "archived"]


class ConversationCreate(BaseModel):
    professional_id: int = Field(..., ge=1, description="User ID of the professional")
    event_title: str = Field(..., min_length=1, max_length=200, examples=["Spring Gala"])
    organizer_name: Optional[str] = Field(None, max_length=200)
    organizer_email: Optional[EmailStr] = None
    event_date: Optional[str] = Field(None, examples=["2026-05-02"])
    event_location: Optional[str] = None
    event_description: Optional[str] = Field(None, max_length=5000)


class ConversationRead(BaseModel):
    id: int
    organizer_id: int
    organizer_name: str
    organizer_email: str
    professional_id: int
    event_title: str
    event_date: Optional[str] = None
    event_location: Optional[str] = None
    event_description: Optional[str] = None
    status: ConversationStatus
    created_at: datetime

    model_config = {
        "from_attributes": True,
    }


class ConversationStatusUpdate(BaseModel):
    status: Literal["active", "archived"]


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    sender_name: Optional[str] = Field(None, max_length=200)


class LegacyMessageCreate(MessageCreate):
    """Message payload that names its conversation in the body."""

    conversation_id: int = Field(..., ge=1)


class MessageRead(BaseModel):
    id: int
    conversation_id: int
    sender_type: SenderType
    sender_name: str
    content: str
    is_read: bool
    timestamp: datetime

    model_config = {
        "from_attributes": True,
    }


class MarkReadRequest(BaseModel):
    # Side of the conversation doing the reading.  Defaults to the
    # caller's own side.
    sender_type: Optional[SenderType] = None


class MarkReadResponse(BaseModel):
    success: bool = True
    updated: int


class UnreadCount(BaseModel):
    total: int
    conversations: Dict[int, int]
