"""
Legacy message routes for API v1.

Older clients address messages by conversation under ``/messages``
instead of ``/conversations/{id}/messages``.  These routes share the
same permission checks and service calls.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from socialtend_api.app.core.rate_limit import message_rate_limit
from socialtend_api.app.core.security import get_current_user
from socialtend_api.app.schemas.conversation import LegacyMessageCreate, MessageRead
from socialtend_api.app.services.conversation_service import ConversationService

from .conversations import load_participant_conversation, post_message

router = APIRouter()


@router.get("/{conversation_id}", response_model=List[MessageRead])
async def list_messages(
    conversation_id: int = Path(..., description="Conversation ID"),
    since_id: Optional[int] = Query(None, ge=0),
    current_user: dict = Depends(get_current_user),
) -> List[MessageRead]:
    await load_participant_conversation(conversation_id, current_user)
    return await ConversationService.list_messages(conversation_id, since_id=since_id)


@router.post(
    "",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(message_rate_limit)],
)
async def send_message(data: LegacyMessageCreate, current_user: dict = Depends(get_current_user)) -> MessageRead:
    return await post_message(data.conversation_id, data, current_user)
