"""
Conversation and message endpoints for API v1.

Only the two participants of a conversation (the organizer who opened
it and the professional it addresses) can read or write it.  Clients
poll ``GET /{id}/messages?since_id=`` for new messages and call
``POST /{id}/read`` when the thread is displayed.
"""

from typing import List, Optional, Tuple

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Response, status

from socialtend_api.app.core.rate_limit import message_rate_limit
from socialtend_api.app.core.security import get_current_user, require_roles
from socialtend_api.app.schemas.conversation import (
    ConversationCreate,
    ConversationRead,
    ConversationStatusUpdate,
    MarkReadRequest,
    MarkReadResponse,
    MessageCreate,
    MessageRead,
    UnreadCount,
)
from socialtend_api.app.services.conversation_service import ConversationClosedError, ConversationService

router = APIRouter()


async def load_participant_conversation(conversation_id: int, current_user: dict) -> Tuple[ConversationRead, str]:
    """Return the conversation and the caller's side, or raise 404/403."""
    conversation = await ConversationService.get_conversation(conversation_id)
    if not conversation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    side = ConversationService.participant_side(conversation, current_user["user_id"])
    if side is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a participant of this conversation")
    return conversation, side


async def post_message(conversation_id: int, data: MessageCreate, current_user: dict) -> MessageRead:
    conversation, side = await load_participant_conversation(conversation_id, current_user)
    sender_name = data.sender_name or " ".join(
        p for p in (current_user.get("first_name"), current_user.get("last_name")) if p
    ) or current_user["sub"]
    try:
        return await ConversationService.create_message(conversation, side, sender_name, data.content)
    except ConversationClosedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/", response_model=List[ConversationRead])
async def list_conversations(
    professional_id: Optional[int] = Query(None, description="Only conversations with this professional"),
    organizer_email: Optional[str] = Query(None, description="Only conversations opened with this email"),
    current_user: dict = Depends(get_current_user),
) -> List[ConversationRead]:
    """List the caller's open and archived conversations, newest first."""
    return await ConversationService.list_conversations(
        current_user["user_id"], professional_id=professional_id, organizer_email=organizer_email
    )


@router.post("/", response_model=ConversationRead, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    data: ConversationCreate,
    response: Response,
    current_user: dict = Depends(require_roles("organizer")),
) -> ConversationRead:
    """Open a conversation with a professional about an event.

    If the caller already has a conversation with the professional
    about the same event that is not closed, it is returned with 200.
    """
    try:
        conversation, created = await ConversationService.create_conversation(current_user, data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not created:
        response.status_code = status.HTTP_200_OK
    return conversation


# Declared before "/{conversation_id}" so the literal path wins.
@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(current_user: dict = Depends(get_current_user)) -> UnreadCount:
    counts = await ConversationService.unread_counts(current_user["user_id"])
    return UnreadCount(total=sum(counts.values()), conversations=counts)


@router.get("/{conversation_id}", response_model=ConversationRead)
async def get_conversation(
    conversation_id: int = Path(..., description="Conversation ID"),
    current_user: dict = Depends(get_current_user),
) -> ConversationRead:
    conversation, _ = await load_participant_conversation(conversation_id, current_user)
    return conversation


@router.delete("/{conversation_id}", response_model=ConversationRead)
async def close_conversation(
    conversation_id: int = Path(..., description="Conversation ID"),
    current_user: dict = Depends(get_current_user),
) -> ConversationRead:
    """Close the conversation.  Messages are kept; no new ones are accepted."""
    await load_participant_conversation(conversation_id, current_user)
    return await ConversationService.update_status(conversation_id, "closed", current_user["user_id"])


@router.patch("/{conversation_id}/status", response_model=ConversationRead)
async def update_conversation_status(
    payload: ConversationStatusUpdate,
    conversation_id: int = Path(..., description="Conversation ID"),
    current_user: dict = Depends(get_current_user),
) -> ConversationRead:
    await load_participant_conversation(conversation_id, current_user)
    try:
        return await ConversationService.update_status(conversation_id, payload.status, current_user["user_id"])
    except ConversationClosedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/{conversation_id}/messages", response_model=List[MessageRead])
async def list_messages(
    conversation_id: int = Path(..., description="Conversation ID"),
    since_id: Optional[int] = Query(None, ge=0, description="Only messages with a greater ID"),
    current_user: dict = Depends(get_current_user),
) -> List[MessageRead]:
    await load_participant_conversation(conversation_id, current_user)
    return await ConversationService.list_messages(conversation_id, since_id=since_id)


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(message_rate_limit)],
)
async def send_message(
    data: MessageCreate,
    conversation_id: int = Path(..., description="Conversation ID"),
    current_user: dict = Depends(get_current_user),
) -> MessageRead:
    """Send a message as the caller's side of the conversation."""
    return await post_message(conversation_id, data, current_user)


@router.post("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_read(
    conversation_id: int = Path(..., description="Conversation ID"),
    payload: Optional[MarkReadRequest] = Body(None),
    current_user: dict = Depends(get_current_user),
) -> MarkReadResponse:
    """Mark the other side's messages as read."""
    _, side = await load_participant_conversation(conversation_id, current_user)
    reader = payload.sender_type if payload and payload.sender_type else side
    if reader != side:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only read as your own side")
    updated = await ConversationService.mark_messages_as_read(conversation_id, reader)
    return MarkReadResponse(updated=updated)
