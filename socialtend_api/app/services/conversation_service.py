"""
Business logic for conversations and messages.

A conversation ties one organizer, one professional and one event
together.  Messages are appended by either side and polled by
clients; read state is kept on the server: when one side marks a
conversation as read, every message sent by the *other* side becomes
read.  Closing a conversation is a soft delete that hides it from
listings and stops new messages.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from socialtend_api.app.core.clock import to_utc, utcnow_iso
from socialtend_api.app.core.db import get_connection
from socialtend_api.app.schemas.conversation import ConversationCreate, ConversationRead, MessageRead
from socialtend_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class ConversationClosedError(ValueError):
    """Raised when writing to or reopening a closed conversation."""


def _conversation_from_row(row: sqlite3.Row) -> ConversationRead:
    return ConversationRead(
        id=row["id"],
        organizer_id=row["organizer_id"],
        organizer_name=row["organizer_name"],
        organizer_email=row["organizer_email"],
        professional_id=row["professional_id"],
        event_title=row["event_title"],
        event_date=row["event_date"],
        event_location=row["event_location"],
        event_description=row["event_description"],
        status=row["status"],
        created_at=to_utc(row["created_at"]),
    )


def _message_from_row(row: sqlite3.Row) -> MessageRead:
    return MessageRead(
        id=row["id"],
        conversation_id=row["conversation_id"],
        sender_type=row["sender_type"],
        sender_name=row["sender_name"],
        content=row["content"],
        is_read=bool(row["is_read"]),
        timestamp=to_utc(row["timestamp"]),
    )


def other_side(sender_type: str) -> str:
    return "organizer" if sender_type == "professional" else "professional"


class ConversationService:
    """Service for conversations, messages and read tracking."""

    @staticmethod
    def participant_side(conversation: ConversationRead, user_id: Optional[int]) -> Optional[str]:
        """Return ``organizer``/``professional`` for a participant, else ``None``."""
        if user_id is None:
            return None
        if conversation.organizer_id == user_id:
            return "organizer"
        if conversation.professional_id == user_id:
            return "professional"
        return None

    @classmethod
    async def list_conversations(
        cls,
        user_id: int,
        professional_id: Optional[int] = None,
        organizer_email: Optional[str] = None,
        include_closed: bool = False,
    ) -> List[ConversationRead]:
        """List the conversations ``user_id`` takes part in, newest first."""
        where_clauses = ["(organizer_id = ? OR professional_id = ?)"]
        params: List[Any] = [user_id, user_id]
        if professional_id is not None:
            where_clauses.append("professional_id = ?")
            params.append(professional_id)
        if organizer_email:
            where_clauses.append("organizer_email = ?")
            params.append(organizer_email)
        if not include_closed:
            where_clauses.append("status != 'closed'")
        query = "SELECT * FROM conversations WHERE " + " AND ".join(where_clauses) + " ORDER BY created_at DESC, id DESC"
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_conversation_from_row(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_conversation(cls, conversation_id: int) -> Optional[ConversationRead]:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM conversations WHERE id = ?", (conversation_id,)).fetchone()
            return _conversation_from_row(row) if row else None
        finally:
            conn.close()

    @classmethod
    async def create_conversation(
        cls, organizer: Dict[str, Any], data: ConversationCreate
    ) -> Tuple[ConversationRead, bool]:
        """Open a conversation between ``organizer`` and a professional.

        Returns ``(conversation, created)``.  When a conversation that is
        not closed already exists for the same organizer, professional
        and event title, it is returned with ``created=False``.

        Raises ``ValueError`` if the professional does not exist.
        """
        organizer_id = organizer["user_id"]
        name = data.organizer_name or " ".join(
            p for p in (organizer.get("first_name"), organizer.get("last_name")) if p
        ) or organizer["sub"]
        email = data.organizer_email or organizer["sub"]
        conn = get_connection()
        try:
            professional = conn.execute(
                "SELECT id FROM users WHERE id = ? AND role = 'professional'",
                (data.professional_id,),
            ).fetchone()
            if not professional:
                raise ValueError(f"Professional {data.professional_id} does not exist")
            existing = conn.execute(
                """
                SELECT * FROM conversations
                WHERE organizer_id = ? AND professional_id = ? AND event_title = ? AND status != 'closed'
                ORDER BY id DESC LIMIT 1
                """,
                (organizer_id, data.professional_id, data.event_title),
            ).fetchone()
            if existing:
                return _conversation_from_row(existing), False
            cursor = conn.execute(
                """
                INSERT INTO conversations (organizer_id, organizer_name, organizer_email, professional_id,
                                           event_title, event_date, event_location, event_description,
                                           status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'active', ?)
                """,
                (
                    organizer_id,
                    name,
                    email,
                    data.professional_id,
                    data.event_title,
                    data.event_date,
                    data.event_location,
                    data.event_description,
                    utcnow_iso(),
                ),
            )
            conversation_id = cursor.lastrowid
            conn.commit()
            row = conn.execute("SELECT * FROM conversations WHERE id = ?", (conversation_id,)).fetchone()
        finally:
            conn.close()
        logger.info(
            "Conversation %s opened between organizer %s and professional %s",
            conversation_id, organizer_id, data.professional_id,
        )
        await AuditService.record(
            organizer_id, "create", "conversation", conversation_id, {"professional_id": data.professional_id}
        )
        return _conversation_from_row(row), True

    @classmethod
    async def update_status(cls, conversation_id: int, status: str, user_id: Optional[int] = None) -> Optional[ConversationRead]:
        """Set the conversation status.

        ``closed`` is terminal: a closed conversation cannot move to any
        other status (``ConversationClosedError``).  Closing twice is a
        no-op.
        """
        conn = get_connection()
        try:
            row = conn.execute("SELECT status FROM conversations WHERE id = ?", (conversation_id,)).fetchone()
            if not row:
                return None
            if row["status"] == "closed" and status != "closed":
                raise ConversationClosedError("Closed conversations cannot be reopened")
            if row["status"] != status:
                conn.execute("UPDATE conversations SET status = ? WHERE id = ?", (status, conversation_id))
                conn.commit()
            updated = conn.execute("SELECT * FROM conversations WHERE id = ?", (conversation_id,)).fetchone()
        finally:
            conn.close()
        if row["status"] != status:
            await AuditService.record(user_id, "status", "conversation", conversation_id, {"status": status})
        return _conversation_from_row(updated)

    @classmethod
    async def list_messages(cls, conversation_id: int, since_id: Optional[int] = None) -> List[MessageRead]:
        """Return messages in timestamp order.

        With ``since_id`` only messages with a greater id are returned,
        which lets polling clients fetch just what is new.
        """
        query = "SELECT * FROM messages WHERE conversation_id = ?"
        params: List[Any] = [conversation_id]
        if since_id is not None:
            query += " AND id > ?"
            params.append(since_id)
        query += " ORDER BY timestamp ASC, id ASC"
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_message_from_row(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def create_message(
        cls, conversation: ConversationRead, sender_type: str, sender_name: str, content: str
    ) -> MessageRead:
        """Append a message to an open conversation."""
        if conversation.status == "closed":
            raise ConversationClosedError("Cannot send messages to a closed conversation")
        conn = get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO messages (conversation_id, sender_type, sender_name, content, is_read, timestamp)
                VALUES (?, ?, ?, ?, 0, ?)
                """,
                (conversation.id, sender_type, sender_name, content, utcnow_iso()),
            )
            message_id = cursor.lastrowid
            conn.commit()
            row = conn.execute("SELECT * FROM messages WHERE id = ?", (message_id,)).fetchone()
        finally:
            conn.close()
        logger.debug("Message %s posted to conversation %s by %s", message_id, conversation.id, sender_type)
        return _message_from_row(row)

    @classmethod
    async def mark_messages_as_read(cls, conversation_id: int, reader_type: str) -> int:
        """Mark every message sent by the other side as read.

        ``reader_type`` is the side doing the reading.  Returns the number
        of messages that changed state.
        """
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE messages SET is_read = 1 WHERE conversation_id = ? AND sender_type = ? AND is_read = 0",
                (conversation_id, other_side(reader_type)),
            )
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    @classmethod
    async def unread_counts(cls, user_id: int) -> Dict[int, int]:
        """Unread messages from the other side, per open conversation of ``user_id``."""
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT c.id AS conversation_id, COUNT(m.id) AS unread
                FROM conversations c
                JOIN messages m ON m.conversation_id = c.id AND m.is_read = 0
                WHERE c.status != 'closed'
                  AND ((c.organizer_id = ? AND m.sender_type = 'professional')
                    OR (c.professional_id = ? AND m.sender_type = 'organizer'))
                GROUP BY c.id
                """,
                (user_id, user_id),
            ).fetchall()
            return {row["conversation_id"]: row["unread"] for row in rows}
        finally:
            conn.close()
