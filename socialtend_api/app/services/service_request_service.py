"""
Business logic for service requests.

The lifecycle is::

    pending -> accepted -> paid -> completed
    pending -> declined
    pending -> expired   (lazily, once expires_at has passed)

``paid`` is only reached through the payment flow (``mark_paid``) and
``expired`` only through lazy expiry; clients cannot set either.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from socialtend_api.app.core.clock import to_utc, to_utc_iso, utcnow_iso
from socialtend_api.app.core.db import get_connection
from socialtend_api.app.schemas.service_request import ServiceRequestCreate, ServiceRequestRead
from socialtend_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class InvalidTransitionError(ValueError):
    """Raised when a status change is not allowed by the lifecycle."""


# Transitions clients may request, keyed by (current status, new status).
# The value lists the sides allowed to perform the transition.
ALLOWED_TRANSITIONS: Dict[tuple, tuple] = {
    ("pending", "accepted"): ("professional",),
    ("pending", "declined"): ("professional",),
    ("paid", "completed"): ("organizer", "professional"),
}


def _request_from_row(row: sqlite3.Row) -> ServiceRequestRead:
    return ServiceRequestRead(
        id=row["id"],
        organizer_id=row["organizer_id"],
        professional_id=row["professional_id"],
        event_title=row["event_title"],
        event_date=row["event_date"],
        event_location=row["event_location"],
        event_description=row["event_description"],
        request_message=row["request_message"],
        status=row["status"],
        response_message=row["response_message"],
        responded_at=to_utc(row["responded_at"]),
        expires_at=to_utc(row["expires_at"]),
        deposit_amount=row["deposit_amount"],
        total_amount=row["total_amount"],
        stripe_payment_intent_id=row["stripe_payment_intent_id"],
        payment_status=row["payment_status"],
        paid_at=to_utc(row["paid_at"]),
        created_at=to_utc(row["created_at"]),
    )


def _expire_pending(conn: sqlite3.Connection) -> int:
    """Move overdue pending requests to ``expired``.  Caller commits."""
    # expires_at is stored as a UTC ISO string, so string order is time order.
    cursor = conn.execute(
        "UPDATE service_requests SET status = 'expired' "
        "WHERE status = 'pending' AND expires_at IS NOT NULL AND expires_at <= ?",
        (utcnow_iso(),),
    )
    if cursor.rowcount:
        logger.info("Expired %s pending service request(s)", cursor.rowcount)
    return cursor.rowcount


class ServiceRequestService:
    """Service for creating and progressing service requests."""

    @staticmethod
    def participant_side(request: ServiceRequestRead, user_id: Optional[int]) -> Optional[str]:
        if user_id is None:
            return None
        if request.organizer_id == user_id:
            return "organizer"
        if request.professional_id == user_id:
            return "professional"
        return None

    @classmethod
    async def create_request(cls, organizer_id: int, data: ServiceRequestCreate) -> ServiceRequestRead:
        """Create a pending request from ``organizer_id``.

        Raises ``ValueError`` when the target is not a professional.
        """
        conn = get_connection()
        try:
            professional = conn.execute(
                "SELECT id FROM users WHERE id = ? AND role = 'professional'",
                (data.professional_id,),
            ).fetchone()
            if not professional:
                raise ValueError(f"Professional {data.professional_id} does not exist")
            cursor = conn.execute(
                """
                INSERT INTO service_requests (organizer_id, professional_id, event_title, event_date,
                                              event_location, event_description, request_message,
                                              status, expires_at, deposit_amount, total_amount,
                                              payment_status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, 'pending', ?, ?, ?, 'unpaid', ?)
                """,
                (
                    organizer_id,
                    data.professional_id,
                    data.event_title,
                    data.event_date,
                    data.event_location,
                    data.event_description,
                    data.request_message,
                    to_utc_iso(data.expires_at),
                    data.deposit_amount,
                    data.total_amount,
                    utcnow_iso(),
                ),
            )
            request_id = cursor.lastrowid
            conn.commit()
            row = conn.execute("SELECT * FROM service_requests WHERE id = ?", (request_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Service request %s sent by %s to %s", request_id, organizer_id, data.professional_id)
        await AuditService.record(
            organizer_id, "create", "service_request", request_id, {"professional_id": data.professional_id}
        )
        return _request_from_row(row)

    @classmethod
    async def list_requests(
        cls, user_id: int, role: Optional[str] = None, status: Optional[str] = None
    ) -> List[ServiceRequestRead]:
        """Requests addressed to ``user_id`` when ``role`` is ``professional``,
        otherwise requests ``user_id`` sent.  Newest first."""
        column = "professional_id" if role == "professional" else "organizer_id"
        query = f"SELECT * FROM service_requests WHERE {column} = ?"
        params: List[Any] = [user_id]
        if status:
            query += " AND status = ?"
            params.append(status)
        query += " ORDER BY created_at DESC, id DESC"
        conn = get_connection()
        try:
            if _expire_pending(conn):
                conn.commit()
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_request_from_row(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_request(cls, request_id: int) -> Optional[ServiceRequestRead]:
        conn = get_connection()
        try:
            if _expire_pending(conn):
                conn.commit()
            row = conn.execute("SELECT * FROM service_requests WHERE id = ?", (request_id,)).fetchone()
            return _request_from_row(row) if row else None
        finally:
            conn.close()

    @classmethod
    async def update_status(
        cls,
        request_id: int,
        new_status: str,
        actor_id: int,
        response_message: Optional[str] = None,
    ) -> Optional[ServiceRequestRead]:
        """Apply a client-requested status change.

        Returns ``None`` when the request does not exist.  Raises
        ``PermissionError`` when the actor may not perform the
        transition and ``InvalidTransitionError`` when the lifecycle does
        not allow it.
        """
        conn = get_connection()
        try:
            if _expire_pending(conn):
                conn.commit()
            row = conn.execute("SELECT * FROM service_requests WHERE id = ?", (request_id,)).fetchone()
            if not row:
                return None
            current = _request_from_row(row)
            side = cls.participant_side(current, actor_id)
            if side is None:
                raise PermissionError("Not a participant of this service request")
            if new_status in ("paid", "expired"):
                raise InvalidTransitionError(f"Status '{new_status}' cannot be set directly")
            allowed_sides = ALLOWED_TRANSITIONS.get((current.status, new_status))
            if allowed_sides is None:
                raise InvalidTransitionError(f"Cannot change status from '{current.status}' to '{new_status}'")
            if side not in allowed_sides:
                raise PermissionError(f"Only the {' or '.join(allowed_sides)} can set status '{new_status}'")
            now = utcnow_iso()
            conn.execute(
                """
                UPDATE service_requests
                SET status = ?,
                    response_message = COALESCE(?, response_message),
                    responded_at = COALESCE(responded_at, ?)
                WHERE id = ?
                """,
                (new_status, response_message, now, request_id),
            )
            conn.commit()
            updated = conn.execute("SELECT * FROM service_requests WHERE id = ?", (request_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Service request %s: %s -> %s by user %s", request_id, current.status, new_status, actor_id)
        await AuditService.record(
            actor_id, "status", "service_request", request_id, {"from": current.status, "to": new_status}
        )
        return _request_from_row(updated)

    @classmethod
    async def set_payment_intent(
        cls, request_id: int, payment_intent_id: str, amount: int, total_amount: Optional[int]
    ) -> ServiceRequestRead:
        conn = get_connection()
        try:
            conn.execute(
                """
                UPDATE service_requests
                SET stripe_payment_intent_id = ?, deposit_amount = ?,
                    total_amount = COALESCE(?, total_amount), payment_status = 'pending'
                WHERE id = ?
                """,
                (payment_intent_id, amount, total_amount, request_id),
            )
            conn.commit()
            row = conn.execute("SELECT * FROM service_requests WHERE id = ?", (request_id,)).fetchone()
            return _request_from_row(row)
        finally:
            conn.close()

    @classmethod
    async def mark_paid(
        cls, request_id: int, payment_intent_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> ServiceRequestRead:
        """Record a successful deposit.  Only ``accepted`` requests move to ``paid``.

        When ``conn`` is given the update joins the caller's transaction and
        the caller commits.
        """
        own_connection = conn is None
        if own_connection:
            conn = get_connection()
        try:
            conn.execute(
                """
                UPDATE service_requests
                SET status = CASE WHEN status = 'accepted' THEN 'paid' ELSE status END,
                    payment_status = 'paid',
                    stripe_payment_intent_id = ?,
                    paid_at = COALESCE(paid_at, ?)
                WHERE id = ?
                """,
                (payment_intent_id, utcnow_iso(), request_id),
            )
            if own_connection:
                conn.commit()
            row = conn.execute("SELECT * FROM service_requests WHERE id = ?", (request_id,)).fetchone()
            return _request_from_row(row)
        finally:
            if own_connection:
                conn.close()

    @classmethod
    async def mark_payment_failed(cls, payment_intent_id: str) -> int:
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE service_requests SET payment_status = 'failed' "
                "WHERE stripe_payment_intent_id = ? AND payment_status != 'paid'",
                (payment_intent_id,),
            )
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()
