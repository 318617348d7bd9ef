"""
Audit trail for marketplace actions.

Services call ``AuditService.record`` after significant writes
(registrations, profile changes, request transitions, payments).
Recording is best effort: a failure to write the audit row is logged
and never undoes the action being audited.  Administrators read the
trail through ``GET /api/v1/audit/logs``.

Timestamps are stored as UTC ISO strings like every other table, so
date filters are normalised the same way before comparing.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import date, datetime, timedelta, timezone
from typing import Any, List, Optional, Tuple

from socialtend_api.app.core.clock import to_utc, to_utc_iso, utcnow_iso
from socialtend_api.app.core.db import get_connection
from socialtend_api.app.schemas.audit import AuditLogRead

logger = logging.getLogger(__name__)


def _date_bound(value: str, *, end: bool) -> Tuple[str, str]:
    """Turn a date filter into ``(operator, utc iso bound)``.

    A bare ``YYYY-MM-DD`` covers the whole UTC day: as a start it means
    midnight, as an end it means before the following midnight.  Full
    timestamps are inclusive on both sides.  Raises ``ValueError`` for
    anything unparseable.
    """
    try:
        day = date.fromisoformat(value)
    except ValueError:
        return ("<=" if end else ">="), to_utc_iso(value)
    midnight = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    if end:
        return "<", (midnight + timedelta(days=1)).isoformat()
    return ">=", midnight.isoformat()


def _log_from_row(row: sqlite3.Row) -> AuditLogRead:
    details: Any = None
    if row["details"]:
        try:
            details = json.loads(row["details"])
        except json.JSONDecodeError:
            details = row["details"]
    return AuditLogRead(
        id=row["id"],
        user_id=row["user_id"],
        action=row["action"],
        object_type=row["object_type"],
        object_id=row["object_id"],
        timestamp=to_utc(row["timestamp"]),
        details=details,
    )


class AuditService:

    @classmethod
    async def log(
        cls,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Write one audit row.

        ``user_id`` is ``None`` for system actions such as webhook
        processing or lazy expiry; ``details`` is stored as JSON.
        """
        conn = get_connection()
        try:
            conn.execute(
                "INSERT INTO audit_logs (user_id, action, object_type, object_id, timestamp, details) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (user_id, action, object_type, object_id, utcnow_iso(), json.dumps(details) if details else None),
            )
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def record(cls, *args: Any, **kwargs: Any) -> None:
        """Like ``log`` but never raises."""
        try:
            await cls.log(*args, **kwargs)
        except sqlite3.Error as exc:
            logger.warning("Failed to write audit log %s %s: %s", args, kwargs, exc)

    @classmethod
    async def list_logs(
        cls,
        user_id: Optional[int] = None,
        object_type: Optional[str] = None,
        action: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogRead]:
        """Audit rows matching every given filter, newest first."""
        filters: List[Tuple[str, Any]] = []
        if user_id is not None:
            filters.append(("user_id = ?", user_id))
        if object_type:
            filters.append(("object_type = ?", object_type))
        if action:
            filters.append(("action = ?", action))
        if start_date:
            op, bound = _date_bound(start_date, end=False)
            filters.append((f"timestamp {op} ?", bound))
        if end_date:
            op, bound = _date_bound(end_date, end=True)
            filters.append((f"timestamp {op} ?", bound))
        query = "SELECT * FROM audit_logs"
        if filters:
            query += " WHERE " + " AND ".join(clause for clause, _ in filters)
        query += " ORDER BY id DESC LIMIT ? OFFSET ?"
        params = [value for _, value in filters] + [limit, offset]
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_log_from_row(row) for row in rows]
        finally:
            conn.close()
