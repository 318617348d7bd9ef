"""
Business logic for professional and organizer profiles.

Profiles are 1:1 with users.  List-valued fields (services, event
types) are stored as JSON text.  The professional directory query
lives here as well because it is a read over the same table.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from socialtend_api.app.core.clock import to_utc, utcnow_iso
from socialtend_api.app.core.db import get_connection
from socialtend_api.app.schemas.profile import (
    OrganizerProfileCreate,
    OrganizerProfileRead,
    OrganizerProfileUpdate,
    ProfessionalProfileCreate,
    ProfessionalProfileRead,
    ProfessionalProfileUpdate,
)
from socialtend_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class ProfileExistsError(ValueError):
    """Raised when a user already owns a profile of the requested kind."""


def _professional_from_row(row: sqlite3.Row) -> ProfessionalProfileRead:
    return ProfessionalProfileRead(
        id=row["id"],
        user_id=row["user_id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        display_name=row["display_name"],
        email=row["email"],
        phone=row["phone"],
        location=row["location"],
        services=json.loads(row["services"]),
        hourly_rate=row["hourly_rate"],
        bio=row["bio"],
        experience=row["experience"],
        profile_image_url=row["profile_image_url"],
        verified=bool(row["verified"]),
        created_at=to_utc(row["created_at"]),
        updated_at=to_utc(row["updated_at"]),
    )


def _organizer_from_row(row: sqlite3.Row) -> OrganizerProfileRead:
    return OrganizerProfileRead(
        id=row["id"],
        user_id=row["user_id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        company_name=row["company_name"],
        email=row["email"],
        phone=row["phone"],
        location=row["location"],
        event_types=json.loads(row["event_types"]),
        bio=row["bio"],
        profile_image_url=row["profile_image_url"],
        created_at=to_utc(row["created_at"]),
        updated_at=to_utc(row["updated_at"]),
    )


def _encode(values: Dict[str, Any], list_fields: tuple) -> Dict[str, Any]:
    return {k: json.dumps(v) if k in list_fields and v is not None else v for k, v in values.items()}


class ProfileService:
    """Service for profile CRUD and the professional directory."""

    @classmethod
    async def get_professional_profile(cls, user_id: int) -> Optional[ProfessionalProfileRead]:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM professional_profiles WHERE user_id = ?", (user_id,)).fetchone()
            return _professional_from_row(row) if row else None
        finally:
            conn.close()

    @classmethod
    async def create_professional_profile(cls, user_id: int, data: ProfessionalProfileCreate) -> ProfessionalProfileRead:
        """Create the professional profile of ``user_id``.

        Raises ``ProfileExistsError`` if the user already has one.
        """
        values = _encode(data.model_dump(), ("services",))
        now = utcnow_iso()
        conn = get_connection()
        try:
            if conn.execute("SELECT id FROM professional_profiles WHERE user_id = ?", (user_id,)).fetchone():
                raise ProfileExistsError("Professional profile already exists")
            columns = ["user_id", *values.keys(), "created_at", "updated_at"]
            params = [user_id, *values.values(), now, now]
            conn.execute(
                f"INSERT INTO professional_profiles ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
                params,
            )
            conn.commit()
            row = conn.execute("SELECT * FROM professional_profiles WHERE user_id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Created professional profile for user %s", user_id)
        await AuditService.record(user_id, "create", "professional_profile", row["id"], {"services": data.services})
        return _professional_from_row(row)

    @classmethod
    async def update_professional_profile(
        cls, user_id: int, updates: ProfessionalProfileUpdate
    ) -> Optional[ProfessionalProfileRead]:
        """Apply a partial update; returns ``None`` when no profile exists."""
        values = _encode(updates.model_dump(exclude_unset=True), ("services",))
        return await cls._update("professional_profiles", user_id, values, _professional_from_row)

    @classmethod
    async def get_organizer_profile(cls, user_id: int) -> Optional[OrganizerProfileRead]:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM organizer_profiles WHERE user_id = ?", (user_id,)).fetchone()
            return _organizer_from_row(row) if row else None
        finally:
            conn.close()

    @classmethod
    async def create_organizer_profile(cls, user_id: int, data: OrganizerProfileCreate) -> OrganizerProfileRead:
        values = _encode(data.model_dump(), ("event_types",))
        now = utcnow_iso()
        conn = get_connection()
        try:
            if conn.execute("SELECT id FROM organizer_profiles WHERE user_id = ?", (user_id,)).fetchone():
                raise ProfileExistsError("Organizer profile already exists")
            columns = ["user_id", *values.keys(), "created_at", "updated_at"]
            params = [user_id, *values.values(), now, now]
            conn.execute(
                f"INSERT INTO organizer_profiles ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
                params,
            )
            conn.commit()
            row = conn.execute("SELECT * FROM organizer_profiles WHERE user_id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Created organizer profile for user %s", user_id)
        await AuditService.record(user_id, "create", "organizer_profile", row["id"])
        return _organizer_from_row(row)

    @classmethod
    async def update_organizer_profile(
        cls, user_id: int, updates: OrganizerProfileUpdate
    ) -> Optional[OrganizerProfileRead]:
        values = _encode(updates.model_dump(exclude_unset=True), ("event_types",))
        return await cls._update("organizer_profiles", user_id, values, _organizer_from_row)

    @classmethod
    async def _update(cls, table: str, user_id: int, values: Dict[str, Any], to_model):
        # Required columns cannot be cleared through a partial update.
        values = {k: v for k, v in values.items() if v is not None or k not in _REQUIRED_COLUMNS[table]}
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT id FROM {table} WHERE user_id = ?", (user_id,)).fetchone()
            if not row:
                return None
            if values:
                assignments = ", ".join(f"{key} = ?" for key in values)
                conn.execute(
                    f"UPDATE {table} SET {assignments}, updated_at = ? WHERE user_id = ?",
                    (*values.values(), utcnow_iso(), user_id),
                )
                conn.commit()
            updated = conn.execute(f"SELECT * FROM {table} WHERE user_id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        if values:
            await AuditService.record(user_id, "update", table.rstrip("s"), row["id"], {"fields": sorted(values)})
        return to_model(updated)

    @classmethod
    async def list_professionals(
        cls,
        location: Optional[str] = None,
        service: Optional[str] = None,
        min_rate: Optional[float] = None,
        max_rate: Optional[float] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[ProfessionalProfileRead]:
        """Search the professional directory.

        - ``location`` – case-insensitive substring of the location.
        - ``service`` – case-insensitive substring of any offered service.
        - ``min_rate`` / ``max_rate`` – hourly rate bounds; profiles
          without a rate are excluded when either bound is given.
        - ``search`` – substring of first/last/display name, bio or services.

        Verified professionals come first, then the newest profiles.
        """
        where_clauses: List[str] = []
        params: List[Any] = []
        if location:
            where_clauses.append("casefold(location) LIKE ? ESCAPE '\\'")
            params.append(_like(location))
        if service:
            # Services are a JSON array; matching inside quoted entries keeps
            # the search from hitting JSON punctuation.
            where_clauses.append(
                "EXISTS (SELECT 1 FROM json_each(professional_profiles.services) "
                "WHERE casefold(json_each.value) LIKE ? ESCAPE '\\')"
            )
            params.append(_like(service))
        if min_rate is not None:
            where_clauses.append("hourly_rate IS NOT NULL AND hourly_rate >= ?")
            params.append(min_rate)
        if max_rate is not None:
            where_clauses.append("hourly_rate IS NOT NULL AND hourly_rate <= ?")
            params.append(max_rate)
        if search:
            pattern = _like(search)
            where_clauses.append(
                "(casefold(first_name || ' ' || last_name) LIKE ? ESCAPE '\\' "
                "OR casefold(display_name) LIKE ? ESCAPE '\\' OR casefold(bio) LIKE ? ESCAPE '\\' "
                "OR EXISTS (SELECT 1 FROM json_each(professional_profiles.services) "
                "WHERE casefold(json_each.value) LIKE ? ESCAPE '\\'))"
            )
            params.extend([pattern, pattern, pattern, pattern])
        query = "SELECT * FROM professional_profiles"
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY verified DESC, id DESC"
        if limit is not None or offset is not None:
            # SQLite needs a LIMIT before OFFSET; -1 means no limit.
            query += " LIMIT ? OFFSET ?"
            params.extend([limit if limit is not None else -1, offset or 0])
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_professional_from_row(row) for row in rows]
        finally:
            conn.close()


_REQUIRED_COLUMNS = {
    "professional_profiles": {"first_name", "last_name", "location", "services"},
    "organizer_profiles": {"first_name", "last_name", "location", "event_types"},
}


def _like(term: str) -> str:
    escaped = term.casefold().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
