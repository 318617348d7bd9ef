"""
Business logic for user accounts.

Covers registration, credential checks, role switching and the two
token-based account flows (email verification and password reset).
Passwords are stored as PBKDF2 hashes; tokens are random URL-safe
strings with an expiry timestamp.
"""

import logging
import sqlite3
from datetime import timedelta
from typing import Optional

from socialtend_api.app.core.clock import to_utc, utcnow, utcnow_iso
from socialtend_api.app.core.db import get_connection
from socialtend_api.app.core.security import generate_verification_token, hash_password, verify_password
from socialtend_api.app.core.config import settings
from socialtend_api.app.schemas.user import UserCreate, UserRead
from socialtend_api.app.services.audit_service import AuditService
from socialtend_api.app.services.email_service import EmailService

logger = logging.getLogger(__name__)

_USER_COLUMNS = "id, email, role, first_name, last_name, is_email_verified, created_at"


def _row_to_user(row: sqlite3.Row) -> UserRead:
    return UserRead(
        id=row["id"],
        email=row["email"],
        role=row["role"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        is_email_verified=bool(row["is_email_verified"]),
        created_at=to_utc(row["created_at"]),
    )


class UserService:
    """Service for working with user accounts."""

    @classmethod
    async def create_user(cls, data: UserCreate) -> UserRead:
        """Register a new user and send the verification email.

        Raises ``ValueError`` when the email is already registered.
        """
        logger.info("Registering %s as %s", data.email, data.role)
        token = generate_verification_token()
        expires = (utcnow() + timedelta(hours=settings.email_verification_expire_hours)).isoformat()
        conn = get_connection()
        try:
            existing = conn.execute("SELECT id FROM users WHERE email = ?", (data.email,)).fetchone()
            if existing:
                raise ValueError("User already exists with this email")
            now = utcnow_iso()
            cursor = conn.execute(
                """
                INSERT INTO users (email, password, role, first_name, last_name,
                                   email_verification_token, email_verification_expires,
                                   created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data.email,
                    hash_password(data.password),
                    data.role,
                    data.first_name,
                    data.last_name,
                    token,
                    expires,
                    now,
                    now,
                ),
            )
            user_id = cursor.lastrowid
            conn.commit()
            row = conn.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise ValueError("User already exists with this email") from exc
        finally:
            conn.close()
        await AuditService.record(user_id, "create", "user", user_id, {"email": data.email, "role": data.role})
        await EmailService.send_verification_email(data.email, token)
        return _row_to_user(row)

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[UserRead]:
        """Return the user when the credentials match, otherwise ``None``."""
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {_USER_COLUMNS}, password FROM users WHERE email = ?",
                (email,),
            ).fetchone()
        finally:
            conn.close()
        if not row or not verify_password(password, row["password"]):
            logger.info("Failed login attempt for %s", email)
            return None
        return _row_to_user(row)

    @classmethod
    async def get_user_by_id(cls, user_id: int) -> Optional[UserRead]:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
            return _row_to_user(row) if row else None
        finally:
            conn.close()

    @classmethod
    async def switch_role(cls, user_id: int, role: str) -> Optional[UserRead]:
        """Move the user to the other side of the marketplace."""
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE users SET role = ?, updated_at = ? WHERE id = ?",
                (role, utcnow_iso(), user_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
            row = conn.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        await AuditService.record(user_id, "update", "user", user_id, {"role": role})
        return _row_to_user(row)

    @classmethod
    async def verify_email(cls, token: str) -> UserRead:
        """Mark the account owning ``token`` as verified.

        Raises ``ValueError`` for unknown or expired tokens.
        """
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, email_verification_expires FROM users WHERE email_verification_token = ?",
                (token,),
            ).fetchone()
            if not row or not row["email_verification_expires"] or to_utc(row["email_verification_expires"]) <= utcnow():
                raise ValueError("Invalid or expired verification token")
            conn.execute(
                """
                UPDATE users SET is_email_verified = 1, email_verification_token = NULL,
                                 email_verification_expires = NULL, updated_at = ?
                WHERE id = ?
                """,
                (utcnow_iso(), row["id"]),
            )
            conn.commit()
            user_row = conn.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (row["id"],)).fetchone()
        finally:
            conn.close()
        await AuditService.record(row["id"], "update", "user", row["id"], {"email_verified": True})
        return _row_to_user(user_row)

    @classmethod
    async def request_password_reset(cls, email: str, base_url: Optional[str] = None) -> bool:
        """Store a reset token and email it.

        Returns ``False`` when no account uses ``email``; callers must not
        reveal this to the client.
        """
        conn = get_connection()
        try:
            row = conn.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()
            if not row:
                return False
            token = generate_verification_token()
            expires = utcnow() + timedelta(minutes=settings.password_reset_expire_minutes)
            conn.execute(
                "UPDATE users SET password_reset_token = ?, password_reset_expires = ?, updated_at = ? WHERE id = ?",
                (token, expires.isoformat(), utcnow_iso(), row["id"]),
            )
            conn.commit()
        finally:
            conn.close()
        await EmailService.send_password_reset_email(email, token, base_url)
        return True

    @classmethod
    async def reset_password(cls, token: str, new_password: str) -> None:
        """Replace the password of the account owning a valid reset token."""
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, password_reset_expires FROM users WHERE password_reset_token = ?",
                (token,),
            ).fetchone()
            if not row or not row["password_reset_expires"] or to_utc(row["password_reset_expires"]) <= utcnow():
                raise ValueError("Invalid or expired reset token")
            conn.execute(
                """
                UPDATE users SET password = ?, password_reset_token = NULL,
                                 password_reset_expires = NULL, updated_at = ?
                WHERE id = ?
                """,
                (hash_password(new_password), utcnow_iso(), row["id"]),
            )
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(row["id"], "update", "user", row["id"], {"password_reset": True})
