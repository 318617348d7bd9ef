"""Timestamp helpers shared by the services.

All timestamps written by the application are timezone-aware UTC ISO
strings.  Values supplied by clients without an offset are treated as
UTC.
"""

from datetime import datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    return utcnow().isoformat()


def to_utc(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse ``value`` into an aware UTC datetime.  ``None`` passes through."""
    if value is None:
        return None
    if isinstance(value, str):
        # SQLite's CURRENT_TIMESTAMP uses a space separator.
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_utc_iso(value: Union[str, datetime, None]) -> Optional[str]:
    parsed = to_utc(value)
    return parsed.isoformat() if parsed else None
