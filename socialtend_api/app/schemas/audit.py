"""Pydantic models for the audit trail."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class AuditLogRead(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    object_type: Optional[str] = None
    object_id: Optional[int] = None
    timestamp: datetime
    details: Optional[Any] = None

    model_config = {
        "from_attributes": True,
    }
