"""
Pydantic models for professional and organizer profiles.

Each user owns at most one profile of each kind.  The ``user_id`` is
never accepted from clients; it is always the authenticated user.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def _clean_list(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return None
    cleaned = [v.strip() for v in values if v and v.strip()]
    # Keep the first occurrence of each entry, case-insensitively.
    seen = set()
    result = []
    for v in cleaned:
        if v.lower() not in seen:
            seen.add(v.lower())
            result.append(v)
    return result


class ProfessionalProfileBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    display_name: Optional[str] = Field(None, max_length=150, examples=["Maya Lopez Photography"])
    email: Optional[str] = None
    phone: Optional[str] = None
    location: str = Field(..., min_length=1, examples=["Austin, TX"])
    services: List[str] = Field(..., min_length=1, examples=[["photography", "videography"]])
    hourly_rate: Optional[float] = Field(None, ge=0, examples=[85.0])
    bio: Optional[str] = Field(None, max_length=2000)
    experience: Optional[int] = Field(None, ge=0, description="Years of experience")
    profile_image_url: Optional[str] = None

    @field_validator("services")
    @classmethod
    def _services_not_blank(cls, value: List[str]) -> List[str]:
        cleaned = _clean_list(value)
        if not cleaned:
            raise ValueError("At least one service is required")
        return cleaned


class ProfessionalProfileCreate(ProfessionalProfileBase):
    """Schema for creating a professional profile."""
    pass


class ProfessionalProfileUpdate(BaseModel):
    """Partial update; omitted fields keep their current values."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    display_name: Optional[str] = Field(None, max_length=150)
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = Field(None, min_length=1)
    services: Optional[List[str]] = None
    hourly_rate: Optional[float] = Field(None, ge=0)
    bio: Optional[str] = Field(None, max_length=2000)
    experience: Optional[int] = Field(None, ge=0)
    profile_image_url: Optional[str] = None

    @field_validator("services")
    @classmethod
    def _services_not_blank(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        cleaned = _clean_list(value)
        if not cleaned:
            raise ValueError("At least one service is required")
        return cleaned


class ProfessionalProfileRead(ProfessionalProfileBase):
    id: int
    user_id: int
    verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class OrganizerProfileBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    company_name: Optional[str] = Field(None, max_length=150)
    email: Optional[str] = None
    phone: Optional[str] = None
    location: str = Field(..., min_length=1)
    event_types: List[str] = Field(default_factory=list, examples=[["wedding", "corporate"]])
    bio: Optional[str] = Field(None, max_length=2000)
    profile_image_url: Optional[str] = None

    @field_validator("event_types")
    @classmethod
    def _clean_event_types(cls, value: List[str]) -> List[str]:
        return _clean_list(value) or []


class OrganizerProfileCreate(OrganizerProfileBase):
    """Schema for creating an organizer profile."""
    pass


class OrganizerProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    company_name: Optional[str] = Field(None, max_length=150)
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = Field(None, min_length=1)
    event_types: Optional[List[str]] = None
    bio: Optional[str] = Field(None, max_length=2000)
    profile_image_url: Optional[str] = None

    @field_validator("event_types")
    @classmethod
    def _clean_event_types(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_list(value)


class OrganizerProfileRead(OrganizerProfileBase):
    id: int
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }
