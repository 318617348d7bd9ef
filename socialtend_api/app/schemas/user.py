"""
Pydantic models for user accounts and authentication.

Passwords are accepted on input only; ``UserRead`` never carries the
password hash or any verification/reset token.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

UserRole = Literal["organizer", "professional"]


class UserBase(BaseModel):
    email: EmailStr = Field(..., examples=["organizer@example.com"])
    first_name: Optional[str] = Field(None, max_length=100, examples=["Maya"])
    last_name: Optional[str] = Field(None, max_length=100, examples=["Lopez"])


class UserCreate(UserBase):
    """Schema for registering a user."""

    password: str = Field(..., min_length=6, examples=["strongpassword"])
    role: UserRole = Field("organizer", description="Marketplace side of the account")


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserRead(UserBase):
    """Schema for reading a user from the API."""

    id: int
    role: UserRole
    is_email_verified: bool = False
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class AuthResponse(BaseModel):
    user: UserRead
    token: str


class RoleSwitch(BaseModel):
    role: UserRole


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)


class MessageResponse(BaseModel):
    message: str
