"""
Authentication schemas.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class SignUpRequest(BaseModel):
    """Sign-up request."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=255)

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class SignInRequest(BaseModel):
    """Sign-in request."""

    email: EmailStr
    password: str


class ProfileResponse(BaseModel):
    """Profile as seen by its owner and by admins."""

    id: uuid.UUID
    email: str
    full_name: str
    intro: Optional[str] = None
    role: str
    admin_type: str
    is_active: bool
    confirmed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    """Authentication token response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    profile: ProfileResponse


class SignUpResponse(BaseModel):
    """
    Sign-up result.

    ``confirmation_token`` is only populated in debug mode; otherwise it
    would be delivered by email.
    """

    profile: ProfileResponse
    message: str = "Check your email to confirm your account."
    confirmation_token: Optional[str] = None


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class SignOutRequest(BaseModel):
    """Omit the refresh token to end every session of the profile."""

    refresh_token: Optional[str] = None


class TokenRequest(BaseModel):
    """A single-use confirmation token."""

    token: str


class EmailRequest(BaseModel):
    email: EmailStr


class EmailTokenResponse(BaseModel):
    message: str
    token: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=8, max_length=128)
