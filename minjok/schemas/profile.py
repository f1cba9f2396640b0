"""
Profile schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from minjok.schemas.paper import PaperSummary


class PublicProfileResponse(BaseModel):
    """What anyone may see about a profile."""

    id: uuid.UUID
    full_name: str
    intro: Optional[str] = None
    role: str
    created_at: datetime

    class Config:
        from_attributes = True


class ProfileDetailResponse(BaseModel):
    profile: PublicProfileResponse
    papers: List[PaperSummary] = []


class ProfileUpdate(BaseModel):
    """Self-service profile edit."""

    full_name: Optional[str] = Field(None, max_length=255)
    intro: Optional[str] = Field(None, max_length=5000)


class AdminProfileUpdate(BaseModel):
    """Admin role console edit; unknown values are rejected."""

    role: Optional[str] = None
    admin_type: Optional[str] = None


class ProfileSearchResult(BaseModel):
    id: uuid.UUID
    full_name: str
    email: str

    class Config:
        from_attributes = True
