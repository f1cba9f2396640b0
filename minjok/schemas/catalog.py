"""
Issue and volume schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from minjok.schemas.paper import PaperSummary


class IssueSummary(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    status: str
    release_date: Optional[datetime] = None
    cover_url: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class IssueResponse(IssueSummary):
    """An issue with its papers in position order."""

    papers: List[PaperSummary] = []


class VolumeResponse(BaseModel):
    """A volume with its issues in position order."""

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    status: str
    release_date: Optional[datetime] = None
    cover_url: Optional[str] = None
    created_at: datetime
    issues: List[IssueSummary] = []

    class Config:
        from_attributes = True
