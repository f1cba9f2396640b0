"""
Paper and version schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from minjok.schemas.comment import ThreadResponse


class PaperSummary(BaseModel):
    """Paper list item."""

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    status: str
    author_id: uuid.UUID
    current_version_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AuthorResponse(BaseModel):
    profile_id: uuid.UUID
    full_name: str
    position: int
    is_corresponding: bool

    class Config:
        from_attributes = True


class VersionResponse(BaseModel):
    id: uuid.UUID
    article_id: uuid.UUID
    version_number: int
    file_name: str
    file_size: Optional[int] = None
    notes: Optional[str] = None
    uploaded_by: Optional[uuid.UUID] = None
    created_at: datetime
    file_url: Optional[str] = None

    class Config:
        from_attributes = True


class PaperDetailResponse(BaseModel):
    """A paper with its authors (submitter first) and versions, newest first."""

    paper: PaperSummary
    author_name: str
    authors: List[AuthorResponse] = []
    versions: List[VersionResponse] = []


class PaperCreatedResponse(BaseModel):
    paper: PaperSummary
    version: VersionResponse


class PublishRequest(BaseModel):
    """Title and description to publish under; the title is required."""

    title: Optional[str] = None
    description: Optional[str] = None


class VersionDeletionResponse(BaseModel):
    """``paper_deleted`` is true when the last version took the paper with it."""

    paper_deleted: bool
    current_version_id: Optional[uuid.UUID] = None


class VersionDetailResponse(BaseModel):
    paper: PaperSummary
    version: VersionResponse
    comments: List[ThreadResponse] = []
