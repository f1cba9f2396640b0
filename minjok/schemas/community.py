"""
Board and Q&A schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from minjok.schemas.comment import ThreadResponse
from minjok.services.community_service import PostView, QuestionView, ReplyView


class PostWrite(BaseModel):
    """Create or edit a board post / question. Both fields are required."""

    title: Optional[str] = Field(None, max_length=500)
    content: Optional[str] = None


class ReplyWrite(BaseModel):
    content: Optional[str] = None


class PostResponse(BaseModel):
    id: uuid.UUID
    author_id: uuid.UUID
    author_name: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_view(cls, view: PostView) -> "PostResponse":
        post = view.post
        return cls(
            id=post.id,
            author_id=post.author_id,
            author_name=view.author_name,
            title=post.title,
            content=post.content,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostDetailResponse(BaseModel):
    post: PostResponse
    comments: List[ThreadResponse] = []


class ReplyResponse(BaseModel):
    id: uuid.UUID
    question_id: uuid.UUID
    author_id: uuid.UUID
    author_name: str
    author_role: str
    content: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_view(cls, view: ReplyView) -> "ReplyResponse":
        reply = view.reply
        return cls(
            id=reply.id,
            question_id=reply.question_id,
            author_id=reply.author_id,
            author_name=view.author_name,
            author_role=view.author_role,
            content=reply.content,
            created_at=reply.created_at,
            updated_at=reply.updated_at,
        )


class QuestionResponse(BaseModel):
    id: uuid.UUID
    author_id: uuid.UUID
    author_name: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
    replies: List[ReplyResponse] = []

    @classmethod
    def from_view(cls, view: QuestionView) -> "QuestionResponse":
        question = view.question
        return cls(
            id=question.id,
            author_id=question.author_id,
            author_name=view.author_name,
            title=question.title,
            content=question.content,
            created_at=question.created_at,
            updated_at=question.updated_at,
            replies=[ReplyResponse.from_view(reply) for reply in view.replies],
        )
