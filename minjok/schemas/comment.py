"""
Comment schemas (paper and board threads).
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from minjok.services.comment_service import CommentView, Thread


class CommentCreate(BaseModel):
    """New comment; ``parent_id`` must name a top-level comment."""

    body: Optional[str] = Field(None, max_length=10000)
    parent_id: Optional[uuid.UUID] = None


class CommentUpdate(BaseModel):
    body: Optional[str] = Field(None, max_length=10000)


class CommentResponse(BaseModel):
    id: uuid.UUID
    author_id: uuid.UUID
    author_name: str
    body: str
    parent_id: Optional[uuid.UUID] = None
    article_id: Optional[uuid.UUID] = None
    version_id: Optional[uuid.UUID] = None
    board_post_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_view(cls, view: CommentView) -> "CommentResponse":
        comment = view.comment
        return cls(
            id=comment.id,
            author_id=comment.author_id,
            author_name=view.author_name,
            body=comment.body,
            parent_id=comment.parent_id,
            article_id=comment.article_id,
            version_id=comment.version_id,
            board_post_id=comment.board_post_id,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


class ThreadResponse(BaseModel):
    """A top-level comment and its replies, oldest first."""

    comment: CommentResponse
    replies: List[CommentResponse] = []

    @classmethod
    def from_thread(cls, thread: Thread) -> "ThreadResponse":
        return cls(
            comment=CommentResponse.from_view(thread.root),
            replies=[CommentResponse.from_view(reply) for reply in thread.replies],
        )
