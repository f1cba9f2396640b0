"""
Comment model shared by paper reviews and board posts.

A paper comment carries article_id + version_id; a board comment carries
board_post_id. Exactly one of the two targets is set.
"""

import uuid
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from minjok.kernel.models.base import Base, TimestampMixin, generate_uuid


class Comment(Base, TimestampMixin):
    """A single comment, optionally replying to a top-level comment."""

    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    article_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    version_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("article_versions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    board_post_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("board_posts.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )
    body: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    __table_args__ = (
        CheckConstraint(
            "(article_id IS NOT NULL AND version_id IS NOT NULL AND board_post_id IS NULL)"
            " OR (article_id IS NULL AND version_id IS NULL AND board_post_id IS NOT NULL)",
            name="ck_comments_single_target",
        ),
    )

    def __repr__(self) -> str:
        return f"<Comment {self.id} by {self.author_id}>"
