"""
Article (paper) models: the paper, its append-only version ledger and
its ordered author list.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from minjok.kernel.models.base import Base, TimestampMixin, generate_uuid, utc_now


class ArticleStatus(str, Enum):
    """Lifecycle states of a paper."""
    DRAFT = "draft"
    IN_REVIEW = "in_review"
    PUBLISHED = "published"


class Article(Base, TimestampMixin):
    """A submitted paper."""

    __tablename__ = "articles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )
    status: Mapped[ArticleStatus] = mapped_column(
        String(20),
        default=ArticleStatus.DRAFT,
        nullable=False,
        index=True,
    )
    current_version_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey(
            "article_versions.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_articles_current_version",
        ),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Article {self.id} status={self.status}>"


class ArticleVersion(Base):
    """
    One uploaded file revision of an article.

    Rows are never updated after insert. Numbering is protected by the
    (article_id, version_number) unique constraint.
    """

    __tablename__ = "article_versions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    article_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    storage_path: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
    )
    file_name: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    file_size: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    uploaded_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("profiles.id"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("article_id", "version_number", name="uq_article_versions_number"),
        Index("ix_article_versions_article_created", "article_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ArticleVersion {self.article_id} v{self.version_number}>"


class ArticleAuthor(Base):
    """Ordered co-author entry of an article."""

    __tablename__ = "article_authors"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    article_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    is_corresponding: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("article_id", "profile_id", name="uq_article_authors_profile"),
    )
