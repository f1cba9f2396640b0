"""
Catalog models: issues bundle published articles, volumes bundle
released issues. Membership is exclusive, enforced by unique constraints.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from minjok.kernel.models.base import Base, TimestampMixin, generate_uuid


class ReleaseStatus(str, Enum):
    DRAFT = "draft"
    RELEASED = "released"


class Issue(Base, TimestampMixin):
    """A curated bundle of published articles."""

    __tablename__ = "issues"

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
    status: Mapped[ReleaseStatus] = mapped_column(
        String(20),
        default=ReleaseStatus.DRAFT,
        nullable=False,
        index=True,
    )
    release_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    cover_path: Mapped[Optional[str]] = mapped_column(
        String(1024),
        nullable=True,
    )
    cover_url: Mapped[Optional[str]] = mapped_column(
        String(2048),
        nullable=True,
    )
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("profiles.id"),
        nullable=True,
    )


class IssueArticle(Base):
    """Ordered membership of an article in an issue."""

    __tablename__ = "issue_articles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    issue_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("issues.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # An article belongs to at most one issue
    article_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    position: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )


class Volume(Base, TimestampMixin):
    """A curated bundle of released issues."""

    __tablename__ = "volumes"

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
    status: Mapped[ReleaseStatus] = mapped_column(
        String(20),
        default=ReleaseStatus.DRAFT,
        nullable=False,
        index=True,
    )
    release_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    cover_path: Mapped[Optional[str]] = mapped_column(
        String(1024),
        nullable=True,
    )
    cover_url: Mapped[Optional[str]] = mapped_column(
        String(2048),
        nullable=True,
    )
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("profiles.id"),
        nullable=True,
    )


class VolumeIssue(Base):
    """Ordered membership of an issue in a volume."""

    __tablename__ = "volume_issues"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    volume_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("volumes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # An issue belongs to at most one volume
    issue_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("issues.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    position: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
